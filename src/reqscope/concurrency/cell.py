"""A single value guarded by its own read-write lock.

The resource registry keeps target and current readings in separate
cells, so a writer updating one never blocks readers of the other and
no read of a pair is ever atomic across both fields.
"""
from __future__ import annotations

from typing import Generic, TypeVar

from reqscope.concurrency.rwlock import ReadWriteLock

T = TypeVar("T")


class SynchronizedCell(Generic[T]):
    """Thread-safe holder for one value.

    Args:
        initial: starting value.
    """

    __slots__ = ("_value", "_lock")

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._lock = ReadWriteLock()

    def get(self) -> T:
        with self._lock.read():
            return self._value

    def set(self, value: T) -> None:
        with self._lock.write():
            self._value = value

    def __repr__(self) -> str:
        return f"SynchronizedCell({self.get()!r})"
