"""Read-write lock: many concurrent readers OR one exclusive writer.

Built on threading.Condition with a reader count. Writers are
preferred: once a writer is queued, new readers wait behind it, so a
busy stream of HTTP handlers reading resource values cannot starve the
sampler that writes them.

Usage:
    lock = ReadWriteLock()

    with lock.read():
        value = self._value      # any number of threads here at once

    with lock.write():
        self._value = new_value  # exactly one thread here
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """Writer-preferring read-write lock.

    Both context managers release on every exit path, including when
    the guarded block raises.
    """

    def __init__(self) -> None:
        self._readers: int = 0
        self._writers_waiting: int = 0
        self._writer_active: bool = False
        self._cond = threading.Condition(threading.Lock())

    @contextmanager
    def read(self) -> Iterator[None]:
        """Shared access. Waits while a writer holds or is queued for the lock."""
        with self._cond:
            while self._writer_active or self._writers_waiting > 0:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Exclusive access. Waits for active readers and writers to leave."""
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer_active or self._readers > 0:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer_active = True
        try:
            yield
        finally:
            with self._cond:
                self._writer_active = False
                self._cond.notify_all()
