"""Thread-safe building blocks for shared resource state.

  - ReadWriteLock: multiple readers OR one writer
  - SynchronizedCell: one value behind its own ReadWriteLock
"""
from reqscope.concurrency.cell import SynchronizedCell
from reqscope.concurrency.rwlock import ReadWriteLock

__all__ = [
    "ReadWriteLock",
    "SynchronizedCell",
]
