from __future__ import annotations

import threading
import weakref
from pathlib import Path


class ObjectLock:
    """Mutex for one stored object; usable as a context manager."""

    __slots__ = ("_mutex", "__weakref__")

    def __init__(self) -> None:
        self._mutex = threading.Lock()

    def __enter__(self) -> "ObjectLock":
        self._mutex.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._mutex.release()


class ObjectLocks:
    """
    Process-wide table of ObjectLock keyed by resolved object path.

    Entries are weakly held: a lock lives while some caller holds it, so the
    table does not grow with every key ever touched.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._table: weakref.WeakValueDictionary[str, ObjectLock] = weakref.WeakValueDictionary()

    def lock_for(self, path: Path) -> ObjectLock:
        key = str(path.resolve())
        with self._guard:
            lock = self._table.get(key)
            if lock is None:
                lock = self._table[key] = ObjectLock()
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._table)


SHARED_OBJECT_LOCKS = ObjectLocks()
