"""Per-key locking helpers.

`KeyedLock` serializes the read-check-write sequence of a put for one
Lookup while letting puts for other Lookups proceed. `file_lock` adds an
exclusive `flock` so several processes sharing one data directory also
serialize.
"""
from __future__ import annotations
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Hashable, Iterator, Tuple


class KeyedLock:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> (lock, number of holders or waiters)
        self._locks: Dict[Hashable, Tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, users + 1)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                _, users = self._locks[key]
                if users <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


@contextmanager
def file_lock(lock_path: str | Path) -> Iterator[None]:
    """Hold an exclusive advisory lock on `lock_path` for the block.

    Falls back to no inter-process locking on platforms without fcntl.
    """
    os.makedirs(os.path.dirname(os.fspath(lock_path)) or ".", exist_ok=True)
    f = open(lock_path, "a+")
    try:
        try:
            import fcntl
        except ImportError:
            fcntl = None
        if fcntl is not None:
            fcntl.flock(f, fcntl.LOCK_EX)
        try:
            yield
        finally:
            if fcntl is not None:
                fcntl.flock(f, fcntl.LOCK_UN)
    finally:
        f.close()
