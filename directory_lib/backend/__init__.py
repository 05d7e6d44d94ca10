"""Directory backend package: the contract plus the bundled engines."""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

from .base import Backend
from .interfaces import BackendProtocol
from .memory_backend import MemoryBackend
from .file_backend import FileBackend
from .sqlite_backend import SQLiteBackend
from .serializer import get_serializer

logger = logging.getLogger(__name__)

__all__ = [
    "Backend",
    "BackendProtocol",
    "MemoryBackend",
    "FileBackend",
    "SQLiteBackend",
    "create_backend",
]


def create_backend(
    backend: str = "memory",
    serializer: str = "json",
    data_dir: str | Path = "data",
    password: Optional[str] = None,
    key: Optional[bytes] = None,
    db_path: str | Path | None = None,
) -> Backend:
    """Build a backend by name: memory, file or sqlite.

    `serializer` (and `password`/`key` for the encrypted serializer) apply
    to the on-disk engines. `db_path` defaults to ``<data_dir>/directory.db``.
    """
    name = (backend or "memory").lower()
    if name == "memory":
        logger.debug("Using in-memory directory backend")
        return MemoryBackend()
    ser = get_serializer(serializer, password=password, key=key)
    if name == "file":
        logger.debug("Using file directory backend at %s (%s)", data_dir, ser.extension)
        return FileBackend(data_dir=data_dir, serializer=ser)
    if name == "sqlite":
        path = db_path if db_path is not None else Path(data_dir) / "directory.db"
        logger.debug("Using sqlite directory backend at %s", path)
        return SQLiteBackend(db_path=path, serializer=ser)
    raise ValueError(f"unknown backend {backend!r}")
