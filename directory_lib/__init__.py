"""Pluggable storage for deployment directory records and blobs."""

from .errors import BackendError, DirectoryError, InvalidLookupError, StaleRecordError
from .models import (
    BlobData,
    Deploy,
    DeployState,
    Dev,
    DevState,
    Infra,
    InfraState,
    Lookup,
)
from .backend import Backend, FileBackend, MemoryBackend, SQLiteBackend, create_backend

__all__ = [
    "Backend",
    "BackendError",
    "BlobData",
    "Deploy",
    "DeployState",
    "Dev",
    "DevState",
    "DirectoryError",
    "FileBackend",
    "Infra",
    "InfraState",
    "InvalidLookupError",
    "Lookup",
    "MemoryBackend",
    "SQLiteBackend",
    "StaleRecordError",
    "create_backend",
]
