"""Directory backend interface definitions.

Defines the `Backend` abstract class every storage engine implements.
The public per-entity operations (`get_infra`, `put_deploy`,
`delete_dev`, ...) validate their Lookup and delegate to three generic
record primitives plus the two blob primitives, which is all an engine
has to provide.

Contract shared by every engine:

- `get_*` returns ``None`` for an absent record or blob, never raises for it.
- `put_*` creates (mints a new id) or updates (keeps the stored id) keyed
  purely by Lookup, and returns the finalized record. The caller's object
  is left untouched.
- A put whose record carries a non-empty id different from the stored one
  (or one whose record was deleted) raises `StaleRecordError`.
- `delete_*` is idempotent.
- Storage faults surface as `BackendError`.
"""
from __future__ import annotations
import uuid
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional, Type, TypeVar, Union

from directory_lib.errors import StaleRecordError
from directory_lib.models import (
    BlobData,
    Deploy,
    Dev,
    Infra,
    Lookup,
    LookupLike,
    Record,
    as_lookup,
)

R = TypeVar("R", bound=Record)

BlobSource = Union[bytes, bytearray, BinaryIO]


def new_id() -> str:
    return uuid.uuid4().hex


def resolve_id(record: Record, stored_id: Optional[str]) -> str:
    """Decide the id a put should persist, given what is currently stored.

    Must be called while holding whatever guard serializes puts for the
    record's Lookup.
    """
    if stored_id is None:
        if record.id:
            raise StaleRecordError(record.kind, record.lookup.key(), record.id, None)
        return new_id()
    if record.id and record.id != stored_id:
        raise StaleRecordError(record.kind, record.lookup.key(), record.id, stored_id)
    return stored_id


class Backend(ABC):
    """Abstract directory backend.

    Implementations must be thread-safe: one instance is typically shared
    by concurrent request handlers.
    """

    # -- engine primitives -------------------------------------------------

    @abstractmethod
    def get_record(self, cls: Type[R], lookup: Lookup) -> Optional[R]:
        """Return a copy of the stored `cls` record for `lookup`, or None."""

    @abstractmethod
    def put_record(self, record: R) -> R:
        """Create or update `record` atomically per Lookup; return the stored copy."""

    @abstractmethod
    def delete_record(self, cls: Type[Record], lookup: Lookup) -> None:
        """Remove the stored record for `lookup` if present."""

    @abstractmethod
    def get_blob(self, name: str) -> Optional[BlobData]:
        """Return a handle on blob `name`, or None. Caller must close it."""

    @abstractmethod
    def put_blob(self, name: str, source: BlobSource) -> None:
        """Fully consume `source` and store it under `name`, replacing any prior blob."""

    def close(self) -> None:
        """Release engine resources. Default is a no-op."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -- public entity operations -----------------------------------------

    def _get(self, cls: Type[R], lookup: LookupLike) -> Optional[R]:
        return self.get_record(cls, cls.check_lookup(as_lookup(lookup)))

    def _put(self, cls: Type[R], record: R) -> R:
        if not isinstance(record, cls):
            raise TypeError(f"expected {cls.__name__}, got {type(record).__name__}")
        cls.check_lookup(record.lookup)
        return self.put_record(record)

    def _delete(self, cls: Type[Record], lookup: LookupLike) -> None:
        self.delete_record(cls, cls.check_lookup(as_lookup(lookup)))

    def get_infra(self, lookup: LookupLike) -> Optional[Infra]:
        return self._get(Infra, lookup)

    def put_infra(self, infra: Infra) -> Infra:
        return self._put(Infra, infra)

    def delete_infra(self, lookup: LookupLike) -> None:
        self._delete(Infra, lookup)

    def get_deploy(self, lookup: LookupLike) -> Optional[Deploy]:
        return self._get(Deploy, lookup)

    def put_deploy(self, deploy: Deploy) -> Deploy:
        return self._put(Deploy, deploy)

    def delete_deploy(self, lookup: LookupLike) -> None:
        self._delete(Deploy, lookup)

    def get_dev(self, lookup: LookupLike) -> Optional[Dev]:
        return self._get(Dev, lookup)

    def put_dev(self, dev: Dev) -> Dev:
        return self._put(Dev, dev)

    def delete_dev(self, lookup: LookupLike) -> None:
        self._delete(Dev, lookup)
