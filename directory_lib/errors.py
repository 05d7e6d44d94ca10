"""Exception types raised by directory backends.

Not-found is never an exception: `get_*` operations return ``None`` for
absent records and blobs. Everything here is either a caller mistake
(`InvalidLookupError`, `StaleRecordError`) or a storage fault
(`BackendError`).
"""
from __future__ import annotations


class DirectoryError(Exception):
    """Base class for all directory errors."""


class BackendError(DirectoryError):
    """The storage medium failed (I/O, corruption, connectivity)."""


class InvalidLookupError(DirectoryError, ValueError):
    """A Lookup is missing a component required by its entity class."""


class StaleRecordError(DirectoryError):
    """A put carried an ID that does not match the stored record."""

    def __init__(self, kind: str, lookup_key: str, given_id: str, stored_id: str | None):
        self.kind = kind
        self.lookup_key = lookup_key
        self.given_id = given_id
        self.stored_id = stored_id
        if stored_id is None:
            msg = f"{kind} {lookup_key}: id {given_id!r} refers to a record that no longer exists"
        else:
            msg = f"{kind} {lookup_key}: id {given_id!r} does not match stored id {stored_id!r}"
        super().__init__(msg)
