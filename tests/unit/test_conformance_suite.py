"""The conformance suite must reject backends that break the contract."""
import copy

import pytest

from directory_lib.backend.base import new_id
from directory_lib.backend.memory_backend import MemoryBackend
from directory_lib.testing import (
    verify_backend,
    verify_dev,
    verify_idempotent_put,
    verify_infra,
    verify_recreate_after_delete,
)


class AlwaysNewIdBackend(MemoryBackend):
    """Mints a new id on every put."""

    def put_record(self, record):
        final = copy.deepcopy(record)
        final.id = new_id()
        with self._lock:
            self._records[(record.kind, record.lookup.key())] = final
        return copy.deepcopy(final)


class IgnoresFoundationBackend(MemoryBackend):
    """Collapses foundation-scoped infra onto the unscoped key."""

    def _strip(self, lookup):
        return type(lookup)(app_id=lookup.app_id, infra=lookup.infra, infra_flavor=lookup.infra_flavor)

    def get_record(self, cls, lookup):
        return super().get_record(cls, self._strip(lookup))

    def put_record(self, record):
        stripped = copy.deepcopy(record)
        stripped.lookup = self._strip(record.lookup)
        final = super().put_record(stripped)
        final.lookup = record.lookup
        return final


class StrictDeleteBackend(MemoryBackend):
    """Raises KeyError when deleting an absent record."""

    def delete_record(self, cls, lookup):
        with self._lock:
            del self._records[(cls.kind, lookup.key())]


class ReusesIdBackend(MemoryBackend):
    """Remembers ids across delete."""

    def __init__(self):
        super().__init__()
        self._graveyard = {}

    def delete_record(self, cls, lookup):
        got = self.get_record(cls, lookup)
        if got is not None:
            self._graveyard[(cls.kind, lookup.key())] = got.id
        super().delete_record(cls, lookup)

    def put_record(self, record):
        final = super().put_record(record)
        old = self._graveyard.pop((record.kind, record.lookup.key()), None)
        if old is not None:
            final.id = old
            with self._lock:
                self._records[(record.kind, record.lookup.key())].id = old
        return final


def test_reference_backend_passes():
    verify_backend(MemoryBackend())


def test_detects_new_id_on_every_put():
    with pytest.raises(AssertionError, match='minted a second id'):
        verify_idempotent_put(AlwaysNewIdBackend())


def test_detects_foundation_collapse():
    with pytest.raises(AssertionError):
        verify_infra(IgnoresFoundationBackend())


def test_detects_non_idempotent_delete():
    with pytest.raises(KeyError):
        verify_dev(StrictDeleteBackend())


def test_detects_id_reuse_after_delete():
    with pytest.raises(AssertionError, match='reused id'):
        verify_recreate_after_delete(ReusesIdBackend())
