"""Simple memory-backed directory backend.

Records live in a dict keyed by ``(kind, lookup.key())``; blobs in a dict
keyed by name. Values are deep-copied on the way in and out so callers
can never alias stored state.
"""
import copy
import io
import logging
from threading import RLock
from typing import BinaryIO, Dict, Optional, Tuple, Type, TypeVar, Union

from directory_lib.backend.base import Backend, resolve_id
from directory_lib.backend.locks import KeyedLock
from directory_lib.models import BlobData, Lookup, Record

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)


class MemoryBackend(Backend):
    def __init__(self) -> None:
        self._lock = RLock()
        self._keys = KeyedLock()
        self._records: Dict[Tuple[str, str], Record] = {}
        self._blobs: Dict[str, bytes] = {}

    def get_record(self, cls: Type[R], lookup: Lookup) -> Optional[R]:
        with self._lock:
            stored = self._records.get((cls.kind, lookup.key()))
            return copy.deepcopy(stored) if stored is not None else None

    def put_record(self, record: R) -> R:
        slot = (record.kind, record.lookup.key())
        with self._keys.hold(slot):
            with self._lock:
                existing = self._records.get(slot)
            stored_id = existing.id if existing is not None else None
            final = copy.deepcopy(record)
            final.id = resolve_id(record, stored_id)
            with self._lock:
                self._records[slot] = final
            if stored_id is None:
                logger.info("Created %s %s with id %s", record.kind, slot[1], final.id)
            return copy.deepcopy(final)

    def delete_record(self, cls: Type[Record], lookup: Lookup) -> None:
        slot = (cls.kind, lookup.key())
        with self._keys.hold(slot):
            with self._lock:
                removed = self._records.pop(slot, None)
        if removed is not None:
            logger.info("Deleted %s %s (id %s)", cls.kind, slot[1], removed.id)

    def get_blob(self, name: str) -> Optional[BlobData]:
        with self._lock:
            data = self._blobs.get(name)
        if data is None:
            return None
        return BlobData(name, io.BytesIO(data))

    def put_blob(self, name: str, source: Union[bytes, bytearray, BinaryIO]) -> None:
        data = bytes(source) if isinstance(source, (bytes, bytearray)) else source.read()
        with self._lock:
            self._blobs[name] = data
        logger.info("Stored blob %s (%d bytes)", name, len(data))
