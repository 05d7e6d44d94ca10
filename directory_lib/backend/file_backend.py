"""File-backed directory backend.

Layout under `data_dir`::

    <kind>/<sha256(lookup.key())>.<ext>   one serialized record per Lookup
    <kind>/.lock                          flock guarding puts/deletes of <kind>
    blob/<sha256(name)>.blob              raw blob bytes

Writes go to a unique temporary file which is fsynced and then renamed over
the target, so a failed write never leaves a half-written record behind.
"""
from __future__ import annotations
import hashlib
import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Type, TypeVar, Union

from directory_lib.backend.base import Backend, resolve_id
from directory_lib.backend.locks import KeyedLock, file_lock
from directory_lib.backend.serializer import DECODE_ERRORS, JSONSerializer, Serializer
from directory_lib.errors import BackendError
from directory_lib.models import BlobData, Lookup, Record

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)

BLOB_NS = "blob"
LOCK_FILE = ".lock"


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class FileBackend(Backend):
    def __init__(self, data_dir: str | Path = "./data", serializer: Serializer | None = None) -> None:
        self.data_dir = Path(data_dir)
        self.serializer = serializer or JSONSerializer()
        self._keys = KeyedLock()
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackendError(f"cannot create data directory {self.data_dir}: {e}") from e

    def _ns_dir(self, namespace: str) -> Path:
        ns = self.data_dir / namespace
        ns.mkdir(parents=True, exist_ok=True)
        return ns

    def record_path(self, kind: str, lookup: Lookup) -> Path:
        return self._ns_dir(kind) / f"{_digest(lookup.key())}.{self.serializer.extension}"

    def blob_path(self, name: str) -> Path:
        return self._ns_dir(BLOB_NS) / f"{_digest(name)}.blob"

    def _write_atomic(self, path: Path, write: Callable[[BinaryIO], None]) -> None:
        tmp = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            with open(tmp, "wb") as f:
                write(f)
                f.flush()
                os.fsync(f.fileno())
            tmp.replace(path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

    def _read_record(self, cls: Type[R], lookup: Lookup) -> Optional[R]:
        path = self.record_path(cls.kind, lookup)
        try:
            with open(path, "rb") as f:
                raw = f.read()
        except FileNotFoundError:
            return None
        try:
            record = cls.from_dict(self.serializer.load(raw))
        except DECODE_ERRORS as e:
            logger.exception("Corrupt %s record at %s", cls.kind, path)
            raise BackendError(f"corrupt {cls.kind} record at {path}") from e
        if record.lookup != lookup:
            raise BackendError(f"{path} holds {record.lookup.key()}, expected {lookup.key()}")
        return record

    def get_record(self, cls: Type[R], lookup: Lookup) -> Optional[R]:
        try:
            record = self._read_record(cls, lookup)
        except OSError as e:
            raise BackendError(f"failed to read {cls.kind} {lookup.key()}: {e}") from e
        logger.debug("Loaded %s %s: present=%s", cls.kind, lookup.key(), record is not None)
        return record

    def put_record(self, record: R) -> R:
        cls = type(record)
        lookup = record.lookup
        slot = (cls.kind, lookup.key())
        try:
            with self._keys.hold(slot), file_lock(self._ns_dir(cls.kind) / LOCK_FILE):
                existing = self._read_record(cls, lookup)
                stored_id = existing.id if existing is not None else None
                final = cls.from_dict(record.to_dict())
                final.id = resolve_id(record, stored_id)
                payload = self.serializer.dump(final.to_dict())
                self._write_atomic(self.record_path(cls.kind, lookup), lambda f: f.write(payload))
        except OSError as e:
            logger.exception("Failed to store %s %s", cls.kind, lookup.key())
            raise BackendError(f"failed to store {cls.kind} {lookup.key()}: {e}") from e
        if stored_id is None:
            logger.info("Created %s %s with id %s", cls.kind, lookup.key(), final.id)
        return final

    def delete_record(self, cls: Type[Record], lookup: Lookup) -> None:
        slot = (cls.kind, lookup.key())
        try:
            with self._keys.hold(slot), file_lock(self._ns_dir(cls.kind) / LOCK_FILE):
                path = self.record_path(cls.kind, lookup)
                existed = path.exists()
                path.unlink(missing_ok=True)
        except OSError as e:
            raise BackendError(f"failed to delete {cls.kind} {lookup.key()}: {e}") from e
        if existed:
            logger.info("Deleted %s %s", cls.kind, lookup.key())

    def get_blob(self, name: str) -> Optional[BlobData]:
        try:
            f = open(self.blob_path(name), "rb")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise BackendError(f"failed to open blob {name}: {e}") from e
        return BlobData(name, f)

    def put_blob(self, name: str, source: Union[bytes, bytearray, BinaryIO]) -> None:
        def write(f: BinaryIO) -> None:
            if isinstance(source, (bytes, bytearray)):
                f.write(source)
            else:
                shutil.copyfileobj(source, f)

        try:
            path = self.blob_path(name)
            self._write_atomic(path, write)
        except OSError as e:
            logger.exception("Failed to store blob %s", name)
            raise BackendError(f"failed to store blob {name}: {e}") from e
        logger.info("Stored blob %s at %s", name, path)
