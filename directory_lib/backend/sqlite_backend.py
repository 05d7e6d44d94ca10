"""
SQLite-backed directory backend.

Schema
------
records(kind, lookup_key, id, body)   one row per (entity class, Lookup)
blobs(name, data)                     raw blob bytes

`body` holds the serialized record dict. A put runs its read-check-write
inside one ``BEGIN IMMEDIATE`` transaction so the id for a Lookup is
minted once even when several processes share the database file; a
failure rolls the transaction back and leaves the prior row untouched.
"""
from __future__ import annotations
import io
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Type, TypeVar, Union

from directory_lib.backend.base import Backend, resolve_id
from directory_lib.backend.serializer import DECODE_ERRORS, JSONSerializer, Serializer
from directory_lib.errors import BackendError
from directory_lib.models import BlobData, Lookup, Record

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)

_DDL = [
    """
    CREATE TABLE IF NOT EXISTS records (
        kind TEXT NOT NULL,
        lookup_key TEXT NOT NULL,
        id TEXT NOT NULL,
        body BLOB NOT NULL,
        PRIMARY KEY (kind, lookup_key)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS blobs (
        name TEXT PRIMARY KEY,
        data BLOB NOT NULL
    );
    """,
]


class SQLiteBackend(Backend):
    """
    Directory backend on a single SQLite database.

    One connection is shared by all threads of this instance and guarded by
    a lock; ``":memory:"`` gives a private throwaway database.
    """

    def __init__(self, db_path: str | Path = "directory.db", serializer: Serializer | None = None) -> None:
        self._db_path = str(db_path)
        self.serializer = serializer or JSONSerializer()
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        # connect eagerly so a bad path fails at construction
        with self._cursor():
            pass

    @property
    def conn(self) -> sqlite3.Connection:
        """Return the shared connection; create it (and the schema) on first use.

        A closed ``":memory:"`` instance reopens onto a fresh, empty database.
        """
        if self._conn is None:
            conn = sqlite3.connect(self._db_path, check_same_thread=False, isolation_level=None)
            for ddl in _DDL:
                conn.execute(ddl)
            self._conn = conn
        return self._conn

    def close(self) -> None:
        """Close the connection if open (idempotent)."""
        with self._lock:
            if self._conn is not None:
                try:
                    self._conn.close()
                finally:
                    self._conn = None

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self.conn
            except sqlite3.Error as e:
                logger.exception("SQLite operation failed on %s", self._db_path)
                raise BackendError(f"sqlite error: {e}") from e

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._cursor() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    try:
                        conn.execute("ROLLBACK")
                    except sqlite3.Error:
                        logger.exception("Rollback failed on %s", self._db_path)
                raise

    def _decode(self, cls: Type[R], lookup: Lookup, body: bytes) -> R:
        try:
            record = cls.from_dict(self.serializer.load(bytes(body)))
        except DECODE_ERRORS as e:
            raise BackendError(f"corrupt {cls.kind} row for {lookup.key()}") from e
        if record.lookup != lookup:
            raise BackendError(f"{cls.kind} row for {lookup.key()} holds {record.lookup.key()}")
        return record

    def get_record(self, cls: Type[R], lookup: Lookup) -> Optional[R]:
        with self._cursor() as conn:
            row = conn.execute(
                "SELECT body FROM records WHERE kind=? AND lookup_key=?",
                (cls.kind, lookup.key()),
            ).fetchone()
        if row is None:
            return None
        return self._decode(cls, lookup, row[0])

    def put_record(self, record: R) -> R:
        cls = type(record)
        key = record.lookup.key()
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT id FROM records WHERE kind=? AND lookup_key=?",
                (cls.kind, key),
            ).fetchone()
            stored_id = row[0] if row is not None else None
            final = cls.from_dict(record.to_dict())
            final.id = resolve_id(record, stored_id)
            conn.execute(
                "INSERT OR REPLACE INTO records (kind, lookup_key, id, body) VALUES (?, ?, ?, ?)",
                (cls.kind, key, final.id, self.serializer.dump(final.to_dict())),
            )
        if stored_id is None:
            logger.info("Created %s %s with id %s", cls.kind, key, final.id)
        return final

    def delete_record(self, cls: Type[Record], lookup: Lookup) -> None:
        with self._transaction() as conn:
            cur = conn.execute(
                "DELETE FROM records WHERE kind=? AND lookup_key=?",
                (cls.kind, lookup.key()),
            )
        if cur.rowcount:
            logger.info("Deleted %s %s", cls.kind, lookup.key())

    def get_blob(self, name: str) -> Optional[BlobData]:
        with self._cursor() as conn:
            row = conn.execute("SELECT data FROM blobs WHERE name=?", (name,)).fetchone()
        if row is None:
            return None
        return BlobData(name, io.BytesIO(bytes(row[0])))

    def put_blob(self, name: str, source: Union[bytes, bytearray, BinaryIO]) -> None:
        data = bytes(source) if isinstance(source, (bytes, bytearray)) else source.read()
        with self._transaction() as conn:
            conn.execute("INSERT OR REPLACE INTO blobs (name, data) VALUES (?, ?)", (name, sqlite3.Binary(data)))
        logger.info("Stored blob %s (%d bytes)", name, len(data))
