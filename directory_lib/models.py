"""Record types stored in a directory backend.

A `Lookup` addresses one logical entity within its class. Each entity
record (`Infra`, `Deploy`, `Dev`) wraps a Lookup, the backend-assigned
`id` and a class-specific payload. `BlobData` is the handle returned when
reading a named blob.
"""
from __future__ import annotations
import base64
import json
import shutil
from dataclasses import dataclass, field, fields
from enum import IntEnum
from pathlib import Path
from typing import Any, BinaryIO, Callable, ClassVar, Dict, Optional, Tuple, Union

from directory_lib.errors import InvalidLookupError


@dataclass(frozen=True)
class Lookup:
    """Composite key. Components are either None or a non-empty string.

    Empty strings are normalized to None so ``foundation=""`` and an omitted
    foundation address the same record. An absent component still takes
    part in equality: ``Lookup(infra="a")`` != ``Lookup(infra="a", foundation="b")``.
    """

    app_id: Optional[str] = None
    infra: Optional[str] = None
    infra_flavor: Optional[str] = None
    foundation: Optional[str] = None

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value == "":
                object.__setattr__(self, f.name, None)
            elif value is not None and not isinstance(value, str):
                raise InvalidLookupError(f"lookup component {f.name} must be a string, got {type(value).__name__}")

    def key(self) -> str:
        """Canonical string encoding of every component (absent as null)."""
        return json.dumps([self.app_id, self.infra, self.infra_flavor, self.foundation], separators=(",", ":"))

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "app_id": self.app_id,
            "infra": self.infra,
            "infra_flavor": self.infra_flavor,
            "foundation": self.foundation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lookup":
        if not isinstance(data, dict):
            raise ValueError(f"lookup must be a mapping, got {type(data).__name__}")
        return cls(
            app_id=data.get("app_id"),
            infra=data.get("infra"),
            infra_flavor=data.get("infra_flavor"),
            foundation=data.get("foundation"),
        )


class InfraState(IntEnum):
    INVALID = 0
    PARTIAL = 1
    READY = 2


class DeployState(IntEnum):
    NEW = 0
    DEPLOYED = 1
    FAILED = 2


class DevState(IntEnum):
    NEW = 0
    READY = 1


@dataclass
class Record:
    """Common shape of every entity record.

    `id` is empty until the backend creates the record. Subclasses name
    their `kind` (used as the storage namespace) and the Lookup components
    they require.
    """

    kind: ClassVar[str] = ""
    required: ClassVar[Tuple[str, ...]] = ()

    lookup: Lookup
    id: str = ""

    @classmethod
    def check_lookup(cls, lookup: Lookup) -> Lookup:
        if not isinstance(lookup, Lookup):
            raise InvalidLookupError(f"{cls.kind}: expected Lookup, got {type(lookup).__name__}")
        missing = [name for name in cls.required if getattr(lookup, name) is None]
        if missing:
            raise InvalidLookupError(f"{cls.kind} lookup requires {', '.join(missing)}")
        return lookup

    def _payload_to_dict(self) -> Dict[str, Any]:
        return {}

    @classmethod
    def _payload_from_dict(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"lookup": self.lookup.to_dict(), "id": self.id}
        out.update(self._payload_to_dict())
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        if not isinstance(data, dict):
            raise ValueError(f"{cls.kind} record must be a mapping, got {type(data).__name__}")
        return cls(
            lookup=Lookup.from_dict(data["lookup"]),
            id=data.get("id") or "",
            **cls._payload_from_dict(data),
        )


@dataclass
class Infra(Record):
    kind: ClassVar[str] = "infra"
    required: ClassVar[Tuple[str, ...]] = ("infra",)

    state: InfraState = InfraState.INVALID
    outputs: Dict[str, str] = field(default_factory=dict)
    opaque: bytes = b""

    def is_partial(self) -> bool:
        return self.state == InfraState.PARTIAL

    def is_ready(self) -> bool:
        return self.state == InfraState.READY

    def _payload_to_dict(self) -> Dict[str, Any]:
        return {
            "state": int(self.state),
            "outputs": dict(self.outputs),
            "opaque": base64.b64encode(self.opaque).decode("ascii"),
        }

    @classmethod
    def _payload_from_dict(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "state": InfraState(data.get("state", 0)),
            "outputs": dict(data.get("outputs") or {}),
            "opaque": base64.b64decode(data.get("opaque") or ""),
        }


@dataclass
class Deploy(Record):
    kind: ClassVar[str] = "deploy"
    required: ClassVar[Tuple[str, ...]] = ("app_id", "infra", "infra_flavor")

    state: DeployState = DeployState.NEW
    data: Dict[str, str] = field(default_factory=dict)

    def is_new(self) -> bool:
        return self.state == DeployState.NEW

    def is_deployed(self) -> bool:
        return self.state == DeployState.DEPLOYED

    def is_failed(self) -> bool:
        return self.state == DeployState.FAILED

    def _payload_to_dict(self) -> Dict[str, Any]:
        return {"state": int(self.state), "data": dict(self.data)}

    @classmethod
    def _payload_from_dict(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {"state": DeployState(data.get("state", 0)), "data": dict(data.get("data") or {})}


@dataclass
class Dev(Record):
    kind: ClassVar[str] = "dev"
    required: ClassVar[Tuple[str, ...]] = ("app_id",)

    state: DevState = DevState.NEW

    def is_ready(self) -> bool:
        return self.state == DevState.READY

    def _payload_to_dict(self) -> Dict[str, Any]:
        return {"state": int(self.state)}

    @classmethod
    def _payload_from_dict(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {"state": DevState(data.get("state", 0))}


LookupLike = Union[Lookup, Record]


def as_lookup(value: LookupLike) -> Lookup:
    """Accept either a Lookup or a record and return the Lookup."""
    if isinstance(value, Record):
        return value.lookup
    return value


class BlobData:
    """Readable handle on a stored blob.

    The handle owns an underlying resource (file handle, buffer). Release
    it with `close()` or by using the handle as a context manager; reading
    after release is undefined.
    """

    def __init__(self, key: str, data: BinaryIO, closer: Optional[Callable[[], None]] = None) -> None:
        self.key = key
        self.data = data
        self._closer = closer or data.close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def read_all(self) -> bytes:
        return self.data.read()

    def write_to_file(self, path: str | Path) -> None:
        """Stream the remaining blob contents into `path`."""
        with open(path, "wb") as f:
            shutil.copyfileobj(self.data, f)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._closer()

    def __enter__(self) -> "BlobData":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:  # pragma: no cover - convenience
        return f"BlobData(key={self.key!r}, closed={self._closed})"
