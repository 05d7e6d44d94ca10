"""Serializers used by on-disk engines to persist record dictionaries.

Records are converted to plain dicts (`Record.to_dict`) before they reach
a serializer, so every format here can round-trip every record type.
"""
from typing import Any, Optional, Protocol
import base64
import json
import os
import pickle

import yaml

# Anything a serializer or Record.from_dict may raise on bad stored bytes
DECODE_ERRORS = (ValueError, KeyError, TypeError, pickle.UnpicklingError, yaml.YAMLError, EOFError)


class Serializer(Protocol):
    """Serialize/deserialize Python values for backends that store bytes.

    Implementations should be symmetric: `dump` -> bytes, `load` <- bytes.
    `extension` names the file suffix used by the file backend.
    """

    extension: str

    def dump(self, value: Any) -> bytes: ...

    def load(self, data: bytes) -> Any: ...


class PickleSerializer:
    """Binary pickle. Fast, but only readable from Python."""

    extension = "pkl"

    def dump(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)

    def load(self, data: bytes) -> Any:
        return pickle.loads(data)


class JSONSerializer:
    extension = "json"

    def dump(self, value: Any) -> bytes:
        return json.dumps(value, sort_keys=True).encode("utf-8")

    def load(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))


class YAMLSerializer:
    """Human-editable YAML. Loaded with `safe_load`."""

    extension = "yml"

    def dump(self, value: Any) -> bytes:
        return yaml.safe_dump(value, sort_keys=True).encode("utf-8")

    def load(self, data: bytes) -> Any:
        return yaml.safe_load(data.decode("utf-8"))


class EncryptedSerializer:
    """Serializer that encrypts payloads using Fernet (symmetric, authenticated).

    Provide either `key` (a Fernet key) or `password`. In password mode each
    payload carries its own random salt and the PBKDF2 iteration count so it
    can be decrypted later even if the default iteration count changes.
    The inner format defaults to JSON.
    """

    extension = "enc"

    def __init__(
        self,
        *,
        key: bytes | None = None,
        password: str | None = None,
        iterations: int = 390000,
        base_serializer: Serializer | None = None,
    ) -> None:
        if key is None and password is None:
            raise ValueError("EncryptedSerializer requires either `key` or `password`")
        self._key = key
        self._password = password
        self._iterations = iterations
        self.base_serializer = base_serializer or JSONSerializer()

    def _derive_key(self, password: str, salt: bytes, iterations: int) -> bytes:
        from cryptography.hazmat.primitives import hashes
        from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=iterations,
        )
        return base64.urlsafe_b64encode(kdf.derive(password.encode("utf-8")))

    def dump(self, value: Any) -> bytes:
        from cryptography.fernet import Fernet

        inner = self.base_serializer.dump(value)
        if self._password is not None:
            salt = os.urandom(16)
            ct = Fernet(self._derive_key(self._password, salt, self._iterations)).encrypt(inner)
            frame = {
                "v": 1,
                "mode": "password",
                "kdf": "pbkdf2",
                "iterations": self._iterations,
                "salt": base64.urlsafe_b64encode(salt).decode("ascii"),
                "ct": base64.urlsafe_b64encode(ct).decode("ascii"),
            }
        else:
            ct = Fernet(self._key).encrypt(inner)
            frame = {"v": 1, "mode": "key", "ct": base64.urlsafe_b64encode(ct).decode("ascii")}
        return json.dumps(frame).encode("utf-8")

    def load(self, data: bytes) -> Any:
        from cryptography.fernet import Fernet, InvalidToken

        frame = json.loads(data.decode("utf-8"))
        mode = frame.get("mode")
        ct = base64.urlsafe_b64decode(frame["ct"].encode("ascii"))
        if mode == "password":
            if self._password is None:
                raise ValueError("serializer was not configured with a password")
            salt = base64.urlsafe_b64decode(frame["salt"].encode("ascii"))
            key = self._derive_key(self._password, salt, frame.get("iterations", self._iterations))
        elif mode == "key":
            if self._key is None:
                raise ValueError("serializer was not configured with a key")
            key = self._key
        else:
            raise ValueError("unknown frame format")
        try:
            pt = Fernet(key).decrypt(ct)
        except InvalidToken as e:
            raise ValueError("payload could not be decrypted") from e
        return self.base_serializer.load(pt)


def get_serializer(name: str, *, password: Optional[str] = None, key: Optional[bytes] = None) -> Serializer:
    """Resolve a serializer by name: pickle, json, yaml or encrypted."""
    name = (name or "json").lower()
    if name == "pickle":
        return PickleSerializer()
    if name == "json":
        return JSONSerializer()
    if name == "yaml":
        return YAMLSerializer()
    if name == "encrypted":
        return EncryptedSerializer(key=key, password=password)
    raise ValueError(f"unknown serializer {name!r}")
