"""Configuration for building a directory backend.

A config file is a YAML mapping, for example::

    backend: file
    data_dir: /var/lib/directory
    serializer: yaml
    log_level: INFO
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from directory_lib.backend import Backend, create_backend

logger = logging.getLogger(__name__)


@dataclass
class Config:
    backend: str = "memory"
    data_dir: str = "data"
    serializer: str = "json"
    # Only used by the encrypted serializer
    password: Optional[str] = None
    # If None, sqlite uses <data_dir>/directory.db
    db_path: Optional[str] = None
    log_level: str = "WARNING"


def load_config(path: str | Path) -> Config:
    """Read a YAML config file. A missing file yields the defaults."""
    p = Path(path)
    if not p.exists():
        logger.debug("No config at %s; using defaults", p)
        return Config()
    try:
        with p.open("r", encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"invalid config format in {p}: parse error") from e
    if data is None:
        return Config()
    if not isinstance(data, dict):
        raise ValueError(f"invalid config format in {p}: expected mapping")
    known = {f.name for f in fields(Config)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", p, ", ".join(map(str, unknown)))
    return Config(**{k: (str(v) if v is not None else None) for k, v in data.items() if k in known})


def create_backend_from_config(config: Config) -> Backend:
    return create_backend(
        backend=config.backend,
        serializer=config.serializer,
        data_dir=config.data_dir,
        password=config.password,
        db_path=config.db_path,
    )
