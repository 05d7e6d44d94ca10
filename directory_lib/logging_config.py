from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

import yaml

LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s]: %(message)s'


def _level_from_config(cfg_path: Path) -> Optional[int]:
    try:
        with cfg_path.open('r', encoding='utf-8') as _f:
            _cfg = yaml.safe_load(_f) or {}
    except (OSError, yaml.YAMLError):
        logging.getLogger(__name__).warning('Could not read log level from %s', cfg_path)
        return None
    _lvl = _cfg.get('log_level') if isinstance(_cfg, dict) else None
    if isinstance(_lvl, str):
        _numeric = getattr(logging, _lvl.upper(), None)
        if isinstance(_numeric, int):
            return _numeric
    return None


def configure_logging(config_path: Optional[Path] = None, level: Optional[str] = None) -> logging.Logger:
    """Configure root logging for processes that host a directory backend.

    The level is taken from `level` when given, otherwise from the
    `log_level` key of the YAML file at `config_path`, otherwise WARNING.
    Existing root handlers are replaced. Returns a module logger.
    """
    default_level = logging.WARNING
    if level:
        default_level = getattr(logging, level.upper(), logging.WARNING)
    elif config_path is not None and Path(config_path).exists():
        default_level = _level_from_config(Path(config_path)) or logging.WARNING

    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    logging.basicConfig(level=default_level, format=LOG_FORMAT)
    logger = logging.getLogger(__name__)
    logger.info('Log level set to %s', logging.getLevelName(default_level))
    return logger
