import logging

import pytest

from directory_lib.backend import FileBackend, MemoryBackend
from directory_lib.config import Config, create_backend_from_config, load_config
from directory_lib.logging_config import configure_logging


def test_load_config_missing_file_gives_defaults(tmp_path):
    cfg = load_config(tmp_path / 'nope.yml')
    assert cfg == Config()


def test_load_config_reads_known_keys(tmp_path):
    p = tmp_path / 'directory.yml'
    p.write_text(f'backend: file\ndata_dir: {tmp_path / "d"}\nserializer: pickle\nextra: 1\n', encoding='utf-8')
    cfg = load_config(p)
    assert cfg.backend == 'file'
    assert cfg.serializer == 'pickle'
    b = create_backend_from_config(cfg)
    assert isinstance(b, FileBackend)
    assert b.serializer.extension == 'pkl'


def test_load_config_rejects_non_mapping(tmp_path):
    p = tmp_path / 'directory.yml'
    p.write_text('- a\n- b\n', encoding='utf-8')
    with pytest.raises(ValueError):
        load_config(p)


def test_load_config_rejects_bad_yaml(tmp_path):
    p = tmp_path / 'directory.yml'
    p.write_text('backend: [file\n', encoding='utf-8')
    with pytest.raises(ValueError):
        load_config(p)


def test_default_config_builds_memory_backend():
    assert isinstance(create_backend_from_config(Config()), MemoryBackend)


def test_configure_logging_level_from_config(tmp_path):
    p = tmp_path / 'directory.yml'
    p.write_text('log_level: debug\n', encoding='utf-8')
    configure_logging(p)
    assert logging.getLogger().level == logging.DEBUG


def test_configure_logging_explicit_level_wins(tmp_path):
    p = tmp_path / 'directory.yml'
    p.write_text('log_level: debug\n', encoding='utf-8')
    configure_logging(p, level='error')
    assert logging.getLogger().level == logging.ERROR


def test_configure_logging_bad_config_falls_back(tmp_path):
    p = tmp_path / 'directory.yml'
    p.write_text('log_level: [\n', encoding='utf-8')
    configure_logging(p)
    assert logging.getLogger().level == logging.WARNING
