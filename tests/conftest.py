"""Pytest configuration for the directory_lib test suite.

Put the repository root on sys.path so tests import `directory_lib`
without an editable install, and restore root logging after each test
since `configure_logging` replaces the root handlers.
"""
import logging
import sys
from pathlib import Path

import pytest


def pytest_configure(config):
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    level, handlers = root.level, root.handlers[:]
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
