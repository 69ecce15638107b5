"""
Pytest configuration and shared fixtures for tapkit tests.
"""

import logging
import sys
from pathlib import Path

import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no I/O)")
    config.addinivalue_line(
        "markers", "integration: Integration tests (spawn real processes)"
    )
    config.addinivalue_line("markers", "slow: Slow tests (> 1 second)")
    config.addinivalue_line("markers", "posix: Tests that need POSIX signals")


def pytest_collection_modifyitems(config, items):
    """Skip POSIX-only tests on Windows."""
    if sys.platform == "win32":
        skip_posix = pytest.mark.skip(reason="POSIX-only test")
        for item in items:
            if "posix" in item.keywords:
                item.add_marker(skip_posix)


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide temporary directory for tests."""
    return tmp_path


@pytest.fixture
def isolated_home(temp_dir: Path, monkeypatch) -> Path:
    """Create isolated home directory for tests."""
    fake_home = temp_dir / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))
    monkeypatch.delenv("XDG_BIN_HOME", raising=False)

    return fake_home


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging.basicConfig(force=True) calls made by CLI tests."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level

    yield

    root.handlers[:] = handlers
    root.setLevel(level)
