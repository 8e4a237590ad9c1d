"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import sys
from pathlib import Path
import pytest

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from bridge_server.relay import Relay  # noqa: E402


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the root directory of the project."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Default config path shipped with the repo."""
    return project_root / "config" / "default.yaml"


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure tests run with a clean environment (no leftover vars)."""
    import os

    monkeypatch.delenv("BRIDGE_SERVER_CONFIG", raising=False)
    for var in list(os.environ):
        if var.startswith("BRIDGE_SERVER__"):
            monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(scope="function")
def relay() -> Relay:
    return Relay()
