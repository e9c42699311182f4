"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from ts_check.config import ServerConfig

FAKE_TSSERVER = Path(__file__).parent / "fixtures" / "fake_tsserver.py"


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def fake_tsserver() -> Path:
    """Path of the fake tsserver script."""
    return FAKE_TSSERVER


@pytest.fixture
def server_config() -> ServerConfig:
    """Config running the fake tsserver with the current interpreter."""
    return ServerConfig(command=[sys.executable, str(FAKE_TSSERVER)], shutdown_timeout=2.0)


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    """A source file with one error on line 3."""
    path = tmp_path / "a.ts"
    path.write_text(
        "const a = 1;\nconst b = 2;\nconst c: string = @error;\nconst d = 4;\nconst e = 5;\n",
        encoding="utf-8",
    )
    return path
