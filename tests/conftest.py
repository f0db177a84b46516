"""Root pytest configuration for all tests."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from rich.console import Console

from playwright_repl.config import ReplConfig
from tests.utils import FakeConnection

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def config(tmp_path: Path) -> ReplConfig:
    """Config pointing every path into tmp_path."""
    return ReplConfig(
        socket_path=str(tmp_path / "default.sock"),
        cwd=str(tmp_path),
        recordings_dir=tmp_path,
        slow_command_ms=10_000.0,
    )


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def console() -> Console:
    """Console writing plain text into a buffer."""
    return Console(file=io.StringIO(), width=200, color_system=None, highlight=False)
