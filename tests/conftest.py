"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Callable

import pytest
from filewatch_exporter.store import StateStore


@pytest.fixture
def store() -> StateStore:
    """A fresh, empty state store."""
    return StateStore()


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[..., Path]:
    """Create a file below tmp_path with the given content and mode."""

    def _write(relative: str, content: bytes = b"", mode: int = 0o644) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        path.chmod(mode)
        return path

    return _write
