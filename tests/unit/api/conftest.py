"""Fixtures for API tests.

Each test gets the real application on a fresh SQLite file.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from riskvisio.config import Settings
from tests.helpers import running_app


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    def _make(**security: Any) -> Settings:
        return Settings(
            database={"url": f"sqlite+aiosqlite:///{tmp_path / 'api.db'}"},
            security=security,
            logging={"level": "WARNING"},
        )

    return _make


@pytest.fixture
async def api(make_settings) -> AsyncIterator[SimpleNamespace]:
    """Application in dual-credential mode with no keys (bootstrap)."""
    async with running_app(make_settings()) as ctx:
        yield ctx
