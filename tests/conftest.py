"""Root pytest configuration for all tests."""

from __future__ import annotations

import pytest

from agentwizard.ui.store import UIStateStore

# asyncio_mode is "auto" in pyproject.toml
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def store() -> UIStateStore:
    """Fresh UI state store."""
    return UIStateStore()
