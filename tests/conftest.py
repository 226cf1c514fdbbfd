"""Shared test fixtures."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from plan_chat.config.settings import Settings
from plan_chat.pipeline.background import BackgroundTasks
from tests.fakes import FakeChatStore, FakePlanStore


@pytest.fixture
def settings():
    """Test settings with a temp database path and no API keys."""
    tmp = tempfile.mkdtemp()
    return Settings(
        _env_file=None,
        openai_api_key="",
        google_api_key="",
        default_model="gpt-4o-mini",
        sqlite_db_path=str(Path(tmp) / "plan_chat.db"),
    )


@pytest.fixture
def db_path():
    tmp = tempfile.mkdtemp()
    return str(Path(tmp) / "test.db")


@pytest.fixture
def background():
    return BackgroundTasks()


@pytest.fixture
def plan_store():
    return FakePlanStore()


@pytest.fixture
def chat_store():
    return FakeChatStore()


@pytest.fixture
def sample_items():
    """Raw takeoff records in mixed producer formats."""
    return [
        {"id": "t-1", "category": "Roofing", "name": "TPO roof membrane", "quantity": 12400, "unit": "SF", "unit_cost": 6.25},
        {"id": "t-2", "category": "Roofing", "item_name": "Metal parapet flashing", "qty": "1,240", "unit": "LF"},
        {"id": "t-3", "category": "Drywall", "description": "Type X gypsum board", "quantity": 9800, "unit": "SF"},
        {"id": "fe-1", "category": "Fire Protection", "name": "Fire Extinguisher"},
    ]
