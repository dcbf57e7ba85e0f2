"""Shared test fixtures for all test modules."""

import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

import pytest

# ── Environment overrides (must be set before importing glasscase modules) ───
_tmp = tempfile.mkdtemp(prefix="gc_pytest_")
os.environ["GLASSCASE_DATA_DIR"] = _tmp
os.environ["GLASSCASE_DB_PATH"] = os.path.join(_tmp, "test.db")
os.environ["GLASSCASE_SECRET_KEY"] = "pytest-secret-key"
os.environ["GLASSCASE_BASE_URL"] = "https://glass.example.com"


@pytest.fixture
async def db(tmp_path):
    """Fresh, migrated database per test."""
    import glasscase.database as db_mod
    from glasscase.config import settings
    from glasscase.services import ebay_auth_service

    original_db_path = settings.db_path
    settings.db_path = tmp_path / "glasscase_test.db"

    if db_mod._db is not None:
        await db_mod.close_db()

    await db_mod.init_db()
    yield await db_mod.get_db()

    await db_mod.close_db()
    settings.db_path = original_db_path
    ebay_auth_service._waiters.clear()
    ebay_auth_service._waiter_counts.clear()


@pytest.fixture
async def owner(db):
    from glasscase.services.user_service import create_user
    return await create_user("owner@example.com", "secret123", full_name="Jane Collector")


@pytest.fixture
async def stranger(db):
    from glasscase.services.user_service import create_user
    return await create_user("stranger@example.com", "secret456")


@pytest.fixture
def ebay_settings(monkeypatch):
    """Configure fake eBay application credentials."""
    from glasscase.config import settings
    monkeypatch.setattr(settings, "ebay_client_id", "client-id")
    monkeypatch.setattr(settings, "ebay_client_secret", "client-secret")
    monkeypatch.setattr(settings, "ebay_redirect_uri", "Glass-Case-RuName")
    monkeypatch.setattr(settings, "ebay_dev_id", "dev-id")
    monkeypatch.setattr(settings, "ebay_sandbox", True)
    return settings


def make_response(status_code=200, json_data=None, text=""):
    """A stand-in for an httpx.Response."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = json_data
    resp.text = text
    return resp


def mock_async_client(mock_client_cls, **methods):
    """Wire a patched httpx.AsyncClient class to an async context manager.

    Each keyword maps a client method name to an AsyncMock.
    """
    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=None)
    for name, mock in methods.items():
        setattr(mock_client, name, mock)
    mock_client_cls.return_value = mock_client
    return mock_client
