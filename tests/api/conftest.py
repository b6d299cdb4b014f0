"""Configuration and fixtures for API tests."""

import os

import pytest

from apitag_core.container import reset_container
from apitag_core.extractors.snapshot import SnapshotExtractor
from apitag_core.storage.sqlite_store import SQLiteStore

from factories import account_snapshot


def _client(db_path: str):
    from fastapi.testclient import TestClient

    # Set environment variables
    os.environ["APITAG_DB_PATH"] = db_path
    os.environ["APITAG_LOG_LEVEL"] = "WARNING"  # Reduce noise in tests
    reset_container()

    from apitag_api.app import app

    return TestClient(app)


def _cleanup_env() -> None:
    for name in ("APITAG_DB_PATH", "APITAG_LOG_LEVEL"):
        os.environ.pop(name, None)


@pytest.fixture
def api_client(temp_db_path):
    """Test API client over a database holding the account project."""
    store = SQLiteStore(temp_db_path, init=True)
    result = SnapshotExtractor(store).load(account_snapshot())
    assert result.success, result.errors
    store.close()

    client = _client(temp_db_path)
    yield client

    # Cleanup
    reset_container()
    _cleanup_env()


@pytest.fixture
def empty_api_client(temp_db_path):
    """Test API client whose database file does not exist."""
    client = _client(temp_db_path)
    yield client

    reset_container()
    _cleanup_env()
