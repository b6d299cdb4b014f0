"""Shared fixtures: temporary code model databases and project snapshots."""

import tempfile
from pathlib import Path
from typing import Any

import pytest

from apitag_core.code_model.sqlite_model import SQLiteCodeModel
from apitag_core.container import reset_container
from apitag_core.extractors.snapshot import SnapshotExtractor
from apitag_core.storage.sqlite_store import SQLiteStore

from factories import account_snapshot


@pytest.fixture(autouse=True)
def reset_di_container():
    """Reset the dependency injection container between tests."""
    reset_container()
    yield
    reset_container()


@pytest.fixture
def temp_db_path():
    """Create a temporary database path for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield str(Path(tmpdir) / "apitag.db")


@pytest.fixture
def store(temp_db_path):
    """Fresh SQLite store on a file database (connections are per thread)."""
    store = SQLiteStore(temp_db_path, init=True)
    yield store
    store.close()


@pytest.fixture
def load_snapshot(store):
    """Load a snapshot document and return a code model over it."""

    def _load(document: dict[str, Any]) -> SQLiteCodeModel:
        result = SnapshotExtractor(store).load(document)
        assert result.success, result.errors
        return SQLiteCodeModel(store)

    return _load


@pytest.fixture
def account_model(load_snapshot) -> SQLiteCodeModel:
    return load_snapshot(account_snapshot())
