"""Shared dependencies for API routes.

Services come from the DI container so tests can override them; a missing
database turns into a 503 before any service is created.
"""

import os

from fastapi import HTTPException

from apitag_analyzer.inspections.runner import InspectionRunner
from apitag_analyzer.sync import TagSyncService
from apitag_core.code_model.sqlite_model import SQLiteCodeModel
from apitag_core.container import get_container


def _require_database() -> None:
    db_path = get_container().config.db_path
    if not os.path.exists(db_path):
        raise HTTPException(status_code=503, detail="Database not available")


def get_code_model() -> SQLiteCodeModel:
    """Code model backed by the configured database.

    Example:
        @router.get("/endpoint")
        def endpoint(model: SQLiteCodeModel = Depends(get_code_model)):
            return model.get_symbol(fqn)
    """
    _require_database()
    return get_container().get_code_model()


def get_sync_service() -> TagSyncService:
    """Tag sync service (shares the container's code model and dispatcher)."""
    _require_database()
    return get_container().get_sync_service()


def get_inspection_runner() -> InspectionRunner:
    """Inspection runner wired to the container's sync service."""
    _require_database()
    return get_container().get_inspection_runner()
