"""Health check endpoint for apitag API."""

import logging
from pathlib import Path

from fastapi import APIRouter

from apitag_api.schemas.common import HealthResponse
from apitag_core.container import get_container

router = APIRouter()
logger = logging.getLogger(__name__)


def get_db_status(db_path: str) -> str:
    """Check database status."""
    path = Path(db_path)
    if not path.exists():
        return "missing"
    if not path.is_file():
        return "invalid"
    return "ok"


def get_code_model_status() -> str:
    """Check that the code model has symbols loaded."""
    try:
        count = get_container().get_store().get_symbol_count()
    except Exception as e:
        logger.debug(f"Code model check failed: {e}")
        return "unavailable"
    return "ok" if count else "empty"


def get_config_status() -> str:
    errors = get_container().config.get_validation_errors()
    if errors:
        logger.warning("Invalid configuration", extra={"errors": errors})
        return "invalid"
    return "ok"


@router.get("/health", response_model=HealthResponse, tags=["health"])
def health_check() -> HealthResponse:
    """Health check endpoint.

    Returns the status of all apitag services:
    - database: SQLite code model file
    - code_model: whether a project snapshot has been loaded
    - config: whether the environment configuration is valid
    """
    services = {"database": get_db_status(get_container().config.db_path)}
    services["code_model"] = get_code_model_status() if services["database"] == "ok" else "unavailable"
    services["config"] = get_config_status()

    if all(s == "ok" for s in services.values()):
        overall_status = "healthy"
    elif any(s in ("missing", "unavailable", "invalid") for s in services.values()):
        overall_status = "unhealthy"
    else:
        overall_status = "degraded"

    return HealthResponse(status=overall_status, services=services)
