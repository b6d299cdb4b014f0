"""FastAPI application for apitag."""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from apitag_api.middleware import RequestContextMiddleware, create_error_response, setup_logging
from apitag_api.routes.check import router as check_router
from apitag_api.routes.health import router as health_router
from apitag_api.routes.symbol import router as symbol_router
from apitag_api.routes.sync import router as sync_router
from apitag_core.config import SyncConfig
from apitag_core.exceptions import (
    MissingTagError,
    ResolutionCancelledError,
    SymbolNotFoundError,
    UnresolvableSeedError,
)

APITAG_VERSION = "0.1.0"

API_VERSION = os.environ.get("APITAG_API_VERSION", "v1")

_config = SyncConfig.from_env()
setup_logging(level=_config.log_level, json_format=_config.json_logs)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Warn about a missing database or bad configuration, then serve.

    On shutdown the container is cleared, which stops the mutation thread.
    """
    from apitag_core.container import get_container

    logger.info("Starting apitag API server")

    config = get_container().config
    if not Path(config.db_path).exists():
        logger.warning(f"Database not found: {config.db_path}")
    for error in config.get_validation_errors():
        logger.warning(f"Configuration problem: {error}")
    logger.info(f"Using database: {config.db_path}")

    yield

    logger.info("Shutting down apitag API server")
    get_container().clear()


app = FastAPI(
    title="apitag",
    description="Cross-layer API message tag synchronisation for Controller/Service/ServiceImpl code",
    version=APITAG_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestContextMiddleware)

# /health stays outside the versioned prefix
app.include_router(health_router, tags=["health"])

app.include_router(sync_router, prefix=f"/api/{API_VERSION}", tags=["sync"])
app.include_router(check_router, prefix=f"/api/{API_VERSION}", tags=["check"])
app.include_router(symbol_router, prefix=f"/api/{API_VERSION}", tags=["symbol"])


@app.get("/", tags=["root"])
async def root() -> dict[str, Any]:
    """Service name, version and where to find the endpoints."""
    return {
        "name": "apitag API",
        "version": APITAG_VERSION,
        "docs": "/docs",
        "api_version": API_VERSION,
        "endpoints": {
            "current": f"/api/{API_VERSION}",
            "health": "/health",
        },
    }


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@app.exception_handler(SymbolNotFoundError)
async def symbol_not_found_handler(request: Request, exc: SymbolNotFoundError):
    return create_error_response(
        status_code=404,
        title="Symbol Not Found",
        detail=str(exc),
        request_id=_request_id(request),
    )


@app.exception_handler(UnresolvableSeedError)
async def unresolvable_seed_handler(request: Request, exc: UnresolvableSeedError):
    return create_error_response(
        status_code=422,
        title="Unresolvable Seed",
        detail=str(exc),
        request_id=_request_id(request),
    )


@app.exception_handler(MissingTagError)
async def missing_tag_handler(request: Request, exc: MissingTagError):
    return create_error_response(
        status_code=422,
        title="Missing Tag",
        detail=str(exc),
        request_id=_request_id(request),
    )


@app.exception_handler(ResolutionCancelledError)
async def cancelled_handler(request: Request, exc: ResolutionCancelledError):
    return create_error_response(
        status_code=409,
        title="Resolution Cancelled",
        detail=str(exc),
        request_id=_request_id(request),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """HTTPException raised by routes and dependencies, as problem details."""
    return create_error_response(
        status_code=exc.status_code,
        title=exc.detail or "HTTP Error",
        detail=exc.detail,
        request_id=_request_id(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Anything else is a 500; the message is only shown with APITAG_DEBUG set."""
    logger.exception(
        f"Unhandled {type(exc).__name__} on {request.url.path}",
        extra={"request_id": _request_id(request)},
    )
    return create_error_response(
        status_code=500,
        title="Internal Server Error",
        detail=str(exc) if os.environ.get("APITAG_DEBUG") else "An unexpected error occurred",
        request_id=_request_id(request),
    )


def run_server(host: str = "0.0.0.0", port: int = 8080) -> None:
    """Serve the app with uvicorn (``apitag serve``).

    Logging is already configured by ``setup_logging``, so uvicorn's own
    log config is disabled.
    """
    import uvicorn

    uvicorn.run(
        "apitag_api.app:app",
        host=host,
        port=port,
        reload=os.environ.get("APITAG_RELOAD", "false").lower() == "true",
        log_config=None,
    )


if __name__ == "__main__":
    run_server()
