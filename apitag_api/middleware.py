"""Request tracking, problem-details responses and log setup for the apitag API."""

import logging
import logging.config
import sys
import time
import uuid
from typing import Any, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from pythonjsonlogger import jsonlogger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from apitag_api.schemas.common import ErrorResponse

REQUEST_ID_HEADERS = ("X-Request-ID", "X-Correlation-ID")
APITAG_LOGGERS = ("apitag", "apitag_api", "apitag_core", "apitag_analyzer", "apitag_cli")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID and logs its start, end and failures.

    The ID comes from the first of ``REQUEST_ID_HEADERS`` the caller sent,
    otherwise a new UUID. Handlers read it from ``request.state.request_id``.
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self.logger = logging.getLogger("apitag.api")

    @staticmethod
    def _request_id(request: Request) -> str:
        for header in REQUEST_ID_HEADERS:
            value = request.headers.get(header)
            if value:
                return value
        return str(uuid.uuid4())

    @staticmethod
    def _context(request: Request, request_id: str) -> dict[str, Any]:
        context: dict[str, Any] = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client": request.client.host if request.client else None,
        }
        # Seeds travel as ?fqn= on the preview endpoint
        if "fqn" in request.query_params:
            context["seed"] = request.query_params["fqn"]
        return context

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = self._request_id(request)
        request.state.request_id = request_id
        context = self._context(request, request_id)

        self.logger.info("request_start", extra=context)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.exception(
                "request_error",
                extra={
                    **context,
                    "error_type": type(e).__name__,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time-ms"] = f"{duration_ms:.2f}"

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        self.logger.log(
            level,
            "request_complete",
            extra={**context, "status_code": response.status_code, "duration_ms": round(duration_ms, 2)},
        )
        return response


def create_error_response(
    status_code: int,
    title: str,
    detail: str | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """RFC 7807 problem details; ``instance`` carries the request ID."""
    problem = ErrorResponse(
        type=f"https://httpstatuses.com/{status_code}",
        title=title,
        status=status_code,
        detail=detail,
        instance=request_id,
    )
    headers = {"X-Request-ID": request_id} if request_id else None
    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=headers,
    )


class ApitagJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps every record with the service name."""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("service", "apitag")
        log_record["level"] = record.levelname


def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Configure logging for the API server and the CLI.

    Args:
        level: Level name for the apitag loggers (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines on stderr when True, plain text otherwise
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    if json_format:
        formatter: dict[str, Any] = {
            "()": ApitagJsonFormatter,
            "format": "%(asctime)s %(name)s %(message)s",
        }
    else:
        formatter = {
            "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            "datefmt": "%H:%M:%S",
        }

    loggers: dict[str, Any] = {name: {"level": log_level} for name in APITAG_LOGGERS}
    loggers["uvicorn"] = {"level": "WARNING"}
    loggers["uvicorn.access"] = {"level": "WARNING"}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": formatter},
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": sys.stderr,
                },
            },
            "root": {"level": log_level, "handlers": ["stderr"]},
            "loggers": loggers,
        }
    )
