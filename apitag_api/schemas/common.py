"""Schemas shared by every apitag endpoint."""

from typing import Literal

from pydantic import BaseModel, Field

ComponentStatus = Literal["ok", "empty", "missing", "invalid", "unavailable"]


class HealthResponse(BaseModel):
    """Overall status plus one entry per component."""

    status: Literal["healthy", "degraded", "unhealthy"]
    services: dict[str, ComponentStatus] = Field(
        default_factory=dict,
        description="database, code_model and config component states",
    )


class ErrorResponse(BaseModel):
    """Problem details body (RFC 7807) returned for every error."""

    type: str = Field(default="about:blank", description="URI naming the HTTP status")
    title: str = Field(description="What went wrong, e.g. 'Symbol Not Found'")
    status: int
    detail: str | None = Field(default=None, description="Message of the underlying error")
    instance: str | None = Field(default=None, description="X-Request-ID of the failed request")
