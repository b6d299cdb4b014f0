"""API schemas for apitag."""

from apitag_api.schemas.check import CheckResponse, ProblemModel, RuleInfo
from apitag_api.schemas.common import ErrorResponse, HealthResponse
from apitag_api.schemas.symbol import SymbolDetail
from apitag_api.schemas.sync import (
    AuditEntryModel,
    RelatedResponse,
    RelationModel,
    SyncRequest,
    SyncResponse,
)

__all__ = [
    "CheckResponse",
    "ProblemModel",
    "RuleInfo",
    "ErrorResponse",
    "HealthResponse",
    "SymbolDetail",
    "AuditEntryModel",
    "RelatedResponse",
    "RelationModel",
    "SyncRequest",
    "SyncResponse",
]
