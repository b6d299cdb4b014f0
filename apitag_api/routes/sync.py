"""Tag sync and relation preview endpoints."""

import logging

from fastapi import APIRouter, Depends, Query

from apitag_analyzer.sync import TagSyncService
from apitag_api.dependencies import get_sync_service
from apitag_api.schemas.sync import RelatedResponse, RelationModel, SyncRequest, SyncResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/sync", response_model=SyncResponse)
def sync_tag(
    request: SyncRequest,
    service: TagSyncService = Depends(get_sync_service),
) -> SyncResponse:
    """Propagate an API message tag from a seed across its layers.

    A report with status ``error`` is still returned with 200: the sync ran
    and the audit lists which symbols failed.
    """
    report = service.sync(request.fqn, request.tag)
    return SyncResponse(**report.to_dict())


@router.get("/related", response_model=RelatedResponse)
def related_symbols(
    fqn: str = Query(..., description="Seed method, type or field FQN"),
    service: TagSyncService = Depends(get_sync_service),
) -> RelatedResponse:
    """Preview the targets a sync from ``fqn`` would write to."""
    relation = service.preview(fqn)
    return RelatedResponse(
        fqn=fqn,
        available=service.is_available(fqn),
        relation=RelationModel(**relation.to_dict()),
    )
