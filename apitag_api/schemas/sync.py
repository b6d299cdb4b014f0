"""Schemas for tag sync and relation preview endpoints."""

from pydantic import BaseModel, Field


class SyncRequest(BaseModel):
    """Request to propagate a tag from a seed symbol."""

    fqn: str = Field(description="Seed method, type or field FQN")
    tag: str | None = Field(default=None, description="Explicit tag; defaults to the seed's documentation tag")


class AuditEntryModel(BaseModel):
    """Outcome of writing the tag to one symbol."""

    symbol: str = Field(description="Short symbol description (Type or Type.method)")
    fqn: str | None = Field(default=None, description="Fully qualified name")
    action: str = Field(description="added, updated, skipped or failed")
    detail: str | None = Field(default=None, description="Reason for skipped/failed entries")


class RelationModel(BaseModel):
    """Symbols resolved as the seed's vertical slice."""

    mode: str = Field(description="Seed mode: method or class")
    source_layer: str = Field(description="Layer of the seed")
    types: list[str] = Field(default_factory=list, description="Target type FQNs")
    methods: dict[str, list[str]] = Field(default_factory=dict, description="Declaring type -> method FQNs")
    controller_types: list[str] = Field(default_factory=list, description="Controller types (class seeds)")
    iterations: int = Field(default=0, description="Closure iterations used")
    truncated: bool = Field(default=False, description="Closure stopped at the iteration cap")


class SyncResponse(BaseModel):
    """Sync report."""

    status: str = Field(description="success, noop, no_targets or error")
    message: str = Field(description="Human-readable report")
    seed: str = Field(description="Seed FQN actually used")
    tag: str | None = Field(default=None, description="Propagated tag")
    mode: str | None = Field(default=None, description="Seed mode")
    count: int = Field(default=0, description="Successful writes")
    audit: list[AuditEntryModel] = Field(default_factory=list, description="Per-symbol outcomes")
    states: list[str] = Field(default_factory=list, description="State machine trace")
    relation: RelationModel | None = Field(default=None, description="Resolved targets")


class RelatedResponse(BaseModel):
    """Preview of what a sync from ``fqn`` would touch."""

    fqn: str = Field(description="Seed FQN")
    available: bool = Field(description="Seed already carries a tag")
    relation: RelationModel
