"""Tag sync orchestrator.

Drives one sync through its states::

    IDLE -> READ_PHASE -> (NO_TARGETS | TARGETS_FOUND) -> WRITE_PHASE -> REPORTED

The read phase (classification and resolution) runs under one read scope on
the calling thread. The write phase is handed to the mutation dispatcher, a
single worker thread, and awaited.

Overlapping syncs are not locked against each other beyond the code model's
readers/writer lock; two syncs writing the same targets race on last write.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Protocol, TypeVar

from apitag_core.code_model.base import CodeModel
from apitag_core.config import SyncConfig
from apitag_core.exceptions import MissingTagError, SymbolNotFoundError, UnresolvableSeedError
from apitag_core.models.types import AuditEntry, RelationSet, SeedMode, Symbol, SymbolKind
from apitag_core.tagging.codec import TagCodec

from apitag_analyzer.propagation.propagator import TagPropagator, render_audit
from apitag_analyzer.resolution.resolver import RelationshipResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SyncState(str, Enum):
    IDLE = "idle"
    READ_PHASE = "read_phase"
    NO_TARGETS = "no_targets"
    TARGETS_FOUND = "targets_found"
    WRITE_PHASE = "write_phase"
    REPORTED = "reported"


class ReportStatus(str, Enum):
    SUCCESS = "success"
    NOOP = "noop"
    NO_TARGETS = "no_targets"
    ERROR = "error"


@dataclass
class SyncReport:
    """Outcome of one sync, ready to show to a user."""

    status: ReportStatus
    message: str
    seed_fqn: str
    tag: Optional[str] = None
    mode: Optional[SeedMode] = None
    count: int = 0
    audit: list[AuditEntry] = field(default_factory=list)
    states: list[SyncState] = field(default_factory=list)
    relation: Optional[RelationSet] = None

    @property
    def is_error(self) -> bool:
        return self.status == ReportStatus.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "seed": self.seed_fqn,
            "tag": self.tag,
            "mode": self.mode.value if self.mode else None,
            "count": self.count,
            "audit": [
                {
                    "symbol": e.symbol_description,
                    "fqn": e.fqn,
                    "action": e.action.value,
                    "detail": e.detail,
                }
                for e in self.audit
            ],
            "states": [s.value for s in self.states],
            "relation": self.relation.to_dict() if self.relation else None,
        }


class TagPropagationService(Protocol):
    """What inspections and surfaces need from the sync engine."""

    def sync(self, fqn: str, tag: Optional[str] = None) -> SyncReport: ...

    def sync_method(self, fqn: str, tag: Optional[str] = None) -> SyncReport: ...

    def sync_class(self, fqn: str, tag: Optional[str] = None) -> SyncReport: ...

    def is_available(self, fqn: str) -> bool: ...

    def preview(self, fqn: str) -> RelationSet: ...


class MutationDispatcher:
    """Single-threaded queue that runs every code model mutation."""

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="apitag-mutation")

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Schedule ``fn`` on the mutation thread and wait for its result."""
        return self._executor.submit(fn, *args, **kwargs).result()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)


class TagSyncService:
    """Orchestrates seed detection, resolution, propagation and reporting."""

    def __init__(
        self,
        model: CodeModel,
        config: Optional[SyncConfig] = None,
        dispatcher: Optional[MutationDispatcher] = None,
    ):
        self.model = model
        self.config = config or SyncConfig()
        self.codec = TagCodec(self.config.tag_pattern)
        self.dispatcher = dispatcher or MutationDispatcher()
        self.propagator = TagPropagator(model, self.codec)

    # ========================
    # Seed detection
    # ========================

    def _load_seed(self, fqn: str) -> tuple[Symbol, SeedMode]:
        symbol = self.model.get_symbol(fqn)
        if symbol is None:
            raise SymbolNotFoundError(f"Symbol not found: {fqn}")

        if symbol.kind == SymbolKind.METHOD:
            return symbol, SeedMode.METHOD_SEED
        if symbol.kind == SymbolKind.TYPE:
            return symbol, SeedMode.CLASS_SEED
        if symbol.declaring_type is None:
            raise UnresolvableSeedError(f"Field {fqn} has no declaring type")
        return symbol.declaring_type, SeedMode.CLASS_SEED

    def _resolver(self, cancel_event: Optional[threading.Event]) -> RelationshipResolver:
        return RelationshipResolver(self.model, self.config, cancel_event)

    # ========================
    # TagPropagationService
    # ========================

    def sync(
        self,
        fqn: str,
        tag: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncReport:
        """Propagate the seed's tag (or ``tag``) across its vertical slice.

        Args:
            fqn: Seed method, type or field
            tag: Explicit tag; defaults to the seed's documentation tag
            cancel_event: Cancels resolution between closure iterations

        Returns:
            SyncReport

        Raises:
            SymbolNotFoundError: ``fqn`` is not indexed
            MissingTagError: No tag given and the seed has none
            UnresolvableSeedError: The seed's layer cannot be determined
        """
        states = [SyncState.IDLE, SyncState.READ_PHASE]

        with self.model.read_scope():
            seed, mode = self._load_seed(fqn)
            tag = tag or seed.existing_tag
            if not tag:
                raise MissingTagError(f"{seed.describe()} has no API message tag; supply one explicitly")
            relation = self._resolver(cancel_event).resolve(seed, mode)

        logger.info(
            f"Resolved {len(relation)} target(s) for {seed.describe()}",
            extra={"seed": seed.fqn, "mode": mode.value, "tag": tag, "relation": relation.to_dict()},
        )

        if relation.is_empty():
            states.extend([SyncState.NO_TARGETS, SyncState.REPORTED])
            return SyncReport(
                status=ReportStatus.NO_TARGETS,
                message=f"No related targets found for {seed.describe()}",
                seed_fqn=seed.fqn,
                tag=tag,
                mode=mode,
                states=states,
                relation=relation,
            )

        states.extend([SyncState.TARGETS_FOUND, SyncState.WRITE_PHASE])
        label = f"Sync API message tag {tag}"
        result = self.dispatcher.run(self.propagator.propagate, relation, tag, label)
        states.append(SyncState.REPORTED)

        audit_text = render_audit(result.audit)
        if result.has_failures:
            status = ReportStatus.ERROR
            message = (
                f"Tag '{tag}' sync finished with {len(result.failures)} failure(s) "
                f"({result.count} updated):\n{audit_text}"
            )
        elif result.count > 0:
            status = ReportStatus.SUCCESS
            message = f"Synced tag '{tag}' to {result.count} related target(s):\n{audit_text}"
        else:
            status = ReportStatus.NOOP
            message = "No classes or methods needed an update"
            if audit_text:
                message = f"{message}:\n{audit_text}"

        if status == ReportStatus.ERROR:
            logger.error(message, extra={"seed": seed.fqn, "tag": tag, "count": result.count})
        else:
            logger.info(message, extra={"seed": seed.fqn, "tag": tag, "count": result.count})

        return SyncReport(
            status=status,
            message=message,
            seed_fqn=seed.fqn,
            tag=tag,
            mode=mode,
            count=result.count,
            audit=result.audit,
            states=states,
            relation=relation,
        )

    def sync_method(self, fqn: str, tag: Optional[str] = None) -> SyncReport:
        symbol = self.model.get_symbol(fqn)
        if symbol is None:
            raise SymbolNotFoundError(f"Symbol not found: {fqn}")
        if symbol.kind != SymbolKind.METHOD:
            raise UnresolvableSeedError(f"{fqn} is not a method")
        return self.sync(fqn, tag)

    def sync_class(self, fqn: str, tag: Optional[str] = None) -> SyncReport:
        symbol = self.model.get_symbol(fqn)
        if symbol is None:
            raise SymbolNotFoundError(f"Symbol not found: {fqn}")
        if symbol.kind != SymbolKind.TYPE:
            raise UnresolvableSeedError(f"{fqn} is not a type")
        return self.sync(fqn, tag)

    def is_available(self, fqn: str) -> bool:
        """True when ``fqn`` is a usable seed that already carries a tag."""
        with self.model.read_scope():
            try:
                seed, _ = self._load_seed(fqn)
            except (SymbolNotFoundError, UnresolvableSeedError):
                return False
            return seed.existing_tag is not None

    def preview(self, fqn: str, cancel_event: Optional[threading.Event] = None) -> RelationSet:
        """Run the read phase only and return what a sync would touch."""
        def resolve() -> RelationSet:
            seed, mode = self._load_seed(fqn)
            return self._resolver(cancel_event).resolve(seed, mode)

        return self.model.run_in_read_scope(resolve)

    def close(self) -> None:
        self.dispatcher.shutdown()
