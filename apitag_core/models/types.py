"""Core data types for the apitag code model and sync engine."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional


class SymbolKind(str, Enum):
    TYPE = "type"
    METHOD = "method"
    FIELD = "field"


class RelationKind(str, Enum):
    """Reference index relations (who references what, and in which context)."""

    CALLS = "calls"
    IMPLEMENTS = "implements"
    EXTENDS = "extends"
    TYPE_USAGE = "type_usage"
    INSTANTIATES = "instantiates"


class Layer(str, Enum):
    """Architectural layer of a symbol (derived, never stored)."""

    ENTRY_POINT = "entry_point"
    ABSTRACTION = "abstraction"
    IMPLEMENTATION = "implementation"
    UNKNOWN = "unknown"


class SeedMode(str, Enum):
    METHOD_SEED = "method"
    CLASS_SEED = "class"


class AuditAction(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class Symbol:
    """An opaque handle to a type, method or field in the code model.

    Identity is the fully qualified name: two handles for the same declaration
    compare equal even when read at different times.
    """

    fqn: str
    kind: SymbolKind = field(compare=False)
    name: Optional[str] = field(compare=False)
    declaring_type: Optional["Symbol"] = field(default=None, compare=False, repr=False)
    is_interface: bool = field(default=False, compare=False)
    parameters: tuple[str, ...] = field(default=(), compare=False)
    return_type: Optional[str] = field(default=None, compare=False)
    type_fqn: Optional[str] = field(default=None, compare=False)
    documentation: Optional[str] = field(default=None, compare=False, repr=False)
    existing_tag: Optional[str] = field(default=None, compare=False)
    annotations: tuple[str, ...] = field(default=(), compare=False)
    modifiers: tuple[str, ...] = field(default=(), compare=False)
    interfaces: tuple[str, ...] = field(default=(), compare=False)
    is_constructor: bool = field(default=False, compare=False)
    writable: bool = field(default=True, compare=False)

    @property
    def package(self) -> str:
        """Package prefix of a type fqn, including the trailing dot."""
        owner = self.fqn if self.kind == SymbolKind.TYPE else (
            self.declaring_type.fqn if self.declaring_type else self.fqn
        )
        if "." not in owner:
            return ""
        return owner[: owner.rfind(".") + 1]

    @property
    def is_public(self) -> bool:
        return "public" in self.modifiers

    def describe(self) -> str:
        """Short human-readable name: ``Type`` or ``Type.method``."""
        if self.kind == SymbolKind.TYPE or self.declaring_type is None:
            return self.name or self.fqn
        return f"{self.declaring_type.name}.{self.name}"


@dataclass(frozen=True)
class Reference:
    """One hit from the reference index."""

    target_fqn: str
    context: RelationKind
    enclosing_type: Optional[Symbol]
    enclosing_method: Optional[Symbol] = None


@dataclass
class SymbolData:
    """A symbol row as written to the SQLite store."""

    fqn: str
    kind: SymbolKind
    name: str
    parent_fqn: Optional[str] = None
    file_path: Optional[str] = None
    line_number: Optional[int] = None
    modifiers: list[str] = field(default_factory=list)
    annotations: list[str] = field(default_factory=list)
    is_interface: bool = False
    interfaces: list[str] = field(default_factory=list)
    parameters: list[str] = field(default_factory=list)
    return_type: Optional[str] = None
    type_fqn: Optional[str] = None
    is_constructor: bool = False
    documentation: Optional[str] = None
    body: Optional[dict] = None
    source: Optional[str] = None
    writable: bool = True

    def to_row(self) -> tuple:
        """Convert to SQLite row tuple."""
        return (
            self.fqn,
            self.kind.value,
            self.name,
            self.parent_fqn,
            self.file_path,
            self.line_number,
            json.dumps(self.modifiers) if self.modifiers else None,
            json.dumps(self.annotations) if self.annotations else None,
            1 if self.is_interface else 0,
            json.dumps(self.interfaces) if self.interfaces else None,
            json.dumps(self.parameters),
            self.return_type,
            self.type_fqn,
            1 if self.is_constructor else 0,
            self.documentation,
            json.dumps(self.body) if self.body is not None else None,
            self.source,
            1 if self.writable else 0,
        )


@dataclass
class EdgeData:
    """A reference-index edge between two symbols."""

    from_fqn: str
    to_fqn: str
    relation: RelationKind
    metadata: Optional[dict] = None

    def to_row(self) -> tuple:
        """Convert to SQLite row tuple."""
        return (
            self.from_fqn,
            self.to_fqn,
            self.relation.value,
            json.dumps(self.metadata) if self.metadata else None,
        )


@dataclass
class ExtractionResult:
    """Result of loading a project index snapshot."""

    success: bool
    symbols: list[SymbolData] = field(default_factory=list)
    edges: list[EdgeData] = field(default_factory=list)
    stats: dict = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


# ========================
# Sync engine types
# ========================


@dataclass
class RelationSet:
    """Symbols discovered as members of the seed's vertical slice.

    ``types`` holds target types, ``methods`` maps a declaring type to the
    methods to tag. The seed itself is never included.
    """

    mode: SeedMode
    source_layer: Layer = Layer.UNKNOWN
    types: list[Symbol] = field(default_factory=list)
    methods: dict[Symbol, list[Symbol]] = field(default_factory=dict)
    controller_types: list[Symbol] = field(default_factory=list)
    iterations: int = 0
    truncated: bool = False

    def add_type(self, symbol: Symbol) -> bool:
        if symbol in self.types:
            return False
        self.types.append(symbol)
        return True

    def add_method(self, owner: Symbol, method: Symbol) -> bool:
        bucket = self.methods.setdefault(owner, [])
        if method in bucket:
            return False
        bucket.append(method)
        return True

    @property
    def method_count(self) -> int:
        return sum(len(methods) for methods in self.methods.values())

    def is_empty(self) -> bool:
        return not self.types and self.method_count == 0 and not self.controller_types

    def __len__(self) -> int:
        return len(self.types) + self.method_count

    def iter_targets(self) -> Iterator[Symbol]:
        """Types first, then each declaring type's methods grouped together."""
        yield from self.types
        for methods in self.methods.values():
            yield from methods

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "source_layer": self.source_layer.value,
            "types": [t.fqn for t in self.types],
            "methods": {owner.fqn: [m.fqn for m in ms] for owner, ms in self.methods.items()},
            "controller_types": [c.fqn for c in self.controller_types],
            "iterations": self.iterations,
            "truncated": self.truncated,
        }


@dataclass(frozen=True)
class AuditEntry:
    """Outcome of propagating a tag to one symbol."""

    symbol_description: str
    action: AuditAction
    detail: Optional[str] = None
    fqn: Optional[str] = None

    def render(self) -> str:
        if self.action == AuditAction.ADDED:
            return f"- {self.symbol_description} (added)"
        if self.action == AuditAction.UPDATED:
            return f"- {self.symbol_description} (updated)"
        if self.action == AuditAction.SKIPPED:
            return f"- {self.symbol_description} (skipped: {self.detail})"
        return f"- {self.symbol_description} (failed: {self.detail})"


@dataclass
class PropagationResult:
    """Successful-write count plus the ordered audit trail."""

    count: int = 0
    audit: list[AuditEntry] = field(default_factory=list)

    @property
    def failures(self) -> list[AuditEntry]:
        return [e for e in self.audit if e.action == AuditAction.FAILED]

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


# ========================
# Inspection types
# ========================


class Severity(str, Enum):
    """Inspection problem severity."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ProblemData:
    """A problem reported by an inspection rule."""

    rule_id: str
    fqn: str
    severity: Severity
    message: str
    fix_name: Optional[str] = None
    fix_args: dict = field(default_factory=dict)
