"""Architectural layer classification.

Centralises the naming/annotation heuristics that decide whether a symbol is
an entry point (Controller), a service abstraction (Service) or a service
implementation (ServiceImpl). Every function here is pure.
"""

from __future__ import annotations

from typing import Iterable, Optional

from apitag_core.models.types import Layer, Symbol, SymbolKind

MAPPING_ANNOTATIONS = (
    "RequestMapping",
    "GetMapping",
    "PostMapping",
    "PutMapping",
    "DeleteMapping",
)


def _owning_type(symbol: Optional[Symbol]) -> Optional[Symbol]:
    if symbol is None:
        return None
    if symbol.kind == SymbolKind.TYPE:
        return symbol
    return symbol.declaring_type


def _annotation_ends_with(annotations: Iterable[str], *suffixes: str) -> bool:
    for annotation in annotations:
        if annotation and annotation.endswith(suffixes):
            return True
    return False


def is_controller(symbol: Optional[Symbol]) -> bool:
    """Check if the symbol's type is an entry-point (Controller) type."""
    owner = _owning_type(symbol)
    if owner is None or not owner.name:
        return False

    if "Controller" in owner.name:
        return True
    if _annotation_ends_with(owner.annotations, "Controller", "RestController"):
        return True
    return ".controller." in (owner.fqn or "")


def is_service(symbol: Optional[Symbol]) -> bool:
    """Check if the symbol's type matches the Service heuristic (interface or impl)."""
    owner = _owning_type(symbol)
    if owner is None or not owner.name:
        return False

    if "Service" in owner.name:
        return True
    return _annotation_ends_with(owner.annotations, "Service")


def is_service_impl(symbol: Optional[Symbol]) -> bool:
    """Check if the symbol's type is a service implementation."""
    owner = _owning_type(symbol)
    if owner is None or not owner.name:
        return False
    return "Impl" in owner.name and is_service(owner)


def classify(symbol: Optional[Symbol]) -> Layer:
    """Determine the architectural layer of a type, method or field.

    Methods and fields take the layer of their declaring type. Symbols without
    a usable name classify as UNKNOWN.

    Args:
        symbol: Symbol handle from the code model

    Returns:
        Layer of the symbol
    """
    if is_controller(symbol):
        return Layer.ENTRY_POINT
    if is_service_impl(symbol):
        return Layer.IMPLEMENTATION
    if is_service(symbol):
        return Layer.ABSTRACTION
    return Layer.UNKNOWN


def is_entry_method(method: Optional[Symbol]) -> bool:
    """Check if a method carries a request-mapping style annotation."""
    if method is None or method.kind != SymbolKind.METHOD:
        return False
    for annotation in method.annotations:
        if not annotation:
            continue
        if annotation.endswith("Mapping"):
            return True
        if any(name in annotation for name in MAPPING_ANNOTATIONS):
            return True
    return False


def is_entry_point_method(method: Optional[Symbol]) -> bool:
    """Check if a method is an entry method or lives in an entry-point type."""
    if method is None or method.kind != SymbolKind.METHOD:
        return False
    return is_entry_method(method) or classify(method.declaring_type) == Layer.ENTRY_POINT


def is_service_layer(layer: Layer) -> bool:
    """Abstraction and implementation together form the service layer."""
    return layer in (Layer.ABSTRACTION, Layer.IMPLEMENTATION)


def get_layer_priority(layer: Layer | None) -> int:
    """Get priority for layer (for sorting report output).

    Lower number = higher priority (EntryPoint > Abstraction > Implementation).

    Args:
        layer: Layer value

    Returns:
        Priority value (0-3, where 0 is highest priority)
    """
    priorities = {
        Layer.ENTRY_POINT: 0,
        Layer.ABSTRACTION: 1,
        Layer.IMPLEMENTATION: 2,
    }
    return priorities.get(layer, 3)
