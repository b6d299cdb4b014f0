"""Reference Walk: explicit, depth-capped traversal of method bodies."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from apitag_core.code_model.base import CodeModel
from apitag_core.config import DEFAULT_WALK_MAX_DEPTH
from apitag_core.models.expressions import Expression, MethodCall, NewInstance, VariableRef
from apitag_core.models.types import Symbol, SymbolKind
from apitag_core.utils.layer import classify, is_service_layer

logger = logging.getLogger(__name__)

A = TypeVar("A")

# step(acc, node) -> (new_acc, stop)
FoldStep = Callable[[A, Expression], "tuple[A, bool]"]


@dataclass(frozen=True)
class ServiceUsage:
    """Service-layer types a body touches, in discovery order."""

    types: tuple[Symbol, ...] = ()
    unresolved: int = 0

    def with_type(self, symbol: Symbol) -> ServiceUsage:
        if symbol in self.types:
            return self
        return ServiceUsage(self.types + (symbol,), self.unresolved)

    def with_unresolved(self) -> ServiceUsage:
        return ServiceUsage(self.types, self.unresolved + 1)


class ReferenceWalker:
    """Walks expression trees pre-order and folds a value over the nodes.

    Nodes deeper than ``max_depth`` are not visited; the walk logs a warning
    instead of recursing, so pathological bodies cannot exhaust the stack.
    """

    def __init__(self, model: CodeModel, max_depth: int = DEFAULT_WALK_MAX_DEPTH):
        self.model = model
        self.max_depth = max_depth

    def fold(self, root: Optional[Expression], initial: A, step: FoldStep) -> A:
        """Fold ``step`` over every node reachable from ``root``.

        Args:
            root: Body expression (None folds to ``initial``)
            initial: Starting accumulator
            step: Returns the next accumulator and whether to stop early

        Returns:
            Final accumulator
        """
        if root is None:
            return initial

        acc = initial
        stack: list[tuple[Expression, int]] = [(root, 0)]
        capped = False
        while stack:
            node, depth = stack.pop()
            if depth > self.max_depth:
                capped = True
                continue

            acc, stop = step(acc, node)
            if stop:
                return acc

            children = list(node.children())
            for child in reversed(children):
                stack.append((child, depth + 1))

        if capped:
            logger.warning(
                f"Expression tree deeper than {self.max_depth}, deeper nodes skipped",
                extra={"max_depth": self.max_depth},
            )
        return acc

    def body_of(self, method: Symbol) -> Optional[Expression]:
        if method.kind != SymbolKind.METHOD:
            return None
        return self.model.get_body(method)

    def collect_service_types(self, method: Symbol) -> ServiceUsage:
        """Service-layer types a method calls into, reads or instantiates.

        Covers resolved call targets, declared types of field/parameter/local
        reads and types created with ``new``.
        """
        return self.fold(self.body_of(method), ServiceUsage(), self._service_step)

    def _service_step(self, acc: ServiceUsage, node: Expression) -> tuple[ServiceUsage, bool]:
        candidate: Optional[Symbol] = None

        if isinstance(node, MethodCall):
            called = self.model.resolve_call(node)
            if called is None:
                return acc.with_unresolved(), False
            candidate = called.declaring_type
        elif isinstance(node, VariableRef):
            candidate = self.model.resolve_variable(node)
            if candidate is None and node.declared_type is None:
                return acc.with_unresolved(), False
        elif isinstance(node, NewInstance):
            candidate = self.model.get_symbol(node.type_fqn) if node.type_fqn else None

        if candidate is not None and candidate.kind == SymbolKind.TYPE:
            if is_service_layer(classify(candidate)):
                return acc.with_type(candidate), False
        return acc, False
