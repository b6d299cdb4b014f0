"""Bounded transitive closure over related types."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from apitag_core.code_model.base import CodeModel
from apitag_core.config import DEFAULT_CLOSURE_MAX_ITERATIONS
from apitag_core.exceptions import CodeModelError, ResolutionCancelledError
from apitag_core.models.types import Symbol
from apitag_core.utils.layer import is_controller, is_service, is_service_impl

from apitag_analyzer.resolution.implementations import ImplementationFinder
from apitag_analyzer.resolution.naming import NamingConvention
from apitag_analyzer.resolution.reference_walk import ReferenceWalker

logger = logging.getLogger(__name__)


@dataclass
class ClosureResult:
    types: list[Symbol] = field(default_factory=list)
    iterations: int = 0
    truncated: bool = False


class TransitiveClosure:
    """Worklist expansion of a related-type set, capped at ``max_iterations`` pops.

    Rules applied to each popped type:
        - service interface: add its implementations
        - service implementation: add its interfaces, their other
          implementations and the naming-convention controller
        - entry point: add service-layer types used by any of its method bodies
    """

    def __init__(
        self,
        model: CodeModel,
        walker: ReferenceWalker,
        implementations: ImplementationFinder,
        naming: NamingConvention,
        max_iterations: int = DEFAULT_CLOSURE_MAX_ITERATIONS,
    ):
        self.model = model
        self.walker = walker
        self.implementations = implementations
        self.naming = naming
        self.max_iterations = max_iterations

    def expand(
        self,
        initial: Iterable[Symbol],
        exclude: Iterable[Symbol] = (),
        cancel_event: Optional[threading.Event] = None,
    ) -> ClosureResult:
        """Expand ``initial`` until no new type appears or the cap is hit.

        Args:
            initial: Types found by the direct strategies
            exclude: Types never added to the result (the seed)
            cancel_event: Checked once per iteration

        Returns:
            ClosureResult with types in discovery order
        """
        result = ClosureResult()
        excluded = set(exclude)
        seen: set[Symbol] = set(excluded)
        worklist: deque[Symbol] = deque()

        def offer(symbol: Symbol) -> None:
            if symbol in seen:
                return
            seen.add(symbol)
            result.types.append(symbol)
            worklist.append(symbol)

        for symbol in initial:
            offer(symbol)

        while worklist:
            if result.iterations >= self.max_iterations:
                result.truncated = True
                logger.warning(
                    f"Closure stopped after {self.max_iterations} iterations "
                    f"with {len(worklist)} type(s) unexpanded",
                    extra={"iterations": result.iterations, "pending": len(worklist)},
                )
                break
            if cancel_event is not None and cancel_event.is_set():
                raise ResolutionCancelledError(
                    f"Resolution cancelled after {result.iterations} closure iterations"
                )

            result.iterations += 1
            current = worklist.popleft()
            for discovered in self._neighbours(current):
                offer(discovered)

        return result

    def _neighbours(self, current: Symbol) -> list[Symbol]:
        neighbours: list[Symbol] = []

        if current.is_interface and is_service(current):
            neighbours.extend(self._guarded(self.implementations.find_implementing_classes, current))

        if is_service_impl(current):
            for interface in self._guarded(self.model.get_interfaces, current):
                neighbours.append(interface)
                if is_service(interface):
                    neighbours.extend(self._guarded(self.naming.find_controllers_for, interface))
                neighbours.extend(self._guarded(self.implementations.find_implementing_classes, interface))

        if is_controller(current):
            for method in self._guarded(self.model.get_methods, current):
                try:
                    neighbours.extend(self.walker.collect_service_types(method).types)
                except CodeModelError as e:
                    logger.warning(
                        f"Cannot walk body of {method.describe()}: {e}",
                        extra={"method": method.fqn},
                    )

        return neighbours

    @staticmethod
    def _guarded(lookup: Callable[[Symbol], list[Symbol]], symbol: Symbol) -> list[Symbol]:
        """Run one lookup; a code model failure yields no neighbours."""
        try:
            return list(lookup(symbol))
        except CodeModelError as e:
            logger.warning(
                f"Lookup {getattr(lookup, '__name__', 'lookup')} failed for {symbol.fqn}: {e}",
                extra={"type": symbol.fqn},
            )
            return []
