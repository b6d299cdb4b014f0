"""Relationship resolver: the vertical slice around a seed symbol."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from apitag_core.code_model.base import CodeModel
from apitag_core.config import SyncConfig
from apitag_core.exceptions import CodeModelError, UnresolvableSeedError
from apitag_core.models.types import Layer, RelationKind, RelationSet, SeedMode, Symbol, SymbolKind
from apitag_core.utils.layer import classify, is_controller, is_entry_point_method, is_service_layer

from apitag_analyzer.resolution.closure import TransitiveClosure
from apitag_analyzer.resolution.implementations import ImplementationFinder
from apitag_analyzer.resolution.naming import NamingConvention
from apitag_analyzer.resolution.reference_walk import ReferenceWalker
from apitag_analyzer.resolution.relatedness import CallRelatedness

logger = logging.getLogger(__name__)


class RelationshipResolver:
    """Finds every symbol that belongs to the same Controller/Service/Impl slice.

    Method seeds:
        - entry-point method: service types used by its body, each interface
          with its implementations and each implementation with its interfaces
        - service or implementation method: entry-point methods calling it
          (or the interface method it implements)

    Class seeds: naming convention, interface linkage and reference search,
    then a bounded transitive closure; the result is split into controller
    types (whose related methods are tagged) and other types.
    """

    def __init__(
        self,
        model: CodeModel,
        config: Optional[SyncConfig] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.model = model
        self.config = config or SyncConfig()
        self.cancel_event = cancel_event
        self.walker = ReferenceWalker(model, self.config.walk_max_depth)
        self.implementations = ImplementationFinder(model)
        self.naming = NamingConvention(model)
        self.relatedness = CallRelatedness(model, self.walker, self.config.heuristic_text_match)
        self.closure = TransitiveClosure(
            model,
            self.walker,
            self.implementations,
            self.naming,
            self.config.closure_max_iterations,
        )

    def resolve(self, seed: Symbol, mode: SeedMode) -> RelationSet:
        """Resolve the related symbols of ``seed``.

        Args:
            seed: Method (METHOD_SEED) or type (CLASS_SEED) handle
            mode: Seed mode

        Returns:
            RelationSet that never contains the seed

        Raises:
            UnresolvableSeedError: Seed kind does not fit the mode, or its
                layer cannot be determined
        """
        if mode == SeedMode.METHOD_SEED:
            if seed.kind != SymbolKind.METHOD or seed.declaring_type is None:
                raise UnresolvableSeedError(f"{seed.fqn} is not a method of a known type")
            return self._resolve_method(seed)

        if seed.kind != SymbolKind.TYPE:
            raise UnresolvableSeedError(f"{seed.fqn} is not a type")
        return self._resolve_class(seed)

    # ========================
    # Method seed
    # ========================

    def _resolve_method(self, seed: Symbol) -> RelationSet:
        layer = classify(seed)

        if is_entry_point_method(seed) and layer in (Layer.ENTRY_POINT, Layer.UNKNOWN):
            relation = RelationSet(mode=SeedMode.METHOD_SEED, source_layer=Layer.ENTRY_POINT)
            self._collect_entry_targets(seed, relation)
            return relation

        if is_service_layer(layer):
            relation = RelationSet(mode=SeedMode.METHOD_SEED, source_layer=layer)
            self._collect_calling_entry_methods(seed, relation)
            return relation

        raise UnresolvableSeedError(
            f"Cannot determine the layer of {seed.describe()}; "
            "expected a controller, service or service implementation method"
        )

    def _collect_entry_targets(self, seed: Symbol, relation: RelationSet) -> None:
        try:
            usage = self.walker.collect_service_types(seed)
        except CodeModelError as e:
            logger.warning(
                f"Cannot walk body of {seed.describe()}: {e}",
                extra={"seed": seed.fqn},
            )
            return

        excluded = seed.declaring_type
        for service_type in usage.types:
            related = [service_type]
            if service_type.is_interface:
                related.extend(self.implementations.find_implementing_classes(service_type))
            else:
                related.extend(self._interfaces_of(service_type))

            for symbol in related:
                # marker interfaces (Serializable, Auditable, ...) stay untagged
                if symbol != excluded and is_service_layer(classify(symbol)):
                    relation.add_type(symbol)

        logger.info(
            f"Entry method {seed.describe()} relates to {len(relation.types)} type(s)",
            extra={"seed": seed.fqn, "types": [t.fqn for t in relation.types]},
        )

    def _collect_calling_entry_methods(self, seed: Symbol, relation: RelationSet) -> None:
        searched = [seed]
        if classify(seed) == Layer.IMPLEMENTATION:
            searched.extend(self.find_interface_methods(seed))

        for method in searched:
            try:
                references = self.model.find_references(method)
            except CodeModelError as e:
                logger.warning(
                    f"Reference search failed for {method.describe()}: {e}",
                    extra={"method": method.fqn},
                )
                continue

            for ref in references:
                caller = ref.enclosing_method
                if ref.context != RelationKind.CALLS or caller is None or ref.enclosing_type is None:
                    continue
                if classify(caller) == Layer.ENTRY_POINT:
                    relation.add_method(ref.enclosing_type, caller)

        logger.info(
            f"Service method {seed.describe()} is called by {relation.method_count} entry method(s)",
            extra={"seed": seed.fqn, "searched": [m.fqn for m in searched]},
        )

    def find_interface_methods(self, impl_method: Symbol) -> list[Symbol]:
        """Interface methods an implementation method implements.

        Matches on name and parameter types; return types are ignored.
        """
        owner = impl_method.declaring_type
        if owner is None:
            return []
        matches = []
        for interface in self._interfaces_of(owner):
            for candidate in self.model.get_methods(interface):
                if candidate.name == impl_method.name and candidate.parameters == impl_method.parameters:
                    matches.append(candidate)
        return matches

    def _interfaces_of(self, type_symbol: Symbol) -> list[Symbol]:
        try:
            return self.model.get_interfaces(type_symbol)
        except CodeModelError as e:
            logger.warning(
                f"Cannot read interfaces of {type_symbol.fqn}: {e}",
                extra={"type": type_symbol.fqn},
            )
            return []

    # ========================
    # Class seed
    # ========================

    def _resolve_class(self, seed: Symbol) -> RelationSet:
        layer = classify(seed)
        relation = RelationSet(mode=SeedMode.CLASS_SEED, source_layer=layer)

        direct = self._direct_related_types(seed)
        closure = self.closure.expand(direct, exclude=[seed], cancel_event=self.cancel_event)
        relation.iterations = closure.iterations
        relation.truncated = closure.truncated

        for symbol in closure.types:
            if symbol == seed:
                continue
            if is_controller(symbol):
                if symbol not in relation.controller_types:
                    relation.controller_types.append(symbol)
            else:
                relation.add_type(symbol)

        for controller in relation.controller_types:
            self._collect_related_controller_methods(controller, seed, relation)

        logger.info(
            f"Class {seed.name} relates to {len(relation.types)} type(s) and "
            f"{relation.method_count} controller method(s)",
            extra={
                "seed": seed.fqn,
                "iterations": relation.iterations,
                "truncated": relation.truncated,
            },
        )
        return relation

    def _direct_related_types(self, seed: Symbol) -> list[Symbol]:
        """Steps 1-3 for the seed, re-applied to every newly found referencing type."""
        found: list[Symbol] = []
        expanded: set[Symbol] = {seed}
        pending = [seed]

        def add(symbol: Symbol) -> bool:
            if symbol == seed or symbol in found:
                return False
            found.append(symbol)
            return True

        while pending:
            current = pending.pop(0)

            for sibling in self.naming.find_siblings(current):
                add(sibling)

            for linked in self._linked_types(current):
                add(linked)

            for referencing in self._referencing_types(current):
                if add(referencing) and referencing not in expanded:
                    expanded.add(referencing)
                    pending.append(referencing)

        return found

    def _linked_types(self, type_symbol: Symbol) -> list[Symbol]:
        if type_symbol.is_interface:
            return self.implementations.find_implementing_classes(type_symbol)

        linked: list[Symbol] = []
        for interface in self._interfaces_of(type_symbol):
            linked.append(interface)
            for sibling in self.implementations.find_implementing_classes(interface):
                if sibling != type_symbol:
                    linked.append(sibling)
        return linked

    def _referencing_types(self, type_symbol: Symbol) -> list[Symbol]:
        try:
            references = self.model.find_references(type_symbol)
        except CodeModelError as e:
            logger.warning(
                f"Reference search failed for {type_symbol.fqn}: {e}",
                extra={"type": type_symbol.fqn},
            )
            return []

        result: list[Symbol] = []
        for ref in references:
            enclosing = ref.enclosing_type
            if enclosing is None or enclosing == type_symbol or enclosing in result:
                continue
            if classify(enclosing) in (Layer.ENTRY_POINT, Layer.IMPLEMENTATION):
                result.append(enclosing)
        return result

    def _collect_related_controller_methods(
        self, controller: Symbol, seed: Symbol, relation: RelationSet
    ) -> None:
        related = 0
        for method in self.model.get_methods(controller):
            if method.is_constructor or not method.is_public:
                continue
            try:
                is_related = self.relatedness.is_related_to_service(method, seed)
            except CodeModelError as e:
                logger.warning(
                    f"Relatedness check failed for {method.describe()}: {e}",
                    extra={"method": method.fqn, "seed": seed.fqn},
                )
                continue
            if is_related:
                relation.add_method(controller, method)
                related += 1

        if related == 0:
            logger.info(
                f"No method of {controller.name} uses {seed.name}",
                extra={"controller": controller.fqn, "seed": seed.fqn},
            )
