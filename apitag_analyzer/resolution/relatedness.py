"""Call-relatedness test between an entry-point method and a service type."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from apitag_core.code_model.base import CodeModel
from apitag_core.models.expressions import Expression, MethodCall, VariableKind, VariableRef
from apitag_core.models.types import Symbol

from apitag_analyzer.resolution.reference_walk import ReferenceWalker

logger = logging.getLogger(__name__)


def lower_camel(name: str) -> str:
    """``AccountService`` -> ``accountService``."""
    if not name:
        return name
    return name[0].lower() + name[1:]


@dataclass(frozen=True)
class _Verdict:
    related: bool = False
    unresolved: bool = False


class CallRelatedness:
    """Decides whether a method "uses" a service type (one hop only).

    Structural tiers, checked in one short-circuiting fold over the body:
        1. a call resolves to a method declared on the target or on an
           interface the target implements
        2. a call is made through a field of the declaring type whose declared
           type is one of those types

    When both are negative but the walk met unresolved calls or references,
    an optional text tier looks for the lower-camel-case field name of the
    target (``accountService``) in the method source.
    """

    def __init__(self, model: CodeModel, walker: ReferenceWalker, heuristic_text_match: bool = True):
        self.model = model
        self.walker = walker
        self.heuristic_text_match = heuristic_text_match

    def relevant_types(self, target: Symbol) -> set[str]:
        """FQNs of the target and, for implementations, its interfaces."""
        relevant = {target.fqn}
        if not target.is_interface:
            relevant.update(target.interfaces)
        return relevant

    def is_related_to_service(self, method: Symbol, target: Symbol) -> bool:
        owner = method.declaring_type
        if owner is None:
            return False
        body = self.walker.body_of(method)
        if body is None:
            return False

        relevant = self.relevant_types(target)
        relevant_fields = frozenset(
            field.fqn for field in self.model.get_fields(owner) if field.type_fqn in relevant
        )

        def step(acc: _Verdict, node: Expression) -> tuple[_Verdict, bool]:
            if not isinstance(node, MethodCall):
                return acc, False

            called = self.model.resolve_call(node)
            if called is not None and called.declaring_type is not None:
                if called.declaring_type.fqn in relevant:
                    return _Verdict(related=True, unresolved=acc.unresolved), True
            elif called is None:
                acc = _Verdict(related=False, unresolved=True)

            qualifier = node.qualifier
            if isinstance(qualifier, VariableRef) and qualifier.ref_kind == VariableKind.FIELD:
                if qualifier.target_fqn in relevant_fields:
                    return _Verdict(related=True, unresolved=acc.unresolved), True
                if qualifier.target_fqn is None:
                    acc = _Verdict(related=False, unresolved=True)
            return acc, False

        verdict = self.walker.fold(body, _Verdict(), step)
        if verdict.related:
            return True

        if verdict.unresolved and self.heuristic_text_match:
            return self._mentions_target(method, relevant)
        return False

    def _mentions_target(self, method: Symbol, relevant: set[str]) -> bool:
        source = self.model.get_source_text(method)
        for fqn in relevant:
            simple_name = fqn.rsplit(".", 1)[-1]
            if lower_camel(simple_name) in source:
                logger.debug(
                    f"Heuristic text match: {method.describe()} mentions {simple_name}",
                    extra={"method": method.fqn, "target": fqn},
                )
                return True
        return False
