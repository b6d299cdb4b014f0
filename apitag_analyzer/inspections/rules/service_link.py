"""Service-link rule: services missing the tag their controllers carry."""

from __future__ import annotations

from typing import Any

from apitag_core.models.types import ProblemData, Severity, Symbol
from apitag_core.utils.layer import is_controller, is_service

from apitag_analyzer.inspections.rules.base import InspectionContext, InspectionRule
from apitag_analyzer.resolution.reference_walk import ReferenceWalker
from apitag_analyzer.resolution.relatedness import CallRelatedness


class ServiceLinkRule(InspectionRule):
    """检测未同步 Controller 电文代号的 Service/ServiceImpl 类。

    某个 Service 类自身没有标签，但引用它的 Controller 方法带有标签时报告。
    快速修复从第一个带标签的 Controller 方法发起同步。
    """

    @property
    def rule_id(self) -> str:
        return "service-link"

    @property
    def severity(self) -> Severity:
        return Severity.INFO

    @property
    def description(self) -> str:
        return "Service 类可能需要同步来自 Controller 的电文代号"

    @property
    def fix_name(self) -> str:
        return "sync-from-controller"

    def detect(self, context: InspectionContext) -> list[ProblemData]:
        """检查所有 Service 类。"""
        results: list[ProblemData] = []

        for type_symbol in context.all_types():
            if is_controller(type_symbol) or not is_service(type_symbol):
                continue
            if context.tag_of(type_symbol):
                continue

            tagged = self.tagged_controller_methods(context, type_symbol)
            if not tagged:
                continue

            first_method, first_tag = tagged[0]
            results.append(
                ProblemData(
                    rule_id=self.rule_id,
                    fqn=type_symbol.fqn,
                    severity=self.severity,
                    message=f"{type_symbol.name}: {self.description} ({first_tag})",
                    fix_name=self.fix_name,
                    fix_args={
                        "source_method": first_method.fqn,
                        "tags": {method.fqn: tag for method, tag in tagged},
                    },
                )
            )

        return results

    def tagged_controller_methods(
        self, context: InspectionContext, service: Symbol
    ) -> list[tuple[Symbol, str]]:
        """引用该 Service 且带标签的 Controller 方法，按发现顺序。"""
        candidates: list[Symbol] = []
        field_owners: list[Symbol] = []

        for ref in context.model.find_references(service):
            owner = ref.enclosing_type
            if owner is None or not is_controller(owner):
                continue
            if ref.enclosing_method is not None:
                if ref.enclosing_method not in candidates:
                    candidates.append(ref.enclosing_method)
            elif owner not in field_owners:
                field_owners.append(owner)

        # 通过注入字段引用时，逐个方法判断是否真的调用了该 Service
        if field_owners:
            walker = ReferenceWalker(context.model, context.config.walk_max_depth)
            relatedness = CallRelatedness(context.model, walker, context.config.heuristic_text_match)
            for owner in field_owners:
                for method in self.methods_of(context, owner):
                    if method not in candidates and relatedness.is_related_to_service(method, service):
                        candidates.append(method)

        tagged = []
        for method in candidates:
            tag = context.tag_of(method)
            if tag:
                tagged.append((method, tag))
        return tagged

    def apply_fix(self, context: InspectionContext, problem: ProblemData, sync_service: Any) -> dict:
        """从第一个带标签的 Controller 方法同步电文代号。"""
        source_method = problem.fix_args["source_method"]
        tag = problem.fix_args.get("tags", {}).get(source_method)
        report = sync_service.sync_method(source_method, tag)
        return {"fqn": problem.fqn, "fix": self.fix_name, "report": report.to_dict()}
