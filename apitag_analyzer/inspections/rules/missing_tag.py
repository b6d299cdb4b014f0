"""Missing-tag rule for controller entry methods."""

from __future__ import annotations

from typing import Any

from apitag_core.exceptions import SymbolNotFoundError
from apitag_core.models.types import ProblemData, Severity
from apitag_core.utils.layer import is_controller, is_entry_method

from apitag_analyzer.inspections.rules.base import InspectionContext, InspectionRule

PLACEHOLDER_TAG = "MSG_ID_HERE"


class MissingTagRule(InspectionRule):
    """检测缺少 API 电文代号的 Controller 入口方法。

    带有 Mapping 注解的 Controller 方法，既没有文档标签也没有标签注解时报告。
    快速修复会添加带占位值的标签注解。
    """

    @property
    def rule_id(self) -> str:
        return "missing-tag"

    @property
    def severity(self) -> Severity:
        return Severity.WARNING

    @property
    def description(self) -> str:
        return "API 方法缺少电文代号（文档标签或标签注解）"

    @property
    def fix_name(self) -> str:
        return "add-tag-annotation"

    def detect(self, context: InspectionContext) -> list[ProblemData]:
        """检查所有 Controller 类中的入口方法。"""
        results: list[ProblemData] = []

        for type_symbol in context.all_types():
            if not is_controller(type_symbol):
                continue

            for method in self.methods_of(context, type_symbol):
                if not is_entry_method(method):
                    continue
                if method.existing_tag or context.tag_annotation(method):
                    continue

                results.append(
                    ProblemData(
                        rule_id=self.rule_id,
                        fqn=method.fqn,
                        severity=self.severity,
                        message=f"{method.describe()}: {self.description}",
                        fix_name=self.fix_name,
                        fix_args={
                            "annotation": context.config.tag_annotation,
                            "value": PLACEHOLDER_TAG,
                        },
                    )
                )

        return results

    def apply_fix(self, context: InspectionContext, problem: ProblemData, sync_service: Any) -> dict:
        """添加 ``@ApiMsgId("MSG_ID_HERE")``。"""
        method = context.model.get_symbol(problem.fqn)
        if method is None:
            raise SymbolNotFoundError(f"Symbol not found: {problem.fqn}")

        annotation = problem.fix_args.get("annotation", context.config.tag_annotation)
        value = problem.fix_args.get("value", PLACEHOLDER_TAG)
        context.model.run_in_write_transaction(
            f"Add {annotation} annotation",
            lambda: context.model.add_annotation(method, annotation, {"value": value}),
        )

        return {"fqn": method.fqn, "fix": self.fix_name, "annotation": annotation, "value": value}
