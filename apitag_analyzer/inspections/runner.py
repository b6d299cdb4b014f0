"""Inspection runner."""

from __future__ import annotations

import logging
from typing import Optional

from apitag_core.code_model.base import CodeModel
from apitag_core.config import SyncConfig
from apitag_core.models.types import ProblemData
from apitag_core.tagging.codec import TagCodec

from apitag_analyzer.inspections.rules.base import InspectionContext, InspectionRule
from apitag_analyzer.inspections.rules.missing_tag import MissingTagRule
from apitag_analyzer.inspections.rules.service_link import ServiceLinkRule
from apitag_analyzer.sync import MutationDispatcher, TagPropagationService

logger = logging.getLogger(__name__)


class InspectionRunner:
    """检查运行器，运行所有注册的规则。"""

    def __init__(
        self,
        model: CodeModel,
        sync_service: TagPropagationService,
        config: Optional[SyncConfig] = None,
        dispatcher: Optional[MutationDispatcher] = None,
    ):
        config = config or SyncConfig()
        self.context = InspectionContext(model, TagCodec(config.tag_pattern), config)
        self.sync_service = sync_service
        self.dispatcher = dispatcher
        self.rules: list[InspectionRule] = [
            MissingTagRule(),
            ServiceLinkRule(),
        ]

    def run_all(self) -> list[ProblemData]:
        """运行所有规则并返回检查结果。"""
        results: list[ProblemData] = []
        with self.context.model.read_scope():
            for rule in self.rules:
                results.extend(rule.detect(self.context))
        return results

    def run_rule(self, rule_id: str) -> list[ProblemData]:
        """运行指定规则。"""
        rule = self._get_rule(rule_id)
        with self.context.model.read_scope():
            return rule.detect(self.context)

    def list_rules(self) -> list[dict]:
        """列出所有可用规则。"""
        return [
            {
                "rule_id": rule.rule_id,
                "severity": rule.severity,
                "description": rule.description,
                "fix": rule.fix_name,
            }
            for rule in self.rules
        ]

    def apply_fix(self, problem: ProblemData) -> dict:
        """对一个问题应用其规则的快速修复。"""
        rule = self._get_rule(problem.rule_id)
        logger.info(
            f"Applying fix '{rule.fix_name}' to {problem.fqn}",
            extra={"rule_id": rule.rule_id, "fqn": problem.fqn},
        )
        # service-link 的修复自己走同步流程（内部已经派发到写线程）
        if self.dispatcher is None or isinstance(rule, ServiceLinkRule):
            return rule.apply_fix(self.context, problem, self.sync_service)
        return self.dispatcher.run(rule.apply_fix, self.context, problem, self.sync_service)

    def _get_rule(self, rule_id: str) -> InspectionRule:
        for rule in self.rules:
            if rule.rule_id == rule_id:
                return rule
        raise ValueError(f"Unknown rule: {rule_id}")
