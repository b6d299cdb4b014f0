"""Base class for inspection rules."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from apitag_core.code_model.base import CodeModel, annotation_simple_name
from apitag_core.config import SyncConfig
from apitag_core.models.types import ProblemData, Severity, Symbol, SymbolKind
from apitag_core.tagging.codec import TagCodec


@dataclass
class InspectionContext:
    """检查规则运行所需的共享依赖。"""

    model: CodeModel
    codec: TagCodec
    config: SyncConfig

    def all_types(self) -> list[Symbol]:
        return self.model.find_type("*")

    def tag_annotation(self, symbol: Symbol) -> Optional[str]:
        """返回符号上的标签注解原文（如 ``ApiMsgId("ACC-Q-001")``），没有则为 None。"""
        for annotation in symbol.annotations:
            if annotation_simple_name(annotation) == self.config.tag_annotation:
                return annotation
        return None

    def tag_of(self, symbol: Symbol) -> Optional[str]:
        """文档中的标签优先，其次是标签注解的 value。"""
        if symbol.existing_tag:
            return symbol.existing_tag
        annotation = self.tag_annotation(symbol)
        if annotation is None or "(" not in annotation:
            return None
        value = annotation.split("(", 1)[1].rsplit(")", 1)[0]
        if "=" in value:
            value = value.split("=", 1)[1]
        value = value.strip().strip('"').strip()
        return value or None


class InspectionRule(ABC):
    """检查规则的基类。"""

    @property
    @abstractmethod
    def rule_id(self) -> str:
        """规则 ID。"""
        pass

    @property
    @abstractmethod
    def severity(self) -> Severity:
        """严重性: error, warning, info。"""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """规则描述。"""
        pass

    @property
    @abstractmethod
    def fix_name(self) -> str:
        """快速修复名称。"""
        pass

    @abstractmethod
    def detect(self, context: InspectionContext) -> list[ProblemData]:
        """执行检查并返回发现的问题。"""
        pass

    @abstractmethod
    def apply_fix(self, context: InspectionContext, problem: ProblemData, sync_service: Any) -> dict:
        """应用快速修复，返回修复结果。"""
        pass

    @staticmethod
    def methods_of(context: InspectionContext, type_symbol: Symbol) -> list[Symbol]:
        return [m for m in context.model.get_methods(type_symbol) if m.kind == SymbolKind.METHOD]
