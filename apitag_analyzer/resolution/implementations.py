"""Implementation discovery for service interfaces."""

from __future__ import annotations

import logging
from typing import Callable

from apitag_core.code_model.base import CodeModel
from apitag_core.exceptions import CodeModelError
from apitag_core.models.types import RelationKind, Symbol, SymbolKind

logger = logging.getLogger(__name__)


class ImplementationFinder:
    """查找接口的实现类（三级回退）。

    1. 结构引用：引用索引中 implements 上下文的引用
    2. 命名约定：全局查找 ``<Interface>Impl``
    3. 包路径推测：同包、``impl.`` 子包、``.service.`` -> ``.service.impl.``

    每一级只在前一级没有结果时执行；所有候选都要用 implements 列表复核。
    """

    def __init__(self, model: CodeModel):
        self.model = model

    def find_implementing_classes(self, interface: Symbol) -> list[Symbol]:
        """返回接口的实现类，按发现顺序去重。非接口返回空列表。"""
        if interface.kind != SymbolKind.TYPE or not interface.is_interface:
            return []

        tiers: list[tuple[str, Callable[[Symbol], list[Symbol]]]] = [
            ("structural", self._by_structural_references),
            ("naming", self._by_naming_convention),
            ("package", self._by_package_paths),
        ]
        for tier_name, tier in tiers:
            try:
                candidates = tier(interface)
            except (CodeModelError, LookupError, ValueError) as e:
                logger.warning(
                    f"Implementation lookup tier '{tier_name}' failed for {interface.fqn}: {e}",
                    extra={"interface": interface.fqn, "tier": tier_name},
                )
                continue

            found = self._validated(interface, candidates)
            if found:
                logger.debug(
                    f"Found {len(found)} implementation(s) of {interface.name} via {tier_name}",
                    extra={"interface": interface.fqn, "tier": tier_name},
                )
                return found
        return []

    @staticmethod
    def implements(candidate: Symbol, interface: Symbol) -> bool:
        """复核：候选类的 implements 列表是否真的包含该接口。"""
        if candidate.kind != SymbolKind.TYPE or candidate.is_interface:
            return False
        return interface.fqn in candidate.interfaces

    def _validated(self, interface: Symbol, candidates: list[Symbol]) -> list[Symbol]:
        result: list[Symbol] = []
        for candidate in candidates:
            if candidate in result:
                continue
            if self.implements(candidate, interface):
                result.append(candidate)
            else:
                logger.debug(
                    f"Rejected {candidate.fqn}: does not implement {interface.fqn}",
                    extra={"interface": interface.fqn, "candidate": candidate.fqn},
                )
        return result

    def _by_structural_references(self, interface: Symbol) -> list[Symbol]:
        return [
            ref.enclosing_type
            for ref in self.model.find_references(interface)
            if ref.context == RelationKind.IMPLEMENTS and ref.enclosing_type is not None
        ]

    def _by_naming_convention(self, interface: Symbol) -> list[Symbol]:
        return self.model.find_type(f"{interface.name}Impl")

    def _by_package_paths(self, interface: Symbol) -> list[Symbol]:
        impl_name = f"{interface.name}Impl"
        package = interface.package
        candidates = []
        for impl_package in (
            package,
            package + "impl.",
            package.replace(".service.", ".service.impl."),
        ):
            symbol = self.model.get_symbol(impl_package + impl_name)
            if symbol is not None:
                candidates.append(symbol)
        return candidates
