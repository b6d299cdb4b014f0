"""Naming-convention siblings: ``XController`` <-> ``XService`` <-> ``XServiceImpl``."""

from __future__ import annotations

import logging
from typing import Optional

from apitag_core.code_model.base import CodeModel
from apitag_core.models.types import Symbol, SymbolKind

logger = logging.getLogger(__name__)


def base_name(type_name: Optional[str]) -> Optional[str]:
    """Strip the layer suffix: ``AccountServiceImpl`` -> ``Account``."""
    if not type_name:
        return None
    if "Controller" in type_name:
        return type_name.replace("Controller", "")
    if "ServiceImpl" in type_name:
        return type_name.replace("ServiceImpl", "")
    if "Service" in type_name:
        return type_name.replace("Service", "")
    return None


def sibling_names(type_name: Optional[str]) -> list[str]:
    """Simple names of the other two layers for a type name."""
    base = base_name(type_name)
    if base is None:
        return []
    names = [f"{base}Controller", f"{base}Service", f"{base}ServiceImpl"]
    return [name for name in names if name != type_name]


def candidate_packages(package: str) -> list[str]:
    """Packages adjacent to ``package`` (trailing dot included), in lookup order.

    Same package, ``controller`` <-> ``service`` sibling substitution, the
    ``service.impl`` package and an ``impl`` sub-package.
    """
    candidates = [package]

    def add(candidate: str) -> None:
        if candidate not in candidates:
            candidates.append(candidate)

    if ".controller." in f".{package}":
        service_package = f".{package}".replace(".controller.", ".service.")[1:]
        add(service_package)
        add(service_package + "impl.")
    if ".service.impl." in f".{package}":
        service_package = f".{package}".replace(".service.impl.", ".service.")[1:]
        add(service_package)
        add(f".{service_package}".replace(".service.", ".controller.")[1:])
    elif ".service." in f".{package}":
        add(package + "impl.")
        add(f".{package}".replace(".service.", ".controller.")[1:])
    elif package.endswith("impl."):
        parent = package[: -len("impl.")]
        add(parent)
    add(package + "impl.")
    return candidates


class NamingConvention:
    """Probes the code model for naming-convention siblings of a type."""

    def __init__(self, model: CodeModel):
        self.model = model

    def find_siblings(self, type_symbol: Symbol) -> list[Symbol]:
        """Sibling types, adjacent packages first, then by simple name anywhere."""
        names = sibling_names(type_symbol.name)
        if not names:
            return []

        found: list[Symbol] = []

        def add(symbol: Optional[Symbol]) -> None:
            if symbol is None or symbol.kind != SymbolKind.TYPE:
                return
            if symbol != type_symbol and symbol not in found:
                found.append(symbol)

        for package in candidate_packages(type_symbol.package):
            for name in names:
                add(self.model.get_symbol(package + name))

        for name in names:
            for symbol in self.model.find_type(name):
                add(symbol)

        if found:
            logger.debug(
                f"Naming convention matched {len(found)} sibling(s) of {type_symbol.name}",
                extra={"type": type_symbol.fqn, "siblings": [s.fqn for s in found]},
            )
        return found

    def find_controllers_for(self, service: Symbol) -> list[Symbol]:
        """``XService``/``XServiceImpl`` -> every type named ``XController``."""
        base = base_name(service.name)
        if base is None or "Controller" in (service.name or ""):
            return []
        return self.model.find_type(f"{base}Controller")
