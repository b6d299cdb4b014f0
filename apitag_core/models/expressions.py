"""Expression trees for method bodies.

The indexer serialises each method body as nested JSON dictionaries with a
``node`` discriminator. Only the shapes the resolver cares about get their own
node types; everything else is kept as ``Other`` so its children are still
walked.

Example body::

    {"node": "block", "children": [
        {"node": "call", "method": "com.acme.AccountService.fetch(Long)",
         "qualifier": {"node": "var", "name": "accountService", "ref": "field",
                       "target": "com.acme.AccountController.accountService",
                       "type": "com.acme.AccountService"},
         "arguments": [{"node": "var", "name": "id", "ref": "parameter",
                        "type": "java.lang.Long"}]}
    ]}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional

from apitag_core.config import DEFAULT_WALK_MAX_DEPTH


class VariableKind(str, Enum):
    FIELD = "field"
    PARAMETER = "parameter"
    LOCAL = "local"


@dataclass
class Expression:
    """Base node. ``children`` are walked in order."""

    def children(self) -> Iterator["Expression"]:
        return iter(())

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass
class Block(Expression):
    statements: list[Expression] = field(default_factory=list)

    def children(self) -> Iterator[Expression]:
        return iter(self.statements)

    def to_dict(self) -> dict[str, Any]:
        return {"node": "block", "children": [s.to_dict() for s in self.statements]}


@dataclass
class MethodCall(Expression):
    """A call site. ``method_fqn`` is the resolved target, None if unresolved."""

    method_fqn: Optional[str]
    name: Optional[str] = None
    qualifier: Optional[Expression] = None
    arguments: list[Expression] = field(default_factory=list)

    def children(self) -> Iterator[Expression]:
        if self.qualifier is not None:
            yield self.qualifier
        yield from self.arguments

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"node": "call", "method": self.method_fqn}
        if self.name:
            data["name"] = self.name
        if self.qualifier is not None:
            data["qualifier"] = self.qualifier.to_dict()
        if self.arguments:
            data["arguments"] = [a.to_dict() for a in self.arguments]
        return data


@dataclass
class VariableRef(Expression):
    """A read of a field, parameter or local variable."""

    name: str
    ref_kind: VariableKind
    target_fqn: Optional[str] = None
    declared_type: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"node": "var", "name": self.name, "ref": self.ref_kind.value}
        if self.target_fqn:
            data["target"] = self.target_fqn
        if self.declared_type:
            data["type"] = self.declared_type
        return data


@dataclass
class NewInstance(Expression):
    type_fqn: Optional[str]
    arguments: list[Expression] = field(default_factory=list)

    def children(self) -> Iterator[Expression]:
        return iter(self.arguments)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"node": "new", "type": self.type_fqn}
        if self.arguments:
            data["arguments"] = [a.to_dict() for a in self.arguments]
        return data


@dataclass
class Lambda(Expression):
    body: Optional[Expression] = None

    def children(self) -> Iterator[Expression]:
        if self.body is not None:
            yield self.body

    def to_dict(self) -> dict[str, Any]:
        return {"node": "lambda", "body": self.body.to_dict() if self.body else None}


@dataclass
class Literal(Expression):
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"node": "literal", "value": self.value}


@dataclass
class Other(Expression):
    """Any statement or expression without dedicated handling."""

    label: str = "other"
    nested: list[Expression] = field(default_factory=list)

    def children(self) -> Iterator[Expression]:
        return iter(self.nested)

    def to_dict(self) -> dict[str, Any]:
        return {"node": "other", "label": self.label, "children": [n.to_dict() for n in self.nested]}


def parse_expression(
    data: dict[str, Any] | None,
    max_depth: int = DEFAULT_WALK_MAX_DEPTH,
    _depth: int = 0,
) -> Optional[Expression]:
    """Build an expression tree from its JSON form.

    Unknown ``node`` values become ``Other`` so the walk still descends into
    their children. Raises ValueError for values that are not dictionaries
    and for trees nested deeper than ``max_depth``.
    """
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"Expression node must be an object, got {type(data).__name__}")
    if _depth >= max_depth:
        raise ValueError(f"Expression tree nested deeper than {max_depth} levels")

    node = data.get("node", "other")
    depth = _depth + 1

    if node == "block":
        return Block(statements=_parse_list(data.get("children"), max_depth, depth))
    if node == "call":
        return MethodCall(
            method_fqn=data.get("method"),
            name=data.get("name"),
            qualifier=parse_expression(data.get("qualifier"), max_depth, depth),
            arguments=_parse_list(data.get("arguments"), max_depth, depth),
        )
    if node == "var":
        return VariableRef(
            name=data.get("name", ""),
            ref_kind=VariableKind(data.get("ref", "local")),
            target_fqn=data.get("target"),
            declared_type=data.get("type"),
        )
    if node == "new":
        return NewInstance(
            type_fqn=data.get("type"),
            arguments=_parse_list(data.get("arguments"), max_depth, depth),
        )
    if node == "lambda":
        return Lambda(body=parse_expression(data.get("body"), max_depth, depth))
    if node == "literal":
        return Literal(value=data.get("value"))

    return Other(label=str(node), nested=_parse_list(data.get("children"), max_depth, depth))


def _parse_list(items: list[dict] | None, max_depth: int, depth: int) -> list[Expression]:
    if not items:
        return []
    parsed = []
    for item in items:
        expr = parse_expression(item, max_depth, depth)
        if expr is not None:
            parsed.append(expr)
    return parsed
