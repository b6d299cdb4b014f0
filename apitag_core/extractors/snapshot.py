"""Loads a project index snapshot (JSON) into the SQLite code model.

Snapshot layout::

    {
      "project": "mall",
      "types": [
        {"fqn": "com.acme.service.AccountService", "interface": true,
         "annotations": [], "modifiers": ["public"], "implements": [], "extends": null,
         "documentation": "/**\\n * ACC-Q-001\\n */", "file": "...", "line": 3,
         "writable": true,
         "fields": [{"name": "repo", "type": "com.acme.AccountRepo"}],
         "methods": [{"name": "fetch", "parameters": ["Long"], "returnType": "Account",
                      "modifiers": ["public"], "annotations": [], "body": {...}}]}
      ],
      "references": [{"from": "...", "to": "...", "relation": "calls"}]
    }

Method fqns are ``<type>.<name>(<param>,<param>)`` unless the snapshot gives an
explicit ``fqn``. Reference edges are derived from declarations and bodies;
``references`` adds edges the indexer resolved but the bodies do not show.
A type marked ``"indexed": false`` contributes no implements/extends edges
(its declaration was not reference-indexed); its implements list is kept.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Iterable

from apitag_core.models.expressions import (
    Expression,
    MethodCall,
    NewInstance,
    VariableRef,
    parse_expression,
)
from apitag_core.models.types import (
    EdgeData,
    ExtractionResult,
    RelationKind,
    SymbolData,
    SymbolKind,
)
from apitag_core.storage.sqlite_store import SQLiteStore

# 外部库前缀 - 这些类型不会产生 type_usage 边
EXTERNAL_PREFIXES = (
    "java.", "javax.", "jdk.", "sun.", "com.sun.",
    "org.slf4j.", "org.apache.", "org.springframework.",
    "com.fasterxml.", "com.google.",
)

PRIMITIVES = frozenset(
    ("void", "boolean", "byte", "char", "short", "int", "long", "float", "double")
)


def method_fqn(type_fqn: str, name: str, parameters: Iterable[str]) -> str:
    """Build the fqn of a method: ``com.acme.Foo.bar(Long,String)``."""
    return f"{type_fqn}.{name}({','.join(parameters)})"


def _is_indexable_type(type_name: str | None) -> bool:
    if not type_name or type_name in PRIMITIVES:
        return False
    if "." not in type_name:
        return False
    return not type_name.startswith(EXTERNAL_PREFIXES)


def _strip_generics(type_name: str | None) -> str | None:
    if not type_name:
        return type_name
    return type_name.split("<", 1)[0].rstrip("[]").strip()


class SnapshotExtractor:
    """Turns a snapshot document into symbol rows and reference edges."""

    def __init__(self, store: SQLiteStore):
        self.store = store

    def load_file(self, snapshot_path: str, force: bool = False) -> ExtractionResult:
        """Load a snapshot file, skipping it when its content hash is unchanged."""
        path = Path(snapshot_path)
        if not path.exists():
            return ExtractionResult(success=False, errors=[f"Snapshot not found: {snapshot_path}"])

        raw = path.read_bytes()
        content_hash = hashlib.md5(raw).hexdigest()
        if not force and self.store.get_metadata(f"hash:{path.name}") == content_hash:
            print(f"[apitag] {path.name} unchanged, skipped")
            return ExtractionResult(success=True, stats={"skipped": True})

        try:
            document = json.loads(raw)
        except (json.JSONDecodeError, RecursionError) as e:
            return ExtractionResult(success=False, errors=[f"Invalid snapshot JSON: {e}"])

        result = self.load(document)
        if result.success:
            self.store.set_metadata(f"hash:{path.name}", content_hash)
        return result

    def load(self, document: dict[str, Any]) -> ExtractionResult:
        """Parse a snapshot document and store it."""
        result = self.extract(document)
        if not result.success:
            return result

        # Re-indexed symbols replace their previous outgoing edges
        stale = {s.fqn for s in result.symbols} | {e.from_fqn for e in result.edges}
        self.store.delete_edges_from(stale)
        self.store.insert_symbols(result.symbols)
        self.store.insert_edges(result.edges)
        if document.get("project"):
            self.store.set_metadata("project", str(document["project"]))

        print(
            f"[apitag] Loaded {result.stats['types']} types, {result.stats['methods']} methods, "
            f"{result.stats['edges']} edges"
        )
        return result

    def extract(self, document: dict[str, Any]) -> ExtractionResult:
        """Parse a snapshot document without touching the store."""
        types = document.get("types")
        if not isinstance(types, list):
            return ExtractionResult(success=False, errors=["Snapshot has no 'types' list"])

        symbols: list[SymbolData] = []
        edges: list[EdgeData] = []
        errors: list[str] = []
        counts = {"types": 0, "methods": 0, "fields": 0}

        for type_entry in types:
            try:
                type_symbols, type_edges = self._process_type(type_entry)
            except (KeyError, TypeError, ValueError) as e:
                errors.append(f"Invalid type entry {type_entry.get('fqn', '?')!r}: {e}")
                continue
            for symbol in type_symbols:
                counts[f"{symbol.kind.value}s"] += 1
            symbols.extend(type_symbols)
            edges.extend(type_edges)

        for ref in document.get("references") or []:
            try:
                edges.append(EdgeData(ref["from"], ref["to"], RelationKind(ref["relation"])))
            except (KeyError, ValueError) as e:
                errors.append(f"Invalid reference {ref!r}: {e}")

        edges = self._dedupe_edges(edges)
        return ExtractionResult(
            success=not errors,
            symbols=symbols,
            edges=edges,
            stats={**counts, "edges": len(edges)},
            errors=errors,
        )

    def _process_type(self, entry: dict[str, Any]) -> tuple[list[SymbolData], list[EdgeData]]:
        type_fqn = entry["fqn"]
        name = entry.get("name") or type_fqn.rsplit(".", 1)[-1]
        file_path = entry.get("file")
        writable = entry.get("writable", True)
        interfaces = list(entry.get("implements") or [])

        symbols = [
            SymbolData(
                fqn=type_fqn,
                kind=SymbolKind.TYPE,
                name=name,
                parent_fqn=type_fqn.rsplit(".", 1)[0] if "." in type_fqn else None,
                file_path=file_path,
                line_number=entry.get("line"),
                modifiers=list(entry.get("modifiers") or []),
                annotations=list(entry.get("annotations") or []),
                is_interface=bool(entry.get("interface", False)),
                interfaces=interfaces,
                documentation=entry.get("documentation"),
                source=entry.get("source"),
                writable=writable,
            )
        ]
        edges = []
        if entry.get("indexed", True):
            edges.extend(EdgeData(type_fqn, iface, RelationKind.IMPLEMENTS) for iface in interfaces)
            extends = entry.get("extends") or []
            for parent in extends if isinstance(extends, list) else [extends]:
                edges.append(EdgeData(type_fqn, parent, RelationKind.EXTENDS))

        for field_entry in entry.get("fields") or []:
            field_type = _strip_generics(field_entry.get("type"))
            field_fqn = f"{type_fqn}.{field_entry['name']}"
            symbols.append(
                SymbolData(
                    fqn=field_fqn,
                    kind=SymbolKind.FIELD,
                    name=field_entry["name"],
                    parent_fqn=type_fqn,
                    file_path=file_path,
                    line_number=field_entry.get("line"),
                    modifiers=list(field_entry.get("modifiers") or []),
                    annotations=list(field_entry.get("annotations") or []),
                    type_fqn=field_type,
                    documentation=field_entry.get("documentation"),
                    writable=field_entry.get("writable", writable),
                )
            )
            if _is_indexable_type(field_type):
                edges.append(EdgeData(field_fqn, field_type, RelationKind.TYPE_USAGE))

        for method_entry in entry.get("methods") or []:
            method_symbol, method_edges = self._process_method(type_fqn, name, method_entry, file_path, writable)
            symbols.append(method_symbol)
            edges.extend(method_edges)

        return symbols, edges

    def _process_method(
        self,
        type_fqn: str,
        type_name: str,
        entry: dict[str, Any],
        file_path: str | None,
        writable: bool,
    ) -> tuple[SymbolData, list[EdgeData]]:
        parameters = list(entry.get("parameters") or [])
        fqn = entry.get("fqn") or method_fqn(type_fqn, entry["name"], parameters)
        body = entry.get("body")

        symbol = SymbolData(
            fqn=fqn,
            kind=SymbolKind.METHOD,
            name=entry["name"],
            parent_fqn=type_fqn,
            file_path=file_path,
            line_number=entry.get("line"),
            modifiers=list(entry.get("modifiers") or []),
            annotations=list(entry.get("annotations") or []),
            parameters=parameters,
            return_type=entry.get("returnType"),
            is_constructor=bool(entry.get("constructor", entry["name"] == type_name)),
            documentation=entry.get("documentation"),
            body=body,
            source=entry.get("source"),
            writable=entry.get("writable", writable),
        )

        edges = []
        for type_name_ref in [*parameters, entry.get("returnType")]:
            stripped = _strip_generics(type_name_ref)
            if _is_indexable_type(stripped):
                edges.append(EdgeData(fqn, stripped, RelationKind.TYPE_USAGE))

        if body is not None:
            edges.extend(self._body_edges(fqn, parse_expression(body)))
        return symbol, edges

    def _body_edges(self, method: str, body: Expression | None) -> list[EdgeData]:
        """从方法体表达式树推导调用、类型使用和实例化边。"""
        edges: list[EdgeData] = []
        stack = [body] if body is not None else []
        while stack:
            node = stack.pop()
            if isinstance(node, MethodCall) and node.method_fqn:
                edges.append(EdgeData(method, node.method_fqn, RelationKind.CALLS))
            elif isinstance(node, VariableRef):
                declared = _strip_generics(node.declared_type)
                if _is_indexable_type(declared):
                    edges.append(EdgeData(method, declared, RelationKind.TYPE_USAGE))
            elif isinstance(node, NewInstance):
                created = _strip_generics(node.type_fqn)
                if _is_indexable_type(created):
                    edges.append(EdgeData(method, created, RelationKind.INSTANTIATES))
            stack.extend(reversed(list(node.children())))
        return edges

    @staticmethod
    def _dedupe_edges(edges: list[EdgeData]) -> list[EdgeData]:
        seen: set[tuple[str, str, str]] = set()
        unique = []
        for edge in edges:
            key = (edge.from_fqn, edge.to_fqn, edge.relation.value)
            if key in seen:
                continue
            seen.add(key)
            unique.append(edge)
        return unique
