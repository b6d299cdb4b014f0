"""Code model backed by the SQLite store."""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from apitag_core.code_model.base import CodeModel, annotation_simple_name
from apitag_core.exceptions import CodeModelError, DocumentationWriteError
from apitag_core.models.expressions import (
    Expression,
    MethodCall,
    VariableKind,
    VariableRef,
    parse_expression,
)
from apitag_core.models.types import Reference, RelationKind, Symbol, SymbolKind
from apitag_core.storage.sqlite_store import SQLiteStore
from apitag_core.tagging.codec import TagCodec

logger = logging.getLogger(__name__)


def _json_tuple(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(json.loads(value))


def _render_annotation(name: str, attributes: Optional[dict[str, Any]]) -> str:
    if not attributes:
        return name
    args = ", ".join(f"{key}={json.dumps(value)}" for key, value in attributes.items())
    return f"{name}({args})"


class SQLiteCodeModel(CodeModel):
    """CodeModel over symbols and edges loaded from a project index snapshot.

    Handles are rebuilt from rows on every lookup, so a handle obtained before
    an edit does not see it; call ``get_symbol`` again to refresh.
    """

    def __init__(self, store: SQLiteStore, codec: Optional[TagCodec] = None) -> None:
        super().__init__()
        self.store = store
        self.codec = codec or TagCodec()
        self._history_state = threading.local()

    # ========================
    # Row mapping
    # ========================

    def _to_symbol(self, row: dict[str, Any], declaring_type: Optional[Symbol] = None) -> Symbol:
        kind = SymbolKind(row["kind"])
        if kind != SymbolKind.TYPE and declaring_type is None and row.get("parent_fqn"):
            parent = self.store.get_symbol(row["parent_fqn"])
            if parent and parent["kind"] == SymbolKind.TYPE.value:
                declaring_type = self._to_symbol(parent)

        documentation = row.get("documentation")
        return Symbol(
            fqn=row["fqn"],
            kind=kind,
            name=row.get("name"),
            declaring_type=declaring_type,
            is_interface=bool(row.get("is_interface")),
            parameters=_json_tuple(row.get("parameters")),
            return_type=row.get("return_type"),
            type_fqn=row.get("type_fqn"),
            documentation=documentation,
            existing_tag=self.codec.extract(documentation),
            annotations=_json_tuple(row.get("annotations")),
            modifiers=_json_tuple(row.get("modifiers")),
            interfaces=_json_tuple(row.get("interfaces")),
            is_constructor=bool(row.get("is_constructor")),
            writable=bool(row.get("writable", 1)),
        )

    def _children(self, type_symbol: Symbol, kind: SymbolKind) -> list[Symbol]:
        rows = self.store.get_symbols_by_parent(type_symbol.fqn, kind.value)
        return [self._to_symbol(row, declaring_type=type_symbol) for row in rows]

    # ========================
    # Lookup
    # ========================

    def find_type(self, name_or_pattern: str) -> list[Symbol]:
        if not name_or_pattern:
            return []

        if any(ch in name_or_pattern for ch in "*?"):
            rows = self.store.glob_symbols(name_or_pattern, SymbolKind.TYPE.value)
            return [self._to_symbol(row) for row in rows]

        row = self.store.get_symbol(name_or_pattern)
        if row and row["kind"] == SymbolKind.TYPE.value:
            return [self._to_symbol(row)]

        simple_name = name_or_pattern.rsplit(".", 1)[-1]
        rows = self.store.get_symbols_by_name(simple_name, SymbolKind.TYPE.value)
        if "." in name_or_pattern:
            # Qualified name that is not indexed: only accept an exact match
            rows = [r for r in rows if r["fqn"] == name_or_pattern]
        return [self._to_symbol(row) for row in rows]

    def get_symbol(self, fqn: str) -> Optional[Symbol]:
        if not fqn:
            return None
        row = self.store.get_symbol(fqn)
        return self._to_symbol(row) if row else None

    def get_methods(self, type_symbol: Symbol) -> list[Symbol]:
        return self._children(type_symbol, SymbolKind.METHOD)

    def get_fields(self, type_symbol: Symbol) -> list[Symbol]:
        return self._children(type_symbol, SymbolKind.FIELD)

    def get_interfaces(self, type_symbol: Symbol) -> list[Symbol]:
        interfaces = []
        for fqn in type_symbol.interfaces:
            resolved = self.get_symbol(fqn)
            if resolved is not None:
                interfaces.append(resolved)
        return interfaces

    def find_references(self, symbol: Symbol) -> list[Reference]:
        references = []
        for edge in self.store.get_edges_to(symbol.fqn):
            source = self.get_symbol(edge["from_fqn"])
            if source is None:
                logger.debug(
                    f"Skipping reference from unindexed symbol {edge['from_fqn']}",
                    extra={"target": symbol.fqn},
                )
                continue

            try:
                context = RelationKind(edge["relation"])
            except ValueError:
                logger.warning(
                    f"Unknown relation {edge['relation']!r} in reference index",
                    extra={"from_fqn": edge["from_fqn"], "to_fqn": edge["to_fqn"]},
                )
                continue

            if source.kind == SymbolKind.TYPE:
                references.append(Reference(symbol.fqn, context, enclosing_type=source))
            elif source.kind == SymbolKind.METHOD:
                references.append(
                    Reference(
                        symbol.fqn,
                        context,
                        enclosing_type=source.declaring_type,
                        enclosing_method=source,
                    )
                )
            else:
                references.append(Reference(symbol.fqn, context, enclosing_type=source.declaring_type))
        return references

    def resolve_call(self, call: MethodCall) -> Optional[Symbol]:
        if not call.method_fqn:
            return None
        resolved = self.get_symbol(call.method_fqn)
        if resolved is None or resolved.kind != SymbolKind.METHOD:
            return None
        return resolved

    def resolve_variable(self, ref: VariableRef) -> Optional[Symbol]:
        type_fqn = ref.declared_type
        if not type_fqn and ref.ref_kind == VariableKind.FIELD and ref.target_fqn:
            target = self.get_symbol(ref.target_fqn)
            if target is not None:
                type_fqn = target.type_fqn
        if not type_fqn:
            return None

        resolved = self.get_symbol(type_fqn)
        if resolved is None or resolved.kind != SymbolKind.TYPE:
            return None
        return resolved

    def get_body(self, method: Symbol) -> Optional[Expression]:
        row = self.store.get_symbol(method.fqn)
        if not row or not row.get("body"):
            return None
        try:
            return parse_expression(json.loads(row["body"]))
        except (ValueError, TypeError, RecursionError) as e:
            raise CodeModelError(f"Malformed body for {method.fqn}: {e}") from e

    def get_source_text(self, method: Symbol) -> str:
        row = self.store.get_symbol(method.fqn)
        if not row:
            return ""
        if row.get("source"):
            return row["source"]

        # No captured source: rebuild a readable signature
        parts = [f"@{annotation_simple_name(a)}" for a in _json_tuple(row.get("annotations"))]
        parts.extend(_json_tuple(row.get("modifiers")))
        params = ", ".join(_json_tuple(row.get("parameters")))
        parts.append(f"{row.get('return_type') or 'void'} {row['name']}({params})")
        return " ".join(parts)

    # ========================
    # Documentation and annotations
    # ========================

    def get_documentation(self, symbol: Symbol) -> Optional[str]:
        row = self.store.get_symbol(symbol.fqn)
        return row.get("documentation") if row else None

    def _writable_row(self, symbol: Symbol, operation: str) -> dict[str, Any]:
        self._require_write_transaction(operation)
        row = self.store.get_symbol(symbol.fqn)
        if row is None:
            raise CodeModelError(f"Symbol not found: {symbol.fqn}")
        if not row.get("writable", 1):
            raise DocumentationWriteError(f"{symbol.fqn} is read-only")
        return row

    def set_documentation(self, symbol: Symbol, text: str) -> None:
        row = self._writable_row(symbol, "set_documentation")
        self.store.update_documentation(symbol.fqn, text)
        self._record(symbol.fqn, "documentation", row.get("documentation"), text)

    def insert_documentation(self, symbol: Symbol, text: str) -> None:
        row = self._writable_row(symbol, "insert_documentation")
        if row.get("documentation"):
            raise DocumentationWriteError(f"{symbol.fqn} already has documentation")
        self.store.update_documentation(symbol.fqn, text)
        self._record(symbol.fqn, "documentation", None, text)

    def get_annotations(self, symbol: Symbol) -> tuple[str, ...]:
        row = self.store.get_symbol(symbol.fqn)
        return _json_tuple(row.get("annotations")) if row else ()

    def add_annotation(
        self, symbol: Symbol, name: str, attributes: Optional[dict[str, Any]] = None
    ) -> None:
        row = self._writable_row(symbol, "add_annotation")
        current = list(_json_tuple(row.get("annotations")))
        simple = annotation_simple_name(name)
        if any(annotation_simple_name(a) == simple for a in current):
            raise CodeModelError(f"{symbol.fqn} already has annotation {simple}")

        updated = current + [_render_annotation(name, attributes)]
        self.store.update_annotations(symbol.fqn, updated)
        self._record(
            symbol.fqn,
            "annotations",
            json.dumps(current) if current else None,
            json.dumps(updated),
        )

    # ========================
    # Transactions and history
    # ========================

    @contextmanager
    def _transaction(self, label: str) -> Iterator[None]:
        with self.store.transaction():
            history_id = self.store.create_history(label)
            self._history_state.history_id = history_id
            self._history_state.edits = 0
            try:
                yield
            finally:
                edits = self._history_state.edits
                self._history_state.history_id = None
            if edits == 0:
                self.store.delete_history(history_id)

        logger.info(
            f"Committed write transaction '{label}'",
            extra={"history_id": history_id, "edits": edits},
        )

    def _record(self, fqn: str, field_name: str, old: Optional[str], new: Optional[str]) -> None:
        history_id = getattr(self._history_state, "history_id", None)
        if history_id is None:
            return
        self.store.add_history_entry(history_id, fqn, field_name, old, new)
        self._history_state.edits += 1

    def undo_last(self) -> Optional[dict[str, Any]]:
        self._lock.acquire_write()
        try:
            record = self.store.get_last_undoable_history()
            if record is None:
                return None

            entries = self.store.get_history_entries(record["id"])
            with self.store.transaction():
                for entry in reversed(entries):
                    if entry["field"] == "documentation":
                        self.store.update_documentation(entry["fqn"], entry["old_value"])
                    else:
                        restored = json.loads(entry["old_value"]) if entry["old_value"] else []
                        self.store.update_annotations(entry["fqn"], restored)
                self.store.mark_history_undone(record["id"])
        finally:
            self._lock.release_write()

        logger.info(
            f"Undid write transaction '{record['label']}'",
            extra={"history_id": record["id"], "edits": len(entries)},
        )
        return {"id": record["id"], "label": record["label"], "reverted": len(entries)}

    def history(self, limit: int = 20) -> list[dict[str, Any]]:
        return self.store.get_history(limit)
