"""SQLite storage for the apitag code model."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from threading import local
from typing import Any, Iterable, Iterator

from apitag_core.models.types import EdgeData, SymbolData
from apitag_core.storage.schema import ALL_SCHEMAS, ALL_TABLES

logger = logging.getLogger(__name__)


class SQLiteStore:
    """SQLite-based storage for symbols, the reference index and edit history.

    Row-level access only; the code model layer turns rows into Symbol handles
    and owns locking.
    """

    def __init__(self, db_path: str = "apitag.db", init: bool = False):
        self.db_path = db_path
        self._local = local()

        if init:
            self._rebuild_schema()
        else:
            self._ensure_schema()

    @property
    def conn(self) -> sqlite3.Connection:
        """Get thread-local SQLite connection.

        Creates a new connection for each thread on first access.
        Connections are reused within the same thread.
        """
        if getattr(self._local, "conn", None) is None:
            self._local.conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False  # Allow access from any thread
            )
            self._local.conn.row_factory = sqlite3.Row
            self._local.conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn.execute("PRAGMA foreign_keys=ON")
            self._local.conn.execute("PRAGMA busy_timeout=30000")  # 30s timeout
            self._local.in_transaction = False
        return self._local.conn

    def _rebuild_schema(self) -> None:
        """Start from an empty database (``init=True``)."""
        cursor = self.conn.cursor()
        for table in ALL_TABLES:
            cursor.execute(f"DROP TABLE IF EXISTS {table}")
        self.conn.commit()
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist."""
        cursor = self.conn.cursor()
        for schema_sql in ALL_SCHEMAS.values():
            cursor.executescript(schema_sql)
        self.conn.commit()

    # ========================
    # Transactions
    # ========================

    @property
    def in_transaction(self) -> bool:
        return bool(getattr(self._local, "in_transaction", False))

    def _commit(self) -> None:
        """Commit unless an explicit transaction is open on this thread."""
        if not self.in_transaction:
            self.conn.commit()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block inside one IMMEDIATE transaction on this thread's connection.

        Commits on normal exit and rolls back if the block raises.
        """
        conn = self.conn
        if self.in_transaction:
            raise RuntimeError("Nested transactions are not supported")

        conn.execute("BEGIN IMMEDIATE")
        self._local.in_transaction = True
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        else:
            conn.commit()
        finally:
            self._local.in_transaction = False

    # ========================
    # Symbol CRUD
    # ========================

    def insert_symbols(self, symbols: list[SymbolData]) -> int:
        """Upsert symbol rows by fqn; returns how many were written."""
        if not symbols:
            return 0
        cursor = self.conn.cursor()
        rows = [s.to_row() for s in symbols]
        cursor.executemany(
            """INSERT INTO symbols
               (fqn, kind, name, parent_fqn, file_path, line_number, modifiers, annotations,
                is_interface, interfaces, parameters, return_type, type_fqn, is_constructor,
                documentation, body, source, writable)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(fqn) DO UPDATE SET
               kind = excluded.kind,
               name = excluded.name,
               parent_fqn = excluded.parent_fqn,
               file_path = excluded.file_path,
               line_number = excluded.line_number,
               modifiers = excluded.modifiers,
               annotations = excluded.annotations,
               is_interface = excluded.is_interface,
               interfaces = excluded.interfaces,
               parameters = excluded.parameters,
               return_type = excluded.return_type,
               type_fqn = excluded.type_fqn,
               is_constructor = excluded.is_constructor,
               documentation = excluded.documentation,
               body = excluded.body,
               source = excluded.source,
               writable = excluded.writable,
               updated_at = CURRENT_TIMESTAMP""",
            rows,
        )
        self._commit()
        return len(rows)

    def get_symbol(self, fqn: str) -> dict[str, Any] | None:
        """Row for ``fqn`` or None."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM symbols WHERE fqn = ?", (fqn,))
        row = cursor.fetchone()
        return dict(row) if row else None

    def get_symbols_by_parent(self, parent_fqn: str, kind: str | None = None) -> list[dict[str, Any]]:
        """Get all symbols with a given parent FQN, in declaration order."""
        cursor = self.conn.cursor()
        if kind:
            cursor.execute(
                "SELECT * FROM symbols WHERE parent_fqn = ? AND kind = ? ORDER BY id",
                (parent_fqn, kind),
            )
        else:
            cursor.execute("SELECT * FROM symbols WHERE parent_fqn = ? ORDER BY id", (parent_fqn,))
        return [dict(row) for row in cursor.fetchall()]

    def get_symbols_by_name(self, name: str, kind: str | None = None) -> list[dict[str, Any]]:
        """Get symbols whose simple name matches exactly."""
        cursor = self.conn.cursor()
        if kind:
            cursor.execute(
                "SELECT * FROM symbols WHERE name = ? AND kind = ? ORDER BY id",
                (name, kind),
            )
        else:
            cursor.execute("SELECT * FROM symbols WHERE name = ? ORDER BY id", (name,))
        return [dict(row) for row in cursor.fetchall()]

    def glob_symbols(self, pattern: str, kind: str | None = None) -> list[dict[str, Any]]:
        """Match symbols by FQN with a GLOB pattern (``*`` and ``?`` wildcards)."""
        cursor = self.conn.cursor()
        if kind:
            cursor.execute(
                "SELECT * FROM symbols WHERE fqn GLOB ? AND kind = ? ORDER BY id",
                (pattern, kind),
            )
        else:
            cursor.execute("SELECT * FROM symbols WHERE fqn GLOB ? ORDER BY id", (pattern,))
        return [dict(row) for row in cursor.fetchall()]

    def get_symbol_count(self) -> int:
        """Number of indexed symbols (external types are not indexed)."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM symbols")
        return cursor.fetchone()[0]

    def update_documentation(self, fqn: str, documentation: str | None) -> bool:
        """Set a symbol's documentation block. Returns False if the symbol is missing."""
        cursor = self.conn.cursor()
        cursor.execute(
            "UPDATE symbols SET documentation = ?, updated_at = CURRENT_TIMESTAMP WHERE fqn = ?",
            (documentation, fqn),
        )
        self._commit()
        return cursor.rowcount > 0

    def update_annotations(self, fqn: str, annotations: list[str]) -> bool:
        """Replace a symbol's annotation list. Returns False if the symbol is missing."""
        cursor = self.conn.cursor()
        cursor.execute(
            "UPDATE symbols SET annotations = ?, updated_at = CURRENT_TIMESTAMP WHERE fqn = ?",
            (json.dumps(annotations) if annotations else None, fqn),
        )
        self._commit()
        return cursor.rowcount > 0

    # ========================
    # Reference index
    # ========================

    def insert_edges(self, edges: list[EdgeData]) -> int:
        """Append reference index rows; returns how many were written."""
        if not edges:
            return 0
        cursor = self.conn.cursor()
        rows = [e.to_row() for e in edges]
        cursor.executemany(
            "INSERT INTO edges (from_fqn, to_fqn, relation, metadata) VALUES (?, ?, ?, ?)",
            rows,
        )
        self._commit()
        return len(rows)

    def delete_edges_from(self, fqns: Iterable[str]) -> int:
        """Delete outgoing edges of the given symbols (before re-indexing them)."""
        cursor = self.conn.cursor()
        cursor.executemany("DELETE FROM edges WHERE from_fqn = ?", [(fqn,) for fqn in fqns])
        self._commit()
        return cursor.rowcount

    def get_edges_from(self, fqn: str, relation: str | None = None) -> list[dict[str, Any]]:
        """Edges leaving ``fqn``, optionally of one relation."""
        cursor = self.conn.cursor()
        if relation:
            cursor.execute(
                "SELECT * FROM edges WHERE from_fqn = ? AND relation = ? ORDER BY id",
                (fqn, relation),
            )
        else:
            cursor.execute("SELECT * FROM edges WHERE from_fqn = ? ORDER BY id", (fqn,))
        return [dict(row) for row in cursor.fetchall()]

    def get_edges_to(self, fqn: str, relation: str | None = None) -> list[dict[str, Any]]:
        """Edges pointing at ``fqn``, optionally of one relation."""
        cursor = self.conn.cursor()
        if relation:
            cursor.execute(
                "SELECT * FROM edges WHERE to_fqn = ? AND relation = ? ORDER BY id",
                (fqn, relation),
            )
        else:
            cursor.execute("SELECT * FROM edges WHERE to_fqn = ? ORDER BY id", (fqn,))
        return [dict(row) for row in cursor.fetchall()]

    def get_edge_count(self) -> int:
        """Number of reference index rows."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM edges")
        return cursor.fetchone()[0]

    # ========================
    # Edit history
    # ========================

    def create_history(self, label: str) -> int:
        """Open a history record for one write transaction. Returns its id."""
        cursor = self.conn.cursor()
        cursor.execute("INSERT INTO edit_history (label) VALUES (?)", (label,))
        self._commit()
        return cursor.lastrowid

    def add_history_entry(
        self,
        history_id: int,
        fqn: str,
        field: str,
        old_value: str | None,
        new_value: str | None,
    ) -> None:
        """Record one edit inside a history record."""
        cursor = self.conn.cursor()
        cursor.execute(
            """INSERT INTO edit_history_entries (history_id, fqn, field, old_value, new_value)
               VALUES (?, ?, ?, ?, ?)""",
            (history_id, fqn, field, old_value, new_value),
        )
        self._commit()

    def delete_history(self, history_id: int) -> None:
        """Drop a history record (used when a transaction made no edits)."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM edit_history WHERE id = ?", (history_id,))
        self._commit()

    def get_history(self, limit: int = 20) -> list[dict[str, Any]]:
        """Most recent history records first, with their entry counts."""
        cursor = self.conn.cursor()
        cursor.execute(
            """SELECT h.id, h.label, h.undone, h.created_at, COUNT(e.id) AS edits
               FROM edit_history h
               LEFT JOIN edit_history_entries e ON e.history_id = h.id
               GROUP BY h.id
               ORDER BY h.id DESC
               LIMIT ?""",
            (limit,),
        )
        return [dict(row) for row in cursor.fetchall()]

    def get_history_entries(self, history_id: int) -> list[dict[str, Any]]:
        """Entries of one history record in the order they were made."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT * FROM edit_history_entries WHERE history_id = ? ORDER BY id",
            (history_id,),
        )
        return [dict(row) for row in cursor.fetchall()]

    def get_last_undoable_history(self) -> dict[str, Any] | None:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT * FROM edit_history WHERE undone = 0 ORDER BY id DESC LIMIT 1"
        )
        row = cursor.fetchone()
        return dict(row) if row else None

    def mark_history_undone(self, history_id: int) -> None:
        cursor = self.conn.cursor()
        cursor.execute("UPDATE edit_history SET undone = 1 WHERE id = ?", (history_id,))
        self._commit()

    # ========================
    # Metadata
    # ========================

    def get_metadata(self, key: str) -> str | None:
        """Value stored under ``key`` (snapshot hashes use ``hash:<file>``)."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM index_metadata WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row[0] if row else None

    def set_metadata(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT OR REPLACE INTO index_metadata (key, value) VALUES (?, ?)",
            (key, value),
        )
        self._commit()

    # ========================
    # Cleanup
    # ========================

    def clean_all(self) -> dict[str, int]:
        """Empty every table and return the row counts that were removed."""
        cursor = self.conn.cursor()
        counts = {}
        for table in ALL_TABLES:
            cursor.execute(f"SELECT COUNT(*) FROM {table}")
            counts[table] = cursor.fetchone()[0]
            cursor.execute(f"DELETE FROM {table}")
        self._commit()
        return counts

    def close(self) -> None:
        """Close this thread's database connection."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None
