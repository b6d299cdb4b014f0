"""Unit tests for SQLiteStore."""

import threading

import pytest

from apitag_core.models.types import EdgeData, RelationKind, SymbolData, SymbolKind
from apitag_core.storage.sqlite_store import SQLiteStore


class TestSymbols:
    def test_insert_and_get_symbol(self, store: SQLiteStore):
        symbol = SymbolData(
            fqn="com.example.service.UserService",
            kind=SymbolKind.TYPE,
            name="UserService",
            file_path="/path/to/UserService.java",
            line_number=10,
            modifiers=["public"],
            annotations=["Service"],
            is_interface=True,
        )
        store.insert_symbols([symbol])

        result = store.get_symbol("com.example.service.UserService")
        assert result is not None
        assert result["kind"] == "type"
        assert result["name"] == "UserService"
        assert result["line_number"] == 10
        assert result["is_interface"] == 1
        assert result["writable"] == 1

    def test_insert_is_upsert(self, store: SQLiteStore):
        store.insert_symbols([SymbolData(fqn="com.example.User", kind=SymbolKind.TYPE, name="User")])
        store.insert_symbols([SymbolData(fqn="com.example.User", kind=SymbolKind.TYPE, name="User", documentation="/** doc */")])

        assert store.get_symbol_count() == 1
        assert store.get_symbol("com.example.User")["documentation"] == "/** doc */"

    def test_lookup_by_parent_name_and_glob(self, store: SQLiteStore):
        store.insert_symbols([
            SymbolData(fqn="com.example.User", kind=SymbolKind.TYPE, name="User"),
            SymbolData(fqn="com.example.Order", kind=SymbolKind.TYPE, name="Order"),
            SymbolData(fqn="com.example.User.getName()", kind=SymbolKind.METHOD, name="getName", parent_fqn="com.example.User"),
            SymbolData(fqn="com.example.User.name", kind=SymbolKind.FIELD, name="name", parent_fqn="com.example.User"),
        ])

        assert [r["name"] for r in store.get_symbols_by_parent("com.example.User")] == ["getName", "name"]
        assert len(store.get_symbols_by_parent("com.example.User", "method")) == 1
        assert store.get_symbols_by_name("Order", "type")[0]["fqn"] == "com.example.Order"
        assert [r["name"] for r in store.glob_symbols("com.example.*", "type")] == ["User", "Order"]

    def test_update_documentation_and_annotations(self, store: SQLiteStore):
        store.insert_symbols([SymbolData(fqn="com.example.User", kind=SymbolKind.TYPE, name="User")])

        assert store.update_documentation("com.example.User", "/** USR-A-001 */")
        assert store.update_annotations("com.example.User", ["Entity"])
        assert not store.update_documentation("com.example.Missing", "x")

        row = store.get_symbol("com.example.User")
        assert row["documentation"] == "/** USR-A-001 */"
        assert row["annotations"] == '["Entity"]'


class TestEdges:
    def test_insert_and_query_edges(self, store: SQLiteStore):
        store.insert_edges([
            EdgeData("com.example.A.run()", "com.example.B.go()", RelationKind.CALLS),
            EdgeData("com.example.AImpl", "com.example.A", RelationKind.IMPLEMENTS),
        ])

        assert store.get_edge_count() == 2
        assert len(store.get_edges_from("com.example.A.run()")) == 1
        assert store.get_edges_to("com.example.A", "implements")[0]["from_fqn"] == "com.example.AImpl"
        assert store.get_edges_to("com.example.A", "calls") == []

    def test_deleting_symbol_cascades_to_edges(self, store: SQLiteStore):
        store.insert_symbols([SymbolData(fqn="com.example.A", kind=SymbolKind.TYPE, name="A")])
        store.insert_edges([EdgeData("com.example.AImpl", "com.example.A", RelationKind.IMPLEMENTS)])

        store.conn.execute("DELETE FROM symbols WHERE fqn = ?", ("com.example.A",))
        store.conn.commit()

        assert store.get_edge_count() == 0


class TestTransactions:
    def test_commit(self, store: SQLiteStore):
        with store.transaction():
            store.insert_symbols([SymbolData(fqn="com.example.A", kind=SymbolKind.TYPE, name="A")])
            assert store.in_transaction

        assert not store.in_transaction
        assert store.get_symbol("com.example.A") is not None

    def test_rollback_on_error(self, store: SQLiteStore):
        with pytest.raises(RuntimeError, match="boom"):
            with store.transaction():
                store.insert_symbols([SymbolData(fqn="com.example.A", kind=SymbolKind.TYPE, name="A")])
                raise RuntimeError("boom")

        assert store.get_symbol("com.example.A") is None

    def test_nested_transaction_rejected(self, store: SQLiteStore):
        with store.transaction():
            with pytest.raises(RuntimeError, match="Nested"):
                with store.transaction():
                    pass

    def test_connections_are_per_thread(self, store: SQLiteStore):
        store.insert_symbols([SymbolData(fqn="com.example.A", kind=SymbolKind.TYPE, name="A")])
        seen = {}

        def read():
            seen["row"] = store.get_symbol("com.example.A")
            seen["conn"] = store.conn
            store.close()

        worker = threading.Thread(target=read)
        worker.start()
        worker.join()

        assert seen["row"]["name"] == "A"
        assert seen["conn"] is not store.conn


class TestHistory:
    def test_history_records(self, store: SQLiteStore):
        history_id = store.create_history("Sync API message tag ACC-Q-001")
        store.add_history_entry(history_id, "com.example.A", "documentation", None, "/** ACC-Q-001 */")

        history = store.get_history()
        assert history[0]["label"] == "Sync API message tag ACC-Q-001"
        assert history[0]["edits"] == 1
        assert store.get_last_undoable_history()["id"] == history_id

        store.mark_history_undone(history_id)
        assert store.get_last_undoable_history() is None

    def test_delete_history_cascades(self, store: SQLiteStore):
        history_id = store.create_history("empty")
        store.add_history_entry(history_id, "com.example.A", "documentation", None, "x")
        store.delete_history(history_id)

        assert store.get_history() == []
        assert store.get_history_entries(history_id) == []


class TestMetadataAndCleanup:
    def test_metadata(self, store: SQLiteStore):
        assert store.get_metadata("project") is None
        store.set_metadata("project", "mall")
        store.set_metadata("project", "bank")
        assert store.get_metadata("project") == "bank"

    def test_clean_all(self, store: SQLiteStore):
        store.insert_symbols([SymbolData(fqn="com.example.A", kind=SymbolKind.TYPE, name="A")])
        store.set_metadata("project", "mall")

        counts = store.clean_all()
        assert counts["symbols"] == 1
        assert counts["index_metadata"] == 1
        assert store.get_symbol_count() == 0
