"""Tests for the snapshot loader."""

import json

from apitag_core.extractors.snapshot import SnapshotExtractor, method_fqn
from apitag_core.models.types import RelationKind, SymbolKind

from factories import (
    CONTROLLER,
    FETCH,
    GET_ACCOUNT,
    SERVICE,
    SERVICE_IMPL,
    SnapshotBuilder,
    account_snapshot,
    block,
    nested_calls,
)


def relations(edges, from_fqn=None, to_fqn=None):
    return {
        (e.from_fqn, e.to_fqn, e.relation)
        for e in edges
        if (from_fqn is None or e.from_fqn == from_fqn) and (to_fqn is None or e.to_fqn == to_fqn)
    }


class TestExtract:
    def test_symbols_and_stats(self, store):
        result = SnapshotExtractor(store).extract(account_snapshot())

        assert result.success
        assert result.stats["types"] == 3
        assert result.stats["methods"] == 4
        assert result.stats["fields"] == 1
        kinds = {s.fqn: s.kind for s in result.symbols}
        assert kinds[GET_ACCOUNT] == SymbolKind.METHOD
        assert kinds[f"{CONTROLLER}.accountService"] == SymbolKind.FIELD

    def test_method_fqn(self):
        assert method_fqn("com.acme.A", "run", ["Long", "String"]) == "com.acme.A.run(Long,String)"
        assert method_fqn("com.acme.A", "run", []) == "com.acme.A.run()"

    def test_derived_edges(self, store):
        result = SnapshotExtractor(store).extract(account_snapshot())
        edges = result.edges

        assert (SERVICE_IMPL, SERVICE, RelationKind.IMPLEMENTS) in relations(edges)
        assert (f"{CONTROLLER}.accountService", SERVICE, RelationKind.TYPE_USAGE) in relations(edges)
        assert relations(edges, from_fqn=GET_ACCOUNT) == {
            (GET_ACCOUNT, FETCH, RelationKind.CALLS),
            (GET_ACCOUNT, SERVICE, RelationKind.TYPE_USAGE),
            (GET_ACCOUNT, "com.acme.model.Account", RelationKind.TYPE_USAGE),
        }

    def test_external_and_primitive_types_produce_no_edges(self, store):
        builder = SnapshotBuilder().add_type(
            "com.acme.Util",
            fields=[SnapshotBuilder.field("log", "org.slf4j.Logger"), SnapshotBuilder.field("count", "int")],
            methods=[SnapshotBuilder.method("size", ["java.util.List<String>"], return_type="int")],
        )
        result = SnapshotExtractor(store).extract(builder.build())
        assert result.edges == []

    def test_unindexed_type_keeps_implements_list(self, store):
        result = SnapshotExtractor(store).extract(account_snapshot(impl_indexed=False))

        impl = next(s for s in result.symbols if s.fqn == SERVICE_IMPL)
        assert impl.interfaces == [SERVICE]
        assert relations(result.edges, from_fqn=SERVICE_IMPL) == set()

    def test_new_instance_edges(self, store):
        builder = SnapshotBuilder().add_type(
            "com.acme.Factory",
            methods=[SnapshotBuilder.method("make", body=block({"node": "new", "type": "com.acme.Widget"}))],
        )
        result = SnapshotExtractor(store).extract(builder.build())
        assert ("com.acme.Factory.make()", "com.acme.Widget", RelationKind.INSTANTIATES) in relations(result.edges)

    def test_explicit_references_are_deduplicated(self, store):
        document = account_snapshot()
        document["references"] = [
            {"from": SERVICE_IMPL, "to": SERVICE, "relation": "implements"},
            {"from": "com.acme.job.Nightly.run()", "to": FETCH, "relation": "calls"},
        ]
        result = SnapshotExtractor(store).extract(document)

        implements = [e for e in result.edges if e.relation == RelationKind.IMPLEMENTS]
        assert len(implements) == 1
        assert ("com.acme.job.Nightly.run()", FETCH, RelationKind.CALLS) in relations(result.edges)

    def test_invalid_documents(self, store):
        extractor = SnapshotExtractor(store)
        assert not extractor.extract({}).success

        bad = {"types": [{"name": "NoFqn"}], "references": [{"from": "a", "to": "b", "relation": "owns"}]}
        result = extractor.extract(bad)
        assert not result.success
        assert len(result.errors) == 2


class TestLoad:
    def test_load_stores_symbols_and_edges(self, store):
        result = SnapshotExtractor(store).load(account_snapshot())

        assert result.success
        assert store.get_symbol_count() == 8
        assert store.get_edge_count() == len(result.edges)
        assert store.get_metadata("project") == "account"
        assert json.loads(store.get_symbol(GET_ACCOUNT)["body"])["node"] == "block"

    def test_load_file_skips_unchanged(self, store, tmp_path, capsys):
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps(account_snapshot()))
        extractor = SnapshotExtractor(store)

        first = extractor.load_file(str(path))
        second = extractor.load_file(str(path))
        forced = extractor.load_file(str(path), force=True)

        assert first.success and not first.stats.get("skipped")
        assert second.stats == {"skipped": True}
        assert not forced.stats.get("skipped")
        assert store.get_edge_count() == len(first.edges)
        assert "unchanged, skipped" in capsys.readouterr().out

    def test_load_file_errors(self, store, tmp_path):
        extractor = SnapshotExtractor(store)
        assert not extractor.load_file(str(tmp_path / "missing.json")).success

        broken = tmp_path / "broken.json"
        broken.write_text("{not json")
        result = extractor.load_file(str(broken))
        assert not result.success
        assert "Invalid snapshot JSON" in result.errors[0]

    def test_deeply_nested_body_is_reported_not_raised(self, store):
        document = account_snapshot()
        builder = SnapshotBuilder().add_type(
            "com.acme.gen.Generated",
            methods=[SnapshotBuilder.method("chain", body=nested_calls(1200))],
        )
        document["types"].extend(builder.build()["types"])

        result = SnapshotExtractor(store).load(document)

        assert not result.success
        assert len(result.errors) == 1
        assert "com.acme.gen.Generated" in result.errors[0]
        assert "deeper than 256 levels" in result.errors[0]
        assert store.get_symbol_count() == 0
