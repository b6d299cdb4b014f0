"""Tests for the depth-capped reference walk."""

import logging

from apitag_analyzer.resolution.reference_walk import ReferenceWalker, ServiceUsage
from apitag_core.models.expressions import Block, Literal, MethodCall, Other

from factories import (
    CONTROLLER,
    FETCH,
    GET_ACCOUNT,
    LIST_ACCOUNTS,
    SERVICE,
    SERVICE_IMPL,
    SnapshotBuilder,
    block,
    call,
    field_var,
)


def nested(depth: int):
    node = Literal(value="leaf")
    for _ in range(depth):
        node = Other(label="paren", nested=[node])
    return node


class TestFold:
    def test_pre_order_visit(self, account_model):
        walker = ReferenceWalker(account_model)
        root = Block(statements=[Other(label="a", nested=[Literal(1)]), Literal(2)])

        def step(acc, node):
            return acc + [type(node).__name__], False

        assert walker.fold(root, [], step) == ["Block", "Other", "Literal", "Literal"]

    def test_short_circuit(self, account_model):
        walker = ReferenceWalker(account_model)
        root = Block(statements=[Literal(1), MethodCall(None), Literal(2)])

        def step(acc, node):
            return acc + 1, isinstance(node, MethodCall)

        assert walker.fold(root, 0, step) == 3

    def test_none_root(self, account_model):
        assert ReferenceWalker(account_model).fold(None, "initial", lambda acc, node: (acc, False)) == "initial"

    def test_depth_cap_skips_deep_nodes(self, account_model, caplog):
        walker = ReferenceWalker(account_model, max_depth=5)

        with caplog.at_level(logging.WARNING):
            visited = walker.fold(nested(10), 0, lambda acc, node: (acc + 1, False))

        assert visited == 6
        assert "deeper than 5" in caplog.text

    def test_very_deep_tree_does_not_recurse(self, account_model):
        walker = ReferenceWalker(account_model, max_depth=100_000)
        assert walker.fold(nested(5_000), 0, lambda acc, node: (acc + 1, False)) == 5_001


class TestCollectServiceTypes:
    def test_entry_method_uses_service(self, account_model):
        walker = ReferenceWalker(account_model)
        usage = walker.collect_service_types(account_model.get_symbol(GET_ACCOUNT))

        assert [t.fqn for t in usage.types] == [SERVICE]
        assert usage.unresolved == 0

    def test_unresolved_calls_are_counted(self, account_model):
        walker = ReferenceWalker(account_model)
        usage = walker.collect_service_types(account_model.get_symbol(LIST_ACCOUNTS))

        assert usage.types == ()
        assert usage.unresolved == 1

    def test_instantiated_service_types(self, load_snapshot):
        builder = SnapshotBuilder()
        builder.add_type(SERVICE_IMPL, implements=[SERVICE])
        builder.add_type(SERVICE, interface=True, methods=[SnapshotBuilder.method("fetch", ["Long"])])
        builder.add_type(
            CONTROLLER,
            methods=[
                SnapshotBuilder.method(
                    "create",
                    body=block(
                        {"node": "new", "type": SERVICE_IMPL},
                        call(FETCH, field_var(CONTROLLER, "accountService", SERVICE)),
                    ),
                )
            ],
        )
        model = load_snapshot(builder.build())
        usage = ReferenceWalker(model).collect_service_types(model.get_symbol(f"{CONTROLLER}.create()"))

        assert [t.fqn for t in usage.types] == [SERVICE_IMPL, SERVICE]

    def test_non_method_has_no_body(self, account_model):
        walker = ReferenceWalker(account_model)
        assert walker.collect_service_types(account_model.get_symbol(SERVICE)) == ServiceUsage()


def test_service_usage_deduplicates(account_model):
    service = account_model.get_symbol(SERVICE)
    usage = ServiceUsage().with_type(service).with_type(service).with_unresolved()
    assert usage.types == (service,)
    assert usage.unresolved == 1
