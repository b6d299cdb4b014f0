"""Tests for expression tree parsing."""

import pytest

from apitag_core.models.expressions import (
    Block,
    Lambda,
    MethodCall,
    NewInstance,
    Other,
    VariableKind,
    VariableRef,
    parse_expression,
)

from factories import nested_calls


class TestParseExpression:
    def test_call_with_qualifier_and_arguments(self):
        expr = parse_expression(
            {
                "node": "call",
                "method": "com.acme.AccountService.fetch(Long)",
                "qualifier": {"node": "var", "name": "accountService", "ref": "field", "type": "com.acme.AccountService"},
                "arguments": [{"node": "literal", "value": 1}],
            }
        )
        assert isinstance(expr, MethodCall)
        assert expr.method_fqn == "com.acme.AccountService.fetch(Long)"
        assert isinstance(expr.qualifier, VariableRef)
        assert expr.qualifier.ref_kind == VariableKind.FIELD
        assert len(list(expr.children())) == 2

    def test_unknown_nodes_keep_children(self):
        expr = parse_expression(
            {"node": "if", "children": [{"node": "new", "type": "com.acme.Account"}]}
        )
        assert isinstance(expr, Other)
        assert expr.label == "if"
        assert isinstance(expr.nested[0], NewInstance)

    def test_lambda_body(self):
        expr = parse_expression({"node": "lambda", "body": {"node": "block", "children": []}})
        assert isinstance(expr, Lambda)
        assert isinstance(expr.body, Block)

    def test_none(self):
        assert parse_expression(None) is None

    def test_non_dict_raises(self):
        with pytest.raises(ValueError):
            parse_expression(["call"])

    def test_to_dict_is_parseable(self):
        data = {
            "node": "block",
            "children": [
                {"node": "call", "method": None, "name": "findAll"},
                {"node": "var", "name": "id", "ref": "parameter", "type": "Long"},
            ],
        }
        assert parse_expression(data).to_dict() == data

    def test_nesting_limit(self):
        chain = nested_calls(1200)
        with pytest.raises(ValueError, match="deeper than 256"):
            parse_expression(chain)

        shallow = parse_expression(nested_calls(3), max_depth=5)
        assert isinstance(shallow, Block)
        with pytest.raises(ValueError, match="deeper than 4"):
            parse_expression(nested_calls(4), max_depth=4)
