"""Tests for inspection rules and the inspection runner."""

import pytest

from apitag_analyzer.inspections.rules.missing_tag import PLACEHOLDER_TAG, MissingTagRule
from apitag_analyzer.inspections.runner import InspectionRunner
from apitag_analyzer.sync import TagSyncService
from apitag_core.models.types import Severity
from apitag_core.tagging.codec import TagCodec

from factories import ACCOUNT_TAG, GET_ACCOUNT, LIST_ACCOUNTS, SERVICE, SERVICE_IMPL


@pytest.fixture
def runner(account_model):
    sync_service = TagSyncService(account_model)
    yield InspectionRunner(account_model, sync_service, dispatcher=sync_service.dispatcher)
    sync_service.close()


class TestMissingTag:
    def test_flags_untagged_entry_method(self, runner):
        problems = runner.run_rule("missing-tag")

        assert [p.fqn for p in problems] == [LIST_ACCOUNTS]
        problem = problems[0]
        assert problem.severity == Severity.WARNING
        assert problem.fix_name == "add-tag-annotation"
        assert problem.fix_args == {"annotation": "ApiMsgId", "value": PLACEHOLDER_TAG}
        assert problem.message.startswith("AccountController.listAccounts:")

    def test_fix_adds_placeholder_annotation(self, runner, account_model):
        problem = runner.run_rule("missing-tag")[0]
        outcome = runner.apply_fix(problem)

        assert outcome["fqn"] == LIST_ACCOUNTS
        assert 'ApiMsgId(value="MSG_ID_HERE")' in account_model.get_symbol(LIST_ACCOUNTS).annotations
        assert runner.run_rule("missing-tag") == []

    def test_tag_annotation_counts_as_tag(self, runner, account_model):
        method = account_model.get_symbol(LIST_ACCOUNTS)
        with account_model.write_transaction("annotate"):
            account_model.add_annotation(method, "ApiMsgId", {"value": "ACC-Q-002"})

        assert runner.run_rule("missing-tag") == []
        refreshed = account_model.get_symbol(LIST_ACCOUNTS)
        assert runner.context.tag_of(refreshed) == "ACC-Q-002"


class TestServiceLink:
    def test_flags_untagged_service(self, runner):
        problems = runner.run_rule("service-link")

        assert [p.fqn for p in problems] == [SERVICE]
        problem = problems[0]
        assert problem.severity == Severity.INFO
        assert problem.fix_args["source_method"] == GET_ACCOUNT
        assert problem.fix_args["tags"] == {GET_ACCOUNT: ACCOUNT_TAG}
        assert ACCOUNT_TAG in problem.message

    def test_fix_syncs_from_controller(self, runner, account_model):
        problem = runner.run_rule("service-link")[0]
        outcome = runner.apply_fix(problem)

        assert outcome["report"]["status"] == "success"
        assert outcome["report"]["count"] == 2
        codec = TagCodec()
        for fqn in (SERVICE, SERVICE_IMPL):
            assert codec.extract(account_model.get_documentation(account_model.get_symbol(fqn))) == ACCOUNT_TAG
        assert runner.run_rule("service-link") == []


class TestRunner:
    def test_run_all(self, runner):
        problems = runner.run_all()
        assert {(p.rule_id, p.fqn) for p in problems} == {
            ("missing-tag", LIST_ACCOUNTS),
            ("service-link", SERVICE),
        }

    def test_list_rules(self, runner):
        rules = runner.list_rules()
        assert [r["rule_id"] for r in rules] == ["missing-tag", "service-link"]
        assert rules[0]["fix"] == MissingTagRule().fix_name

    def test_unknown_rule(self, runner):
        with pytest.raises(ValueError, match="Unknown rule"):
            runner.run_rule("nope")
