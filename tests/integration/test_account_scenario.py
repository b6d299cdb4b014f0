"""End-to-end scenario: load a project snapshot, sync, inspect and undo."""

import json

import pytest

from apitag_analyzer.sync import ReportStatus
from apitag_core.config import SyncConfig
from apitag_core.container import ServiceContainer
from apitag_core.extractors.snapshot import SnapshotExtractor
from apitag_core.storage.sqlite_store import SQLiteStore
from apitag_core.tagging.codec import TagCodec

from factories import ACCOUNT_TAG, GET_ACCOUNT, LIST_ACCOUNTS, SERVICE, SERVICE_IMPL, account_snapshot


@pytest.fixture
def container(tmp_path):
    snapshot = tmp_path / "account.json"
    snapshot.write_text(json.dumps(account_snapshot()))
    db_path = str(tmp_path / "scenario.db")

    store = SQLiteStore(db_path, init=True)
    result = SnapshotExtractor(store).load_file(str(snapshot))
    assert result.success, result.errors
    store.close()

    container = ServiceContainer(SyncConfig(db_path=db_path))
    yield container
    container.clear()


def tags(model, *fqns):
    codec = TagCodec()
    return {fqn: codec.extract(model.get_documentation(model.get_symbol(fqn))) for fqn in fqns}


def test_sync_inspect_and_undo(container):
    model = container.get_code_model()
    sync_service = container.get_sync_service()
    runner = container.get_inspection_runner()

    before = runner.run_all()
    assert {p.rule_id for p in before} == {"missing-tag", "service-link"}

    report = sync_service.sync(GET_ACCOUNT)
    assert report.status == ReportStatus.SUCCESS
    assert report.count == 2
    assert tags(model, SERVICE, SERVICE_IMPL) == {SERVICE: ACCOUNT_TAG, SERVICE_IMPL: ACCOUNT_TAG}

    # The service is tagged now; only the untagged entry method is left
    assert [(p.rule_id, p.fqn) for p in runner.run_all()] == [("missing-tag", LIST_ACCOUNTS)]

    assert sync_service.sync(GET_ACCOUNT).status == ReportStatus.NOOP
    assert len(model.history()) == 1

    undone = model.undo_last()
    assert undone["reverted"] == 2
    assert tags(model, SERVICE, SERVICE_IMPL) == {SERVICE: None, SERVICE_IMPL: None}
    assert {p.rule_id for p in runner.run_all()} == {"missing-tag", "service-link"}


def test_fix_everything(container):
    runner = container.get_inspection_runner()

    for problem in runner.run_all():
        runner.apply_fix(problem)

    assert runner.run_all() == []
    model = container.get_code_model()
    assert tags(model, SERVICE, SERVICE_IMPL) == {SERVICE: ACCOUNT_TAG, SERVICE_IMPL: ACCOUNT_TAG}
    assert [h["label"] for h in model.history()] == [
        f"Sync API message tag {ACCOUNT_TAG}",
        "Add ApiMsgId annotation",
    ]


def test_read_only_implementation(tmp_path):
    db_path = str(tmp_path / "readonly.db")
    store = SQLiteStore(db_path, init=True)
    assert SnapshotExtractor(store).load(account_snapshot(service_impl_writable=False)).success
    store.close()

    container = ServiceContainer(SyncConfig(db_path=db_path))
    try:
        report = container.get_sync_service().sync(GET_ACCOUNT)
        model = container.get_code_model()
        assert report.status == ReportStatus.ERROR
        assert report.count == 1
        assert tags(model, SERVICE, SERVICE_IMPL) == {SERVICE: ACCOUNT_TAG, SERVICE_IMPL: None}
        assert "(failed:" in report.message
    finally:
        container.clear()
