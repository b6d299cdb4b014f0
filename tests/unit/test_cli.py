"""Tests for the apitag command line interface."""

import json

import pytest

from apitag_cli.main import main

from factories import ACCOUNT_TAG, GET_ACCOUNT, LIST_ACCOUNTS, SERVICE, SERVICE_IMPL, account_snapshot


@pytest.fixture
def snapshot_file(tmp_path):
    path = tmp_path / "account.json"
    path.write_text(json.dumps(account_snapshot()))
    return str(path)


@pytest.fixture
def loaded_db(tmp_path, snapshot_file, capsys):
    db = str(tmp_path / "cli.db")
    assert main(["--log-level", "WARNING", "load", snapshot_file, "--db", db]) == 0
    capsys.readouterr()
    return db


def run(capsys, *argv):
    code = main(["--log-level", "WARNING", *argv])
    return code, capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage: apitag" in capsys.readouterr().out


class TestLoad:
    def test_load_snapshot(self, tmp_path, snapshot_file, capsys):
        code, out = run(capsys, "load", snapshot_file, "--db", str(tmp_path / "a.db"))
        assert code == 0
        assert "[apitag] Loaded 3 types, 4 methods" in out
        assert "Symbols: 8, edges:" in out

    def test_unchanged_snapshot_skipped(self, loaded_db, snapshot_file, capsys):
        code, out = run(capsys, "load", snapshot_file, "--db", loaded_db)
        assert code == 0
        assert "unchanged, skipped" in out

    def test_missing_snapshot(self, tmp_path, capsys):
        code, out = run(capsys, "load", str(tmp_path / "missing.json"), "--db", str(tmp_path / "a.db"))
        assert code == 1
        assert "Snapshot not found" in out


class TestSync:
    def test_sync(self, loaded_db, capsys):
        code, out = run(capsys, "sync", GET_ACCOUNT, "--db", loaded_db)
        assert code == 0
        assert f"Synced tag '{ACCOUNT_TAG}' to 2 related target(s)" in out
        assert "- AccountService (added)" in out

    def test_sync_twice(self, loaded_db, capsys):
        run(capsys, "sync", GET_ACCOUNT, "--db", loaded_db)
        code, out = run(capsys, "sync", GET_ACCOUNT, "--db", loaded_db)
        assert code == 0
        assert "No classes or methods needed an update" in out

    def test_sync_unknown_symbol(self, loaded_db, capsys):
        code, out = run(capsys, "sync", "com.acme.Nope", "--db", loaded_db)
        assert code == 1
        assert out.startswith("Error: Symbol not found")

    def test_sync_without_tag(self, loaded_db, capsys):
        code, out = run(capsys, "sync", LIST_ACCOUNTS, "--db", loaded_db)
        assert code == 1
        assert "has no API message tag" in out


def test_related(loaded_db, capsys):
    code, out = run(capsys, "related", GET_ACCOUNT, "--db", loaded_db)
    assert code == 0
    assert "[TYPES] (2)" in out
    assert SERVICE in out
    assert SERVICE_IMPL in out
    assert "Total: 2 target(s)" in out


class TestCheck:
    def test_check_reports_problems(self, loaded_db, capsys):
        code, out = run(capsys, "check", "--db", loaded_db)
        assert code == 0
        assert f"missing-tag: {LIST_ACCOUNTS}" in out
        assert f"service-link: {SERVICE}" in out
        assert "Found 0 error(s), 1 warning(s), 1 info" in out

    def test_check_single_rule(self, loaded_db, capsys):
        code, out = run(capsys, "check", "--rule", "missing-tag", "--db", loaded_db)
        assert code == 0
        assert "service-link" not in out

    def test_check_unknown_rule(self, loaded_db, capsys):
        code, out = run(capsys, "check", "--rule", "nope", "--db", loaded_db)
        assert code == 1
        assert "Unknown rule" in out

    def test_check_fix(self, loaded_db, capsys):
        code, out = run(capsys, "check", "--fix", "--db", loaded_db)
        assert code == 0
        assert "Applied 2 of 2 fix(es)" in out

        code, out = run(capsys, "check", "--db", loaded_db)
        assert out.strip() == "No tag problems detected."


class TestHistory:
    def test_undo_after_sync(self, loaded_db, capsys):
        run(capsys, "sync", GET_ACCOUNT, "--db", loaded_db)

        code, out = run(capsys, "undo", "--db", loaded_db)
        assert code == 0
        assert f"Undid 'Sync API message tag {ACCOUNT_TAG}' (2 edit(s))" in out

        code, out = run(capsys, "undo", "--db", loaded_db)
        assert out.strip() == "Nothing to undo."

    def test_history(self, loaded_db, capsys):
        code, out = run(capsys, "history", "--db", loaded_db)
        assert out.strip() == "No history."

        run(capsys, "sync", GET_ACCOUNT, "--db", loaded_db)
        run(capsys, "undo", "--db", loaded_db)
        code, out = run(capsys, "history", "--db", loaded_db)
        assert code == 0
        assert "[2 edit(s)] (undone)" in out
