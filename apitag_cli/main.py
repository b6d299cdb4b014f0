"""apitag CLI - cross-layer API message tag synchronisation."""

import argparse
import sys


def _add_db_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--db",
        default=None,
        help="Database file (default: $APITAG_DB_PATH or apitag.db)",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for apitag CLI."""
    parser = argparse.ArgumentParser(
        prog="apitag",
        description="Keep API message tags in sync across Controller, Service and ServiceImpl layers",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: $APITAG_LOG_LEVEL or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Load command
    load_parser = subparsers.add_parser("load", help="Load a project index snapshot into the code model")
    load_source = load_parser.add_mutually_exclusive_group(required=True)
    load_source.add_argument(
        "snapshot",
        nargs="?",
        help="Snapshot JSON file",
    )
    load_source.add_argument(
        "--project",
        "-p",
        help="Project root to index through the indexer service",
    )
    load_parser.add_argument(
        "--package",
        action="append",
        dest="packages",
        help="Only index this package (repeatable, with --project)",
    )
    load_parser.add_argument(
        "--force",
        action="store_true",
        help="Reload even if the snapshot file is unchanged",
    )
    load_parser.add_argument(
        "--clean",
        action="store_true",
        help="Drop the existing code model before loading",
    )
    _add_db_argument(load_parser)

    # Sync command
    sync_parser = subparsers.add_parser("sync", help="Propagate a tag from a seed method or class")
    sync_parser.add_argument(
        "fqn",
        help="Seed method, type or field FQN (e.g. 'com.acme.AccountController.getAccount(Long)')",
    )
    sync_parser.add_argument(
        "--tag",
        "-t",
        help="Tag to propagate (default: the seed's documentation tag)",
    )
    _add_db_argument(sync_parser)

    # Related command
    related_parser = subparsers.add_parser("related", help="Show what a sync would touch, without writing")
    related_parser.add_argument("fqn", help="Seed method, type or field FQN")
    _add_db_argument(related_parser)

    # Check command
    check_parser = subparsers.add_parser("check", help="Report missing or unsynced tags")
    check_parser.add_argument(
        "--rule",
        help="Run specific rule only",
    )
    check_parser.add_argument(
        "--fix",
        action="store_true",
        help="Apply each problem's quick fix",
    )
    _add_db_argument(check_parser)

    # Undo command
    undo_parser = subparsers.add_parser("undo", help="Revert the last write transaction")
    _add_db_argument(undo_parser)

    # History command
    history_parser = subparsers.add_parser("history", help="List recent write transactions")
    history_parser.add_argument(
        "--limit",
        "-n",
        type=int,
        default=20,
        help="Number of records (default: 20)",
    )
    _add_db_argument(history_parser)

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start HTTP API server")
    serve_parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Server host (default: 0.0.0.0)",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Server port (default: 8080)",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    _setup_cli_logging(args.log_level)

    if args.command == "load":
        return _cmd_load(args)

    if args.command == "sync":
        return _cmd_sync(args)

    if args.command == "related":
        return _cmd_related(args)

    if args.command == "check":
        return _cmd_check(args)

    if args.command == "undo":
        return _cmd_undo(args)

    if args.command == "history":
        return _cmd_history(args)

    if args.command == "serve":
        from apitag_api.app import run_server

        run_server(host=args.host, port=args.port)
        return 0

    return 0


def _setup_cli_logging(level: str | None) -> None:
    from apitag_api.middleware import setup_logging
    from apitag_core.config import SyncConfig

    config = SyncConfig.from_env()
    setup_logging(level=level or config.log_level, json_format=False)


def _container(args: argparse.Namespace):
    """Container for the configured (or ``--db``) database."""
    from dataclasses import replace

    from apitag_core.config import SyncConfig
    from apitag_core.container import ServiceContainer

    config = SyncConfig.from_env()
    db = getattr(args, "db", None)
    if db:
        config = replace(config, db_path=db)
    return ServiceContainer(config)


def _cmd_load(args: argparse.Namespace) -> int:
    """Load a snapshot file or index a project."""
    from apitag_core.extractors.snapshot import SnapshotExtractor
    from apitag_core.storage.sqlite_store import SQLiteStore

    container = _container(args)
    store = SQLiteStore(container.config.db_path, init=args.clean)
    try:
        extractor = SnapshotExtractor(store)

        if args.project:
            import httpx

            from apitag_core.extractors.index_client import IndexerClient

            with IndexerClient(container.config.indexer_url) as client:
                try:
                    document = client.fetch_snapshot(args.project, args.packages)
                except (httpx.HTTPError, ValueError) as e:
                    print(f"Error: indexer request failed: {e}")
                    return 1
            result = extractor.load(document)
        else:
            result = extractor.load_file(args.snapshot, force=args.force)

        if not result.success:
            for error in result.errors:
                print(f"Error: {error}")
            return 1

        print(f"Symbols: {store.get_symbol_count()}, edges: {store.get_edge_count()}")
        return 0
    finally:
        store.close()


def _cmd_sync(args: argparse.Namespace) -> int:
    """Propagate a tag from a seed."""
    from apitag_core.exceptions import TagSyncError

    container = _container(args)
    try:
        service = container.get_sync_service()
        try:
            report = service.sync(args.fqn, args.tag)
        except TagSyncError as e:
            print(f"Error: {e}")
            return 1

        print(report.message)
        return 1 if report.is_error else 0
    finally:
        container.clear()


def _cmd_related(args: argparse.Namespace) -> int:
    """Preview the targets of a sync."""
    from apitag_core.exceptions import TagSyncError

    container = _container(args)
    try:
        service = container.get_sync_service()
        try:
            relation = service.preview(args.fqn)
        except TagSyncError as e:
            print(f"Error: {e}")
            return 1

        print(f"Seed: {args.fqn} ({relation.mode.value} seed, {relation.source_layer.value})")
        if relation.is_empty():
            print("No related targets found.")
            return 0

        if relation.types:
            print(f"\n[TYPES] ({len(relation.types)})")
            print("-" * 60)
            for symbol in relation.types:
                print(f"  {symbol.fqn}")

        if relation.methods:
            print(f"\n[METHODS] ({relation.method_count})")
            print("-" * 60)
            for owner, methods in relation.methods.items():
                print(f"  {owner.fqn}")
                for method in methods:
                    print(f"    -> {method.fqn}")

        if relation.truncated:
            print(f"\nClosure stopped after {relation.iterations} iteration(s); results may be incomplete")

        print(f"\nTotal: {len(relation)} target(s)")
        return 0
    finally:
        container.clear()


def _cmd_check(args: argparse.Namespace) -> int:
    """Run inspection rules, optionally applying fixes."""
    container = _container(args)
    try:
        runner = container.get_inspection_runner()

        try:
            problems = runner.run_rule(args.rule) if args.rule else runner.run_all()
        except ValueError as e:
            print(f"Error: {e}")
            return 1

        if not problems:
            print("No tag problems detected.")
            return 0

        errors = 0
        warnings = 0

        for p in problems:
            severity = p.severity.value
            if severity == "error":
                errors += 1
                prefix = "[ERROR]"
            elif severity == "warning":
                warnings += 1
                prefix = "[WARN] "
            else:
                prefix = "[INFO] "

            print(f"{prefix} {p.rule_id}: {p.fqn}")
            print(f"        {p.message}")

        if args.fix:
            fixed = 0
            for p in problems:
                result = runner.apply_fix(p)
                report = result.get("report")
                if report and report["status"] == "error":
                    print(f"Fix failed for {p.fqn}: {report['message']}")
                    continue
                fixed += 1
            print(f"\nApplied {fixed} of {len(problems)} fix(es)")
            return 0 if fixed == len(problems) else 1

        print(f"\nFound {errors} error(s), {warnings} warning(s), {len(problems) - errors - warnings} info")
        return 1 if errors > 0 else 0
    finally:
        container.clear()


def _cmd_undo(args: argparse.Namespace) -> int:
    """Revert the last write transaction."""
    container = _container(args)
    try:
        undone = container.get_code_model().undo_last()
        if undone is None:
            print("Nothing to undo.")
            return 0
        print(f"Undid '{undone['label']}' ({undone['reverted']} edit(s))")
        return 0
    finally:
        container.clear()


def _cmd_history(args: argparse.Namespace) -> int:
    """List recent write transactions."""
    container = _container(args)
    try:
        records = container.get_code_model().history(args.limit)
        if not records:
            print("No history.")
            return 0

        for record in records:
            marker = " (undone)" if record["undone"] else ""
            print(f"  #{record['id']:<4} {record['created_at']}  {record['label']} [{record['edits']} edit(s)]{marker}")
        return 0
    finally:
        container.clear()


if __name__ == "__main__":
    sys.exit(main())
