from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

from roster_sync.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from roster_sync.logging.error_log import ErrorLogBuffer
from roster_sync.logging.init import log_summary, setup_logging
from roster_sync.models.record import Record
from roster_sync.services.auth import FixedCredentialAuthenticator
from roster_sync.services.orchestrator import SyncOrchestrator
from roster_sync.services.summary import render_summary_line
from roster_sync.services.view import SORT_KEYS, SortDirection
from roster_sync.store.snapshot_store import PostgresSnapshotStore

"""CLI entrypoint.

    roster-sync [--config PATH] [--debug] show [--search TEXT] [--sort KEY] [--desc]
    roster-sync [--config PATH] [--debug] import FILE --username U --password P

Both commands load the shared snapshot first (falling back to sample data),
``import`` then authenticates and publishes the uploaded spreadsheet.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_OPERATION_FAILED = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values take precedence over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="roster-sync", description="Personnel roster publish / browse tool")
    p.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Print the current roster view")
    show.add_argument("--search", default="", help="Case-insensitive substring filter over all fields")
    show.add_argument("--sort", choices=SORT_KEYS, default=None, help="Sort key")
    show.add_argument("--desc", action="store_true", help="Sort descending")

    imp = sub.add_parser("import", help="Publish a spreadsheet as the new roster (admin)")
    imp.add_argument("file", type=Path, help=".xlsx or .xls file; first sheet, first row is the header")
    imp.add_argument("--username", required=True)
    imp.add_argument("--password", required=True)
    return p.parse_args(argv)


def _format_row(record: Record) -> str:
    return "\t".join(str(v) for v in record.values())


def _print_view(orch: SyncOrchestrator) -> None:
    view = orch.view()
    for record in view.records:
        print(_format_row(record))
    # "SUMMARY " は log_summary 側で付与される
    log_summary(render_summary_line(view, orch.state)[len("SUMMARY "):])


async def _run(args: argparse.Namespace, orch: SyncOrchestrator) -> int:
    logger = setup_logging()
    state = await orch.start()
    if state.notice:
        logger.warning(state.notice)
    if state.last_error:
        logger.error(state.last_error)

    if args.command == "show":
        orch.set_search_term(args.search)
        if args.sort:
            orch.set_sort(args.sort, SortDirection.DESC if args.desc else SortDirection.ASC)
        _print_view(orch)
        return EXIT_SUCCESS

    if not orch.authenticate(args.username, args.password):
        logger.error(f"login: {state.auth_error}")
        return EXIT_OPERATION_FAILED
    result = await orch.import_roster(args.file, source_name=args.file.name)
    if not result.ok:
        return EXIT_OPERATION_FAILED
    _print_view(orch)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    # None のときのみ sys.argv を読む (テストの cli_main([...]) 呼び出し対策)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(Path(args.config))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer()
    orch = SyncOrchestrator(
        PostgresSnapshotStore(cfg.store),
        FixedCredentialAuthenticator(cfg.auth.username, cfg.auth.password),
        cfg.display,
        error_log=error_log,
    )
    try:
        return asyncio.run(_run(args, orch))
    finally:
        count = len(error_log)
        path = error_log.flush()
        if path is not None:
            logger.info(f"error log written: {path} records={count}")
