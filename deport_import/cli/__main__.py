from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from deport_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from deport_import.db.connection import db_connection
from deport_import.db.pg_store import PostgresRecordStore
from deport_import.db.store import InMemoryRecordStore, RecordStore, StoreError
from deport_import.logging.error_log import ErrorLogBuffer, ErrorRecord, ErrorType
from deport_import.logging.init import log_summary, setup_logging
from deport_import.models.config_models import ImportConfig
from deport_import.models.conflict import ConflictAction
from deport_import.models.row_data import DecodedTable
from deport_import.models.validation import ValidationIssue
from deport_import.services.conflicts import apply_resolutions, detect_conflicts
from deport_import.services.executor import execute
from deport_import.services.progress import RowProgressTracker
from deport_import.services.summary import prepare_import_summary, render_summary_line
from deport_import.services.template import (
    DOCS_FILE_NAME,
    TEMPLATE_FILE_NAME,
    generate_field_docs,
    generate_template,
)
from deport_import.services.validator import validate
from deport_import.tabular.reader import DecodeError, check_file, decode, list_sheet_names

"""CLI entrypoint.

Subcommands:
- template  write the CSV template and the field documentation
- inspect   show delimiter detection, headers and the first rows of a file
- validate  decode + validate + conflict detection, no writes
- import    decode, validate (abort on errors), resolve conflicts, execute
- history   list every stored version of one running number
- delete    close out the current version of one running number

Exit codes: 0 success, 1 fatal (config / decode / store connection),
2 validation errors or row-level write errors.
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

INSPECT_PREVIEW_ROWS = 5


class PipelineError(Exception):
    """Fatal CLI-level failure (store unreachable, unreadable input file)."""


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv.

    override=True により .env の値で既存環境変数を上書きし、PostgreSQL 接続情報を最優先化。
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_resolution(text: str) -> tuple[int, ConflictAction]:
    key, sep, action = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected KEY=ACTION, got {text!r}")
    try:
        return int(key.strip()), ConflictAction(action.strip())
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid resolution {text!r}: {e}") from e


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="deport_import", description="Deportation registry CSV/Excel importer"
    )
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to import.yml"
    )
    sub = p.add_subparsers(dest="command", required=True)

    t = sub.add_parser("template", help="Write CSV template and field documentation")
    t.add_argument("--out", type=Path, default=Path("."), help="Output directory")

    i = sub.add_parser("inspect", help="Show detected delimiter, headers and first rows")
    i.add_argument("file", type=Path)

    v = sub.add_parser("validate", help="Validate a file without writing")
    v.add_argument("file", type=Path)

    im = sub.add_parser("import", help="Import a file into the record store")
    im.add_argument("file", type=Path)
    im.add_argument("--actor", required=True, help="Identity stamped into updated_by")
    im.add_argument(
        "--resolve",
        action="append",
        type=_parse_resolution,
        default=[],
        metavar="KEY=ACTION",
        help="Conflict resolution for one Laufendenr (skip|update|create_new_version)",
    )
    im.add_argument(
        "--on-conflict",
        type=ConflictAction,
        default=ConflictAction.SKIP,
        choices=list(ConflictAction),
        metavar="ACTION",
        help="Resolution for conflicts without --resolve (default: skip)",
    )

    h = sub.add_parser("history", help="List all versions of one Laufendenr")
    h.add_argument("key", type=int)

    d = sub.add_parser("delete", help="Close out the current version of one Laufendenr")
    d.add_argument("key", type=int)
    d.add_argument("--actor", required=True)
    return p


@contextmanager
def _open_store(cfg: ImportConfig) -> Iterator[RecordStore]:
    # DB 接続制御: テスト等で完全に無効化したい場合 DISABLE_DB_CONNECT=1
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        setup_logging().debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> in-memory store")
        yield InMemoryRecordStore()
        return
    # 接続失敗は致命的 (mock へのフォールバックはしない)
    try:
        with db_connection(cfg) as conn:
            store = PostgresRecordStore(conn, cfg.table_name)
            store.ensure_schema()
            yield store
    except psycopg2.Error as e:
        raise PipelineError(f"database connection failed: {e}") from e
    except StoreError as e:
        raise PipelineError(f"store: {e}") from e


def _read_input(path: Path, cfg: ImportConfig) -> bytes:
    if not path.is_file():
        raise PipelineError(f"file not found: {path}")
    check_file(path.name, path.stat().st_size, cfg.max_file_bytes)
    return path.read_bytes()


def _decode_file(path: Path, cfg: ImportConfig, error_log: ErrorLogBuffer) -> DecodedTable:
    """Read + decode; DecodeError is logged to the error log and re-raised."""
    try:
        return decode(_read_input(path, cfg), path.name, cfg.max_file_bytes)
    except DecodeError as e:
        error_log.append(ErrorRecord.for_file(path.name, ErrorType.DECODE_ERROR, str(e)))
        raise


def _log_issues(logger: logging.Logger, issues: list[ValidationIssue]) -> None:
    for issue in issues:
        text = f"row {issue.row} {issue.field}: {issue.message}"
        if issue.is_error:
            logger.error(text)
        else:
            logger.warning(text)


def _cmd_template(args: argparse.Namespace, cfg: ImportConfig, logger: logging.Logger) -> int:
    out: Path = args.out
    out.mkdir(parents=True, exist_ok=True)
    csv_path = out / TEMPLATE_FILE_NAME
    docs_path = out / DOCS_FILE_NAME
    csv_path.write_text(generate_template(cfg.canonical_delimiter) + "\n", encoding="utf-8")
    docs_path.write_text(generate_field_docs() + "\n", encoding="utf-8")
    logger.info(f"template written: {csv_path}")
    logger.info(f"documentation written: {docs_path}")
    return EXIT_SUCCESS_ALL


def _cmd_inspect(args: argparse.Namespace, cfg: ImportConfig, logger: logging.Logger) -> int:
    path: Path = args.file
    data = _read_input(path, cfg)
    table = decode(data, path.name, cfg.max_file_bytes)
    if table.delimiter is None:
        names, selected = list_sheet_names(data)
        print(f"FILE: {path.name} sheets={names} selected={selected}")
    else:
        print(
            f"FILE: {path.name} delimiter={table.delimiter!r} confidence={table.confidence}%"
        )
    print(f"  headers={table.headers}")
    print(f"  rows={table.total_rows}")
    for row in table.rows[:INSPECT_PREVIEW_ROWS]:
        print(f"    {dict(row)}")
    for warning in table.warnings:
        logger.warning(warning)
    return EXIT_SUCCESS_ALL


def _cmd_validate(
    args: argparse.Namespace, cfg: ImportConfig,
    logger: logging.Logger,
    store: RecordStore,
    error_log: ErrorLogBuffer,
) -> int:
    table = _decode_file(args.file, cfg, error_log)
    result = validate(table.headers, table.rows, store)
    _log_issues(logger, result.errors + result.warnings)
    conflicts = detect_conflicts(table.rows, store)
    for c in conflicts:
        logger.info(
            f"conflict row {c.row}: Laufendenr {c.logical_key} exists "
            f"({c.existing_record.family_name}, {c.existing_record.given_name})"
        )
    logger.info(
        f"validation rows={result.total_rows} valid={result.valid_rows} "
        f"errors={len(result.errors)} warnings={len(result.warnings)} conflicts={len(conflicts)}"
    )
    return EXIT_SUCCESS_ALL if result.is_valid else EXIT_PARTIAL_FAILURE


def _cmd_import(
    args: argparse.Namespace, cfg: ImportConfig,
    logger: logging.Logger,
    store: RecordStore,
    error_log: ErrorLogBuffer,
) -> int:
    path: Path = args.file
    table = _decode_file(path, cfg, error_log)
    result = validate(table.headers, table.rows, store)
    _log_issues(logger, result.errors + result.warnings)
    if not result.is_valid:
        error_log.extend(
            ErrorRecord.from_issue(path.name, issue, ErrorType.VALIDATION_ERROR)
            for issue in result.errors
        )
        logger.error(f"validation failed: {len(result.errors)} error(s); nothing imported")
        return EXIT_PARTIAL_FAILURE

    conflicts = detect_conflicts(table.rows, store)
    apply_resolutions(conflicts, dict(args.resolve), default=args.on_conflict)
    summary = prepare_import_summary(table.rows, conflicts)
    logger.info(
        f"plan rows={summary.total_rows} new={summary.new_records} updates={summary.updates} "
        f"new_versions={summary.new_versions} skips={summary.skips} "
        f"estimate='{summary.estimated_time}'"
    )

    with RowProgressTracker() as progress:
        outcome = execute(
            table.rows,
            args.actor,
            store,
            conflicts,
            progress.callback,
            error_log=error_log,
            file_name=path.name,
        )
    _log_issues(logger, outcome.errors)

    # log_summary が "SUMMARY " を付与するため接頭辞を除去
    log_summary(render_summary_line(outcome)[len("SUMMARY "):])
    return EXIT_SUCCESS_ALL if outcome.success else EXIT_PARTIAL_FAILURE


def _cmd_history(args: argparse.Namespace, logger: logging.Logger, store: RecordStore) -> int:
    versions = store.find_all_versions_by_logical_key(args.key)
    if not versions:
        logger.info(f"no versions for Laufendenr {args.key}")
        return EXIT_SUCCESS_ALL
    for rec in versions:
        state = "current" if rec.is_current else f"closed {rec.valid_to.isoformat()}"
        valid_from = rec.valid_from.isoformat() if rec.valid_from else "-"
        print(
            f"{rec.id} from={valid_from} {state} "
            f"{rec.family_name or ''}, {rec.given_name or ''} by={rec.updated_by or '-'}"
        )
    return EXIT_SUCCESS_ALL


def _cmd_delete(args: argparse.Namespace, logger: logging.Logger, store: RecordStore) -> int:
    try:
        store.delete_current_version(args.key, datetime.now(UTC), args.actor)
    except StoreError as e:
        logger.error(f"delete: {e}")
        return EXIT_PARTIAL_FAILURE
    logger.info(f"Laufendenr {args.key} closed out by {args.actor}")
    return EXIT_SUCCESS_ALL


def _run_with_store(
    args: argparse.Namespace, cfg: ImportConfig,
    logger: logging.Logger,
    store: RecordStore,
    error_log: ErrorLogBuffer,
) -> int:
    if args.command == "validate":
        return _cmd_validate(args, cfg, logger, store, error_log)
    if args.command == "import":
        return _cmd_import(args, cfg, logger, store, error_log)
    if args.command == "history":
        return _cmd_history(args, logger, store)
    return _cmd_delete(args, logger, store)


def main(argv: list[str] | None = None, *, store: RecordStore | None = None) -> int:
    """Run the CLI.

    ``store`` replaces the configured backend (tests, embedding); when None the
    PostgreSQL store is opened, or the in-memory one under DISABLE_DB_CONNECT=1.
    """
    logger = setup_logging()

    # None のときのみシステム引数を読む (空リストはそのまま)
    if argv is None:
        argv = sys.argv[1:]
    args = _build_parser().parse_args(argv)
    if args.debug:
        setup_logging(debug=True)
        logger.debug("debug mode enabled")

    # .env を最優先で読み込む (DB 接続パラメータ優先順位保証)
    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer(Path(cfg.error_log_directory))
    try:
        if args.command == "template":
            return _cmd_template(args, cfg, logger)
        if args.command == "inspect":
            return _cmd_inspect(args, cfg, logger)
        if store is not None:
            return _run_with_store(args, cfg, logger, store, error_log)
        with _open_store(cfg) as opened:
            return _run_with_store(args, cfg, logger, opened, error_log)
    except DecodeError as e:
        logger.error(f"decode: {e}")
        return EXIT_FATAL
    except (PipelineError, StoreError) as e:
        logger.error(f"{args.command}: {e}")
        return EXIT_FATAL
    finally:
        written = error_log.flush()
        if written is not None:
            counts = " ".join(f"{k}={v}" for k, v in error_log.counts().items())
            logger.info(f"error log written: {written} ({counts})")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
