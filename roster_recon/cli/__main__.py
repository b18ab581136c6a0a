from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..db.repository import Repositories
from ..db.store import PgStore, StoreError, connect
from ..extract import UnsupportedFormatError
from ..logging.init import setup_logging
from ..models.identity import IdentityRole
from ..models.processing_result import ImportContext, ImportResult
from ..services.fetcher import FetchError
from ..services.pipeline import ImportPipeline, ImportRequestError

"""CLI entrypoint: python -m roster_recon.cli

Subcommands:
    roster FILE [--role cadet|training_staff]
    attendance FILE --day ID
    url URL [--day ID] [--role ...]
    init-db

Exit codes:
    0  every row succeeded or was skipped
    2  at least one row failed
    1  fatal / request-level error (config, connection, format, fetch)
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

ROLE_CHOICES = [r.value for r in IdentityRole]


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so database settings in it win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="roster_recon", description="Roster and attendance reconciliation importer"
    )
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    roster = sub.add_parser("roster", help="Import a cadet or staff roster file")
    roster.add_argument("file", type=Path)
    roster.add_argument("--role", choices=ROLE_CHOICES, default=IdentityRole.CADET.value)

    attendance = sub.add_parser("attendance", help="Import an attendance sheet for one training day")
    attendance.add_argument("file", type=Path)
    attendance.add_argument("--day", type=int, required=True, help="training day id")

    url = sub.add_parser("url", help="Import from a share link")
    url.add_argument("url")
    url.add_argument("--day", type=int, default=None, help="training day id (attendance import)")
    url.add_argument("--role", choices=ROLE_CHOICES, default=IdentityRole.CADET.value)

    sub.add_parser("init-db", help="Create missing tables")
    return p.parse_args(argv)


def _context(args: argparse.Namespace) -> ImportContext:
    role = IdentityRole(getattr(args, "role", IdentityRole.CADET.value))
    return ImportContext(role=role, training_day_id=getattr(args, "day", None))


def _run_import(args: argparse.Namespace, pipeline: ImportPipeline) -> ImportResult:
    context = _context(args)
    if args.command == "url":
        return pipeline.import_url(args.url, context)
    path: Path = args.file
    if not path.is_file():
        raise ImportRequestError(f"file not found: {path}")
    return pipeline.import_file(path.read_bytes(), path.name, context)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not fall back to sys.argv (pytest flags)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        for h in logger.handlers:
            h.setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    store: PgStore | None = None
    try:
        store = connect(cfg.database)
        if args.command == "init-db":
            store.ensure_schema()
            logger.info("schema ready")
            return EXIT_SUCCESS_ALL
        pipeline = ImportPipeline(Repositories(store), cfg)
        result = _run_import(args, pipeline)
    except (ImportRequestError, UnsupportedFormatError, FetchError) as e:
        logger.error(f"request: {e}")
        return EXIT_FATAL
    except StoreError as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL
    finally:
        if store is not None:
            store.close()

    logger.info(result.message)
    for message in result.errors:
        logger.warning(message)

    if result.fail_count > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
