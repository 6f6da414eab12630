#!/usr/bin/env python3
"""
NHE Explorer: load the National Health Expenditure CSV and serve the dashboard.

Usage:
    python main.py serve                         # http://127.0.0.1:8080
    python main.py --force-load serve            # reload CSV, then serve
    python main.py --db /data/nhe.db serve --port 9000
    python main.py --csv NHE2023.csv load        # clear and reload from CSV
    python main.py dump 2023                     # text table for one year
    python main.py validate                      # integrity checks
    python main.py --log-file debug.log --log-format json load

Every command except ``load`` first loads the CSV when the database is empty
(or when --force-load is given).  Environment variables APP_DB_PATH, NHE_CSV,
APP_LOG_FILE, APP_LOG_FORMAT and APP_LOG_LEVEL supply the defaults.
"""

from __future__ import annotations

import argparse
import logging
import sqlite3
import sys
from pathlib import Path

from pipeline.loader import LoadError, create_database, ensure_loaded, reload_from_csv
from pipeline.logging import LOG_FORMATS, LOG_LEVELS, configure_logging
from pipeline.parser import CSVParseError
from pipeline.validator import has_errors, validate_all
from utils.config import AppConfig
from utils.formatting import TableFormatter
from utils.query import fetch_year_breakdown, latest_year

logger = logging.getLogger("nhe")


def build_parser(cfg: AppConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nhe",
        description="NHE data loader and dashboard server.",
    )
    parser.add_argument(
        "--db", type=Path, default=cfg.db_path,
        help=f"Path to SQLite database file (default: {cfg.db_path} or APP_DB_PATH)",
    )
    parser.add_argument(
        "--csv", type=Path, default=cfg.csv_path,
        help=f"Path to the NHE CSV (default: {cfg.csv_path} or NHE_CSV)",
    )
    parser.add_argument(
        "--force-load", action="store_true",
        help="Clear the database and reload from the CSV before running the command",
    )
    parser.add_argument(
        "--strict-amounts", action="store_true",
        help="Fail on malformed amount cells instead of storing them as 0",
    )
    parser.add_argument(
        "--log-file", type=Path, default=cfg.log_file,
        help="Write logs to this file instead of stderr (or APP_LOG_FILE)",
    )
    parser.add_argument(
        "--log-format", choices=LOG_FORMATS, default=cfg.log_format,
        help="Log record format (default: text or APP_LOG_FORMAT)",
    )
    parser.add_argument(
        "--log-level", type=str.upper, choices=LOG_LEVELS, default=cfg.log_level,
        help="Root log level (default: INFO or APP_LOG_LEVEL)",
    )

    sub = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    serve = sub.add_parser("serve", help="start web server")
    serve.add_argument("--host", default=cfg.api_host,
                       help=f"Bind address (default: {cfg.api_host} or APP_HOST)")
    serve.add_argument("--port", type=int, default=cfg.api_port,
                       help=f"Port to listen on (default: {cfg.api_port} or APP_PORT)")

    sub.add_parser("load", help="clear the database and load data from the CSV")

    dump = sub.add_parser("dump", help="dump one year as a text table")
    dump.add_argument("year", nargs="?", type=int, default=None,
                      help="Calendar year (default: most recent loaded year)")

    sub.add_parser("validate", help="run integrity checks on the loaded data")
    return parser


# ── Commands ──────────────────────────────────────────────────────────────────


def cmd_load(conn: sqlite3.Connection, args: argparse.Namespace) -> int:
    reload_from_csv(conn, args.csv, strict_amounts=args.strict_amounts)
    return 0


def cmd_dump(conn: sqlite3.Connection, args: argparse.Namespace) -> int:
    year = args.year if args.year is not None else latest_year(conn)
    if year is None:
        print("No data loaded.")
        return 1
    rows = fetch_year_breakdown(conn, year)
    if not rows:
        print(f"No data for year {year}.")
        return 1

    title = f"National Health Expenditures - Year {year}"
    table = TableFormatter(["CATEGORY", "AMOUNT"], column_widths=[60, 10])
    for r in rows:
        label = "  " * (r["indent_level"] // 5) + r["name"]
        amount = f"{r['amount']}" if r["amount"] is not None else "N/A"
        table.add_row([label, amount])
    print(title)
    print("=" * 72)
    print(table.to_string())
    return 0


def cmd_validate(conn: sqlite3.Connection, args: argparse.Namespace) -> int:
    issues = validate_all(conn)
    if not issues:
        print("All checks passed.")
        return 0
    table = TableFormatter(["SEVERITY", "CHECK", "DETAIL"])
    for issue in issues:
        table.add_row([issue["severity"], issue["check"], issue["detail"]])
    print(table.to_string())
    return 1 if has_errors(issues) else 0


def cmd_serve(cfg: AppConfig, args: argparse.Namespace) -> int:
    import uvicorn

    from api.app import create_app

    app = create_app(db_path=args.db, config=cfg)
    logger.info("Starting server on http://%s:%d (database %s)",
                args.host, args.port, args.db)
    # log_config=None keeps uvicorn on the root handler installed at startup.
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


# ── Entry point ───────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    cfg = AppConfig.from_env()
    parser = build_parser(cfg)
    args = parser.parse_args(argv)
    # argparse does not check defaults taken from the environment against choices.
    if args.log_level not in LOG_LEVELS:
        parser.error(f"invalid log level {args.log_level!r} (choose from {', '.join(LOG_LEVELS)})")
    if args.log_format not in LOG_FORMATS:
        parser.error(f"invalid log format {args.log_format!r} (choose from {', '.join(LOG_FORMATS)})")

    handler = configure_logging(
        log_file=args.log_file, log_format=args.log_format, level=args.log_level,
    )

    cfg.db_path = args.db
    cfg.csv_path = args.csv
    logger.debug("Effective settings: %s", cfg.to_dict())

    try:
        conn = create_database(args.db)
    except sqlite3.Error as exc:
        logger.error("Cannot open database %s: %s", args.db, exc)
        return 1

    try:
        if args.command == "load":
            return cmd_load(conn, args)

        ensure_loaded(conn, args.csv, force=args.force_load,
                      strict_amounts=args.strict_amounts)
        if args.command == "dump":
            return cmd_dump(conn, args)
        if args.command == "validate":
            return cmd_validate(conn, args)

        conn.close()
        return cmd_serve(cfg, args)
    except (FileNotFoundError, CSVParseError) as exc:
        logger.error("Parse CSV failed: %s", exc)
        return 1
    except LoadError as exc:
        logger.error("Load data failed: %s", exc)
        return 1
    finally:
        conn.close()
        handler.flush()


def cli() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
