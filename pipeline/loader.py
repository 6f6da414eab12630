"""
NHE Database Loader

Persists a ``ParsedData`` result into the three-table SQLite schema::

    years         (id, year UNIQUE)
    categories    (id, name, parent_id -> categories.id, indent_level,
                   sort_order, is_major_heading)
    expenditures  (id, category_id, year_id, amount NULL,
                   UNIQUE(category_id, year_id))

Every write path runs inside a single transaction: either the whole load is
visible or none of it is.  There is no incremental update; a forced reload
clears all three tables and inserts from scratch.

Usage:
    conn = create_database(Path("app.db"))
    ensure_loaded(conn, Path("NHE2023.csv"))          # load only if empty
    reload_from_csv(conn, Path("NHE2023.csv"))        # forced clear + load
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from pipeline.logging import StepReport
from pipeline.parser import ParsedData, parse_csv
from utils.database import connect, get_table_count

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS years (
        id INTEGER PRIMARY KEY,
        year INTEGER NOT NULL UNIQUE
    );

    CREATE TABLE IF NOT EXISTS categories (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        parent_id INTEGER,
        indent_level INTEGER NOT NULL,
        sort_order INTEGER NOT NULL,
        is_major_heading INTEGER NOT NULL DEFAULT 0,
        FOREIGN KEY (parent_id) REFERENCES categories(id)
    );

    CREATE TABLE IF NOT EXISTS expenditures (
        id INTEGER PRIMARY KEY,
        category_id INTEGER NOT NULL,
        year_id INTEGER NOT NULL,
        amount INTEGER,
        FOREIGN KEY (category_id) REFERENCES categories(id),
        FOREIGN KEY (year_id) REFERENCES years(id),
        UNIQUE(category_id, year_id)
    );

    CREATE INDEX IF NOT EXISTS idx_categories_sort ON categories(sort_order);
    CREATE INDEX IF NOT EXISTS idx_categories_major
        ON categories(is_major_heading, sort_order);
    CREATE INDEX IF NOT EXISTS idx_expenditures_year ON expenditures(year_id);
"""


class LoadError(RuntimeError):
    """A storage failure during load or clear; the transaction was rolled back."""


# ── Database Setup ────────────────────────────────────────────────────────────

def create_database(db_path: Path | str) -> sqlite3.Connection:
    """Open (creating if needed) the NHE database and ensure the schema exists."""
    conn = connect(db_path)
    conn.executescript(SCHEMA_SQL)
    return conn


def database_empty(conn: sqlite3.Connection) -> bool:
    """True when no categories have been loaded."""
    return get_table_count(conn, "categories") == 0


def table_counts(conn: sqlite3.Connection) -> dict[str, int]:
    return {
        table: get_table_count(conn, table)
        for table in ("years", "categories", "expenditures")
    }


# ── Transaction bodies (caller owns the transaction) ─────────────────────────

def _clear(conn: sqlite3.Connection) -> None:
    # Children before parents so foreign keys hold at every statement.
    conn.execute("DELETE FROM expenditures")
    conn.execute("DELETE FROM categories")
    conn.execute("DELETE FROM years")


def _insert(conn: sqlite3.Connection, data: ParsedData) -> dict[str, int]:
    for year in data.years:
        try:
            conn.execute("INSERT OR IGNORE INTO years (year) VALUES (?)", (year,))
        except sqlite3.Error as exc:
            raise LoadError(f"insert year {year}: {exc}") from exc

    year_ids: dict[int, int] = {
        row[1]: row[0] for row in conn.execute("SELECT id, year FROM years")
    }

    # Parse position -> database id, filled as we go.  Parents always precede
    # their children in document order, so the lookup never misses.
    category_ids: dict[int, int] = {}
    for pos, cat in enumerate(data.categories, start=1):
        parent_db_id = (
            category_ids.get(cat.parent_id) if cat.parent_id is not None else None
        )
        try:
            cur = conn.execute(
                """INSERT INTO categories
                   (name, parent_id, indent_level, sort_order, is_major_heading)
                   VALUES (?, ?, ?, ?, ?)""",
                (cat.name, parent_db_id, cat.indent_level, cat.sort_order,
                 1 if cat.is_major_heading else 0),
            )
        except sqlite3.Error as exc:
            raise LoadError(f"insert category {cat.name!r}: {exc}") from exc
        category_ids[pos] = cur.lastrowid

    rows: list[tuple[int, int, int | None]] = []
    for pos, cells in data.expenditures.items():
        db_cat_id = category_ids.get(pos)
        if db_cat_id is None:
            continue
        for year_idx, amount in cells.items():
            if year_idx < 1 or year_idx > len(data.years):
                continue
            year_id = year_ids.get(data.years[year_idx - 1])
            if year_id is None:
                continue
            rows.append((db_cat_id, year_id, amount))

    try:
        conn.executemany(
            "INSERT INTO expenditures (category_id, year_id, amount) VALUES (?, ?, ?)",
            rows,
        )
    except sqlite3.Error as exc:
        raise LoadError(f"insert expenditures: {exc}") from exc

    return {
        "years": len(data.years),
        "categories": len(category_ids),
        "expenditures": len(rows),
    }


# ── Public operations ─────────────────────────────────────────────────────────

def load_parsed(conn: sqlite3.Connection, data: ParsedData) -> dict[str, int]:
    """Insert *data* in one transaction; roll back everything on failure.

    Returns:
        Counts of inserted years, categories and expenditure rows.

    Raises:
        LoadError: On any storage failure (after rollback).
    """
    try:
        with conn:
            return _insert(conn, data)
    except sqlite3.Error as exc:
        raise LoadError(f"load failed: {exc}") from exc


def clear_database(conn: sqlite3.Connection) -> None:
    """Delete expenditures, categories and years in one transaction."""
    try:
        with conn:
            _clear(conn)
    except sqlite3.Error as exc:
        raise LoadError(f"clear database: {exc}") from exc
    logger.info("Cleared years, categories and expenditures")


def reload_from_csv(
    conn: sqlite3.Connection,
    csv_path: Path | str,
    *,
    strict_amounts: bool = False,
) -> dict[str, int]:
    """Parse *csv_path*, then clear and load it in a single transaction.

    The CSV is parsed before anything is deleted, so a structural error or a
    storage failure leaves the previous contents untouched.

    Raises:
        FileNotFoundError, CSVParseError: From the parser (nothing written).
        LoadError: On storage failure (rolled back).
    """
    parse_report = StepReport("parse", status="started")
    logger.info("Loading data from CSV %s", csv_path)
    data = parse_csv(csv_path, strict_amounts=strict_amounts, report=parse_report)
    parse_report.finish()
    logger.info("parse: %s", parse_report.console_summary(), extra={"step": "parse"})

    try:
        with conn:
            _clear(conn)
            counts = _insert(conn, data)
    except sqlite3.Error as exc:
        raise LoadError(f"reload failed: {exc}") from exc

    logger.info(
        "Data loaded: %d categories, %d years, %d expenditure rows",
        counts["categories"], counts["years"], counts["expenditures"],
        extra={"step": "load"},
    )
    return counts


def ensure_loaded(
    conn: sqlite3.Connection,
    csv_path: Path | str,
    *,
    force: bool = False,
    strict_amounts: bool = False,
) -> dict[str, int] | None:
    """Load from CSV when *force* is set or the database is empty.

    Returns:
        Load counts, or None when the existing data was kept.
    """
    if not force and not database_empty(conn):
        logger.info("Database already loaded; skipping CSV import")
        return None
    return reload_from_csv(conn, csv_path, strict_amounts=strict_amounts)
