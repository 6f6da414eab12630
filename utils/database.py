"""SQLite helpers shared by the loader, the CLI and the web app.

Writers go through ``connect()`` (WAL, foreign keys); the dashboard opens
``connect(path, read_only=True)`` once per request.
"""

import sqlite3
from pathlib import Path
from typing import Any, Dict, List

_BUSY_TIMEOUT_MS = 5000


def init_pragmas(conn: sqlite3.Connection) -> None:
    """Apply the writer pragmas.

    WAL lets dashboard readers keep reading while ``load`` rewrites the
    tables; NORMAL synchronous mode is safe under WAL.  Foreign keys guard
    ``parent_id``, ``category_id`` and ``year_id``.
    """
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute(f"PRAGMA busy_timeout={_BUSY_TIMEOUT_MS}")


def connect(db_path: Path | str, read_only: bool = False) -> sqlite3.Connection:
    """Open *db_path* with ``sqlite3.Row`` rows.

    Args:
        db_path: Database file, or ``":memory:"`` for a writer.
        read_only: Open through a ``mode=ro`` URI.  The file must exist;
            sqlite raises ``OperationalError`` otherwise.
    """
    if read_only:
        conn = sqlite3.connect(
            f"file:{db_path}?mode=ro", uri=True, check_same_thread=False, timeout=10,
        )
        conn.execute(f"PRAGMA busy_timeout={_BUSY_TIMEOUT_MS}")
    else:
        conn = sqlite3.connect(str(db_path), check_same_thread=False, timeout=10)
        init_pragmas(conn)
    conn.row_factory = sqlite3.Row
    return conn


def get_table_count(conn: sqlite3.Connection, table: str) -> int:
    # Table names come from code, never from request input.
    row = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
    return row[0] if row else 0


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (table,),
    ).fetchone()
    return row is not None


def query_to_dicts(conn: sqlite3.Connection, query: str,
                   params: tuple = ()) -> List[Dict[str, Any]]:
    """Run *query* and return each row as a plain dict.

    Needs a connection from ``connect()`` so rows are ``sqlite3.Row``.
    """
    return [dict(row) for row in conn.execute(query, params)]
