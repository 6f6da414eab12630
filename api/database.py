"""
Database connection management for the dashboard.

Provides a get_db() dependency that opens a per-request read-only SQLite
connection and closes it after the response is sent.  No connection or
query result is shared between requests.

The database path is resolved at startup from APP_DB_PATH (default: app.db)
and can be overridden by create_app(db_path=...).
"""

import os
import sqlite3
from collections.abc import Generator
from pathlib import Path

from fastapi import HTTPException

from utils.database import connect

_DB_PATH: Path = Path(os.getenv("APP_DB_PATH", "app.db"))


def get_db_path() -> Path:
    """Return the configured database path."""
    return _DB_PATH


def set_db_path(db_path: Path) -> None:
    """Point subsequent requests at *db_path*."""
    global _DB_PATH
    _DB_PATH = Path(db_path)


def get_db() -> Generator[sqlite3.Connection, None, None]:
    """FastAPI dependency: yield a read-only SQLite connection, close on exit.

    Raises HTTP 503 with a friendly message if the database file is missing,
    instead of a cryptic SQLite error.

    Usage in a route::

        @router.get("/example")
        def example(conn=Depends(get_db)):
            ...
    """
    if not _DB_PATH.exists():
        raise HTTPException(
            status_code=503,
            detail=(
                f"Database not found at '{_DB_PATH}'. "
                "Run 'python main.py load' to build it."
            ),
        )
    conn = connect(_DB_PATH, read_only=True)
    try:
        yield conn
    finally:
        conn.close()
