"""
Tests for utils/database.py

Connection pragmas, read-only mode and the small introspection helpers.
"""
import sqlite3
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.database import connect, get_table_count, query_to_dicts, table_exists


def test_connect_sets_pragmas(tmp_path):
    conn = connect(tmp_path / "x.db")
    assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
    assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    assert conn.row_factory is sqlite3.Row
    conn.close()


def test_read_only_rejects_writes(tmp_path):
    db = tmp_path / "x.db"
    conn = connect(db)
    conn.execute("CREATE TABLE t (x INTEGER)")
    conn.commit()
    conn.close()

    ro = connect(db, read_only=True)
    with pytest.raises(sqlite3.OperationalError):
        ro.execute("INSERT INTO t VALUES (1)")
    ro.close()


def test_read_only_missing_file(tmp_path):
    with pytest.raises(sqlite3.OperationalError):
        connect(tmp_path / "absent.db", read_only=True)


def test_table_helpers(loaded_conn):
    assert table_exists(loaded_conn, "categories")
    assert not table_exists(loaded_conn, "missing_table")
    assert get_table_count(loaded_conn, "years") == 64


def test_query_to_dicts(loaded_conn):
    rows = query_to_dicts(
        loaded_conn, "SELECT year FROM years WHERE year >= ? ORDER BY year", (2022,)
    )
    assert rows == [{"year": 2022}, {"year": 2023}]
