"""
Pytest fixtures for the NHE Explorer tests.

Provides the synthetic NHE CSV (see nhe_data.py), a database loaded from
it, and a TestClient bound to that database.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from nhe_data import write_nhe_csv  # noqa: E402
from pipeline.loader import create_database, reload_from_csv  # noqa: E402


@pytest.fixture()
def nhe_csv(tmp_path):
    """Path to the synthetic NHE CSV."""
    return write_nhe_csv(tmp_path / "NHE2023.csv")


@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "app.db"


@pytest.fixture()
def loaded_conn(db_path, nhe_csv):
    """Writable connection to a database loaded from the synthetic CSV."""
    conn = create_database(db_path)
    reload_from_csv(conn, nhe_csv)
    yield conn
    conn.close()


@pytest.fixture()
def loaded_db(loaded_conn, db_path):
    """Path to a loaded database (the writer connection stays open)."""
    return db_path


@pytest.fixture()
def client(loaded_db):
    """TestClient for an app pointed at the loaded database."""
    from fastapi.testclient import TestClient

    from api.app import create_app

    with TestClient(create_app(db_path=loaded_db)) as c:
        yield c


@pytest.fixture()
def restore_root_logger():
    """Undo configure_logging() so later tests keep pytest's log capture."""
    import logging

    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()
    for h in saved_handlers:
        root.addHandler(h)
    root.setLevel(saved_level)
