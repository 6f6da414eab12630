"""
Pipeline package: NHE CSV parsing, loading and validation.

Re-exports key entry points so callers can do::

    from pipeline import parse_csv, create_database, reload_from_csv
"""

from pipeline.parser import CSVParseError, Category, ParsedData, parse_csv, parse_records
from pipeline.loader import (
    LoadError,
    clear_database,
    create_database,
    database_empty,
    ensure_loaded,
    load_parsed,
    reload_from_csv,
)
from pipeline.validator import validate_all

__all__ = [
    "CSVParseError",
    "Category",
    "ParsedData",
    "parse_csv",
    "parse_records",
    "LoadError",
    "clear_database",
    "create_database",
    "database_empty",
    "ensure_loaded",
    "load_parsed",
    "reload_from_csv",
    "validate_all",
]
