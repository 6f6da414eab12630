"""
NHE Database Validation Suite

Runs integrity checks against a loaded NHE database.  Each check returns a
list of issue dicts::

    {"check": "parent_indent", "severity": "error", "detail": "..."}

Severities are "error" (a broken invariant of the loaded tree) and
"warning" (suspicious but loadable data).
"""

from __future__ import annotations

import logging
import sqlite3

from utils.query import GRAND_TOTAL_NAME

logger = logging.getLogger(__name__)

_DETAIL_LIMIT = 50


# ── Individual checks ────────────────────────────────────────────────────────

def check_parent_indent(conn: sqlite3.Connection) -> list[dict]:
    """A parent's indent level must be strictly less than its child's."""
    rows = conn.execute(f"""
        SELECT c.name, c.indent_level, p.name AS parent_name,
               p.indent_level AS parent_indent
        FROM categories c
        JOIN categories p ON p.id = c.parent_id
        WHERE p.indent_level >= c.indent_level
        ORDER BY c.sort_order
        LIMIT {_DETAIL_LIMIT}
    """).fetchall()
    return [
        {
            "check": "parent_indent",
            "severity": "error",
            "detail": (
                f"{r['name']!r} (indent {r['indent_level']}) has parent "
                f"{r['parent_name']!r} at indent {r['parent_indent']}"
            ),
        }
        for r in rows
    ]


def check_parent_order(conn: sqlite3.Connection) -> list[dict]:
    """Every parent appears earlier in document order than its children."""
    rows = conn.execute(f"""
        SELECT c.name, c.sort_order, p.sort_order AS parent_sort
        FROM categories c
        JOIN categories p ON p.id = c.parent_id
        WHERE p.sort_order >= c.sort_order
        LIMIT {_DETAIL_LIMIT}
    """).fetchall()
    return [
        {
            "check": "parent_order",
            "severity": "error",
            "detail": (
                f"{r['name']!r} (sort {r['sort_order']}) precedes its parent "
                f"(sort {r['parent_sort']})"
            ),
        }
        for r in rows
    ]


def check_expenditure_coverage(conn: sqlite3.Connection) -> list[dict]:
    """Each category has exactly one expenditure cell per loaded year."""
    year_count = conn.execute("SELECT COUNT(*) FROM years").fetchone()[0]
    rows = conn.execute(f"""
        SELECT c.name, COUNT(e.id) AS cells
        FROM categories c
        LEFT JOIN expenditures e ON e.category_id = c.id
        GROUP BY c.id
        HAVING cells != ?
        ORDER BY c.sort_order
        LIMIT {_DETAIL_LIMIT}
    """, (year_count,)).fetchall()
    return [
        {
            "check": "expenditure_coverage",
            "severity": "error",
            "detail": f"{r['name']!r} has {r['cells']} cells, expected {year_count}",
        }
        for r in rows
    ]


def check_sort_order(conn: sqlite3.Connection) -> list[dict]:
    """Sort order is dense and 1-based: 1..N with no gaps or repeats."""
    row = conn.execute(
        "SELECT COUNT(*), COUNT(DISTINCT sort_order), MIN(sort_order), MAX(sort_order) "
        "FROM categories"
    ).fetchone()
    total, distinct, lo, hi = row[0], row[1], row[2], row[3]
    if total == 0:
        return []
    if distinct == total and lo == 1 and hi == total:
        return []
    return [{
        "check": "sort_order",
        "severity": "error",
        "detail": (
            f"sort_order not dense: {total} categories, {distinct} distinct "
            f"values, range {lo}..{hi}"
        ),
    }]


def check_indent_quantum(conn: sqlite3.Connection, quantum: int = 5) -> list[dict]:
    """Flag indents that are not a multiple of the indent quantum."""
    rows = conn.execute(f"""
        SELECT name, indent_level FROM categories
        WHERE indent_level % ? != 0
        ORDER BY sort_order
        LIMIT {_DETAIL_LIMIT}
    """, (quantum,)).fetchall()
    return [
        {
            "check": "indent_quantum",
            "severity": "warning",
            "detail": f"{r['name']!r} has irregular indent {r['indent_level']}",
        }
        for r in rows
    ]


def check_grand_total_present(conn: sqlite3.Connection) -> list[dict]:
    """The dashboard needs the grand-total row for percentages."""
    count = conn.execute(
        "SELECT COUNT(*) FROM categories WHERE name = ?", (GRAND_TOTAL_NAME,)
    ).fetchone()[0]
    if count == 0:
        return [{
            "check": "grand_total",
            "severity": "warning",
            "detail": f"No {GRAND_TOTAL_NAME!r} row; percentages will be blank",
        }]
    return []


def check_orphan_rows(conn: sqlite3.Connection) -> list[dict]:
    """Expenditures must reference existing categories and years."""
    count = conn.execute("""
        SELECT COUNT(*) FROM expenditures e
        LEFT JOIN categories c ON c.id = e.category_id
        LEFT JOIN years y ON y.id = e.year_id
        WHERE c.id IS NULL OR y.id IS NULL
    """).fetchone()[0]
    if count:
        return [{
            "check": "orphan_rows",
            "severity": "error",
            "detail": f"{count} expenditure rows reference missing categories or years",
        }]
    return []


ALL_CHECKS = [
    check_parent_indent,
    check_parent_order,
    check_expenditure_coverage,
    check_sort_order,
    check_indent_quantum,
    check_grand_total_present,
    check_orphan_rows,
]


def validate_all(conn: sqlite3.Connection) -> list[dict]:
    """Run every check and return the combined issue list."""
    issues: list[dict] = []
    for check in ALL_CHECKS:
        found = check(conn)
        if found:
            logger.warning("%s: %d issue(s)", check.__name__, len(found))
        issues.extend(found)
    return issues


def has_errors(issues: list[dict]) -> bool:
    return any(i["severity"] == "error" for i in issues)
