"""Read-side queries for the NHE dashboard and CLI.

Every call re-derives its view from the database; nothing is cached between
requests.

The dashboard shows every third year, anchored on the most recent year and
walking backward.  With years 1960..2023 that is 2023, 2020, ..., 1963, 1960.
For 1961..2023 it stops at 1963; the oldest year is included only
when it falls on the stride from the end.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field

from utils.database import query_to_dicts

GRAND_TOTAL_NAME = "Total National Health Expenditures"
DEFAULT_STRIDE = 3


@dataclass
class SummaryRow:
    """One major heading with its amounts for the display years."""
    category_id: int
    name: str
    values: list[int | None]


@dataclass
class SummaryTable:
    """Decimated display table.

    ``years`` is in display order (most recent first).  ``totals`` only holds
    years that have a grand-total row; its value may still be None.
    """
    years: list[int] = field(default_factory=list)
    categories: list[SummaryRow] = field(default_factory=list)
    totals: dict[int, int | None] = field(default_factory=dict)


def _placeholders(n: int) -> str:
    return ",".join("?" * n)


def all_years(conn: sqlite3.Connection) -> list[int]:
    """All loaded years, ascending."""
    return [r[0] for r in conn.execute("SELECT year FROM years ORDER BY year")]


def latest_year(conn: sqlite3.Connection) -> int | None:
    row = conn.execute("SELECT MAX(year) FROM years").fetchone()
    return row[0] if row else None


def select_display_years(years: list[int], stride: int = DEFAULT_STRIDE) -> list[int]:
    """Every *stride*-th year walking backward from the most recent.

    Args:
        years: All years, ascending.
        stride: Step between displayed years (must be positive).

    Returns:
        Selected years, most recent first.

    Raises:
        ValueError: If *stride* is not positive.
    """
    if stride < 1:
        raise ValueError(f"stride must be positive, got {stride}")
    return [years[i] for i in range(len(years) - 1, -1, -stride)]


def fetch_totals(conn: sqlite3.Connection, years: list[int]) -> dict[int, int | None]:
    """Grand-total amount for each year that has a grand-total cell."""
    if not years:
        return {}
    rows = conn.execute(
        f"""
        SELECT y.year, e.amount
        FROM expenditures e
        JOIN years y ON y.id = e.year_id
        JOIN categories c ON c.id = e.category_id
        WHERE c.name = ? AND y.year IN ({_placeholders(len(years))})
        ORDER BY c.sort_order DESC
        """,
        [GRAND_TOTAL_NAME, *years],
    ).fetchall()
    # If the name ever repeats, the first one in document order wins.
    return {r[0]: r[1] for r in rows}


def build_summary_table(
    conn: sqlite3.Connection,
    stride: int = DEFAULT_STRIDE,
) -> SummaryTable:
    """Assemble the dashboard's main table.

    Major headings are listed in document order.  A heading is dropped when
    all of its values are null for the selected years, even if it has data
    in years that were not selected.
    """
    display_years = select_display_years(all_years(conn), stride)
    table = SummaryTable(years=display_years, totals=fetch_totals(conn, display_years))
    if not display_years:
        return table

    headings = conn.execute(
        "SELECT id, name FROM categories WHERE is_major_heading = 1 ORDER BY sort_order"
    ).fetchall()
    if not headings:
        return table

    amounts: dict[tuple[int, int], int | None] = {}
    for cat_id, year, amount in conn.execute(
        f"""
        SELECT e.category_id, y.year, e.amount
        FROM expenditures e
        JOIN years y ON y.id = e.year_id
        JOIN categories c ON c.id = e.category_id
        WHERE c.is_major_heading = 1 AND y.year IN ({_placeholders(len(display_years))})
        """,
        display_years,
    ):
        amounts[(cat_id, year)] = amount

    for cat_id, name in headings:
        values = [amounts.get((cat_id, y)) for y in display_years]
        if any(v is not None for v in values):
            table.categories.append(SummaryRow(category_id=cat_id, name=name, values=values))
    return table


def fetch_year_breakdown(conn: sqlite3.Connection, year: int) -> list[dict]:
    """Every category with its indent and amount for *year*, in document order."""
    rows = query_to_dicts(
        conn,
        """
        SELECT c.name, c.indent_level, c.is_major_heading, e.amount
        FROM expenditures e
        JOIN categories c ON c.id = e.category_id
        JOIN years y ON y.id = e.year_id
        WHERE y.year = ?
        ORDER BY c.sort_order
        """,
        (year,),
    )
    for r in rows:
        r["is_major_heading"] = bool(r["is_major_heading"])
    return rows

