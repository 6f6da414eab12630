"""Dashboard summary endpoint: the HTML table's data as JSON."""

import sqlite3

from fastapi import APIRouter, Depends, Request

from api.database import get_db
from api.models import SummaryCell, SummaryOut, SummaryRowOut
from utils.formatting import heatmap_class, percent_of_total
from utils.query import DEFAULT_STRIDE, build_summary_table

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=SummaryOut, summary="Decimated summary table")
def dashboard_summary(
    request: Request,
    conn: sqlite3.Connection = Depends(get_db),
) -> SummaryOut:
    """Return the major-heading table shown on the dashboard.

    Years are every third year walking back from the most recent one.
    Headings with no data in any of those years are omitted.
    """
    stride = getattr(request.app.state, "display_stride", DEFAULT_STRIDE)
    table = build_summary_table(conn, stride=stride)

    rows = []
    for idx, cat in enumerate(table.categories):
        cells = [
            SummaryCell(
                year=year,
                amount=amount,
                percent_of_total=percent_of_total(amount, table.totals.get(year)),
                heatmap_class=heatmap_class(amount, year, table.totals, idx),
            )
            for year, amount in zip(table.years, cat.values)
        ]
        rows.append(SummaryRowOut(name=cat.name, cells=cells))

    return SummaryOut(years=table.years, totals=table.totals, rows=rows)
