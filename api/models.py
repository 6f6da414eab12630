"""
Pydantic response models for the JSON API.

Amounts are integers in millions of dollars.  Optional fields are None when
the source cell was blank or "-", which is distinct from 0.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class SummaryCell(BaseModel):
    """One heading × year cell with its derived display values."""
    year: int = Field(..., description="Calendar year", examples=[2023])
    amount: int | None = Field(None, description="Amount in $M; null when no data", examples=[505721])
    percent_of_total: float | None = Field(
        None, description="Share of the year's national total; null when undefined",
        examples=[10.4],
    )
    heatmap_class: str = Field(..., description="CSS bucket class", examples=["bg-yellow-200"])


class SummaryRowOut(BaseModel):
    """A major heading with one cell per display year."""
    name: str = Field(..., description="Category name", examples=["Out of pocket"])
    cells: list[SummaryCell]


class SummaryOut(BaseModel):
    """Decimated dashboard table (display years most recent first)."""
    years: list[int] = Field(..., description="Display years, most recent first", examples=[[2023, 2020, 2017]])
    totals: dict[int, int | None] = Field(
        ..., description="National total per display year that has a total row",
    )
    rows: list[SummaryRowOut]


class HealthOut(BaseModel):
    status: str = Field(..., examples=["ok"])
    database: str
    years: int | None = None
    categories: int | None = None
