"""
Tests for utils/query.py

select_display_years() is pure; the table builders run against the
database loaded from the synthetic CSV.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from nhe_data import GRAND_TOTAL, YEARS
from pipeline.loader import create_database
from utils.query import (
    all_years,
    build_summary_table,
    fetch_totals,
    fetch_year_breakdown,
    latest_year,
    select_display_years,
)


# ── select_display_years ──────────────────────────────────────────────────────

class TestSelectDisplayYears:
    def test_full_range(self):
        got = select_display_years(list(range(1960, 2024)))
        assert got[0] == 2023
        assert got[-1] == 1960
        assert len(got) == 22
        assert all(a - b == 3 for a, b in zip(got, got[1:]))

    def test_oldest_excluded_when_off_stride(self):
        got = select_display_years(list(range(1961, 2024)))
        assert got[0] == 2023
        assert got[-1] == 1963
        assert 1961 not in got

    def test_most_recent_always_included(self):
        for n in range(1, 10):
            years = list(range(2000, 2000 + n))
            assert select_display_years(years)[0] == years[-1]

    def test_single_year(self):
        assert select_display_years([2023]) == [2023]

    def test_empty(self):
        assert select_display_years([]) == []

    def test_custom_stride(self):
        assert select_display_years([2020, 2021, 2022, 2023], stride=2) == [2023, 2021]
        assert select_display_years([2021, 2022, 2023], stride=1) == [2023, 2022, 2021]

    @pytest.mark.parametrize("stride", [0, -3])
    def test_invalid_stride(self, stride):
        with pytest.raises(ValueError):
            select_display_years([2023], stride=stride)


# ── Year helpers ──────────────────────────────────────────────────────────────

def test_all_years_ascending(loaded_conn):
    assert all_years(loaded_conn) == YEARS


def test_latest_year(loaded_conn):
    assert latest_year(loaded_conn) == 2023


def test_latest_year_empty(db_path):
    conn = create_database(db_path)
    assert latest_year(conn) is None
    conn.close()


# ── Summary table ─────────────────────────────────────────────────────────────

class TestBuildSummaryTable:
    def test_years_most_recent_first(self, loaded_conn):
        table = build_summary_table(loaded_conn)
        assert table.years[0] == 2023
        assert table.years[-1] == 1960
        assert 2022 not in table.years

    def test_headings_in_document_order(self, loaded_conn):
        table = build_summary_table(loaded_conn)
        assert [c.name for c in table.categories] == [
            GRAND_TOTAL,
            "Hospital Expenditures",
            "Physician and Clinical Expenditures",
            "Prescription Drug Expenditures",
        ]

    def test_heading_with_data_only_in_hidden_year_is_dropped(self, loaded_conn):
        table = build_summary_table(loaded_conn)
        assert "Other Heading" not in [c.name for c in table.categories]

    def test_heading_kept_when_visible_year_has_data(self, loaded_conn):
        # Stride 1 shows 2022, where Other Heading has its only value.
        table = build_summary_table(loaded_conn, stride=1)
        assert "Other Heading" in [c.name for c in table.categories]

    def test_population_and_cms_excluded(self, loaded_conn):
        names = [c.name for c in build_summary_table(loaded_conn).categories]
        assert "POPULATION" not in names
        assert not any(n.startswith("Total CMS Programs") for n in names)

    def test_values_align_with_years(self, loaded_conn):
        table = build_summary_table(loaded_conn)
        total = table.categories[0]
        assert len(total.values) == len(table.years)
        assert total.values[0] == 100000
        assert total.values[-1] == 27122

    def test_totals(self, loaded_conn):
        table = build_summary_table(loaded_conn)
        assert set(table.totals) == set(table.years)
        assert table.totals[1960] == 27122
        assert table.totals[2023] == 100000

    def test_empty_database(self, db_path):
        conn = create_database(db_path)
        table = build_summary_table(conn)
        assert table.years == []
        assert table.categories == []
        assert table.totals == {}
        conn.close()


def test_fetch_totals_only_years_with_total_row(loaded_conn):
    loaded_conn.execute(
        "DELETE FROM expenditures WHERE year_id = (SELECT id FROM years WHERE year = 2023) "
        "AND category_id = (SELECT id FROM categories WHERE name = ?)",
        (GRAND_TOTAL,),
    )
    loaded_conn.commit()
    totals = fetch_totals(loaded_conn, [2023, 2020])
    assert totals == {2020: 100000}


# ── Year breakdown ────────────────────────────────────────────────────────────

class TestFetchYearBreakdown:
    def test_all_categories_in_order(self, loaded_conn):
        rows = fetch_year_breakdown(loaded_conn, 2023)
        assert len(rows) == 16
        assert rows[0]["name"] == GRAND_TOTAL
        assert rows[0]["is_major_heading"] is True
        assert rows[7]["name"] == "Out of pocket"
        assert rows[7]["indent_level"] == 25

    def test_null_amount_preserved(self, loaded_conn):
        rows = fetch_year_breakdown(loaded_conn, 1960)
        medicare = next(r for r in rows if r["name"] == "Medicare")
        assert medicare["amount"] is None

    def test_unknown_year(self, loaded_conn):
        assert fetch_year_breakdown(loaded_conn, 1900) == []
