"""
End-to-end tests for the HTML dashboard and its JSON twin.

    GET /                           Jinja2 dashboard (decimated heatmap table)
    GET /api/v1/dashboard/summary   same table as JSON
    GET /static/css/output.css      stylesheet

All tests use FastAPI TestClient against a database loaded from the
synthetic NHE CSV (see conftest.py).
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fastapi.testclient import TestClient

from api.app import create_app
from pipeline.loader import create_database
from utils.config import AppConfig


# ── GET / ─────────────────────────────────────────────────────────────────────

class TestIndex:
    def test_renders(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert "text/html" in resp.headers["content-type"]
        assert "<table" in resp.text

    def test_display_year_headers(self, client):
        text = client.get("/").text
        assert '<th class="year">2023</th>' in text
        assert '<th class="year">1960</th>' in text
        assert '<th class="year">2022</th>' not in text

    def test_major_headings_only(self, client):
        text = client.get("/").text
        assert "Hospital Expenditures" in text
        assert "Prescription Drug Expenditures" in text
        assert "POPULATION" not in text
        assert "Total CMS Programs" not in text
        assert "Private Health Insurance" not in text

    def test_all_null_heading_dropped(self, client):
        assert "Other Heading" not in client.get("/").text

    def test_total_prefix_trimmed_in_label(self, client):
        text = client.get("/").text
        assert '<td class="label">National Health Expenditures</td>' in text

    def test_amounts_formatted(self, client):
        text = client.get("/").text
        assert "$100.00B" in text
        assert "$27.12B" in text
        assert "$31.00B" in text

    def test_percentages_skip_grand_total_row(self, client):
        text = client.get("/").text
        assert "31.0%" in text
        assert "5.0%" in text
        assert "100.0%" not in text

    def test_heatmap_classes(self, client):
        text = client.get("/").text
        # Prescription drugs: 5% of 100,000 in 2023, 18% of 27,122 in 1960.
        assert "bg-cyan-200" in text
        assert "bg-red-200" in text
        assert "bg-gray-100" in text

    def test_empty_database(self, db_path):
        create_database(db_path).close()
        with TestClient(create_app(db_path=db_path)) as c:
            resp = c.get("/")
        assert resp.status_code == 200
        assert "No data loaded" in resp.text

    def test_missing_database_renders_error_page(self, tmp_path):
        with TestClient(create_app(db_path=tmp_path / "absent.db")) as c:
            resp = c.get("/")
        assert resp.status_code == 503
        assert "Error 503" in resp.text

    def test_unknown_page_renders_html_404(self, client):
        resp = client.get("/no-such-page")
        assert resp.status_code == 404
        assert "Error 404" in resp.text

    def test_static_stylesheet(self, client):
        resp = client.get("/static/css/output.css")
        assert resp.status_code == 200
        assert ".bg-red-200" in resp.text


# ── GET /api/v1/dashboard/summary ─────────────────────────────────────────────

class TestSummaryApi:
    def test_shape(self, client):
        body = client.get("/api/v1/dashboard/summary").json()
        assert body["years"][0] == 2023
        assert body["years"][-1] == 1960
        assert len(body["years"]) == 22
        assert [r["name"] for r in body["rows"]] == [
            "Total National Health Expenditures",
            "Hospital Expenditures",
            "Physician and Clinical Expenditures",
            "Prescription Drug Expenditures",
        ]

    def test_totals(self, client):
        totals = client.get("/api/v1/dashboard/summary").json()["totals"]
        assert totals["2023"] == 100000
        assert totals["1960"] == 27122

    def test_cells(self, client):
        rows = client.get("/api/v1/dashboard/summary").json()["rows"]
        total_2023 = rows[0]["cells"][0]
        assert total_2023 == {
            "year": 2023,
            "amount": 100000,
            "percent_of_total": pytest.approx(100.0),
            "heatmap_class": "bg-gray-100",
        }
        drugs_2023 = rows[3]["cells"][0]
        assert drugs_2023["percent_of_total"] == pytest.approx(5.0)
        assert drugs_2023["heatmap_class"] == "bg-cyan-200"

    def test_null_cell_with_stride_one(self, loaded_db):
        cfg = AppConfig()
        cfg.display_stride = 1
        with TestClient(create_app(db_path=loaded_db, config=cfg)) as c:
            rows = c.get("/api/v1/dashboard/summary").json()["rows"]
        other = next(r for r in rows if r["name"] == "Other Heading")
        cell_2023 = other["cells"][0]
        assert cell_2023["year"] == 2023
        assert cell_2023["amount"] is None
        assert cell_2023["percent_of_total"] is None
        assert cell_2023["heatmap_class"] == "bg-gray-100"
        cell_2022 = other["cells"][1]
        assert cell_2022["amount"] == 7

    def test_missing_database_json_503(self, tmp_path):
        with TestClient(create_app(db_path=tmp_path / "absent.db")) as c:
            resp = c.get("/api/v1/dashboard/summary")
        assert resp.status_code == 503
        assert "Database not found" in resp.json()["detail"]

    def test_unknown_api_path_is_json(self, client):
        resp = client.get("/api/v1/nope")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Not Found"}

    def test_reflects_reload_without_restart(self, client, loaded_conn, tmp_path):
        from nhe_data import GRAND_TOTAL, write_nhe_csv
        from pipeline.loader import reload_from_csv

        smaller = write_nhe_csv(
            tmp_path / "small.csv",
            rows=[(GRAND_TOTAL, ["1", "2"])],
            years=[2022, 2023],
        )
        reload_from_csv(loaded_conn, smaller)
        body = client.get("/api/v1/dashboard/summary").json()
        assert body["years"] == [2023]
        assert body["rows"][0]["cells"][0]["amount"] == 2
