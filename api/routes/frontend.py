"""
Frontend HTML routes.

Serves the Jinja2 dashboard page.

Routes:
    GET /    → index.html (decimated summary table with heatmap)
"""

import sqlite3

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.database import get_db
from utils.query import DEFAULT_STRIDE, GRAND_TOTAL_NAME, build_summary_table

router = APIRouter(tags=["frontend"])

# Templates instance is set by create_app() after mounting.
_templates: Jinja2Templates | None = None


def set_templates(t: Jinja2Templates) -> None:
    global _templates
    _templates = t


def _tmpl() -> Jinja2Templates:
    if _templates is None:
        raise RuntimeError("Templates not initialised; call set_templates() first")
    return _templates


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def index(request: Request, conn: sqlite3.Connection = Depends(get_db)) -> HTMLResponse:
    """Dashboard page."""
    stride = getattr(request.app.state, "display_stride", DEFAULT_STRIDE)
    table = build_summary_table(conn, stride=stride)
    return _tmpl().TemplateResponse(
        request,
        "index.html",
        {
            "years": table.years,
            "categories": table.categories,
            "totals": table.totals,
            "grand_total_name": GRAND_TOTAL_NAME,
            "stride": stride,
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    """Render HTML error pages for browser requests outside the JSON API."""

    @app.exception_handler(StarletteHTTPException)
    async def html_http_exception_handler(request: Request, exc: StarletteHTTPException):
        if request.url.path.startswith("/api/"):
            from fastapi.exception_handlers import http_exception_handler
            return await http_exception_handler(request, exc)
        return _tmpl().TemplateResponse(
            request,
            "error.html",
            {"status_code": exc.status_code, "detail": exc.detail},
            status_code=exc.status_code,
        )
