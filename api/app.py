"""
FastAPI application factory for the NHE dashboard.

Usage:
    python main.py serve                      # load if empty, then serve
    APP_DB_PATH=/data/nhe.db uvicorn api.app:create_app --factory

Routes:
    GET /                           dashboard (HTML)
    GET /static/...                 compiled stylesheet
    GET /health                     database status
    GET /api/v1/dashboard/summary   dashboard table as JSON

Logging is configured by the caller (main.py) before the app is built; the
app only writes to its named logger.
"""

import logging
import sqlite3
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from api import database as db_module
from api.database import get_db_path
from api.models import HealthOut
from api.routes import dashboard
from api.routes import frontend as frontend_routes
from utils.config import AppConfig
from utils.database import connect, get_table_count, table_exists
from utils.formatting import (
    format_amount,
    format_percent,
    heatmap_class,
    trim_prefix,
)

_logger = logging.getLogger("nhe_api")

_ROOT = Path(__file__).parent.parent  # project root

# The dashboard is static HTML plus one stylesheet: no scripts, no framing.
_SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; style-src 'self'; img-src 'self' data:; script-src 'none';"
    ),
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
}


def _error_response(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "detail": str(exc), "status_code": status_code},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Warn on startup when the database file is missing."""
    db_path = get_db_path()
    if not db_path.exists():
        _logger.warning(
            "Database not found at %s. Run 'python main.py load' first.", db_path
        )
    yield


def create_app(db_path: Path | None = None, config: AppConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Override the database path (useful for testing).
        config: Settings; defaults to ``AppConfig.from_env()``.

    Returns:
        Configured FastAPI application instance.
    """
    cfg = config or AppConfig.from_env()
    db_module.set_db_path(db_path if db_path is not None else cfg.db_path)

    app = FastAPI(
        title="NHE Explorer",
        summary="Read-only dashboard of US National Health Expenditure data.",
        description=(
            "## NHE Explorer\n\n"
            "Aggregated view of the CMS National Health Expenditure accounts.\n\n"
            "- **Amounts** are in **millions of dollars ($M)**.\n"
            "- The dashboard shows every third year, counting back from the "
            "most recent year.\n"
            "- Blank source cells are reported as `null`, never as 0.\n"
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url=None,
        openapi_tags=[
            {
                "name": "dashboard",
                "description": "Decimated summary table with percent-of-total values.",
            },
            {
                "name": "meta",
                "description": "Health check.",
            },
        ],
    )
    app.state.display_stride = cfg.display_stride

    # ── Request logging middleware ────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log method, path, status and latency; tag the response with an id."""
        request_id = uuid.uuid4().hex[:8]
        started = time.monotonic()
        response = await call_next(request)
        elapsed_ms = round((time.monotonic() - started) * 1000, 1)
        response.headers["X-Request-ID"] = request_id
        fields = {
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": elapsed_ms,
            "request_id": request_id,
        }
        _logger.info(
            "%(method)s %(path)s -> %(status)d in %(duration_ms).1fms [%(request_id)s]",
            fields, extra=fields,
        )
        return response

    # ── Security headers ──────────────────────────────────────────────────────

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in _SECURITY_HEADERS.items():
            response.headers[name] = value
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Unhandled errors become a JSON 500; the traceback goes to the log."""
        _logger.exception("Unhandled error on %s", request.url.path)
        return _error_response(500, "Internal server error", exc)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _error_response(400, "Bad request", exc)

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check", response_model=HealthOut)
    def health():
        """200 with row counts when the schema is readable, else 503.

        ``status`` is "ok" once categories are loaded and "empty" before.
        """
        db_path = get_db_path()
        if not db_path.exists():
            return JSONResponse(
                status_code=503, content={"status": "no_database", "database": str(db_path)},
            )
        try:
            conn = connect(db_path, read_only=True)
            try:
                if not table_exists(conn, "categories"):
                    raise sqlite3.OperationalError("schema missing: no categories table")
                years = get_table_count(conn, "years")
                categories = get_table_count(conn, "categories")
            finally:
                conn.close()
        except sqlite3.Error as e:
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "database": str(db_path), "error": str(e)},
            )
        status = "ok" if categories else "empty"
        return HealthOut(
            status=status, database=str(db_path), years=years, categories=categories,
        )

    # ── Register routers ──────────────────────────────────────────────────────

    app.include_router(dashboard.router, prefix="/api/v1")

    # ── Static files + Jinja2 templates ───────────────────────────────────────

    static_dir = _ROOT / "static"
    templates_dir = _ROOT / "templates"

    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    templates = Jinja2Templates(directory=str(templates_dir))
    templates.env.filters["fmt_amount"] = format_amount
    templates.env.filters["trim_prefix"] = trim_prefix
    templates.env.globals["format_percent"] = format_percent
    templates.env.globals["heatmap_class"] = heatmap_class

    frontend_routes.set_templates(templates)
    app.include_router(frontend_routes.router)
    frontend_routes.register_error_handlers(app)

    return app
