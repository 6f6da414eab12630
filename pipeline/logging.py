"""
Pipeline Logging: process-wide log sink setup and per-step accounting.

Provides:
  - configure_logging(): builds exactly one handler for an explicitly chosen
    sink (a stream or a log file) and installs it on the root logger.  Called
    once at process start by ``main.py``; nothing else touches handlers.
  - JsonFormatter: newline-delimited JSON records (APP_LOG_FORMAT=json).
  - StepReport: lightweight dataclass that captures what a step (parse, load)
    did, what it skipped, and what it flagged.
  - SkipRecord: single skip/issue event with a category and detail string.

Usage::

    from pipeline.logging import configure_logging, StepReport

    configure_logging(log_file=Path("debug.log"), log_format="json")
    report = StepReport("parse", status="started")
    data = parse_csv(path, report=report)
    report.finish()
    logger.info("parse: %s", report.console_summary())

Skip categories (for SkipRecord.category):
    blank_label: CSV row with an empty label column (no category)
Issue categories:
    irregular_indent: indent not a multiple of the 5-space quantum
    malformed_amount: amount cell coerced to 0
"""

from __future__ import annotations

import json
import logging
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO

LOG_FORMATS = ("text", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


# ── Formatting ────────────────────────────────────────────────────────────────


class JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    # Extra fields merged from logger.info("...", extra={...})
    EXTRA_KEYS = ("method", "path", "status", "duration_ms", "client_ip",
                  "request_id", "step")

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in self.EXTRA_KEYS:
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


def build_handler(
    stream: TextIO | None = None,
    log_file: Path | str | None = None,
    log_format: str = "text",
) -> logging.Handler:
    """Create the single handler for the chosen sink.

    A *log_file* takes precedence over *stream*; with neither, stderr is used.
    """
    if log_format not in LOG_FORMATS:
        raise ValueError(
            f"Invalid log format: {log_format!r}. Must be one of: {', '.join(LOG_FORMATS)}"
        )
    if log_file is not None:
        handler: logging.Handler = logging.FileHandler(
            Path(log_file), mode="a", encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    if log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    return handler


def configure_logging(
    stream: TextIO | None = None,
    log_file: Path | str | None = None,
    log_format: str = "text",
    level: str | int = "INFO",
) -> logging.Handler:
    """Install one handler on the root logger, replacing any existing ones.

    Returns the installed handler so callers (and tests) can flush or
    remove it.
    """
    handler = build_handler(stream=stream, log_file=log_file, log_format=log_format)
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(handlers=[handler], level=level, force=True)
    return handler


# ── Data structures ───────────────────────────────────────────────────────────


@dataclass
class SkipRecord:
    """One thing that was skipped or flagged, with a machine-readable category."""

    category: str          # e.g. "blank_label", "malformed_amount"
    detail: str            # human-readable explanation
    item: str = ""         # optional: row number, column, etc.

    def to_dict(self) -> dict[str, str]:
        d: dict[str, str] = {"category": self.category, "detail": self.detail}
        if self.item:
            d["item"] = self.item
        return d


@dataclass
class StepReport:
    """Structured summary of what one step accomplished."""

    step_name: str
    status: str = "not_started"               # started | completed | failed
    elapsed_seconds: float = 0.0
    items_processed: int = 0
    items_skipped: int = 0
    skips: list[SkipRecord] = field(default_factory=list)
    issues: list[SkipRecord] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)
    detail: str = ""
    _started: float = field(default_factory=time.monotonic, repr=False)

    # ── helpers ───────────────────────────────────────────────────────────

    def add_skip(self, category: str, detail: str, item: str = "") -> None:
        self.skips.append(SkipRecord(category=category, detail=detail, item=item))
        self.items_skipped += 1

    def add_issue(self, category: str, detail: str, item: str = "") -> None:
        self.issues.append(SkipRecord(category=category, detail=detail, item=item))

    def finish(self, status: str = "completed") -> "StepReport":
        self.elapsed_seconds = time.monotonic() - self._started
        self.status = status
        return self

    @staticmethod
    def _counts(records: list[SkipRecord]) -> dict[str, int]:
        counts: dict[str, int] = {}
        for r in records:
            counts[r.category] = counts.get(r.category, 0) + 1
        return counts

    def skip_counts_by_category(self) -> dict[str, int]:
        return self._counts(self.skips)

    def issue_counts_by_category(self) -> dict[str, int]:
        return self._counts(self.issues)

    def console_summary(self) -> str:
        """One-line summary suitable for the terminal."""
        parts: list[str] = []
        if self.items_processed:
            parts.append(f"{self.items_processed:,} processed")
        if self.items_skipped:
            cats = self.skip_counts_by_category()
            skip_parts = [f"{v} {k.replace('_', ' ')}" for k, v in sorted(cats.items())]
            parts.append(f"{self.items_skipped:,} skipped ({', '.join(skip_parts)})")
        if self.issues:
            cats = self.issue_counts_by_category()
            parts.append(", ".join(
                f"{v} {k.replace('_', ' ')}" for k, v in sorted(cats.items())
            ))
        if self.detail:
            parts.append(self.detail)
        for key, val in self.metrics.items():
            if isinstance(val, (int, float)):
                parts.append(f"{key}: {val:,}" if isinstance(val, int) else f"{key}: {val:.1f}")
        return " | ".join(parts) if parts else "no activity"

    def to_dict(self) -> dict[str, Any]:
        d = {
            "step_name": self.step_name,
            "status": self.status,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "items_processed": self.items_processed,
            "items_skipped": self.items_skipped,
            "metrics": self.metrics,
        }
        if self.detail:
            d["detail"] = self.detail
        if self.skips:
            d["skips"] = [s.to_dict() for s in self.skips]
        if self.issues:
            d["issues"] = [s.to_dict() for s in self.issues]
        return d
