"""
NHE CSV Parser: indentation-encoded category hierarchy.

Converts the raw rows of a National Health Expenditure CSV into an ordered
list of categories plus a sparse year × category amount matrix.

File layout::

    row 0   title row (ignored)
    row 1   "", 1960, 1961, ..., 2023
    row 2+  "<label>", amount, amount, ...

The label's leading spaces encode nesting depth (5 spaces per level in the
published files)::

    Total National Health Expenditures        <- indent 0, root
         Out of pocket                        <- indent 5, child of the above
         Health Insurance                     <- indent 5, sibling
              Private Health Insurance        <- indent 10

Amounts are in millions of dollars.  Blank cells and a lone "-" mean "no
data" and are kept as ``None`` so they stay distinct from a real zero.

Usage::

    from pipeline.parser import parse_csv

    data = parse_csv(Path("NHE2023.csv"))
    data.years[0]                  # 1960
    data.categories[0].name        # "Total National Health Expenditures"
    data.expenditures[1][1]        # 27122  (category #1, year #1)
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from pipeline.logging import StepReport

logger = logging.getLogger(__name__)

# Spaces per nesting level in the published NHE files.
INDENT_QUANTUM = 5

# Top-level rows that are not spending headings.
POPULATION_LABEL = "POPULATION"
CMS_TOTAL_PREFIX = "Total CMS Programs"

_HEADER_ROWS = 2
_NULL_TOKENS = frozenset({"", "-"})


class CSVParseError(ValueError):
    """Structural problem with the NHE CSV; the whole parse is aborted."""


# ── Data structures ───────────────────────────────────────────────────────────


@dataclass
class Category:
    """One labelled row of the CSV.

    ``parent_id`` and ``sort_order`` are 1-based positions within the parsed
    category list, not database ids.
    """

    name: str
    indent_level: int
    sort_order: int
    is_major_heading: bool
    parent_id: int | None = None


@dataclass
class ParsedData:
    """Result of a full CSV scan."""

    years: list[int] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    # category position (1-based) -> year index (1-based) -> amount or None
    expenditures: dict[int, dict[int, int | None]] = field(default_factory=dict)


# ── Cell-level helpers ────────────────────────────────────────────────────────


def leading_spaces(label: str) -> int:
    """Count the space characters at the start of *label*."""
    return len(label) - len(label.lstrip(" "))


def is_major_heading(name: str, indent: int) -> bool:
    """True for top-level spending headings.

    The population row and the "Total CMS Programs ..." aggregates sit at
    indent 0 but are not part of the dashboard's main table.
    """
    return (
        indent == 0
        and name != POPULATION_LABEL
        and not name.startswith(CMS_TOTAL_PREFIX)
    )


def parse_amount(raw: str | None, *, strict: bool = False) -> int | None:
    """Parse one amount cell.

    ``""`` and ``"-"`` map to ``None``.  Quotes and thousands separators are
    stripped.  A malformed token becomes 0 unless *strict* is set, in which
    case ``ValueError`` is raised.

    Examples:
        parse_amount("27,122")   -> 27122
        parse_amount('"1,234"')  -> 1234
        parse_amount("-")        -> None
        parse_amount("n/a")      -> 0
    """
    if raw is None:
        return None
    val = raw.strip().strip('"').strip()
    if val in _NULL_TOKENS:
        return None
    val = val.replace(",", "")
    try:
        return int(val)
    except ValueError:
        if strict:
            raise
        return 0


def _parse_years(header: Sequence[str]) -> list[int]:
    years: list[int] = []
    for col, token in enumerate(header[1:], start=1):
        try:
            years.append(int(token.strip()))
        except ValueError:
            raise CSVParseError(
                f"invalid year at column {col}: {token!r}"
            ) from None
    return years


# ── Parser ────────────────────────────────────────────────────────────────────


def parse_records(
    records: Sequence[Sequence[str]],
    *,
    strict_amounts: bool = False,
    report: StepReport | None = None,
) -> ParsedData:
    """Build the category tree and amount matrix from already-split CSV rows.

    Args:
        records: All CSV rows, header rows included.
        strict_amounts: Raise ``CSVParseError`` on a malformed amount cell
            instead of coercing it to 0.
        report: Optional step report that receives skip and issue accounting.

    Raises:
        CSVParseError: Fewer than three rows, a non-integer year header, or
            (with *strict_amounts*) a malformed amount cell.
    """
    if len(records) < _HEADER_ROWS + 1:
        raise CSVParseError(
            f"CSV too short: expected at least {_HEADER_ROWS + 1} rows, "
            f"got {len(records)}"
        )

    years = _parse_years(records[1])
    data = ParsedData(years=years)

    # Open ancestors as (indent, position); indents strictly increase upward.
    stack: list[tuple[int, int]] = []
    position = 0

    for row_idx in range(_HEADER_ROWS, len(records)):
        row = records[row_idx]
        if not row or row[0] == "":
            if report is not None:
                report.add_skip("blank_label", "empty label column", f"row {row_idx}")
            continue

        label = row[0]
        indent = leading_spaces(label)
        name = label.strip()
        if not name:
            if report is not None:
                report.add_skip("blank_label", "whitespace-only label", f"row {row_idx}")
            continue

        if indent % INDENT_QUANTUM:
            logger.warning(
                "Irregular indent %d at row %d (%r); not a multiple of %d",
                indent, row_idx, name, INDENT_QUANTUM,
            )
            if report is not None:
                report.add_issue(
                    "irregular_indent",
                    f"indent {indent} is not a multiple of {INDENT_QUANTUM}",
                    f"row {row_idx}",
                )

        # A dedent of any depth lands on the nearest shallower ancestor.
        while stack and stack[-1][0] >= indent:
            stack.pop()
        parent_id = stack[-1][1] if stack else None

        position += 1
        data.categories.append(Category(
            name=name,
            indent_level=indent,
            sort_order=position,
            is_major_heading=is_major_heading(name, indent),
            parent_id=parent_id,
        ))
        stack.append((indent, position))

        cells: dict[int, int | None] = {}
        for year_idx in range(1, len(years) + 1):
            raw = row[year_idx] if year_idx < len(row) else ""
            try:
                cells[year_idx] = parse_amount(raw, strict=True)
            except ValueError:
                if strict_amounts:
                    raise CSVParseError(
                        f"invalid amount at row {row_idx}, column {year_idx} "
                        f"({name!r}, {years[year_idx - 1]}): {raw!r}"
                    ) from None
                logger.warning(
                    "Malformed amount %r at row %d, column %d coerced to 0",
                    raw, row_idx, year_idx,
                )
                if report is not None:
                    report.add_issue(
                        "malformed_amount",
                        f"{raw!r} coerced to 0",
                        f"row {row_idx}, column {year_idx}",
                    )
                cells[year_idx] = 0
        data.expenditures[position] = cells

    if report is not None:
        report.items_processed = len(data.categories)
        report.metrics["years"] = len(years)
        report.metrics["categories"] = len(data.categories)

    logger.info(
        "Parsed %d categories across %d years (%d-%d)",
        len(data.categories), len(years),
        years[0] if years else 0, years[-1] if years else 0,
    )
    return data


def read_records(path: Path) -> list[list[str]]:
    """Read every row of *path* with the ``csv`` module."""
    with open(path, newline="", encoding="utf-8-sig") as f:
        return list(csv.reader(f))


def parse_csv(
    path: Path | str,
    *,
    strict_amounts: bool = False,
    report: StepReport | None = None,
) -> ParsedData:
    """Parse the NHE CSV at *path*.

    Raises:
        FileNotFoundError: If *path* does not exist.
        CSVParseError: On any structural error (see ``parse_records``).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV not found: {path}")
    logger.info("Reading NHE CSV %s", path)
    try:
        records = read_records(path)
    except csv.Error as exc:
        raise CSVParseError(f"{path}: {exc}") from exc
    return parse_records(records, strict_amounts=strict_amounts, report=report)
