"""Output formatting utilities for the NHE dashboard and CLI.

Provides reusable functions for:
- Formatting amounts (stored in millions of dollars)
- Percent-of-total and heatmap buckets, derived at render time
- Tabular text output for the CLI
"""

from typing import Optional, List, Any, Mapping

NEUTRAL_CLASS = "bg-gray-100"

# (minimum percent of the year's grand total, CSS class), highest first.
HEATMAP_BUCKETS = [
    (15.0, "bg-red-200"),
    (13.5, "bg-orange-200"),
    (12.0, "bg-amber-200"),
    (10.5, "bg-yellow-200"),
    (9.0, "bg-lime-200"),
    (7.5, "bg-green-200"),
    (6.0, "bg-teal-200"),
    (4.5, "bg-cyan-200"),
    (3.0, "bg-sky-200"),
    (1.5, "bg-blue-200"),
]
HEATMAP_FLOOR_CLASS = "bg-blue-200"

# The first rows of the summary table are aggregates of the rest; they are
# never colored.
HEATMAP_SKIP_ROWS = 3


def format_amount(value: Optional[int]) -> str:
    """Format an amount given in millions of dollars.

    Examples:
        format_amount(4866538) -> "$4.87T"
        format_amount(27122)   -> "$27.12B"
        format_amount(512)     -> "$512.00M"
        format_amount(None)    -> "N/A"
    """
    if value is None:
        return "N/A"
    v = float(value)
    if v >= 1_000_000:
        return f"${v / 1_000_000:.2f}T"
    if v >= 1_000:
        return f"${v / 1_000:.2f}B"
    return f"${v:.2f}M"


def percent_of_total(amount: Optional[int], total: Optional[int]) -> Optional[float]:
    """Share of *total* in percent, or None when undefined.

    Undefined when either operand is None or the total is zero.
    """
    if amount is None or total is None or total == 0:
        return None
    return amount / total * 100


def format_percent(amount: Optional[int], year: int,
                   totals: Mapping[int, Optional[int]]) -> str:
    """Percent of the year's grand total, e.g. ``"12.3%"``; ``""`` when undefined."""
    pct = percent_of_total(amount, totals.get(year))
    if pct is None:
        return ""
    return f"{pct:.1f}%"


def heatmap_bucket(pct: Optional[float]) -> str:
    """CSS class for a percentage; neutral when undefined."""
    if pct is None:
        return NEUTRAL_CLASS
    for threshold, css in HEATMAP_BUCKETS:
        if pct >= threshold:
            return css
    return HEATMAP_FLOOR_CLASS


def heatmap_class(amount: Optional[int], year: int,
                  totals: Mapping[int, Optional[int]], row_index: int) -> str:
    """Heatmap CSS class for one summary-table cell.

    Args:
        amount: Cell amount (millions).
        year: Column year.
        totals: Grand total per year.
        row_index: 0-based row position in the summary table.
    """
    if row_index < HEATMAP_SKIP_ROWS:
        return NEUTRAL_CLASS
    return heatmap_bucket(percent_of_total(amount, totals.get(year)))


def trim_prefix(text: str, prefix: str) -> str:
    """Remove *prefix* from the start of *text* if present."""
    if text.startswith(prefix):
        return text[len(prefix):]
    return text


class TableFormatter:
    """Formats data as aligned tabular output."""

    def __init__(self, columns: List[str], column_widths: Optional[List[int]] = None):
        """Initialize table formatter.

        Args:
            columns: List of column headers
            column_widths: Optional list of column widths (auto-calculated if None)
        """
        self.columns = columns
        self.column_widths = column_widths or [len(col) for col in columns]
        self.rows: List[List[str]] = []

    def add_row(self, values: List[Any]) -> None:
        """Add a row to the table.

        Raises:
            ValueError: If value count doesn't match column count
        """
        if len(values) != len(self.columns):
            raise ValueError(f"Expected {len(self.columns)} values, got {len(values)}")

        str_values = []
        for i, val in enumerate(values):
            str_val = str(val) if val is not None else "N/A"
            str_values.append(str_val)
            if len(str_val) > self.column_widths[i]:
                self.column_widths[i] = len(str_val)

        self.rows.append(str_values)

    def _format_row(self, values: List[str], is_header: bool = False) -> str:
        # Headers left-aligned; numeric data right-aligned, text left.
        cells = []
        for i, val in enumerate(values):
            width = self.column_widths[i]
            if is_header:
                cells.append(val.ljust(width))
            else:
                try:
                    float(val.replace(",", ""))
                    cells.append(val.rjust(width))
                except ValueError:
                    cells.append(val.ljust(width))

        return "  ".join(cells).rstrip()

    def to_string(self, show_header: bool = True, show_separator: bool = True) -> str:
        """Format table as multi-line string."""
        lines = []

        if show_header:
            lines.append(self._format_row(self.columns, is_header=True))
            if show_separator:
                sep = "  ".join("-" * w for w in self.column_widths)
                lines.append(sep)

        for row in self.rows:
            lines.append(self._format_row(row))

        return "\n".join(lines)
