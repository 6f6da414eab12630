"""Shared utilities for the NHE tools."""

# Database utilities
from utils.database import (
    connect,
    init_pragmas,
    get_table_count,
    table_exists,
    query_to_dicts,
)

# Output formatting
from utils.formatting import (
    format_amount,
    format_percent,
    percent_of_total,
    heatmap_bucket,
    heatmap_class,
    TableFormatter,
)

# Configuration
from utils.config import Config, AppConfig

__all__ = [
    "connect",
    "init_pragmas",
    "get_table_count",
    "table_exists",
    "query_to_dicts",
    "format_amount",
    "format_percent",
    "percent_of_total",
    "heatmap_bucket",
    "heatmap_class",
    "TableFormatter",
    "Config",
    "AppConfig",
]
