"""Configuration management for the NHE tools.

All settings come from environment variables with defaults, so the
application works out of the box.  Command-line flags in ``main.py``
override individual values after ``AppConfig.from_env()``.
"""

import os as _os
from pathlib import Path
from typing import Dict, Any, Optional


class Config:
    """Base configuration class for organizing application settings."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (public attributes only)."""
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}


class AppConfig(Config):
    """Application-level configuration loaded from environment variables.

    Environment variables:
        APP_DB_PATH: Path to the SQLite database file (default: app.db)
        NHE_CSV: Path to the NHE source CSV (default: NHE2023.csv)
        APP_HOST: Server bind address (default: 127.0.0.1)
        APP_PORT: Server port (default: 8080)
        APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
        APP_LOG_FILE: Write logs to this file instead of stderr (default: unset)
        APP_LOG_LEVEL: Root log level (default: INFO)
        APP_DISPLAY_STRIDE: Show every Nth year on the dashboard (default: 3)
    """

    def __init__(self) -> None:
        super().__init__()
        self.db_path = Path(_os.getenv("APP_DB_PATH", "app.db"))
        self.csv_path = Path(_os.getenv("NHE_CSV", "NHE2023.csv"))
        self.api_host = _os.getenv("APP_HOST", "127.0.0.1")
        self.api_port = int(_os.getenv("APP_PORT", "8080"))
        self.log_format = _os.getenv("APP_LOG_FORMAT", "text")
        raw_log_file = _os.getenv("APP_LOG_FILE", "")
        self.log_file: Optional[Path] = Path(raw_log_file) if raw_log_file else None
        self.log_level = _os.getenv("APP_LOG_LEVEL", "INFO").upper()
        self.display_stride = int(_os.getenv("APP_DISPLAY_STRIDE", "3"))

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()
