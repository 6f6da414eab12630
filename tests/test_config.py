"""
Tests for utils/config.py

AppConfig defaults and environment overrides.
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.config import AppConfig, Config

_ENV_VARS = (
    "APP_DB_PATH", "NHE_CSV", "APP_HOST", "APP_PORT", "APP_LOG_FORMAT",
    "APP_LOG_FILE", "APP_LOG_LEVEL", "APP_DISPLAY_STRIDE",
)


def _clear_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    _clear_env(monkeypatch)
    cfg = AppConfig.from_env()
    assert cfg.db_path == Path("app.db")
    assert cfg.csv_path == Path("NHE2023.csv")
    assert cfg.api_host == "127.0.0.1"
    assert cfg.api_port == 8080
    assert cfg.log_format == "text"
    assert cfg.log_file is None
    assert cfg.log_level == "INFO"
    assert cfg.display_stride == 3


def test_env_overrides(monkeypatch, tmp_path):
    _clear_env(monkeypatch)
    monkeypatch.setenv("APP_DB_PATH", str(tmp_path / "nhe.db"))
    monkeypatch.setenv("NHE_CSV", str(tmp_path / "NHE2022.csv"))
    monkeypatch.setenv("APP_PORT", "9000")
    monkeypatch.setenv("APP_LOG_FORMAT", "json")
    monkeypatch.setenv("APP_LOG_FILE", str(tmp_path / "debug.log"))
    monkeypatch.setenv("APP_LOG_LEVEL", "debug")
    monkeypatch.setenv("APP_DISPLAY_STRIDE", "5")
    cfg = AppConfig.from_env()
    assert cfg.db_path == tmp_path / "nhe.db"
    assert cfg.csv_path == tmp_path / "NHE2022.csv"
    assert cfg.api_port == 9000
    assert cfg.log_format == "json"
    assert cfg.log_file == tmp_path / "debug.log"
    assert cfg.log_level == "DEBUG"
    assert cfg.display_stride == 5


def test_to_dict(monkeypatch):
    _clear_env(monkeypatch)
    d = AppConfig.from_env().to_dict()
    assert d["api_port"] == 8080
    assert d["db_path"] == Path("app.db")


def test_base_config_to_dict_skips_private():
    c = Config()
    c.public = 1
    c._private = 2
    assert c.to_dict() == {"public": 1}
