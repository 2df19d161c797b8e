"""
Tests for give_store/config.py — environment-driven settings.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from give_store.config import API_NAMESPACE, AppConfig

_ENV_VARS = (
    "GIVE_DB_PATH", "GIVE_TABLE_PREFIX", "GIVE_API_PREFIX", "GIVE_DEFAULT_CURRENCY",
    "APP_HOST", "APP_PORT", "APP_LOG_FORMAT", "APP_CORS_ORIGINS",
)


@pytest.fixture()
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestAppConfig:
    def test_defaults(self, clean_env):
        cfg = AppConfig.from_env()
        assert cfg.db_path == Path("givewp.sqlite")
        assert cfg.table_prefix == "wp_"
        assert cfg.api_prefix == API_NAMESPACE
        assert cfg.default_currency == "USD"
        assert cfg.api_port == 8000
        assert cfg.log_format == "text"
        assert cfg.cors_origins == ("*",)

    def test_from_env(self, clean_env):
        clean_env.setenv("GIVE_DB_PATH", "/data/give.sqlite")
        clean_env.setenv("GIVE_TABLE_PREFIX", "site2_")
        clean_env.setenv("GIVE_API_PREFIX", "/api/v1/")
        clean_env.setenv("GIVE_DEFAULT_CURRENCY", "eur")
        clean_env.setenv("APP_PORT", "9000")
        clean_env.setenv("APP_LOG_FORMAT", "json")
        clean_env.setenv("APP_CORS_ORIGINS", "https://a.example, https://b.example")
        cfg = AppConfig.from_env()
        assert cfg.db_path == Path("/data/give.sqlite")
        assert cfg.table_prefix == "site2_"
        assert cfg.api_prefix == "/api/v1"
        assert cfg.default_currency == "EUR"
        assert cfg.api_port == 9000
        assert cfg.log_format == "json"
        assert cfg.cors_origins == ("https://a.example", "https://b.example")

    @pytest.mark.parametrize("prefix", ["wp-", "wp_; DROP TABLE x", ""])
    def test_invalid_prefix(self, prefix):
        with pytest.raises(ValueError, match="table prefix"):
            AppConfig(table_prefix=prefix)

    def test_invalid_log_format(self, clean_env):
        clean_env.setenv("APP_LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="APP_LOG_FORMAT"):
            AppConfig.from_env()

    def test_table(self):
        assert AppConfig().table("posts") == "wp_posts"
        assert AppConfig(table_prefix="wp2_").table("give_donors") == "wp2_give_donors"

    def test_frozen(self):
        with pytest.raises(Exception):
            AppConfig().table_prefix = "x_"
