"""Application configuration for the GiveWP enhanced API.

All settings come from environment variables and have defaults so the API
starts without any configuration.

Environment variables:
    GIVE_DB_PATH: Path to the GiveWP SQLite database (default: givewp.sqlite)
    GIVE_TABLE_PREFIX: WordPress table prefix (default: wp_)
    GIVE_API_PREFIX: Route prefix (default: /wp-json/give-api-enhanced/v1)
    GIVE_DEFAULT_CURRENCY: Currency used when GiveWP settings have none (default: USD)
    APP_PORT: API server port (default: 8000)
    APP_HOST: API server bind address (default: 127.0.0.1)
    APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
    APP_CORS_ORIGINS: Comma-separated allowed origins (default: *)
"""

from __future__ import annotations

import os as _os
import re
from dataclasses import dataclass
from pathlib import Path

API_NAMESPACE = "/wp-json/give-api-enhanced/v1"

_PREFIX_RE = re.compile(r"^[A-Za-z0-9_]+$")


@dataclass(frozen=True)
class AppConfig:
    """Immutable settings shared by every request."""

    db_path: Path = Path("givewp.sqlite")
    table_prefix: str = "wp_"
    api_prefix: str = API_NAMESPACE
    default_currency: str = "USD"
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    log_format: str = "text"
    cors_origins: tuple[str, ...] = ("*",)

    def __post_init__(self) -> None:
        # The prefix is interpolated into SQL identifiers.
        if not _PREFIX_RE.match(self.table_prefix):
            raise ValueError(f"Invalid table prefix: {self.table_prefix!r}")
        if self.log_format not in ("text", "json"):
            raise ValueError(f"APP_LOG_FORMAT must be 'text' or 'json', got {self.log_format!r}")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig populated from environment variables."""
        raw_origins = _os.getenv("APP_CORS_ORIGINS", "*")
        cors_origins = (
            ("*",) if raw_origins == "*"
            else tuple(o.strip() for o in raw_origins.split(",") if o.strip())
        )
        return cls(
            db_path=Path(_os.getenv("GIVE_DB_PATH", "givewp.sqlite")),
            table_prefix=_os.getenv("GIVE_TABLE_PREFIX", "wp_"),
            api_prefix=_os.getenv("GIVE_API_PREFIX", API_NAMESPACE).rstrip("/"),
            default_currency=_os.getenv("GIVE_DEFAULT_CURRENCY", "USD").upper(),
            api_host=_os.getenv("APP_HOST", "127.0.0.1"),
            api_port=int(_os.getenv("APP_PORT", "8000")),
            log_format=_os.getenv("APP_LOG_FORMAT", "text"),
            cors_origins=cors_origins,
        )

    def table(self, name: str) -> str:
        """Return the prefixed table name, e.g. ``table("posts") -> "wp_posts"``."""
        return f"{self.table_prefix}{name}"
