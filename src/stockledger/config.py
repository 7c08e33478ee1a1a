"""Application configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path


def _default_data_root() -> Path:
    """Return the platform specific directory used for persistent data."""

    if os.name == "nt":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home()))
        return base / "StockLedger"
    return Path.home() / ".stockledger"


def _default_database_url() -> str:
    """Resolve the database URL taking overrides into account."""

    override = os.environ.get("STOCKLEDGER_DATABASE_URL")
    if override:
        return override
    return f"sqlite:///{_default_data_root() / 'stockledger.sqlite3'}"


def _env_float(name: str, default: str) -> float:
    return float(os.environ.get(name, default))


def _env_list(name: str) -> list[str]:
    raw = os.environ.get(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(slots=True)
class Settings:
    """Runtime configuration loaded from environment variables."""

    app_name: str = field(default_factory=lambda: os.environ.get("STOCKLEDGER_APP_NAME", "Stock Ledger"))
    host: str = field(default_factory=lambda: os.environ.get("STOCKLEDGER_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.environ.get("STOCKLEDGER_PORT", "8000")))
    reload: bool = field(default_factory=lambda: os.environ.get("STOCKLEDGER_RELOAD", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.environ.get("STOCKLEDGER_LOG_LEVEL", "info"))
    database_url: str = field(default_factory=_default_database_url)
    echo_sql: bool = field(default_factory=lambda: os.environ.get("STOCKLEDGER_ECHO_SQL", "false").lower() == "true")
    cors_origins: list[str] = field(default_factory=lambda: _env_list("STOCKLEDGER_CORS_ORIGINS"))
    lock_timeout: float = field(default_factory=lambda: _env_float("STOCKLEDGER_LOCK_TIMEOUT", "5.0"))
    max_post_retries: int = field(default_factory=lambda: int(os.environ.get("STOCKLEDGER_MAX_POST_RETRIES", "3")))
    sqlite_busy_timeout: float = field(
        default_factory=lambda: _env_float("STOCKLEDGER_SQLITE_BUSY_TIMEOUT", "15.0")
    )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def ensure_storage(self) -> None:
        """Ensure that the directory holding a SQLite database exists."""

        if not self.is_sqlite:
            return
        path = self.database_url.split("///", 1)[-1]
        if path and path != ":memory:":
            Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    settings = Settings()
    settings.ensure_storage()
    return settings
