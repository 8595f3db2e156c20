"""
Configuration helpers for the postboard backend.

Exposes a frozen Settings object read from environment variables (storage
path, logging, API prefix, CORS, rate limits) so that routers/repositories do
not fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    db_path: str
    log_level: str
    log_format: str
    api_base_path: str
    cors_origins: tuple[str, ...]
    rate_limit_window_seconds: int
    rate_limit_max_requests: int

    @property
    def is_production(self) -> bool:
        return self.app_env == "prod"


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _list(value: str | None) -> tuple[str, ...]:
        if not value:
            return ()
        return tuple(item.strip().rstrip("/") for item in value.split(",") if item.strip())

    base_path = "/" + (os.getenv("API_BASE_PATH") or "/api").strip().strip("/")
    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        db_path=os.getenv("DB_PATH", "./db/db.json"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        log_format=(os.getenv("LOG_FORMAT") or "text").lower(),
        api_base_path=base_path.rstrip("/"),
        cors_origins=_list(os.getenv("CORS_ORIGINS")),
        rate_limit_window_seconds=_int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900"), 900),
        rate_limit_max_requests=_int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100"), 100),
    )
