from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it's easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getenv_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = _getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


@dataclass(frozen=True)
class ExpiryJobConfig:
    """Knobs for the scheduled content jobs (expiry and scheduled publish).

    Passed into the jobs at construction time; the jobs never read the
    environment themselves.
    """

    lookback_days: int = 30
    page_size: int = 100
    fanout_concurrency: int = 8


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    port: int
    database_url: str | None
    redis_url: str | None
    log_json: bool = False
    expiry: ExpiryJobConfig = field(default_factory=ExpiryJobConfig)

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_expiry_config() -> ExpiryJobConfig:
    return ExpiryJobConfig(
        lookback_days=_getenv_int("EXPIRY_LOOKBACK_DAYS", 30),
        page_size=_getenv_int("EXPIRY_PAGE_SIZE", 100),
        fanout_concurrency=_getenv_int("EXPIRY_FANOUT_CONCURRENCY", 8),
    )


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None
    log_json = _getenv("LOG_JSON", "false").lower() in ("1", "true", "yes")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        log_json=log_json,
        expiry=load_expiry_config(),
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
