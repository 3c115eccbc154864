from dataclasses import dataclass
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    db_path: Path
    timezone: str
    app_env: str
    log_level: str
    reaper_interval_minutes: int
    stale_after_hours: int
    store_timeout_seconds: float
    retry_max_attempts: int
    retry_interval_seconds: float

    @property
    def expose_error_details(self) -> bool:
        return self.app_env != "production"


def _positive_int(name: str, default: str) -> int:
    raw = os.getenv(name, default).strip()
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def _positive_float(name: str, default: str) -> float:
    raw = os.getenv(name, default).strip()
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def load_settings() -> Settings:
    db_raw = os.getenv("DB_PATH", "data/taskhub.db").strip()
    tz = os.getenv("TZ", "UTC").strip() or "UTC"
    app_env = os.getenv("APP_ENV", "development").strip().lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()

    if not db_raw:
        raise RuntimeError("DB_PATH is empty in .env")

    # db_path is not made absolute here; main.py resolves it
    return Settings(
        db_path=Path(db_raw),
        timezone=tz,
        app_env=app_env,
        log_level=log_level,
        reaper_interval_minutes=_positive_int("REAPER_INTERVAL_MINUTES", "15"),
        stale_after_hours=_positive_int("STALE_AFTER_HOURS", "2"),
        store_timeout_seconds=_positive_float("STORE_TIMEOUT_SECONDS", "5"),
        retry_max_attempts=_positive_int("RETRY_MAX_ATTEMPTS", "3"),
        retry_interval_seconds=_positive_float("RETRY_INTERVAL_SECONDS", "1"),
    )
