"""
Tests for environment-driven settings and service wiring.

Run with: python -m pytest tests/test_config.py -v
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from taskhub.config import load_settings
from taskhub.domain.common.time import to_iso
from taskhub.infra.db.schema_version import apply_migrations
from taskhub.infra.system import SystemClock, UuidGenerator
from taskhub.main import build_services

_VARS = (
    "DB_PATH",
    "TZ",
    "APP_ENV",
    "LOG_LEVEL",
    "REAPER_INTERVAL_MINUTES",
    "STALE_AFTER_HOURS",
    "STORE_TIMEOUT_SECONDS",
    "RETRY_MAX_ATTEMPTS",
    "RETRY_INTERVAL_SECONDS",
)


@pytest.fixture()
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    s = load_settings()
    assert s.db_path == Path("data/taskhub.db")
    assert s.timezone == "UTC"
    assert s.reaper_interval_minutes == 15
    assert s.stale_after_hours == 2
    assert s.retry_max_attempts == 3
    assert s.expose_error_details is True


def test_production_hides_error_details(clean_env):
    clean_env.setenv("APP_ENV", "Production")
    assert load_settings().expose_error_details is False


def test_overrides(clean_env):
    clean_env.setenv("STALE_AFTER_HOURS", "6")
    clean_env.setenv("STORE_TIMEOUT_SECONDS", "2.5")
    clean_env.setenv("LOG_LEVEL", "debug")
    s = load_settings()
    assert s.stale_after_hours == 6
    assert s.store_timeout_seconds == 2.5
    assert s.log_level == "DEBUG"


@pytest.mark.parametrize("value", ["0", "-3", "soon"])
def test_bad_numbers_fail_fast(clean_env, value):
    clean_env.setenv("REAPER_INTERVAL_MINUTES", value)
    with pytest.raises(RuntimeError):
        load_settings()


def test_built_services_share_one_store(clean_env, tmp_path):
    clean_env.setenv("TZ", "Europe/Helsinki")
    settings = load_settings()
    services = build_services(settings, tmp_path / "wired.db")

    async def run():
        applied = await apply_migrations(services.db, to_iso(datetime.now(timezone.utc)))
        assert applied == [1]
        assert await apply_migrations(services.db, to_iso(datetime.now(timezone.utc))) == []
        assert await services.db.ping()

        report = await services.reaper.run_once()
        assert report.found == 0

    asyncio.run(run())


def test_unknown_time_zone_fails_at_startup(clean_env, tmp_path):
    clean_env.setenv("TZ", "Mars/Olympus_Mons")
    settings = load_settings()
    with pytest.raises(RuntimeError) as exc:
        build_services(settings, tmp_path / "wired.db")
    assert "Mars/Olympus_Mons" in str(exc.value)


def test_system_clock_reads_configured_zone():
    clock = SystemClock("Europe/Helsinki")
    assert clock.tz == ZoneInfo("Europe/Helsinki")
    assert clock.now().tzinfo is clock.tz
    assert len({UuidGenerator().new_id() for _ in range(50)}) == 50
