from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Sequence

from taskhub.config import Settings, load_settings
from taskhub.domain.common.retry import RetryPolicy
from taskhub.domain.common.time import to_iso
from taskhub.domain.tasks.query import TaskQueryService
from taskhub.domain.tasks.service import TaskService
from taskhub.domain.users.service import UserService
from taskhub.infra.db.connection import Database
from taskhub.infra.db.schema_version import apply_migrations
from taskhub.infra.db.unit_of_work import sqlite_uow_factory
from taskhub.infra.scheduler.reaper import ReaperConfig, StaleTaskReaper
from taskhub.infra.security.bcrypt_hasher import BcryptHasher
from taskhub.infra.system import SystemClock, UuidGenerator

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a request-handling layer needs, wired once per process."""

    settings: Settings
    db: Database
    tasks: TaskService
    queries: TaskQueryService
    users: UserService
    reaper: StaleTaskReaper


def build_services(settings: Settings, db_path: Optional[Path] = None) -> Services:
    path = db_path or settings.db_path
    db = Database(str(path), timeout=settings.store_timeout_seconds)
    clock = SystemClock(settings.timezone)
    ids = UuidGenerator()
    uow = sqlite_uow_factory(db)
    retry = RetryPolicy(
        max_attempts=settings.retry_max_attempts,
        interval_seconds=settings.retry_interval_seconds,
    )
    reaper = StaleTaskReaper(
        uow,
        clock,
        probe=db.ping,
        cfg=ReaperConfig(
            interval_seconds=settings.reaper_interval_minutes * 60,
            stale_after=timedelta(hours=settings.stale_after_hours),
        ),
        retry=retry,
    )
    return Services(
        settings=settings,
        db=db,
        tasks=TaskService(uow, clock, ids, clock.tz, retry),
        queries=TaskQueryService(uow, clock, clock.tz, retry),
        users=UserService(uow, clock, ids, BcryptHasher(), retry),
        reaper=reaper,
    )


def _resolve_db_path(settings: Settings) -> Path:
    db_path = settings.db_path
    if not db_path.is_absolute():
        db_path = Path.cwd() / db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


async def serve(settings: Settings) -> None:
    db_path = _resolve_db_path(settings)
    logger.info(f"DB_PATH: {db_path}")
    services = build_services(settings, db_path)

    await apply_migrations(services.db, to_iso(datetime.now(timezone.utc)))

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            pass

    services.reaper.start()
    logger.info("Service is ready")
    try:
        await stop.wait()
    finally:
        await services.reaper.stop()
        logger.info("Shutdown complete")


async def sweep(settings: Settings) -> None:
    db_path = _resolve_db_path(settings)
    services = build_services(settings, db_path)
    await apply_migrations(services.db, to_iso(datetime.now(timezone.utc)))
    if not await services.db.ping():
        raise RuntimeError(f"Store at {db_path} is not reachable")
    report = await services.reaper.run_once()
    print(f"found={report.found} closed={report.closed} failed={report.failed}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="taskhub", description="Task tracking backend")
    parser.add_argument("command", nargs="?", choices=("serve", "sweep"), default="serve")
    args = parser.parse_args(argv)

    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - [PID:%(process)d] - %(message)s",
    )
    logger.info(f"taskhub {args.command} starting - PID: {os.getpid()}")

    try:
        asyncio.run(serve(settings) if args.command == "serve" else sweep(settings))
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    except Exception:
        logger.error("taskhub crashed", exc_info=True)
        raise


if __name__ == "__main__":
    main()
