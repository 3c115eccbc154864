# taskhub/infra/scheduler/reaper.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from functools import partial
from typing import Awaitable, Callable, List, Optional

from taskhub.constants import TASK_STATUS_DONE, TASK_STATUS_IN_PROGRESS
from taskhub.domain.common.ports import Clock
from taskhub.domain.common.retry import RetryPolicy, with_retry
from taskhub.domain.tasks.models import SweepReport
from taskhub.domain.tasks.ports import UnitOfWorkFactory
from taskhub.domain.tasks.state import apply_status_transition

logger = logging.getLogger(__name__)

LivenessProbe = Callable[[], Awaitable[bool]]


@dataclass(frozen=True)
class ReaperConfig:
    interval_seconds: float = 15 * 60
    stale_after: timedelta = timedelta(hours=2)
    probe_interval_seconds: float = 5.0


class StaleTaskReaper:
    """
    Closes tasks left in progress past ``stale_after``.

    The loop stays idle until ``probe()`` reports the store is live, then
    sweeps every ``interval_seconds`` until stop(). Sweeps never overlap:
    run_once() during a sweep returns a skipped report.
    """

    def __init__(
        self,
        uow: UnitOfWorkFactory,
        clock: Clock,
        probe: LivenessProbe,
        cfg: ReaperConfig = ReaperConfig(),
        retry: RetryPolicy = RetryPolicy(),
    ) -> None:
        self._uow = uow
        self._clock = clock
        self._probe = probe
        self._cfg = cfg
        self._retry = retry
        self._lock = asyncio.Lock()
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._enabled = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self.run_forever(), name="stale-task-reaper")

    async def stop(self) -> None:
        self._stop.set()
        task, self._task = self._task, None
        if task is not None:
            await task
        self._enabled = False

    async def run_forever(self) -> None:
        if not await self._wait_until_live():
            return
        self._enabled = True
        logger.info(f"Stale-task sweep enabled, every {self._cfg.interval_seconds:.0f}s")

        while not self._stop.is_set():
            try:
                await self.run_once()
            except Exception as e:
                # a failed sweep must not end the loop
                logger.error(f"Stale-task sweep error: {e}", exc_info=True)
            if await self._sleep(self._cfg.interval_seconds):
                break

    async def run_once(self) -> SweepReport:
        if self._lock.locked():
            logger.info("Stale-task sweep already running, skipping")
            return SweepReport(skipped=True)

        async with self._lock:
            return await self._sweep()

    async def _sweep(self) -> SweepReport:
        now = self._clock.now()
        cutoff = now - self._cfg.stale_after
        logger.info("Stale-task sweep running...")

        async def find() -> List[str]:
            async with self._uow() as uow:
                return list(await uow.tasks.list_stale_in_progress(cutoff))

        task_ids = await with_retry(find, self._retry)
        if not task_ids:
            logger.info("No tasks to close")
            return SweepReport()

        logger.info(f"Closing {len(task_ids)} tasks")
        closed = 0
        failed: List[str] = []
        for task_id in task_ids:
            try:
                if await with_retry(partial(self._close_one, task_id, cutoff), self._retry):
                    closed += 1
            except Exception as e:
                logger.error(f"Failed to close stale task: task_id={task_id}, error={e}", exc_info=True)
                failed.append(task_id)

        logger.info(f"Stale-task sweep complete: closed={closed}, failed={len(failed)}")
        return SweepReport(found=len(task_ids), closed=closed, failed=len(failed), failed_ids=tuple(failed))

    async def _close_one(self, task_id: str, cutoff: datetime) -> bool:
        async with self._uow() as uow:
            task = await uow.tasks.get(task_id)
            # re-check: a caller may have moved it since the scan
            if task is None or task.status != TASK_STATUS_IN_PROGRESS:
                return False
            if task.started_at is None or task.started_at >= cutoff:
                return False
            now = self._clock.now()
            closed = apply_status_transition(task, TASK_STATUS_DONE, now)
            await uow.tasks.save(replace(closed, updated_at=now))
        return True

    async def _wait_until_live(self) -> bool:
        while not self._stop.is_set():
            try:
                if await self._probe():
                    return True
            except Exception as e:
                logger.warning(f"Store liveness probe failed: {e}")
            logger.info("Store not ready, stale-task sweep on hold")
            if await self._sleep(self._cfg.probe_interval_seconds):
                break
        return False

    async def _sleep(self, seconds: float) -> bool:
        """Wait ``seconds`` or until stop(). True when stopped."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
