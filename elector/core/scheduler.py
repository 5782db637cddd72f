"""
Elector — Reminder Scheduler.

Drives the reminder checker on a fixed interval from an asyncio task that
lives for as long as the server runs.

States: STOPPED -> start() -> RUNNING -> stop() -> STOPPED.

stop() only cancels future ticks. A check that is already running is its
own task and finishes normally.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from elector.core.vapid import VapidConfig, validate_vapid_config

if TYPE_CHECKING:
    from elector.core.reminder_checker import ReminderCheckResult, ReminderChecker

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """Periodic dispatch of reminder push notifications."""

    def __init__(
        self,
        checker: ReminderChecker,
        vapid: VapidConfig,
        check_interval_minutes: int = 15,
    ) -> None:
        self._checker = checker
        self._vapid = vapid
        self._interval_minutes = check_interval_minutes
        self._loop_task: asyncio.Task[None] | None = None
        self._checks: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> bool:
        """Start periodic checks. Must be called from a running event loop.

        Returns True if the scheduler is running afterwards.
        """
        if self.is_running:
            logger.info("ReminderScheduler is already running")
            return True

        if not validate_vapid_config(self._vapid):
            logger.warning("ReminderScheduler: VAPID keys not configured, scheduler will not start")
            return False

        logger.info(
            "Starting ReminderScheduler - checking every %d minutes", self._interval_minutes,
        )
        self._loop_task = asyncio.create_task(self._run(), name="reminder-scheduler")
        return True

    def stop(self) -> None:
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None
        logger.info("ReminderScheduler stopped")

    def trigger_check(self) -> asyncio.Task:
        """Run one check now without touching the periodic timer."""
        logger.info("ReminderScheduler: Manual check triggered")
        return self._spawn_check()

    def get_status(self) -> dict:
        return {
            "is_running": self.is_running,
            "check_interval_minutes": self._interval_minutes,
        }

    async def _run(self) -> None:
        # First check right away, then every interval
        while True:
            self._spawn_check()
            await asyncio.sleep(self._interval_minutes * 60)

    def _spawn_check(self) -> asyncio.Task:
        task = asyncio.create_task(self._check(), name="reminder-check")
        self._checks.add(task)
        task.add_done_callback(self._checks.discard)
        return task

    async def _check(self) -> ReminderCheckResult | None:
        try:
            logger.info("ReminderScheduler: Checking for due reminders...")
            result = await self._checker.check_and_send_reminders()
            if result.reminders_sent or result.errors:
                logger.info(
                    "ReminderScheduler check completed: sent=%d errors=%s",
                    result.reminders_sent, result.errors,
                )
            return result
        except Exception:
            logger.exception("ReminderScheduler: Error in reminder check")
            return None
