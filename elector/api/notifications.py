"""
/api/notifications — reminder dispatch and scheduler control.

check-reminders is meant for an external cron job and is guarded by the
CRON_SECRET bearer token when one is configured.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from elector.api.deps import (
    get_checker,
    get_current_user_id,
    get_push_service,
    get_scheduler,
    require_cron_secret,
)
from elector.core.push_service import PushNotificationService
from elector.core.reminder_checker import ReminderChecker
from elector.core.scheduler import ReminderScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post("/check-reminders", dependencies=[Depends(require_cron_secret)])
async def check_reminders(checker: ReminderChecker = Depends(get_checker)) -> dict:
    logger.info("Starting reminder check job...")
    result = await checker.check_and_send_reminders()
    logger.info("Reminder check job completed: %s", result)
    return {"success": True, "message": "Reminder check completed", "results": asdict(result)}


@router.get("/check-reminders")
def describe_check_reminders() -> dict:
    return {
        "message": "Reminder check endpoint is active. Use POST to trigger a check.",
        "endpoint": "/api/notifications/check-reminders",
    }


@router.get("/status")
def scheduler_status(scheduler: ReminderScheduler = Depends(get_scheduler)) -> dict:
    status = scheduler.get_status()
    if status["is_running"]:
        message = (
            f"Reminder scheduler is running "
            f"(checks every {status['check_interval_minutes']} minutes)"
        )
    else:
        message = "Reminder scheduler is not running"
    return {"success": True, "scheduler": status, "message": message, "timestamp": _timestamp()}


@router.post("/status")
async def trigger_check(scheduler: ReminderScheduler = Depends(get_scheduler)) -> dict:
    scheduler.trigger_check()
    return {"success": True, "message": "Manual reminder check triggered", "timestamp": _timestamp()}


@router.post("/test")
async def send_test_notification(
    user_id: str = Depends(get_current_user_id),
    push_service: PushNotificationService = Depends(get_push_service),
):
    logger.info("Sending test notification to user %s", user_id)
    result = await push_service.send_test_notification(user_id)
    details = {"sent": result.success, "failed": result.failed, "errors": result.errors}

    if result.success > 0:
        return {"success": True, "message": "Test notification sent successfully", "details": details}
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Failed to send test notification", "details": details},
    )
