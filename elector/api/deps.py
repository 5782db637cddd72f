"""
FastAPI dependencies: the signed-in principal, the cron shared secret, and
the service instances the app factory hangs on app.state.
"""

from __future__ import annotations

import secrets

from fastapi import Header, HTTPException, Request, status

from elector.core.push_service import PushNotificationService
from elector.core.reminder_checker import ReminderChecker
from elector.core.scheduler import ReminderScheduler
from elector.core.vapid import VapidConfig
from elector.data.db import PushSubscriptionDB


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Resolve the signed-in user.

    The identity provider sits in front of this service and forwards the
    user id in X-User-Id. Deployments with a different auth layer replace
    this via app.dependency_overrides.
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user_id


def require_cron_secret(request: Request) -> None:
    """Require `Authorization: Bearer <CRON_SECRET>` when a secret is configured."""
    expected = request.app.state.settings.CRON_SECRET
    if not expected:
        return
    provided = request.headers.get("Authorization", "")
    if not secrets.compare_digest(provided.encode(), f"Bearer {expected}".encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def get_vapid(request: Request) -> VapidConfig:
    return request.app.state.vapid


def get_subscription_db(request: Request) -> PushSubscriptionDB:
    return request.app.state.subscriptions


def get_push_service(request: Request) -> PushNotificationService:
    return request.app.state.push_service


def get_checker(request: Request) -> ReminderChecker:
    return request.app.state.checker


def get_scheduler(request: Request) -> ReminderScheduler:
    return request.app.state.scheduler
