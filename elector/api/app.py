"""
Elector — FastAPI application factory.

create_app() is the composition root. It wires the storage manager (local
and owner-scoped remote stores), the subscription store, push service,
reminder checker, scheduler and the local notification poller as explicit
instances on app.state, registers the routers, and runs the scheduler and
the poller for the lifetime of the server.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from elector.adapters.log_notifier import LogNotifier
from elector.adapters.webpush_sender import WebPushSender
from elector.api import notifications, push
from elector.config import Settings
from elector.core.errors import InvalidInputError, NotAuthenticatedError, NotFoundError
from elector.core.notification_service import NotificationService
from elector.core.push_service import PushNotificationService
from elector.core.reminder_checker import ReminderChecker
from elector.core.scheduler import ReminderScheduler
from elector.core.storage_manager import StorageManager
from elector.core.vapid import VapidConfig
from elector.data.db import PushSubscriptionDB
from elector.data.local_store import LocalStore
from elector.data.remote_store import RemoteStore
from elector.ports.notification_port import NotificationPort
from elector.ports.push_port import PushSender

logger = logging.getLogger(__name__)


async def _start_scheduler_later(scheduler: ReminderScheduler, delay: float) -> None:
    await asyncio.sleep(delay)
    if scheduler.start():
        logger.info("Reminder scheduler started")


async def _start_local_notifications(
    service: NotificationService, storage: StorageManager,
) -> Callable[[], None] | None:
    if not await service.request_permission():
        logger.info("Local notifications not permitted")
        return None

    def contact_name(contact_id: str) -> str | None:
        contact = storage.get_contact(contact_id)
        return contact.name if contact else None

    return service.start_periodic_check(storage.get_due_reminders, contact_name)


def create_app(
    settings: Settings | None = None,
    *,
    sender: PushSender | None = None,
    notifier: NotificationPort | None = None,
    clock: Callable[[], datetime] | None = None,
) -> FastAPI:
    """Build the app.

    `sender`, `notifier` and `clock` replace the real push transport, the
    local notification sink and the time source.
    """
    if settings is None:
        from elector.config import settings

    db_path = settings.DATABASE_PATH
    vapid = VapidConfig.from_settings(settings)
    timed = {"clock": clock} if clock is not None else {}

    def remote_store_factory(user_id: str) -> RemoteStore:
        return RemoteStore(user_id, db_path, **timed)

    storage = StorageManager(
        LocalStore(settings.LOCAL_DATA_PATH, **timed), remote_store_factory,
    )
    local_notifications = NotificationService(
        notifier or LogNotifier(),
        interval_minutes=settings.CHECK_INTERVAL_MINUTES,
        initial_delay_seconds=settings.SCHEDULER_START_DELAY_SECONDS,
    )

    subscriptions = PushSubscriptionDB(db_path, **timed)
    push_service = PushNotificationService(
        subscriptions,
        sender or WebPushSender(vapid),
        vapid,
        icon=settings.APP_ICON,
        **timed,
    )
    checker = ReminderChecker(
        subscriptions,
        remote_store_factory,
        push_service,
        vapid,
        **timed,
    )
    scheduler = ReminderScheduler(checker, vapid, settings.CHECK_INTERVAL_MINUTES)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        starter = asyncio.create_task(
            _start_scheduler_later(scheduler, settings.SCHEDULER_START_DELAY_SECONDS)
        )
        stop_notifications = await _start_local_notifications(local_notifications, storage)
        try:
            yield
        finally:
            starter.cancel()
            scheduler.stop()
            if stop_notifications is not None:
                stop_notifications()

    app = FastAPI(title="Elector API", lifespan=lifespan)
    app.state.settings = settings
    app.state.vapid = vapid
    app.state.storage = storage
    app.state.notifications = local_notifications
    app.state.subscriptions = subscriptions
    app.state.push_service = push_service
    app.state.checker = checker
    app.state.scheduler = scheduler

    app.include_router(push.router, prefix="/api")
    app.include_router(notifications.router, prefix="/api")

    @app.exception_handler(InvalidInputError)
    async def invalid_input(request: Request, exc: InvalidInputError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(NotAuthenticatedError)
    async def not_authenticated(request: Request, exc: NotAuthenticatedError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"error": str(exc)})

    @app.get("/health")
    async def health() -> dict:
        return {"status": "healthy"}

    return app
