"""Web push adapter — implements PushSender with pywebpush.

pywebpush is blocking (requests), so each delivery runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging

from pywebpush import WebPushException, webpush

from elector.core.vapid import VapidConfig
from elector.data.models import PushSubscription
from elector.ports.push_port import PushDeliveryError

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 10
_TTL_SECONDS = 24 * 60 * 60


class WebPushSender:
    """pywebpush implementation of PushSender."""

    def __init__(self, vapid: VapidConfig) -> None:
        self._vapid = vapid

    def _send_blocking(self, subscription: PushSubscription, payload: str) -> None:
        try:
            webpush(
                subscription_info={
                    "endpoint": subscription.endpoint,
                    "keys": {
                        "p256dh": subscription.p256dh_key,
                        "auth": subscription.auth_key,
                    },
                },
                data=payload,
                vapid_private_key=self._vapid.private_key,
                vapid_claims=self._vapid.claims(),
                ttl=_TTL_SECONDS,
                timeout=_TIMEOUT_SECONDS,
            )
        except WebPushException as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise PushDeliveryError(str(exc), status_code=status) from exc

    async def send(self, subscription: PushSubscription, payload: str) -> None:
        await asyncio.to_thread(self._send_blocking, subscription, payload)
