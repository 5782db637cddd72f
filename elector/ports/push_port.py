"""Push port — abstract interface for delivering a web push message.

Core modules depend on this protocol, never on a specific push library.
"""

from __future__ import annotations

from typing import Protocol

from elector.data.models import PushSubscription

# Push service responses meaning the endpoint is permanently gone
GONE_STATUS_CODES = frozenset({404, 410})


class PushDeliveryError(Exception):
    """Raised when the push service rejects or fails a delivery."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def endpoint_gone(self) -> bool:
        return self.status_code in GONE_STATUS_CODES


class PushSender(Protocol):
    """Abstract push delivery used by the push service."""

    async def send(self, subscription: PushSubscription, payload: str) -> None: ...
