"""VAPID credentials for web push.

Holds the server's key pair and contact subject, and can mint a fresh pair:

    python -m elector.core.vapid
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from cryptography.hazmat.primitives import serialization
from py_vapid import Vapid
from py_vapid.utils import b64urlencode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VapidConfig:
    """Server VAPID key pair (base64url) and subject claim."""

    public_key: str
    private_key: str
    subject: str = "mailto:support@elector.app"

    @property
    def is_configured(self) -> bool:
        return bool(self.public_key and self.private_key)

    def claims(self) -> dict:
        # pywebpush mutates the claims dict, so hand out a fresh one each time
        return {"sub": self.subject}

    @classmethod
    def from_settings(cls, settings=None) -> VapidConfig:
        if settings is None:
            from elector.config import settings
        return cls(
            public_key=settings.VAPID_PUBLIC_KEY,
            private_key=settings.VAPID_PRIVATE_KEY,
            subject=settings.VAPID_SUBJECT,
        )


def validate_vapid_config(vapid: VapidConfig) -> bool:
    """Check the key pair is present, logging when it isn't."""
    if not vapid.is_configured:
        logger.error(
            "VAPID keys not configured. Set VAPID_PUBLIC_KEY and VAPID_PRIVATE_KEY."
        )
        return False
    return True


def generate_vapid_keys(subject: str = "mailto:support@elector.app") -> VapidConfig:
    """Generate a new P-256 key pair encoded the way browsers and pywebpush expect."""
    vapid = Vapid()
    vapid.generate_keys()
    public_raw = vapid.public_key.public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )
    private_raw = vapid.private_key.private_numbers().private_value.to_bytes(32, "big")
    return VapidConfig(
        public_key=b64urlencode(public_raw),
        private_key=b64urlencode(private_raw),
        subject=subject,
    )


if __name__ == "__main__":
    keys = generate_vapid_keys()
    print("Add these to your .env file:")
    print(f"VAPID_PUBLIC_KEY={keys.public_key}")
    print(f"VAPID_PRIVATE_KEY={keys.private_key}")
    print(f"VAPID_SUBJECT={keys.subject}")
