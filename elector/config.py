"""
Elector — Centralized configuration.

Loads all settings from .env. Nothing here is strictly required: without
VAPID keys the server still serves storage and subscription endpoints, but
push delivery and the reminder scheduler stay disabled.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from elector/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite (remote, owner-scoped store + push subscriptions)
    DATABASE_PATH: str = "data/elector.db"

    # Device-local JSON blob used while signed out
    LOCAL_DATA_PATH: str = "data/elector-data.json"

    # Web push (VAPID)
    VAPID_PUBLIC_KEY: str = ""
    VAPID_PRIVATE_KEY: str = ""
    VAPID_SUBJECT: str = "mailto:support@elector.app"

    # Shared secret guarding the cron-style dispatch endpoint (empty → open)
    CRON_SECRET: str = ""

    # Reminder scheduler
    CHECK_INTERVAL_MINUTES: int = 15
    SCHEDULER_START_DELAY_SECONDS: float = 5.0

    # Icon used in push payloads
    APP_ICON: str = "/icon-256.png"

    # HTTP server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    @field_validator("CHECK_INTERVAL_MINUTES", "PORT", mode="before")
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)

    @field_validator("SCHEDULER_START_DELAY_SECONDS", mode="before")
    @classmethod
    def parse_float(cls, v: str | float) -> float:
        return float(v)


def _load_settings() -> Settings:
    """Load settings from environment."""
    return Settings(
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/elector.db"),
        LOCAL_DATA_PATH=os.getenv("LOCAL_DATA_PATH", "data/elector-data.json"),
        VAPID_PUBLIC_KEY=os.getenv("VAPID_PUBLIC_KEY", ""),
        VAPID_PRIVATE_KEY=os.getenv("VAPID_PRIVATE_KEY", ""),
        VAPID_SUBJECT=os.getenv("VAPID_SUBJECT", "mailto:support@elector.app"),
        CRON_SECRET=os.getenv("CRON_SECRET", ""),
        CHECK_INTERVAL_MINUTES=os.getenv("CHECK_INTERVAL_MINUTES", "15"),
        SCHEDULER_START_DELAY_SECONDS=os.getenv("SCHEDULER_START_DELAY_SECONDS", "5"),
        APP_ICON=os.getenv("APP_ICON", "/icon-256.png"),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=os.getenv("PORT", "8000"),
    )


# Singleton, imported by other modules as:
#   from elector.config import settings
settings = _load_settings()
