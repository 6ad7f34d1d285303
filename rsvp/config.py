from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

# .env next to the package root; real environment variables win
load_dotenv(dotenv_path=os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"), override=False)

T = TypeVar("T")
_TRUTHY = {"1", "true", "yes", "on"}


# -----------------------------
# Env readers
# -----------------------------
def env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    raw = (os.getenv(key) or "").strip()
    return raw or default


def env_bool(key: str, default: bool = False) -> bool:
    raw = env_str(key)
    return default if raw is None else raw.lower() in _TRUTHY


def _env_number(key: str, default: T, cast: Callable[[str], T]) -> T:
    raw = env_str(key)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        return default


def env_int(key: str, default: int) -> int:
    return _env_number(key, default, int)


def env_float(key: str, default: float) -> float:
    return _env_number(key, default, float)


# -----------------------------
# Reminder pacing
# -----------------------------
REMINDER_DELAY_MIN_SEC = 10.0
REMINDER_DELAY_MAX_SEC = 20.0
REMINDER_DELAY_DEFAULT_SEC = 15.0

DEFAULT_WASENDER_API_URL = "https://wasenderapi.com/api"


# -----------------------------
# Settings Object
# -----------------------------
@dataclass(frozen=True)
class Settings:
    # WasenderAPI transport
    WASENDER_API_KEY: Optional[str] = None
    WASENDER_API_URL: str = DEFAULT_WASENDER_API_URL
    WASENDER_DRY_RUN: bool = False
    HTTP_TIMEOUT_SEC: float = 15.0

    # Airtable store connection
    AIRTABLE_API_KEY: Optional[str] = None
    RSVP_BASE: Optional[str] = None
    RSVPS_TABLE: str = "RSVPs"
    GUESTS_TABLE: str = "RSVP Guests"
    FORCE_IN_MEMORY: bool = False

    # Reminders
    TEST_RECIPIENT: Optional[str] = None
    REMINDER_DELAY_SEC: float = REMINDER_DELAY_DEFAULT_SEC

    # Inbound webhook
    WEBHOOK_SECRET: Optional[str] = None
    ENFORCE_WEBHOOK_SECRET: bool = False
    PHONE_MATCH_STRICT: bool = False

    # Admin
    ADMIN_TOKEN: Optional[str] = None

    # Group creation
    GROUP_BATCH_SIZE: int = 5
    GROUP_BATCH_DELAY_SEC: float = 1.0
    GROUP_TIMEOUT_SEC: float = 30.0
    GROUP_DEFAULT_NAME: str = "Toby's Birthday Party Group"

    # Event details
    PARTY_TITLE: str = "Toby's 22nd Birthday Party"
    PARTY_DESCRIPTION: str = "Join us for an unforgettable evening of celebration at A'DAM 360!"
    PARTY_VENUE: str = "A'DAM 360"
    PARTY_ADDRESS: str = "Overhoeksplein 5, 1031 KS Amsterdam, Netherlands"
    PARTY_DATE_LABEL: str = "February 21st, 2026"
    PARTY_TIME_LABEL: str = "21:00"
    PARTY_START: str = "2026-02-21T21:00:00+01:00"
    PARTY_END: str = "2026-02-22T02:00:00+01:00"

    @property
    def store_configured(self) -> bool:
        return bool(self.AIRTABLE_API_KEY and self.RSVP_BASE) and not self.FORCE_IN_MEMORY

    @property
    def send_message_url(self) -> str:
        return f"{self.WASENDER_API_URL.rstrip('/')}/send-message"

    @property
    def groups_url(self) -> str:
        return f"{self.WASENDER_API_URL.rstrip('/')}/groups"


@lru_cache(maxsize=1)
def settings() -> Settings:
    return Settings(
        WASENDER_API_KEY=env_str("WASENDER_API_KEY"),
        WASENDER_API_URL=env_str("WASENDER_API_URL", DEFAULT_WASENDER_API_URL),
        WASENDER_DRY_RUN=env_bool("WASENDER_DRY_RUN"),
        HTTP_TIMEOUT_SEC=env_float("HTTP_TIMEOUT_SEC", 15.0),
        AIRTABLE_API_KEY=env_str("AIRTABLE_API_KEY"),
        RSVP_BASE=env_str("RSVP_BASE") or env_str("AIRTABLE_RSVP_BASE_ID"),
        RSVPS_TABLE=env_str("RSVPS_TABLE", "RSVPs"),
        GUESTS_TABLE=env_str("GUESTS_TABLE", "RSVP Guests"),
        FORCE_IN_MEMORY=env_bool("RSVP_FORCE_IN_MEMORY"),
        TEST_RECIPIENT=env_str("TEST_RECIPIENT"),
        REMINDER_DELAY_SEC=env_float("REMINDER_DELAY_SEC", REMINDER_DELAY_DEFAULT_SEC),
        WEBHOOK_SECRET=env_str("WEBHOOK_SECRET"),
        ENFORCE_WEBHOOK_SECRET=env_bool("ENFORCE_WEBHOOK_SECRET"),
        PHONE_MATCH_STRICT=env_bool("PHONE_MATCH_STRICT"),
        ADMIN_TOKEN=env_str("ADMIN_TOKEN"),
        GROUP_BATCH_SIZE=max(1, env_int("GROUP_BATCH_SIZE", 5)),
        GROUP_BATCH_DELAY_SEC=env_float("GROUP_BATCH_DELAY_SEC", 1.0),
        GROUP_TIMEOUT_SEC=env_float("GROUP_TIMEOUT_SEC", 30.0),
        GROUP_DEFAULT_NAME=env_str("GROUP_DEFAULT_NAME", "Toby's Birthday Party Group"),
        PARTY_TITLE=env_str("PARTY_TITLE", Settings.PARTY_TITLE),
        PARTY_DESCRIPTION=env_str("PARTY_DESCRIPTION", Settings.PARTY_DESCRIPTION),
        PARTY_VENUE=env_str("PARTY_VENUE", Settings.PARTY_VENUE),
        PARTY_ADDRESS=env_str("PARTY_ADDRESS", Settings.PARTY_ADDRESS),
        PARTY_DATE_LABEL=env_str("PARTY_DATE_LABEL", Settings.PARTY_DATE_LABEL),
        PARTY_TIME_LABEL=env_str("PARTY_TIME_LABEL", Settings.PARTY_TIME_LABEL),
        PARTY_START=env_str("PARTY_START", Settings.PARTY_START),
        PARTY_END=env_str("PARTY_END", Settings.PARTY_END),
    )
