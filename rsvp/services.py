"""Process-wide store and transport instances shared by the HTTP routers."""

from __future__ import annotations

from functools import lru_cache

from rsvp.config import settings
from rsvp.datastore import AttendeeStore
from rsvp.runtime import get_logger
from rsvp.wasender_client import WasenderClient

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_store() -> AttendeeStore:
    return AttendeeStore(settings())


@lru_cache(maxsize=1)
def get_client() -> WasenderClient:
    return WasenderClient(settings())


def reset_state() -> None:
    """Drop cached settings, tables and clients (tests and config reloads)."""
    get_store.cache_clear()
    get_client.cache_clear()
    settings.cache_clear()
    logger.info("🧹 Service state and caches cleared.")
