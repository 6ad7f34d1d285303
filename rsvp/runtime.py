"""
🧠 RSVP runtime helpers
-----------------------
Logging bootstrap, UTC timestamps and phone-number canonicalisation shared
by every module. Importing this module installs the uncaught-exception hook.
"""

from __future__ import annotations
import logging
import os
import re
import sys
from datetime import datetime, timezone
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_state = {"logging": False, "hook": False, "env": False}
_NON_DIGIT = re.compile(r"\D+")


# ────────────────────────────────────────────────
# LOGGING
# ────────────────────────────────────────────────
def _mask_env_value(value: Optional[str]) -> str:
    """'sk_live_abcdef123456' → 'sk_l...3456'; short secrets are starred out."""
    secret = (value or "").strip()
    if not secret:
        return "<missing>"
    if len(secret) <= 4:
        return "*" * len(secret)
    keep = 2 if len(secret) <= 8 else 4
    return f"{secret[:keep]}...{secret[-keep:]}"


def _normalize_level(value: int | str | None) -> int:
    value = value if value is not None else os.getenv("RSVP_LOG_LEVEL")
    if not value:
        return logging.INFO
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(str(value).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: int | str | None = None) -> None:
    """Configure the root logger the first time any module asks for a logger."""
    if _state["logging"]:
        return
    logging.basicConfig(level=_normalize_level(level), format=LOG_FORMAT)
    _state["logging"] = True
    _log_core_env()


def get_logger(name: str = "rsvp") -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def install_global_exception_hook() -> None:
    """Route anything that escapes to the interpreter through the 'uncaught' logger."""
    if _state["hook"]:
        return

    def _log_uncaught(exc_type, exc, tb):
        get_logger("uncaught").error(
            "Unhandled %s: %s", exc_type.__name__, exc, exc_info=(exc_type, exc, tb)
        )

    sys.excepthook = _log_uncaught
    _state["hook"] = True


def _log_core_env() -> None:
    if _state["env"]:
        return
    _state["env"] = True
    base = os.getenv("RSVP_BASE") or os.getenv("AIRTABLE_RSVP_BASE_ID") or "<missing>"
    logging.getLogger("env").info(
        "Core env summary:\n"
        "• Airtable Key=%s | RsvpBase=%s | ForceInMemory=%s\n"
        "• Wasender Key=%s | DryRun=%s | ReminderDelay=%ss\n"
        "• WebhookSecret=%s | AdminToken=%s",
        _mask_env_value(os.getenv("AIRTABLE_API_KEY")),
        base,
        os.getenv("RSVP_FORCE_IN_MEMORY", "false"),
        _mask_env_value(os.getenv("WASENDER_API_KEY")),
        os.getenv("WASENDER_DRY_RUN", "false"),
        os.getenv("REMINDER_DELAY_SEC", "15"),
        bool(os.getenv("WEBHOOK_SECRET")),
        bool(os.getenv("ADMIN_TOKEN")),
    )


# ────────────────────────────────────────────────
# TIME
# ────────────────────────────────────────────────
def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Second-precision ISO-8601 in UTC with a trailing 'Z'."""
    return value.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def iso_now() -> str:
    return to_iso(utc_now())


# ────────────────────────────────────────────────
# PHONES
# ────────────────────────────────────────────────
def only_digits(value: str | None) -> str:
    return _NON_DIGIT.sub("", str(value)) if value is not None else ""


def normalize_phone(value: str | None) -> str:
    """
    Canonical display/send form: '+' followed by digits only.

    No length or country validation happens here; junk input degrades to a
    short (possibly bare '+') string. Normalizing twice is a no-op.
    """
    return f"+{only_digits(value)}"


def _comparable(value: str | None) -> str:
    # 0612345678 / 0031612345678 / +31612345678 → 612345678 / 31612345678
    return only_digits(value).lstrip("0")


def phones_match(left: str | None, right: str | None, *, strict: bool = False) -> bool:
    """
    Compare two phone strings on their digits.

    Tolerant mode accepts either number being a suffix of the other, which
    absorbs country-code and trunk-zero differences but can pair two numbers
    that merely share a tail. Strict mode demands equal digit strings.
    """
    a = _comparable(left)
    b = _comparable(right)
    if not a or not b:
        return False
    if a == b:
        return True
    if strict:
        return False
    return a.endswith(b) or b.endswith(a)



install_global_exception_hook()
