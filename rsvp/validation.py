"""Dutch mobile number validation and display formatting for the RSVP form."""

from __future__ import annotations

import re
from typing import Optional

_SEPARATORS = re.compile(r"[\s\-()]")
_DUTCH_MOBILE = re.compile(r"^(\+31|0031|31|0)?6\d{8}$")
_NON_PHONE = re.compile(r"[^\d+]")

PHONE_REQUIRED = "Phone number is required"
PHONE_INVALID = "Please enter a valid Dutch mobile number (e.g., +31 6 12345678)"


def validate_phone_number(phone: Optional[str]) -> bool:
    if not phone:
        return False
    return bool(_DUTCH_MOBILE.match(_SEPARATORS.sub("", phone)))


def phone_error_message(phone: Optional[str]) -> Optional[str]:
    if not phone or not phone.strip():
        return PHONE_REQUIRED
    if not validate_phone_number(phone):
        return PHONE_INVALID
    return None


def format_phone_number(phone: str) -> str:
    """'0612345678' / '0031612345678' / '+31 6-1234 5678' → '+31 6 12345678'; anything else is returned cleaned."""
    cleaned = _NON_PHONE.sub("", phone or "")
    for prefix in ("+31", "0031"):
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix) :]
            break
    else:
        if cleaned.startswith("31") and len(cleaned) == 11:
            cleaned = cleaned[2:]
        elif cleaned.startswith("06"):
            cleaned = cleaned[1:]

    if cleaned.startswith("6") and len(cleaned) <= 9:
        return f"+31 6 {cleaned[1:]}"
    return cleaned
