"""
Reply classification for reminder responses.

Only short, unambiguous replies are interpreted. Anything else is "unknown"
and leaves the guest list untouched, since a "no" removes someone from it.
"""

from __future__ import annotations

import re
from typing import Optional, Pattern, Sequence

from rsvp.schema import ReplyStatus

_I = re.IGNORECASE

YES_PATTERNS: Sequence[Pattern[str]] = (
    re.compile(r"^yes$", _I),
    re.compile(r"^y$", _I),
    re.compile(r"^yeah$", _I),
    re.compile(r"^yep$", _I),
    re.compile(r"^sure$", _I),
    re.compile(r"^ok$", _I),
    re.compile(r"^okay$", _I),
    re.compile(r"^coming$", _I),
    re.compile(r"^will be there$", _I),
    re.compile(r"^see you$", _I),
    re.compile(r"^✅"),
    re.compile(r"^✓"),
    re.compile(r"^✔"),
    re.compile(r"^\U0001F44D"),
    re.compile(r"^yes\s*!+$", _I),
)

NO_PATTERNS: Sequence[Pattern[str]] = (
    re.compile(r"^no$", _I),
    re.compile(r"^n$", _I),
    re.compile(r"^nope$", _I),
    re.compile(r"^can't$", _I),
    re.compile(r"^cannot$", _I),
    re.compile(r"^won't$", _I),
    re.compile(r"^not coming$", _I),
    re.compile(r"^can't make it$", _I),
    re.compile(r"^won't be there$", _I),
    re.compile(r"^❌"),
    re.compile(r"^\U0001F44E"),
    re.compile(r"^no\s*!+$", _I),
)

# Phones autocorrect "can't" to "can’t"
_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "ʼ": "'"})


def _first_match(patterns: Sequence[Pattern[str]], text: str) -> bool:
    for pattern in patterns:
        if pattern.search(text):
            return True
    return False


def classify_reply(message: Optional[str]) -> ReplyStatus:
    """Return YES, NO or UNKNOWN; affirmative patterns are tried before negative ones."""
    text = (message or "").strip().translate(_APOSTROPHES)
    if not text:
        return ReplyStatus.UNKNOWN
    if _first_match(YES_PATTERNS, text):
        return ReplyStatus.YES
    if _first_match(NO_PATTERNS, text):
        return ReplyStatus.NO
    return ReplyStatus.UNKNOWN
