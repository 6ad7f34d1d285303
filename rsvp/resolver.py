from __future__ import annotations

from typing import Iterable, Optional

from rsvp.datastore import AttendeeStore
from rsvp.models import Attendee, MatchedAttendee
from rsvp.runtime import get_logger, phones_match
from rsvp.schema import AttendeeKind

logger = get_logger("resolver")


def _first_phone_match(candidates: Iterable[Attendee], phone: str, strict: bool) -> Optional[Attendee]:
    for attendee in candidates:
        if phones_match(attendee.phone, phone, strict=strict):
            return attendee
    return None


def resolve_attendee(store: AttendeeStore, phone: str, *, strict: bool = False) -> Optional[MatchedAttendee]:
    """
    Find the approved attendee who owns ``phone``.

    Registrants are scanned before guests and the first hit wins. With tolerant
    matching two attendees sharing a number tail resolve to whichever is listed
    first; ``strict`` limits matches to identical digit strings.
    """
    for kind in (AttendeeKind.RSVP, AttendeeKind.GUEST):
        hit = _first_phone_match(store.list_approved(kind), phone, strict)
        if hit:
            logger.info("🔎 %s matched %s %s (%s)", phone, kind.value, hit.id, hit.name)
            return MatchedAttendee(kind=kind, id=hit.id, name=hit.name, phone=hit.phone)
    logger.info("🔎 No approved attendee for %s", phone)
    return None
