"""Add-to-calendar links and the downloadable .ics invite for the party."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter
from fastapi.responses import RedirectResponse, Response

from rsvp.config import Settings, settings as load_settings
from rsvp.runtime import utc_now

router = APIRouter()

GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render"
ICS_FILENAME = "party.ics"
PRODID = "-//RSVP Birthday Party//EN"


def _utc_stamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _event_times(cfg: Settings) -> tuple[datetime, datetime]:
    return datetime.fromisoformat(cfg.PARTY_START), datetime.fromisoformat(cfg.PARTY_END)


def event_location(cfg: Settings) -> str:
    return f"{cfg.PARTY_VENUE}, {cfg.PARTY_ADDRESS}"


def escape_ics(text: str) -> str:
    return text.replace("\\", "\\\\").replace(";", "\\;").replace(",", "\\,").replace("\n", "\\n")


def google_calendar_url(cfg: Optional[Settings] = None) -> str:
    cfg = cfg or load_settings()
    start, end = _event_times(cfg)
    params = {
        "action": "TEMPLATE",
        "text": cfg.PARTY_TITLE,
        "dates": f"{_utc_stamp(start)}/{_utc_stamp(end)}",
        "details": cfg.PARTY_DESCRIPTION,
        "location": event_location(cfg),
    }
    return f"{GOOGLE_CALENDAR_URL}?{urlencode(params)}"


def ics_document(cfg: Optional[Settings] = None, now: Optional[datetime] = None) -> str:
    """Single-event VCALENDAR with CRLF line endings."""
    cfg = cfg or load_settings()
    now = now or utc_now()
    start, end = _event_times(cfg)
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{int(now.timestamp() * 1000)}@rsvp-party",
        f"DTSTAMP:{_utc_stamp(now)}",
        f"DTSTART:{_utc_stamp(start)}",
        f"DTEND:{_utc_stamp(end)}",
        f"SUMMARY:{escape_ics(cfg.PARTY_TITLE)}",
        f"DESCRIPTION:{escape_ics(cfg.PARTY_DESCRIPTION)}",
        f"LOCATION:{escape_ics(event_location(cfg))}",
        "STATUS:CONFIRMED",
        "SEQUENCE:0",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines)


@router.get("/calendar.ics")
async def calendar_ics():
    return Response(
        content=ics_document(),
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{ICS_FILENAME}"'},
    )


@router.get("/calendar/google")
async def calendar_google(redirect: bool = False):
    url = google_calendar_url()
    if redirect:
        return RedirectResponse(url)
    return {"url": url}
