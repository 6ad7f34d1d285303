from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

from fastapi import FastAPI
from fastapi.testclient import TestClient

from rsvp import event_calendar
from rsvp.config import Settings
from rsvp.event_calendar import escape_ics, google_calendar_url, ics_document


def test_escape_ics():
    assert escape_ics("a\\b;c,d\ne") == r"a\\b\;c\,d\ne"


def test_google_calendar_url_uses_utc_range():
    url = google_calendar_url(Settings())
    parsed = urlparse(url)
    params = parse_qs(parsed.query)

    assert parsed.netloc == "calendar.google.com"
    assert params["action"] == ["TEMPLATE"]
    assert params["text"] == ["Toby's 22nd Birthday Party"]
    assert params["dates"] == ["20260221T200000Z/20260222T010000Z"]
    assert params["location"] == ["A'DAM 360, Overhoeksplein 5, 1031 KS Amsterdam, Netherlands"]


def test_ics_document():
    now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    doc = ics_document(Settings(), now=now)
    lines = doc.split("\r\n")

    assert lines[0] == "BEGIN:VCALENDAR"
    assert lines[-1] == "END:VCALENDAR"
    assert "\n" not in doc.replace("\r\n", "")
    assert "DTSTAMP:20260101T120000Z" in lines
    assert "DTSTART:20260221T200000Z" in lines
    assert "DTEND:20260222T010000Z" in lines
    assert "LOCATION:A'DAM 360\\, Overhoeksplein 5\\, 1031 KS Amsterdam\\, Netherlands" in lines


def _app():
    app = FastAPI()
    app.include_router(event_calendar.router)
    return TestClient(app)


def test_ics_route():
    resp = _app().get("/calendar.ics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/calendar")
    assert "attachment" in resp.headers["content-disposition"]
    assert resp.text.startswith("BEGIN:VCALENDAR")


def test_google_route():
    client = _app()
    assert client.get("/calendar/google").json()["url"].startswith("https://calendar.google.com/")
    redirect = client.get("/calendar/google", params={"redirect": "true"}, follow_redirects=False)
    assert redirect.status_code == 307
