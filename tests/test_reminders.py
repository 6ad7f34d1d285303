import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from rsvp import reminders
from rsvp.config import settings
from rsvp.reminders import ReminderDispatcher, clamp_delay
from rsvp.schema import ApprovalStatus
from rsvp.services import get_client, get_store


class FakeSleep:
    def __init__(self):
        self.pauses = []

    def __call__(self, seconds):
        self.pauses.append(seconds)


def _seed_approved(store, count):
    people = []
    for i in range(count):
        rsvp = store.create_rsvp(f"Guest {i}", f"+31 6 1000000{i}", ApprovalStatus.APPROVED)
        people.append(rsvp)
    return people


def _dispatcher(sleep):
    return ReminderDispatcher(settings(), get_store(), get_client(), sleep=sleep)


@pytest.mark.parametrize(
    "value, expected",
    [(None, 15.0), (12, 12.0), ("18.5", 18.5), (1, 10.0), (0, 15.0), ("0", 15.0), (-5, 10.0), (90, 20.0), ("abc", 15.0), (float("nan"), 15.0)],
)
def test_clamp_delay(value, expected):
    assert clamp_delay(value) == expected


def test_sends_once_per_recipient_with_clamped_pauses(sender):
    store = get_store()
    _seed_approved(store, 3)
    host = store.list_rsvps()[0]
    store.add_guest(host.id, "Plus One", "+31 6 20000000", ApprovalStatus.APPROVED)
    store.create_rsvp("Not Yet", "+31 6 30000000")
    sleep = FakeSleep()

    result = _dispatcher(sleep).run(delay=3)

    assert len(sender.calls) == 4
    assert sender.sent_to[-1] == "+31620000000"
    assert "+31630000000" not in sender.sent_to
    assert sleep.pauses == [10.0, 10.0, 10.0]
    assert result["sent"] == 4
    assert result["failed"] == 0
    assert result["delayBetweenMessages"] == 10.0


def test_failure_does_not_stop_later_recipients(sender):
    _seed_approved(get_store(), 3)
    sender.fail_for.add("+31610000001")
    sleep = FakeSleep()

    result = _dispatcher(sleep).run(delay=99)

    assert len(sender.calls) == 3
    assert [r["success"] for r in result["results"]] == [True, False, True]
    assert "boom" in result["results"][1]["error"]
    assert result["sent"] == 2 and result["failed"] == 1
    assert all(10.0 <= p <= 20.0 for p in sleep.pauses)
    assert sleep.pauses == [20.0, 20.0]


def test_zero_delay_means_configured_default(sender, monkeypatch):
    monkeypatch.setenv("REMINDER_DELAY_SEC", "12")
    _seed_approved(get_store(), 2)
    sleep = FakeSleep()

    result = _dispatcher(sleep).run(delay=0)

    assert sleep.pauses == [12.0]
    assert result["delayBetweenMessages"] == 12.0


def test_reminder_text_is_personalised(sender):
    _seed_approved(get_store(), 1)
    _dispatcher(FakeSleep()).run()
    text = sender.calls[0]["data"]["text"]
    assert text.startswith("🎉 *Party Reminder - Tonight!*")
    assert "Hi Guest 0!" in text
    assert "google.com/maps/dir" in text


def test_nobody_approved(sender):
    sleep = FakeSleep()
    result = _dispatcher(sleep).run()
    assert result["sent"] == 0
    assert sender.calls == [] and sleep.pauses == []


def test_test_mode_targets_only_the_test_recipient(sender, monkeypatch):
    monkeypatch.setenv("TEST_RECIPIENT", "+31610000001")
    settings.cache_clear()
    _seed_approved(get_store(), 3)

    result = _dispatcher(FakeSleep()).run(test_mode=True)

    assert sender.sent_to == ["+31610000001"]
    assert result["results"][0]["name"] == "Guest 1"


def test_test_mode_uses_placeholder_for_unknown_number(sender, monkeypatch):
    monkeypatch.setenv("TEST_RECIPIENT", "+31699990000")
    settings.cache_clear()
    _seed_approved(get_store(), 2)

    result = _dispatcher(FakeSleep()).run(test_mode=True)

    assert sender.sent_to == ["+31699990000"]
    assert result["results"][0]["name"] == "Test User"


def test_test_mode_without_recipient_is_an_error(sender):
    with pytest.raises(ValueError):
        _dispatcher(FakeSleep()).run(test_mode=True)


def _app():
    app = FastAPI()
    app.include_router(reminders.router)
    return TestClient(app)


def test_route_requires_api_key():
    resp = _app().post("/send-party-reminder", json={})
    assert resp.status_code == 500
    assert "WASENDER_API_KEY" in resp.json()["detail"]


def test_route_with_nobody_approved(sender):
    resp = _app().post("/send-party-reminder")
    assert resp.status_code == 200
    assert resp.json()["sent"] == 0


def test_route_passes_options(sender, monkeypatch):
    seen = {}

    def fake_run(self, test_mode=False, delay=None):
        seen.update(test_mode=test_mode, delay=delay)
        return {"success": True, "sent": 0}

    monkeypatch.setattr(ReminderDispatcher, "run", fake_run)
    resp = _app().post("/send-party-reminder", json={"testMode": True, "delayBetweenMessages": 12})
    assert resp.status_code == 200
    assert seen == {"test_mode": True, "delay": 12.0}


def test_route_test_mode_without_recipient_is_bad_request(sender):
    resp = _app().post("/send-party-reminder", json={"testMode": True})
    assert resp.status_code == 400
