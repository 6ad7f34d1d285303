import os
import sys

# Ensure project root is in sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from rsvp.services import reset_state


@pytest.fixture(autouse=True)
def _reset_datastore():
    for key in [
        "AIRTABLE_API_KEY",
        "RSVP_BASE",
        "AIRTABLE_RSVP_BASE_ID",
        "WASENDER_API_KEY",
        "WASENDER_DRY_RUN",
        "WEBHOOK_SECRET",
        "ENFORCE_WEBHOOK_SECRET",
        "PHONE_MATCH_STRICT",
        "ADMIN_TOKEN",
        "TEST_RECIPIENT",
        "REMINDER_DELAY_SEC",
    ]:
        os.environ.pop(key, None)
    os.environ["RSVP_FORCE_IN_MEMORY"] = "1"
    reset_state()
    yield
    reset_state()


class FakeSender:
    """Stands in for rsvp.wasender_client._http_post and records every call."""

    def __init__(self, fail_for=()):
        self.calls = []
        self.fail_for = set(fail_for)

    def __call__(self, url, data, api_key, timeout):
        from rsvp.wasender_client import WasenderError

        self.calls.append({"url": url, "data": data, "api_key": api_key, "timeout": timeout})
        if data.get("to") in self.fail_for:
            raise WasenderError("WasenderAPI HTTP 500: boom", status_code=500, body={"message": "boom"}, payload=data)
        return {"success": True, "data": {"msgId": len(self.calls)}}

    @property
    def sent_to(self):
        return [c["data"].get("to") for c in self.calls]


@pytest.fixture
def sender(monkeypatch):
    from rsvp import wasender_client

    monkeypatch.setenv("WASENDER_API_KEY", "test-key")
    reset_state()
    fake = FakeSender()
    monkeypatch.setattr(wasender_client, "_http_post", fake)
    return fake
