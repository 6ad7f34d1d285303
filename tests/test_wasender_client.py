import pytest
import requests

from rsvp import wasender_client as ws
from rsvp.config import Settings


class FakeResponse:
    def __init__(self, status_code, body=None, text="", headers=None):
        self.status_code = status_code
        self._body = body
        self.text = text
        self.headers = headers or {}

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


def test_http_post_sends_bearer_json(monkeypatch):
    captured = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        captured.update(url=url, json=json, headers=headers, timeout=timeout)
        return FakeResponse(200, {"success": True})

    monkeypatch.setattr(ws.requests, "post", fake_post)
    client = ws.WasenderClient(Settings(WASENDER_API_KEY="key-123", HTTP_TIMEOUT_SEC=7))

    assert client.send_message("31 6 12345678", "  hello  ") == {"success": True}
    assert captured["url"] == "https://wasenderapi.com/api/send-message"
    assert captured["json"] == {"to": "+31612345678", "text": "hello"}
    assert captured["headers"]["Authorization"] == "Bearer key-123"
    assert captured["timeout"] == 7


def test_http_error_exposes_body(monkeypatch):
    monkeypatch.setattr(ws.requests, "post", lambda *a, **k: FakeResponse(422, {"message": "Invalid number"}))

    with pytest.raises(ws.WasenderError) as exc:
        ws._http_post("https://example.com", {"to": "+1"}, "key", 5)

    assert exc.value.status_code == 422
    assert exc.value.body == {"message": "Invalid number"}
    assert "Invalid number" in str(exc.value)


def test_rate_limit_mentions_retry_after(monkeypatch):
    monkeypatch.setattr(
        ws.requests, "post", lambda *a, **k: FakeResponse(429, None, text="slow down", headers={"Retry-After": "30"})
    )
    with pytest.raises(ws.WasenderError) as exc:
        ws._http_post("https://example.com", {}, "key", 5)
    assert "retry_after=30" in str(exc.value)
    assert exc.value.body == "slow down"


def test_network_failure_is_wrapped(monkeypatch):
    def boom(*_a, **_k):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(ws.requests, "post", boom)
    with pytest.raises(ws.WasenderError, match="request failed"):
        ws._http_post("https://example.com", {}, "key", 5)


def test_missing_api_key_raises():
    client = ws.WasenderClient(Settings())
    assert client.configured is False
    with pytest.raises(ws.WasenderError, match="not configured"):
        client.send_message("+31612345678", "hi")


def test_dry_run_never_posts(monkeypatch):
    def fail(*_a, **_k):
        raise AssertionError("should not post")

    monkeypatch.setattr(ws, "_http_post", fail)
    result = ws.WasenderClient(Settings(WASENDER_DRY_RUN=True)).send_message("+31612345678", "hi")
    assert result["dry_run"] is True


def test_empty_text_is_rejected():
    client = ws.WasenderClient(Settings(WASENDER_API_KEY="k"))
    with pytest.raises(ws.WasenderError, match="Missing recipient or text"):
        client.send_message("+31612345678", "   ")


def test_group_endpoints(monkeypatch):
    calls = []
    monkeypatch.setattr(ws, "_http_post", lambda url, data, key, timeout: calls.append((url, data, timeout)) or {"id": "g1"})
    client = ws.WasenderClient(Settings(WASENDER_API_KEY="k", WASENDER_API_URL="https://api.test/", GROUP_TIMEOUT_SEC=30))

    client.create_group("Party", ["31612345678@s.whatsapp.net"])
    client.add_group_participants("g1@g.us", ["31687654321@s.whatsapp.net"])

    assert calls[0] == ("https://api.test/groups", {"name": "Party", "participants": ["31612345678@s.whatsapp.net"]}, 30)
    assert calls[1][0] == "https://api.test/groups/g1@g.us/participants/add"
