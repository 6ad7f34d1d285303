import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from rsvp import groups
from rsvp.config import Settings
from rsvp.groups import GroupError, create_party_group, to_jid
from rsvp.wasender_client import WasenderClient, WasenderError


class RecordingClient(WasenderClient):
    def __init__(self, create_result=None, failing_batches=()):
        super().__init__(Settings(WASENDER_API_KEY="k", GROUP_BATCH_SIZE=2, GROUP_BATCH_DELAY_SEC=0.5))
        self.create_result = create_result if create_result is not None else {"id": "120363@g.us"}
        self.failing_batches = set(failing_batches)
        self.created = []
        self.added = []

    def create_group(self, name, participants):
        self.created.append((name, participants))
        return self.create_result

    def add_group_participants(self, group_jid, participants):
        self.added.append((group_jid, participants))
        if len(self.added) in self.failing_batches:
            raise WasenderError("WasenderAPI HTTP 500", status_code=500)
        return {"success": True}


def _people(n):
    return [{"name": f"P{i}", "phone": f"+31 6 1234567{i}"} for i in range(n)]


def test_to_jid():
    assert to_jid("+31 6 12345678") == "31612345678@s.whatsapp.net"
    with pytest.raises(ValueError, match="Invalid phone number"):
        to_jid("+31 6 123", "Short")


def test_creates_with_first_then_batches_the_rest():
    client = RecordingClient()
    pauses = []

    result = create_party_group(client, _people(6), sleep=pauses.append)

    assert client.created == [("Toby's Birthday Party Group", ["31612345670@s.whatsapp.net"])]
    assert [len(batch) for _, batch in client.added] == [2, 2, 1]
    assert all(jid == "120363@g.us" for jid, _ in client.added)
    assert pauses == [0.5, 0.5]
    assert result["groupId"] == "120363@g.us"
    assert result["totalParticipants"] == 6
    assert result["participantsAdded"] == "1 initially, 5 added in batches"


def test_existing_group_adds_everyone():
    client = RecordingClient()
    result = create_party_group(client, _people(3), group_name="Crew", group_jid="abc@g.us", sleep=lambda _s: None)

    assert client.created == []
    assert [p for _, batch in client.added for p in batch] == [to_jid(p["phone"]) for p in _people(3)]
    assert result["message"] == "Participants added to existing group successfully"
    assert result["groupName"] == "Crew"


def test_failed_batch_is_reported_and_later_batches_continue():
    client = RecordingClient(failing_batches={1})
    result = create_party_group(client, _people(5), sleep=lambda _s: None)

    assert len(client.added) == 2
    assert result["failedBatches"] == 1
    assert [b["success"] for b in result["batches"]] == [False, True]


def test_jid_read_from_nested_data():
    client = RecordingClient(create_result={"success": True, "data": {"jid": "nested@g.us"}})
    assert create_party_group(client, _people(1), sleep=lambda _s: None)["groupId"] == "nested@g.us"


def test_missing_group_id_raises():
    client = RecordingClient(create_result={"success": True})
    with pytest.raises(GroupError):
        create_party_group(client, _people(2), sleep=lambda _s: None)


def test_no_participants():
    with pytest.raises(ValueError):
        create_party_group(RecordingClient(), [])


def _app():
    app = FastAPI()
    app.include_router(groups.router)
    return TestClient(app)


def test_route_rejects_empty_participants(sender):
    assert _app().post("/create-whatsapp-group", json={"participants": []}).status_code == 400


def test_route_rejects_bad_phone(sender):
    resp = _app().post("/create-whatsapp-group", json={"participants": [{"name": "X", "phone": "123"}]})
    assert resp.status_code == 400
    assert "Invalid phone number" in resp.json()["detail"]


def test_route_propagates_provider_status(monkeypatch):
    from rsvp import wasender_client

    def reject(url, data, api_key, timeout):
        raise WasenderError("WasenderAPI HTTP 403", status_code=403, body={"message": "not allowed"})

    monkeypatch.setenv("WASENDER_API_KEY", "k")
    monkeypatch.setattr(wasender_client, "_http_post", reject)

    resp = _app().post("/create-whatsapp-group", json={"participants": _people(1)})

    assert resp.status_code == 403
    assert resp.json()["details"] == {"message": "not allowed"}


def test_route_creates_group(monkeypatch):
    from rsvp import wasender_client

    calls = []

    def accept(url, data, api_key, timeout):
        calls.append((url, data))
        return {"success": True, "data": {"id": "party@g.us"}}

    monkeypatch.setenv("WASENDER_API_KEY", "k")
    monkeypatch.setattr(wasender_client, "_http_post", accept)

    resp = _app().post("/create-whatsapp-group", json={"participants": _people(3), "groupName": "Party"})

    assert resp.status_code == 200
    assert resp.json()["groupId"] == "party@g.us"
    assert calls[0][0].endswith("/groups")
    assert calls[0][1]["name"] == "Party"
    assert calls[1][0].endswith("/groups/party@g.us/participants/add")
