from fastapi.testclient import TestClient

from rsvp.main import app


def test_ping():
    resp = TestClient(app).get("/ping")
    assert resp.status_code == 200
    assert resp.json()["pong"] is True


def test_health_reports_memory_store_and_missing_key():
    with TestClient(app) as client:
        data = client.get("/health").json()
    assert data["ok"] is True
    assert data["store"] == "memory"
    assert data["missing"] == ["WASENDER_API_KEY"]


def test_all_routes_are_mounted():
    paths = set(app.openapi()["paths"])
    for path in [
        "/whatsapp-webhook",
        "/send-party-reminder",
        "/send-whatsapp-notification",
        "/create-whatsapp-group",
        "/rsvps",
        "/admin/rsvps",
        "/admin/rsvps/{rsvp_id}/status",
        "/admin/guests/{guest_id}/status",
        "/admin/rsvps/{rsvp_id}/guests",
        "/calendar.ics",
        "/calendar/google",
    ]:
        assert path in paths


def test_cors_preflight():
    resp = TestClient(app).options(
        "/whatsapp-webhook",
        headers={"Origin": "https://party.example", "Access-Control-Request-Method": "POST"},
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"
