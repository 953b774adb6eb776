from fastapi.testclient import TestClient

from app import webhook
from app.repositories.supabase_repository import SupabaseClient, SupabaseLeadRepository

from fakes import FakeResponse, FakeSession


def test_webhook_creates_and_updates(webhook_client, typebot_payload, repository):
    first = webhook_client.post("/webhook/typebot", json=typebot_payload)
    assert first.status_code == 200
    body = first.json()
    assert body["success"] is True
    assert body["isNew"] is True
    assert first.headers["access-control-allow-origin"] == "*"

    second = webhook_client.post("/", json=typebot_payload).json()
    assert second == {"success": True, "leadId": body["leadId"], "isNew": False}

    lead = repository.get_lead(body["leadId"])
    assert lead.name == "Maria Souza"
    assert lead.status == "novo"


def test_webhook_preflight(webhook_client):
    response = webhook_client.options("/")
    assert response.status_code == 200
    assert response.text == "ok"
    assert response.headers["access-control-allow-origin"] == "*"
    assert "apikey" in response.headers["access-control-allow-headers"]


def test_webhook_browser_preflight_any_origin(webhook_client):
    response = webhook_client.options(
        "/webhook/typebot",
        headers={"Origin": "https://typebot.example.com", "Access-Control-Request-Method": "POST"},
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_webhook_rejects_non_object_body(webhook_client):
    response = webhook_client.post("/", json=["not", "an", "object"])
    assert response.status_code == 500
    assert "error" in response.json()


def test_webhook_invalid_json(webhook_client):
    response = webhook_client.post("/", content=b"{broken", headers={"content-type": "application/json"})
    assert response.status_code == 500
    assert "error" in response.json()


def test_webhook_store_hiding_inserted_rows_returns_json_error(settings, typebot_payload):
    def handler(method, url, kwargs):
        # inserts succeed but row-level security returns an empty representation
        return FakeResponse(201 if method == "POST" else 200, [])

    def factory():
        client = SupabaseClient("https://project.supabase.co", "anon-key", session=FakeSession(handler))
        return SupabaseLeadRepository(client)

    app = webhook.create_webhook_app(settings, repository_factory=factory)
    with TestClient(app) as c:
        response = c.post("/webhook/typebot", json=typebot_payload)

    assert response.status_code == 500
    assert "returned no rows" in response.json()["error"]
    assert response.headers["access-control-allow-origin"] == "*"


def test_webhook_unexpected_error_returns_json_error(webhook_client, typebot_payload, monkeypatch):
    def broken(service, payload):
        raise KeyError("id")

    monkeypatch.setattr(webhook, "sync_webhook_payload", broken)

    response = webhook_client.post("/", json=typebot_payload)
    assert response.status_code == 500
    assert response.json()["error"]
