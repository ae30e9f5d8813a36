import uuid

import pytest
from fastapi.testclient import TestClient

from shopper import main
from shopper.main import app


@pytest.fixture
def client(service):
    app.dependency_overrides[main.get_conversation_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def post(client, conversation_id, kind="message", text=None, **sender):
    body = {"kind": kind, "text": text}
    if sender:
        body["sender"] = sender
    return client.post(f"/conversations/{conversation_id}/events", json=body)


def test_full_shopping_session(client, cart_store):
    conversation_id = f"conv-{uuid.uuid4().hex}"

    first = post(client, conversation_id, kind="conversation-start", user_id="7", cart_id=3, name="Dumi")
    assert first.status_code == 200
    assert first.json()["state"] == "CHOOSE_CATEGORY"
    assert "Hello, 'Dumi'" in first.json()["message"]

    listing = post(client, conversation_id, text="1").json()
    assert listing["state"] == "SELECTED_CATEGORY_ITEM"
    assert "11072088" in listing["message"]

    chosen = post(client, conversation_id, text="11072088").json()
    assert chosen["state"] == "CHOOSE_RECOMMENDED_ITEM"

    recommended = post(client, conversation_id, text="OK").json()
    assert recommended["state"] == "SELECTED_RECOMMENDED_ITEM"
    assert "Johnnie Walker" in recommended["message"]

    post(client, conversation_id, text="20015530")
    post(client, conversation_id, text="no")
    closing = post(client, conversation_id, text="none").json()
    assert closing["state"] == "END"

    done = post(client, conversation_id, text="OK").json()
    assert done["persisted_items"] == 2
    assert done["cart_error"] is False
    assert cart_store.cart_status(3) == "COMPLETED"

    snapshot = client.get(f"/conversations/{conversation_id}")
    assert snapshot.status_code == 200
    assert snapshot.json()["turn_state"] == "END"
    assert snapshot.json()["cart_closed"] is True


def test_invalid_item_id_message(client):
    conversation_id = f"conv-{uuid.uuid4().hex}"
    post(client, conversation_id, kind="conversation-start")
    post(client, conversation_id, text="1")

    response = post(client, conversation_id, text="not-an-item").json()

    assert response["state"] == "CHOOSE_CATEGORY_ITEM"
    assert "invalid item" in response["message"]


def test_unknown_event_kind_is_rejected(client):
    response = client.post("/conversations/abc/events", json={"kind": "typing"})

    assert response.status_code == 422


def test_unknown_conversation_snapshot_is_404(client):
    assert client.get("/conversations/does-not-exist").status_code == 404


def test_conversation_listing(client):
    post(client, "listed-conv", kind="conversation-start")

    response = client.get("/conversations")

    assert response.status_code == 200
    assert "listed-conv" in response.json()


def test_health_ready_and_metrics(client):
    assert client.get("/health").json() == {"status": "ok"}

    ready = client.get("/ready").json()
    assert ready["status"] == "ok"
    assert ready["components"]["state_db"]["ok"] is True

    post(client, "metrics-conv", kind="conversation-start")
    metrics = client.get("/metrics").json()
    assert metrics["total_turns"] >= 1
    assert "conversation-start" in metrics["event_kinds"]


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "rid-123"})

    assert response.headers["X-Request-ID"] == "rid-123"
