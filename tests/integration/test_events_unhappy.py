from fastapi.testclient import TestClient

from shopper import main
from shopper.core.errors import StateStoreError
from shopper.dialog.service import ConversationService
from shopper.main import app
from shopper.memory.store import StateStore


class BrokenStateStore(StateStore):
    def load(self, conversation_id):
        raise StateStoreError("disk on fire")

    def save(self, conversation_id, state):
        raise StateStoreError("disk on fire")

    def delete(self, conversation_id):
        return None

    def iter_conversations(self):
        return []


def test_state_store_failure_returns_generic_500(machine):
    app.dependency_overrides[main.get_conversation_service] = lambda: ConversationService(BrokenStateStore(), machine)
    try:
        client = TestClient(app, raise_server_exceptions=False)
        response = client.post("/conversations/broken/events", json={"kind": "message", "text": "1"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error"] == "internal_error"


def test_500_body_carries_the_request_id(machine):
    app.dependency_overrides[main.get_conversation_service] = lambda: ConversationService(BrokenStateStore(), machine)
    try:
        client = TestClient(app, raise_server_exceptions=False)
        response = client.post(
            "/conversations/broken/events",
            json={"kind": "message", "text": "1"},
            headers={"X-Request-ID": "rid-500"},
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["request_id"] == "rid-500"
    assert "disk on fire" not in response.text


def test_missing_kind_is_rejected():
    client = TestClient(app)

    response = client.post("/conversations/abc/events", json={"text": "1"})

    assert response.status_code == 422
