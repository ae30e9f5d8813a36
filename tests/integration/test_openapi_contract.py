from fastapi.testclient import TestClient

from shopper.main import app


client = TestClient(app)


def test_openapi_contains_expected_paths():
    response = client.get("/openapi.json")
    assert response.status_code == 200
    schema = response.json()
    paths = schema.get("paths", {})

    expected = [
        "/conversations/{conversation_id}/events",
        "/conversations/{conversation_id}",
        "/conversations",
        "/health",
        "/ready",
        "/metrics",
    ]

    for path in expected:
        assert path in paths, f"Missing {path} from OpenAPI paths"

    assert "post" in paths["/conversations/{conversation_id}/events"]
    assert "get" in paths["/conversations/{conversation_id}"]
