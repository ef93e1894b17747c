from fastapi.testclient import TestClient


def test_health(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200

    data = r.json()
    assert data["status"] in ("healthy", "degraded")
    assert data["version"] == "1.0.0"
    assert "sqlite" in data["databases"]


def test_lifespan_creates_tables():
    from legianos.main import app

    with TestClient(app) as client:
        assert client.get("/api/goals/templates").status_code == 200
