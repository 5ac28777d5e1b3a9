"""
Unit Tests for Health Endpoints
==============================
"""

from datetime import datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from loyalty_api.api.health_endpoints import router


@pytest.fixture
def client():
    app = FastAPI()
    app.include_router(router)
    return TestClient(app)


class TestHealthCheck:
    """Test cases for GET /health."""

    def test_health_ok(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"status", "timestamp"}
        assert body["status"] == "ok"

    def test_timestamp_is_iso(self, client):
        timestamp = client.get("/health").json()["timestamp"]
        assert datetime.fromisoformat(timestamp.replace("Z", "+00:00"))

    def test_no_authentication_needed(self, client):
        response = client.get("/health", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 200
