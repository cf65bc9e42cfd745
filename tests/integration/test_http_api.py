"""
Integration tests for the HTTP API.

Runs the FastAPI app in-process against a temporary store file.
"""

import os
import tempfile

import pytest
from fastapi.testclient import TestClient

from pharmaledger.api import Settings, create_app
from pharmaledger.config import ServerConfig, StorageConfig


class TestHttpApi:
    """Tests for the /v1 endpoints."""

    @pytest.fixture
    def db_path(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            yield os.path.join(tmpdir, "ledger.db")

    @pytest.fixture
    def client(self, db_path):
        config = ServerConfig(storage=StorageConfig(db_path=db_path, wal_mode=False))
        app = create_app(config, Settings(cors_origins=["http://localhost:3000"]))
        with TestClient(app) as client:
            yield client

    def _seed(self, client) -> dict:
        admin = client.post("/v1/users", json={"username": "alice", "role": "Admin"}).json()
        pharmaceutical = client.post(
            "/v1/pharmaceuticals",
            json={
                "user_id": admin["id"],
                "name": "Aspirin",
                "manufacturer": "Acme",
                "batch_number": "B1",
                "expiry_date": 999,
            },
        ).json()
        event = client.post(
            "/v1/events",
            json={
                "pharmaceutical_id": pharmaceutical["id"],
                "event_type": "Production",
                "location": "Plant A",
                "participant": "bob",
            },
        ).json()
        return {"admin": admin, "pharmaceutical": pharmaceutical, "event": event}

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["last_id"] == 0

    def test_reference_scenario(self, client):
        seeded = self._seed(client)

        assert seeded["admin"] == {"id": 1, "username": "alice", "role": "Admin"}
        assert seeded["pharmaceutical"]["id"] == 2
        assert seeded["event"]["id"] == 3

        reward = client.get("/v1/rewards/4")
        assert reward.status_code == 200
        assert reward.json() == {
            "id": 4,
            "participant": "bob",
            "points": 10,
            "reward_type": "SupplyChainEvent",
        }

        history = client.get("/v1/pharmaceuticals/2/history")
        assert [e["id"] for e in history.json()] == [3]

        assert client.delete("/v1/pharmaceuticals/2").status_code == 204
        assert client.get("/v1/pharmaceuticals/2").status_code == 404
        assert client.get("/v1/events/3").status_code == 200

    def test_create_user_empty_username(self, client):
        response = client.post("/v1/users", json={"username": "", "role": "Viewer"})

        assert response.status_code == 400
        assert response.json() == {"error": "Username is required", "error_code": "INVALID_INPUT"}

    def test_oversized_record_is_rejected(self, client):
        response = client.post("/v1/users", json={"username": "u" * 600, "role": "Viewer"})

        assert response.status_code == 413
        assert response.json()["error_code"] == "RECORD_TOO_LARGE"
        assert client.get("/health").json()["last_id"] == 0

    def test_unknown_role_is_rejected(self, client):
        response = client.post("/v1/users", json={"username": "x", "role": "Root"})

        assert response.status_code == 422

    def test_non_admin_cannot_create_pharmaceutical(self, client):
        viewer = client.post("/v1/users", json={"username": "v", "role": "Viewer"}).json()

        response = client.post(
            "/v1/pharmaceuticals",
            json={
                "user_id": viewer["id"],
                "name": "Aspirin",
                "manufacturer": "Acme",
                "batch_number": "B1",
                "expiry_date": 999,
            },
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_event_for_missing_pharmaceutical(self, client):
        response = client.post(
            "/v1/events",
            json={"pharmaceutical_id": 77, "location": "X", "participant": "p"},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_INPUT"

    def test_users_by_role_and_role_update(self, client):
        user = client.post("/v1/users", json={"username": "m", "role": "Manufacturer"}).json()

        assert client.get("/v1/users", params={"role": "Distributor"}).status_code == 404

        updated = client.patch(f"/v1/users/{user['id']}/role", json={"role": "Distributor"})
        assert updated.json()["role"] == "Distributor"

        listed = client.get("/v1/users", params={"role": "Distributor"})
        assert [u["username"] for u in listed.json()] == ["m"]

        assert client.patch("/v1/users/999/role", json={"role": "Admin"}).status_code == 404

    def test_empty_lists_are_not_found(self, client):
        for path in ("/v1/pharmaceuticals", "/v1/events", "/v1/rewards"):
            response = client.get(path)
            assert response.status_code == 404
            assert response.json()["error_code"] == "NOT_FOUND"

    def test_rewards_crud(self, client):
        created = client.post(
            "/v1/rewards", json={"participant": "erin", "points": 5, "reward_type": "Other"}
        )
        assert created.status_code == 201
        reward_id = created.json()["id"]

        assert client.get("/v1/rewards").json() == [created.json()]
        assert client.delete(f"/v1/rewards/{reward_id}").status_code == 204
        assert client.delete(f"/v1/rewards/{reward_id}").status_code == 404

    def test_zero_points_rejected(self, client):
        response = client.post("/v1/rewards", json={"participant": "erin", "points": 0})

        assert response.status_code == 400

    def test_delete_user_and_event(self, client):
        seeded = self._seed(client)

        assert client.delete(f"/v1/users/{seeded['admin']['id']}").status_code == 204
        assert client.get(f"/v1/users/{seeded['admin']['id']}").status_code == 404
        assert client.delete(f"/v1/events/{seeded['event']['id']}").status_code == 204
        assert client.get("/v1/events").status_code == 404

    def test_state_persists_across_app_restarts(self, db_path):
        config = ServerConfig(storage=StorageConfig(db_path=db_path, wal_mode=False))

        with TestClient(create_app(config, Settings())) as client:
            self._seed(client)

        with TestClient(create_app(config, Settings())) as client:
            assert client.get("/health").json()["last_id"] == 4
            assert client.get("/v1/users/1").json()["username"] == "alice"
