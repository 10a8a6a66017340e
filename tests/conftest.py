import itertools
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from petsitters_api.app.core.config import settings
from petsitters_api.app.core.db import init_db
from petsitters_api.app.main import app

API = "/api/v1"


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def future(hours: float) -> str:
    return (datetime.now(timezone.utc) + timedelta(hours=hours)).isoformat()


@pytest.fixture(autouse=True)
def temp_database(tmp_path, monkeypatch):
    """Every test runs against its own freshly migrated SQLite file."""
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "petsitters_test.db"))
    init_db()
    yield


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register_user(client):
    counter = itertools.count(1)

    def _register(role: str = "client", **overrides) -> dict:
        n = next(counter)
        payload = {
            "name": f"{role.title()} {n}",
            "email": f"{role}{n}@example.com",
            "password": "password123",
            "phone": "+79000000000",
            "role": role,
        }
        payload.update(overrides)
        response = client.post(f"{API}/auth/register", json=payload)
        assert response.status_code == 201, response.text
        body = response.json()
        return {
            "id": body["user"]["id"],
            "email": body["user"]["email"],
            "token": body["access_token"],
            "headers": auth_headers(body["access_token"]),
        }

    return _register


@pytest.fixture
def create_pet(client):
    def _create(owner: dict, **overrides) -> dict:
        payload = {
            "name": "Rex",
            "type": "dog",
            "breed": "Labrador",
            "age": 3,
            "size": "medium",
        }
        payload.update(overrides)
        response = client.post(f"{API}/pets", json=payload, headers=owner["headers"])
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def create_request(client):
    def _create(owner: dict, pet_id: int, **overrides) -> dict:
        payload = {
            "pet_id": pet_id,
            "service_type": "walking",
            "start_date": future(24),
            "end_date": future(26),
            "address": "1 Example St",
            "price": 500,
        }
        payload.update(overrides)
        response = client.post(f"{API}/requests", json=payload, headers=owner["headers"])
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def completed_request(client, register_user, create_pet, create_request):
    """Build a client, a petsitter and a request the petsitter has completed."""

    def _build(owner: dict = None, petsitter: dict = None) -> dict:
        owner = owner or register_user("client")
        petsitter = petsitter or register_user("petsitter")
        pet = create_pet(owner)
        request = create_request(owner, pet["id"])
        response = client.post(f"{API}/requests/{request['id']}/accept", headers=petsitter["headers"])
        assert response.status_code == 200, response.text
        for target in ("in_progress", "completed"):
            response = client.patch(
                f"{API}/requests/{request['id']}/status",
                json={"status": target},
                headers=petsitter["headers"],
            )
            assert response.status_code == 200, response.text
        return {"owner": owner, "petsitter": petsitter, "pet": pet, "request": response.json()}

    return _build
