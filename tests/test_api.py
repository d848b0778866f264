"""HTTP boundary: status codes and response shapes."""
import pytest
from fastapi.testclient import TestClient

from app.core.errors import StoreUnavailableError
from app.db import InMemoryProfileStore
from app.main import create_app
from tests.conftest import make_fields


class DownStore(InMemoryProfileStore):

    def create(self, candidate):
        raise StoreUnavailableError("no primary available")

    def health_check(self):
        return False


@pytest.fixture
def client():
    with TestClient(create_app(store=InMemoryProfileStore())) as client:
        yield client


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["store"] == "connected"


def test_options(client):
    body = client.get("/api/profiles/options").json()
    assert "Computer Science" in body["majors"]
    assert body["graduation_years"][0] == 2024
    assert body["graduation_years"][-1] == 2030


def test_submit_pending_then_poll_until_matched(client):
    first = client.post("/api/profiles", json=make_fields(major="Business"))
    assert first.status_code == 201
    body = first.json()
    assert body["matched"] is False
    assert body["match"] is None
    assert "matched_with" not in body["profile"]
    profile_id = body["profile"]["id"]

    assert client.get(f"/api/profiles/{profile_id}/match").json() == {"matched": False, "match": None}

    partner_fields = make_fields(major="Business", name="Partner Person")
    second = client.post("/api/profiles", json=partner_fields).json()
    assert second["matched"] is True
    assert second["profile"]["is_matched"] is True
    assert second["match"]["email"] == body["profile"]["email"]

    polled = client.get(f"/api/profiles/{profile_id}/match").json()
    assert polled["matched"] is True
    assert polled["match"] == {
        "name": "Partner Person",
        "major": "Business",
        "graduation_year": partner_fields["graduation_year"],
        "email": partner_fields["email"],
    }


def test_partner_summary_never_leaks_identifiers(client):
    client.post("/api/profiles", json=make_fields())
    match = client.post("/api/profiles", json=make_fields()).json()["match"]

    assert set(match) == {"name", "major", "graduation_year", "email"}


def test_duplicate_returns_409(client):
    client.post("/api/profiles", json=make_fields(email="dup@university.edu"))
    response = client.post("/api/profiles", json=make_fields(email="DUP@university.edu"))

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "duplicate_profile"
    assert body["field"] == "email"


def test_validation_errors_per_field(client):
    response = client.post("/api/profiles", json=make_fields(email="nope", graduation_year=1999))

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "validation_error"
    assert set(body["fields"]) == {"email", "graduation_year"}


def test_unknown_profile_404(client):
    response = client.get("/api/profiles/does-not-exist/match")

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_store_outage_returns_503():
    with TestClient(create_app(store=DownStore())) as client:
        response = client.post("/api/profiles", json=make_fields())
        health = client.get("/health").json()

    assert response.status_code == 503
    assert response.json()["error"] == "store_unavailable"
    assert health["store"] == "disconnected"
