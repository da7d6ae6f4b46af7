"""
Tests for the HTTP API: envelopes, authentication and error mapping
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.db import Base, get_db
from app.models import User, Venue
from app.services.identity import JwtIdentity
from app.utils.security import rate_limiter
from main import app

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_api.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

NIGHT = "2025-03-01"

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

def bearer(uid: str, email: str = None) -> dict:
    token = JwtIdentity(settings.SESSION_JWT_SECRET, settings.SESSION_JWT_AUDIENCE).issue_session(uid, email=email)
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def client():
    """Test client on a fresh database"""
    Base.metadata.create_all(bind=engine)
    rate_limiter.clear()
    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def seeded(client):
    """Venue with an admin, door staff and a DJ"""
    db = TestingSessionLocal()
    venue = Venue(name="Octagon", category="club")
    db.add(venue)
    db.flush()
    db.add_all([
        User(auth_uid="admin", venue_id=venue.id, email="admin@octagon.kr", name="Admin", role="venue_admin", guest_limit=999),
        User(auth_uid="door", venue_id=venue.id, email="door@octagon.kr", name="Door", role="door"),
        User(auth_uid="dj", venue_id=venue.id, email="dj@octagon.kr", name="DJ", role="dj", guest_limit=1),
    ])
    db.commit()
    venue_id = venue.id
    db.close()
    return {
        "venue_id": venue_id,
        "admin": bearer("admin"),
        "door": bearer("door"),
        "dj": bearer("dj"),
    }

def create_link(client, seeded, max_guests=2):
    response = client.post(
        f"/admin/venues/{seeded['venue_id']}/links",
        json={"dj_name": "dj soda", "event": "opening", "date": NIGHT, "max_guests": max_guests},
        headers=seeded["admin"]
    )
    assert response.status_code == 201
    return response.json()["data"]

class TestPublicRoutes:
    """Test unauthenticated endpoints"""

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_business_date(self, client):
        data = client.get("/business-date").json()["data"]
        assert date.fromisoformat(data["date"])
        assert data["display"] == data["date"].replace("-", ".")
        assert data["day_change_hour"] == settings.DAY_CHANGE_HOUR

class TestLinkHolderRoutes:
    """Test the anonymous link flow"""

    def test_register_until_full(self, client, seeded):
        link = create_link(client, seeded)
        token = link["token"]
        assert link["remaining"] == 2
        assert link["url"].endswith(f"/guest?token={token}")

        for name in ("kim", "lee"):
            response = client.post(f"/guest/links/{token}/guests", json={"guest_name": name, "date": NIGHT})
            assert response.status_code == 201

        response = client.post(f"/guest/links/{token}/guests", json={"guest_name": "park", "date": NIGHT})
        assert response.status_code == 403
        assert response.json()["error_code"] == "limit_reached"
        assert response.json()["success"] is False

        response = client.get(f"/guest/links/{token}")
        assert response.status_code == 403

    def test_validate_link(self, client, seeded):
        token = create_link(client, seeded)["token"]
        client.post(f"/guest/links/{token}/guests", json={"guest_name": "kim", "date": NIGHT})

        data = client.get(f"/guest/links/{token}").json()["data"]
        assert data["venue"]["name"] == "Octagon"
        assert data["remaining"] == 1
        assert [g["name"] for g in data["guests"]] == ["KIM"]

    def test_invalid_token(self, client):
        response = client.get("/guest/links/NOPE")
        assert response.status_code == 404
        assert response.json()["error_code"] == "not_found"

    def test_date_mismatch(self, client, seeded):
        token = create_link(client, seeded)["token"]
        response = client.post(f"/guest/links/{token}/guests", json={"guest_name": "kim", "date": "2025-03-02"})
        assert response.status_code == 400
        assert response.json()["error_code"] == "date_mismatch"

    def test_remove_guest(self, client, seeded):
        token = create_link(client, seeded)["token"]
        guest = client.post(f"/guest/links/{token}/guests", json={"guest_name": "kim", "date": NIGHT}).json()["data"]

        response = client.delete(f"/guest/links/{token}/guests/{guest['id']}")
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "deleted"

        data = client.get(f"/guest/links/{token}").json()["data"]
        assert data["guests"] == []
        assert data["remaining"] == 1

    def test_rate_limit(self, client, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_PER_MINUTE", 2)
        client.get("/guest/links/NOPE")
        client.get("/guest/links/NOPE")
        response = client.get("/guest/links/NOPE")
        assert response.status_code == 429

class TestStaffRoutes:
    """Test authenticated guest list operations"""

    def test_requires_session(self, client, seeded):
        response = client.get(f"/staff/venues/{seeded['venue_id']}/guests")
        assert response.status_code == 401
        assert response.json()["error_code"] == "unauthorized"

    def test_rejects_bad_token(self, client, seeded):
        response = client.get("/staff/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_me(self, client, seeded):
        data = client.get("/staff/me", headers=seeded["door"]).json()["data"]
        assert data["role"] == "door"

    def test_check_in_flow(self, client, seeded):
        venue_id = seeded["venue_id"]
        created = client.post(
            f"/staff/venues/{venue_id}/guests", json={"name": "kim", "date": NIGHT}, headers=seeded["door"]
        ).json()["data"]

        checked = client.post(f"/staff/guests/{created['id']}/check-in", headers=seeded["door"]).json()["data"]
        assert checked["status"] == "checked"
        assert checked["check_in_time"] is not None

        undone = client.post(f"/staff/guests/{created['id']}/undo-check-in", headers=seeded["door"]).json()["data"]
        assert undone["status"] == "pending"
        assert undone["check_in_time"] is None

        listing = client.get(
            f"/staff/venues/{venue_id}/guests", params={"date": NIGHT, "sort": "name"}, headers=seeded["door"]
        ).json()["data"]
        assert listing["counts"] == {"total": 1, "pending": 1, "checked": 0}
        assert listing["sort"] == "name"

    def test_dj_cannot_check_in(self, client, seeded):
        created = client.post(
            f"/staff/venues/{seeded['venue_id']}/guests", json={"name": "kim", "date": NIGHT}, headers=seeded["dj"]
        ).json()["data"]

        response = client.post(f"/staff/guests/{created['id']}/check-in", headers=seeded["dj"])
        assert response.status_code == 403
        assert response.json()["error_code"] == "forbidden"

    def test_dj_quota(self, client, seeded):
        url = f"/staff/venues/{seeded['venue_id']}/guests"
        assert client.post(url, json={"name": "a", "date": NIGHT}, headers=seeded["dj"]).status_code == 201
        response = client.post(url, json={"name": "b", "date": NIGHT}, headers=seeded["dj"])
        assert response.status_code == 403
        assert response.json()["error_code"] == "limit_reached"

    def test_deleted_guest_not_found(self, client, seeded):
        created = client.post(
            f"/staff/venues/{seeded['venue_id']}/guests", json={"name": "kim", "date": NIGHT}, headers=seeded["door"]
        ).json()["data"]
        client.delete(f"/staff/guests/{created['id']}", headers=seeded["door"])

        response = client.post(f"/staff/guests/{created['id']}/check-in", headers=seeded["door"])
        assert response.status_code == 404

    def test_invalid_selector(self, client, seeded):
        response = client.get(
            f"/staff/venues/{seeded['venue_id']}/guests", params={"selector": "ext:x"}, headers=seeded["door"]
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "validation_error"

class TestAdminRoutes:
    """Test administration endpoints"""

    def test_door_cannot_create_links(self, client, seeded):
        response = client.post(
            f"/admin/venues/{seeded['venue_id']}/links",
            json={"dj_name": "x", "event": "y", "date": NIGHT, "max_guests": 2},
            headers=seeded["door"]
        )
        assert response.status_code == 403

    def test_link_qr(self, client, seeded):
        link = create_link(client, seeded)
        response = client.get(f"/admin/links/{link['id']}/qr.png", headers=seeded["admin"])
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")

    def test_deactivate_link(self, client, seeded):
        link = create_link(client, seeded)
        response = client.post(f"/admin/links/{link['id']}/deactivate", headers=seeded["admin"])
        assert response.json()["data"]["active"] is False
        assert client.get(f"/guest/links/{link['token']}").status_code == 404

    def test_export(self, client, seeded):
        client.post(
            f"/staff/venues/{seeded['venue_id']}/guests", json={"name": "kim", "date": NIGHT}, headers=seeded["door"]
        )
        response = client.get(
            f"/admin/venues/{seeded['venue_id']}/guests/export.xlsx", params={"date": NIGHT}, headers=seeded["admin"]
        )
        assert response.status_code == 200
        assert response.content[:2] == b"PK"

    def test_create_user_with_password(self, client, seeded):
        response = client.post(
            "/admin/users",
            json={"email": "new.dj@octagon.kr", "name": "New DJ", "role": "dj",
                  "venue_id": seeded["venue_id"], "password": "secret12"},
            headers=seeded["admin"]
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["user"]["guest_limit"] == 20
        assert data["invite_link"] is None

        # Invited accounts bind on their first session
        me = client.get("/staff/me", headers=bearer("fresh-uid", email="new.dj@octagon.kr"))
        assert me.status_code == 200
        assert me.json()["data"]["email"] == "new.dj@octagon.kr"
