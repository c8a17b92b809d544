"""
User service API tests - registration, login, verification, logout and
profile endpoints.
"""

from datetime import datetime, timedelta

import pytest

from taskhub.models import UserSession
from taskhub.models.session import find_by_token

pytestmark = pytest.mark.user_service

REGISTRATION = {
    "name": "Ada Lovelace",
    "email": "Ada@Example.com",
    "password": "password123",
    "password_confirmation": "password123",
}


def register(user_client, **overrides):
    return user_client.post("/api/v1/auth/register", json={**REGISTRATION, **overrides})


def test_register_signs_user_in(user_client):
    response = register(user_client)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["name"] == "Ada Lovelace"
    assert "password_hash" not in body["user"]
    assert response.cookies.get("session_token") == body["session_token"]


def test_register_reports_every_problem(user_client):
    response = user_client.post("/api/v1/auth/register", json={"email": "not-an-email", "password": "short"})

    assert response.status_code == 422
    errors = response.json()["errors"]
    assert "Email is invalid" in errors
    assert "Name can't be blank" in errors
    assert "Password is too short (minimum is 8 characters)" in errors


def test_register_duplicate_email_is_case_insensitive(user_client):
    register(user_client)

    response = register(user_client, email="ADA@example.com")

    assert response.status_code == 422
    assert response.json()["errors"] == ["Email has already been taken"]


def test_register_confirmation_mismatch(user_client):
    response = register(user_client, password_confirmation="different123")

    assert response.status_code == 422
    assert response.json()["errors"] == ["Password confirmation doesn't match Password"]


def test_login_replaces_previous_sessions(user_client, db):
    # Arrange
    first_token = register(user_client).json()["session_token"]

    # Act
    response = user_client.post("/api/v1/auth/login", json={"email": "ada@example.com", "password": "password123"})

    # Assert
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["session_token"] != first_token
    assert response.cookies.get("session_token") == body["session_token"]
    assert "password_hash" not in body["user"]
    assert find_by_token(db, first_token) is None
    assert find_by_token(db, body["session_token"]) is not None


@pytest.mark.parametrize("email, password", [
    ("ada@example.com", "wrong-password"),
    ("nobody@example.com", "password123"),
])
def test_login_rejects_bad_credentials(user_client, email, password):
    register(user_client)

    response = user_client.post("/api/v1/auth/login", json={"email": email, "password": password})

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Invalid email or password"}


def test_verify_returns_identity_and_renews_session(user_client, db, make_user):
    # Arrange
    user, user_session = make_user()
    user_session.expires_at = datetime.utcnow() + timedelta(minutes=5)
    db.commit()

    # Act
    response = user_client.get("/api/v1/auth/verify", headers={"Authorization": f"Bearer {user_session.token}"})

    # Assert
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["user"]["id"] == user.id
    assert body["user"]["email"] == "ada@example.com"
    db.expire_all()
    assert find_by_token(db, user_session.token).expires_at > datetime.utcnow() + timedelta(hours=23)


def test_verify_accepts_cookie(user_client):
    """The client keeps the cookie set by registration and sends no header"""
    user_id = register(user_client).json()["user"]["id"]

    response = user_client.get("/api/v1/auth/verify")

    assert response.status_code == 200
    assert response.json()["user"]["id"] == user_id


def test_verify_without_token(user_client):
    response = user_client.get("/api/v1/auth/verify")

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "No session token provided"}


def test_verify_unknown_token(user_client):
    response = user_client.get("/api/v1/auth/verify", headers={"Authorization": "Bearer not-a-session"})

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid session token"


def test_verify_expired_session_is_deleted(user_client, db, make_user):
    # Arrange
    _, user_session = make_user()
    token = user_session.token
    user_session.expires_at = datetime.utcnow() - timedelta(seconds=1)
    db.commit()

    # Act
    response = user_client.get("/api/v1/auth/verify", headers={"Authorization": f"Bearer {token}"})

    # Assert
    assert response.status_code == 401
    assert response.json()["error"] == "Session expired"
    db.expire_all()
    assert db.query(UserSession).filter(UserSession.token == token).count() == 0

    again = user_client.get("/api/v1/auth/verify", headers={"Authorization": f"Bearer {token}"})
    assert again.json()["error"] == "Invalid session token"


def test_logout_destroys_session(user_client, db):
    token = register(user_client).json()["session_token"]

    response = user_client.post("/api/v1/auth/logout", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Logged out successfully"}
    assert find_by_token(db, token) is None

    again = user_client.get("/api/v1/auth/verify", headers={"Authorization": f"Bearer {token}"})
    assert again.status_code == 401


def test_profile_roundtrip(user_client, make_user):
    _, user_session = make_user()
    headers = {"Authorization": f"Bearer {user_session.token}"}

    response = user_client.put("/api/v1/users/profile", json={"name": "Countess Ada"}, headers=headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Profile updated successfully"
    profile = user_client.get("/api/v1/users/profile", headers=headers).json()
    assert profile["status"] == "success"
    assert profile["user"]["name"] == "Countess Ada"


def test_password_change_requires_current_password(user_client, make_user):
    _, user_session = make_user()
    headers = {"Authorization": f"Bearer {user_session.token}"}

    response = user_client.put(
        "/api/v1/users/profile",
        json={"password": "newpassword1", "current_password": "wrong-password"},
        headers=headers,
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Current password is incorrect"


def test_password_change(user_client, make_user):
    _, user_session = make_user()
    headers = {"Authorization": f"Bearer {user_session.token}"}

    response = user_client.put(
        "/api/v1/users/profile",
        json={"password": "newpassword1", "current_password": "password123"},
        headers=headers,
    )

    assert response.status_code == 200
    login = user_client.post("/api/v1/auth/login", json={"email": "ada@example.com", "password": "newpassword1"})
    assert login.status_code == 200


def test_get_user_by_id(user_client, make_user):
    user, _ = make_user()

    found = user_client.get(f"/api/v1/users/{user.id}")
    missing = user_client.get("/api/v1/users/999")

    assert found.status_code == 200
    assert found.json()["user"]["email"] == "ada@example.com"
    assert missing.status_code == 404
    assert missing.json() == {"status": "error", "error": "user_not_found", "message": "User not found"}
