"""
Registration, login and bearer-token authentication.
"""

from datetime import timedelta

from app.utils.auth import create_user_token


def test_health_check_needs_no_token(client):
    response = client.get("/api/")
    assert response.status_code == 200
    assert "running" in response.json()["message"]


def test_register_returns_token_and_profile(client):
    response = client.post(
        "/api/auth/register",
        json={"username": "alice", "email": "Alice@X.com", "password": "pw123456"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["username"] == "alice"
    assert body["email"] == "alice@x.com"
    assert body["token"]
    assert "hashedPassword" not in body


def test_register_duplicate_is_rejected(client, alice):
    response = client.post(
        "/api/auth/register",
        json={"username": "alice2", "email": "ALICE@x.com", "password": "pw123456"},
    )
    assert response.status_code == 400
    assert response.json() == {"message": "User already exists"}

    response = client.post(
        "/api/auth/register",
        json={"username": "alice", "email": "other@x.com", "password": "pw123456"},
    )
    assert response.status_code == 400


def test_register_missing_field_is_validation_failure(client):
    response = client.post(
        "/api/auth/register", json={"username": "alice", "password": "pw123456"}
    )
    assert response.status_code == 400
    assert "message" in response.json()


def test_login_with_email_and_password(client, alice):
    response = client.post(
        "/api/auth/login", json={"email": "alice@x.com", "password": "pw123456"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == alice["id"]
    assert body["token"]


def test_login_wrong_password_is_unauthenticated(client, alice):
    response = client.post(
        "/api/auth/login", json={"email": "alice@x.com", "password": "wrong-pass"}
    )
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"
    assert response.json() == {"message": "Invalid email or password"}


def test_me_returns_current_user(client, alice):
    response = client.get("/api/auth/me", headers=alice["headers"])
    assert response.status_code == 200
    body = response.json()
    assert body["username"] == "alice"
    assert body["email"] == "alice@x.com"
    assert "createdAt" in body


def test_me_without_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"message": "Not authorized, no token"}


def test_me_with_garbage_token(client):
    response = client.get(
        "/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


def test_me_with_expired_token(client, alice):
    token = create_user_token(alice["id"], expires_delta=timedelta(seconds=-5))
    response = client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 401


def test_token_for_unknown_user_is_rejected(client):
    token = create_user_token("00000000-0000-4000-8000-000000000000")
    response = client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 401
