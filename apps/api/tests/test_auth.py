from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import PASSWORD


def _login(client: TestClient, login: str, password: str = PASSWORD):
    return client.post("/api/v1/auth/login", json={"login": login, "password": password})


def test_login_and_me_success(client: TestClient, seeded: dict[str, str]) -> None:
    login_response = _login(client, "owner@example.com")
    assert login_response.status_code == 200
    payload = login_response.json()
    assert payload["access_token"]
    assert payload["refresh_token"]
    assert payload["token_type"] == "bearer"

    me_response = client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {payload['access_token']}"},
    )
    assert me_response.status_code == 200
    me_payload = me_response.json()
    assert me_payload["id"] == seeded["owner_id"]
    assert me_payload["username"] == "owner"
    assert me_payload["last_login_at"] is not None


def test_login_accepts_username(client: TestClient, seeded: dict[str, str]) -> None:
    assert _login(client, "member").status_code == 200


def test_login_invalid_password_fails(client: TestClient, seeded: dict[str, str]) -> None:
    login_response = _login(client, "owner@example.com", "wrong-password")
    assert login_response.status_code == 401
    assert login_response.json() == {"detail": "Invalid credentials"}
    assert login_response.headers["www-authenticate"] == "Bearer"


def test_refresh_rotates_and_old_token_fails(client: TestClient, seeded: dict[str, str]) -> None:
    first_refresh = _login(client, "owner").json()["refresh_token"]

    refresh_response = client.post("/api/v1/auth/refresh", json={"refresh_token": first_refresh})
    assert refresh_response.status_code == 200
    second_refresh = refresh_response.json()["refresh_token"]
    assert first_refresh != second_refresh

    old_refresh_response = client.post(
        "/api/v1/auth/refresh",
        json={"refresh_token": first_refresh},
    )
    assert old_refresh_response.status_code == 401


def test_logout_revokes_refresh_token(client: TestClient, seeded: dict[str, str]) -> None:
    refresh_token = _login(client, "owner").json()["refresh_token"]

    logout_response = client.post("/api/v1/auth/logout", json={"refresh_token": refresh_token})
    assert logout_response.status_code == 200
    assert logout_response.json()["success"] is True

    refresh_response = client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
    assert refresh_response.status_code == 401


def test_register_then_login(client: TestClient) -> None:
    register_response = client.post(
        "/api/v1/auth/register",
        json={"username": "newbie", "email": "Newbie@Example.com", "password": "long-enough"},
    )
    assert register_response.status_code == 201
    assert register_response.json()["email"] == "newbie@example.com"

    assert _login(client, "newbie@example.com", "long-enough").status_code == 200


def test_register_duplicate_username_conflicts(client: TestClient, seeded: dict[str, str]) -> None:
    response = client.post(
        "/api/v1/auth/register",
        json={"username": "owner", "email": "other@example.com", "password": "long-enough"},
    )
    assert response.status_code == 409
    assert response.json() == {"detail": "Username already in use"}


def test_me_requires_token(client: TestClient) -> None:
    response = client.get("/api/v1/auth/me")
    assert response.status_code == 401

    response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not.a.token"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid access token"}
