from __future__ import annotations

from typing import Callable

from fastapi.testclient import TestClient


def test_filter_defaults_to_caller(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    member = client.get(
        "/api/v1/access-permissions/filter",
        params={"home_id": seeded["home_id"]},
        headers=headers_for(seeded["member_id"]),
    )
    assert member.status_code == 200
    assert member.json() == [{"room_name": "Kitchen"}]

    owner = client.get(
        "/api/v1/access-permissions/filter",
        params={"home_id": seeded["home_id"]},
        headers=headers_for(seeded["owner_id"]),
    )
    assert owner.json() == [{"room_name": "Garage"}, {"room_name": "Kitchen"}]


def test_owner_can_inspect_member_but_not_vice_versa(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    inspected = client.get(
        "/api/v1/access-permissions/filter",
        params={"home_id": seeded["home_id"], "user_id": seeded["member_id"]},
        headers=headers_for(seeded["owner_id"]),
    )
    assert inspected.json() == [{"room_name": "Kitchen"}]

    denied = client.get(
        "/api/v1/access-permissions/filter",
        params={"home_id": seeded["home_id"], "user_id": seeded["owner_id"]},
        headers=headers_for(seeded["member_id"]),
    )
    assert denied.status_code == 403


def test_stranger_filter_is_forbidden(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    response = client.get(
        "/api/v1/access-permissions/filter",
        params={"home_id": seeded["home_id"]},
        headers=headers_for(seeded["stranger_id"]),
    )
    assert response.status_code == 403


def test_owner_grants_and_revokes_window(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    owner_headers = headers_for(seeded["owner_id"])
    member_headers = headers_for(seeded["member_id"])
    payload = {
        "home_id": seeded["home_id"],
        "user_id": seeded["member_id"],
        "room_name": "Garage",
        "day_of_week": 0,
        "start_time": "00:00:00",
        "end_time": "23:59:59",
    }

    created_ids = []
    for day in range(7):
        response = client.post(
            "/api/v1/access-permissions",
            json={**payload, "day_of_week": day},
            headers=owner_headers,
        )
        assert response.status_code == 201
        created_ids.append(response.json()["id"])

    visible = client.get(
        "/api/v1/access-permissions/filter",
        params={"home_id": seeded["home_id"]},
        headers=member_headers,
    )
    assert visible.json() == [{"room_name": "Garage"}, {"room_name": "Kitchen"}]

    for permission_id in created_ids:
        deleted = client.delete(f"/api/v1/access-permissions/{permission_id}", headers=owner_headers)
        assert deleted.status_code == 200

    visible = client.get(
        "/api/v1/access-permissions/filter",
        params={"home_id": seeded["home_id"]},
        headers=member_headers,
    )
    assert visible.json() == [{"room_name": "Kitchen"}]


def test_member_cannot_grant_and_day_is_validated(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    payload = {
        "home_id": seeded["home_id"],
        "user_id": seeded["member_id"],
        "room_name": "Garage",
        "day_of_week": 1,
        "start_time": "09:00",
        "end_time": "17:00",
    }

    denied = client.post("/api/v1/access-permissions", json=payload, headers=headers_for(seeded["member_id"]))
    assert denied.status_code == 403

    invalid = client.post(
        "/api/v1/access-permissions",
        json={**payload, "day_of_week": 7},
        headers=headers_for(seeded["owner_id"]),
    )
    assert invalid.status_code == 400


def test_member_lists_only_own_windows(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    response = client.get(
        "/api/v1/access-permissions",
        params={"home_id": seeded["home_id"]},
        headers=headers_for(seeded["member_id"]),
    )
    assert response.status_code == 200
    rows = response.json()
    assert [row["day_of_week"] for row in rows] == list(range(7))
    assert {row["user_id"] for row in rows} == {seeded["member_id"]}
