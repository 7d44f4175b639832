from __future__ import annotations

from typing import Callable

from fastapi.testclient import TestClient


def test_owner_lists_every_room(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    response = client.get(
        "/api/v1/rooms",
        params={"home_id": seeded["home_id"]},
        headers=headers_for(seeded["owner_id"]),
    )
    assert response.status_code == 200
    assert [room["name"] for room in response.json()] == ["Garage", "Kitchen"]


def test_member_lists_only_visible_rooms(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    headers = headers_for(seeded["member_id"])

    response = client.get("/api/v1/rooms", params={"home_id": seeded["home_id"]}, headers=headers)
    assert response.status_code == 200
    assert [room["name"] for room in response.json()] == ["Kitchen"]

    assert client.get(f"/api/v1/rooms/{seeded['kitchen_id']}", headers=headers).status_code == 200
    hidden = client.get(f"/api/v1/rooms/{seeded['garage_id']}", headers=headers)
    assert hidden.status_code == 403
    assert hidden.json() == {"detail": "Room is not accessible at this time"}


def test_stranger_is_forbidden(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    headers = headers_for(seeded["stranger_id"])

    response = client.get("/api/v1/rooms", params={"home_id": seeded["home_id"]}, headers=headers)
    assert response.status_code == 403
    assert response.json() == {"detail": "Not a member of this home"}
    assert client.get(f"/api/v1/homes/{seeded['home_id']}", headers=headers).status_code == 403


def test_unknown_home_is_not_found(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    response = client.get(
        "/api/v1/homes/00000000-0000-0000-0000-000000000000",
        headers=headers_for(seeded["owner_id"]),
    )
    assert response.status_code == 404


def test_malformed_id_is_a_bad_request(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    response = client.get("/api/v1/rooms/not-a-uuid", headers=headers_for(seeded["owner_id"]))
    assert response.status_code == 400


def test_room_writes_are_owner_only(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    payload = {"home_id": seeded["home_id"], "name": "Office", "circuit_id": "c3"}

    denied = client.post("/api/v1/rooms", json=payload, headers=headers_for(seeded["member_id"]))
    assert denied.status_code == 403
    assert denied.json() == {"detail": "Only the home owner can perform this action"}

    owner_headers = headers_for(seeded["owner_id"])
    created = client.post("/api/v1/rooms", json=payload, headers=owner_headers)
    assert created.status_code == 201
    assert created.json()["circuit_id"] == "c3"

    duplicate = client.post("/api/v1/rooms", json=payload, headers=owner_headers)
    assert duplicate.status_code == 409

    renamed = client.put(
        f"/api/v1/rooms/{created.json()['id']}",
        json={"name": "Study"},
        headers=owner_headers,
    )
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Study"

    deleted = client.delete(f"/api/v1/rooms/{created.json()['id']}", headers=owner_headers)
    assert deleted.status_code == 200


def test_create_home_validates_timezone(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    headers = headers_for(seeded["stranger_id"])

    bad = client.post("/api/v1/homes", json={"name": "Cabin", "timezone": "Nowhere/Land"}, headers=headers)
    assert bad.status_code == 400

    good = client.post("/api/v1/homes", json={"name": "Cabin", "timezone": "Europe/Oslo"}, headers=headers)
    assert good.status_code == 201
    assert good.json()["role"] == "admin"
    assert good.json()["owner_id"] == seeded["stranger_id"]


def test_member_devices_follow_room_visibility(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    headers = headers_for(seeded["member_id"])

    listed = client.get("/api/v1/devices", params={"room_id": seeded["kitchen_id"]}, headers=headers)
    assert listed.status_code == 200
    assert [device["name"] for device in listed.json()] == ["Lamp"]

    toggled = client.patch(
        f"/api/v1/devices/{seeded['lamp_id']}/status",
        json={"status": "on"},
        headers=headers,
    )
    assert toggled.status_code == 200
    assert toggled.json()["status"] == "on"

    hidden = client.patch(
        f"/api/v1/devices/{seeded['opener_id']}/status",
        json={"status": "on"},
        headers=headers,
    )
    assert hidden.status_code == 403


def test_device_writes_are_owner_only(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    payload = {"room_id": seeded["kitchen_id"], "name": "Fan", "type": "switch"}

    denied = client.post("/api/v1/devices", json=payload, headers=headers_for(seeded["member_id"]))
    assert denied.status_code == 403

    created = client.post("/api/v1/devices", json=payload, headers=headers_for(seeded["owner_id"]))
    assert created.status_code == 201
    assert created.json()["status"] == "off"
    assert created.json()["room_id"] == seeded["kitchen_id"]


def test_member_can_leave_home(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    headers = headers_for(seeded["member_id"])

    members = client.get("/api/v1/home-members", params={"home_id": seeded["home_id"]}, headers=headers)
    assert [member["username"] for member in members.json()] == ["member"]

    left = client.delete(
        f"/api/v1/home-members/{seeded['home_id']}/{seeded['member_id']}",
        headers=headers,
    )
    assert left.status_code == 200
    assert client.get("/api/v1/homes", headers=headers).json() == []


def test_owner_adds_member_once(
    client: TestClient,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    headers = headers_for(seeded["owner_id"])
    payload = {"home_id": seeded["home_id"], "user_id": seeded["stranger_id"], "role": "caretaker"}

    added = client.post("/api/v1/home-members", json=payload, headers=headers)
    assert added.status_code == 201
    assert added.json()["role"] == "caretaker"

    assert client.post("/api/v1/home-members", json=payload, headers=headers).status_code == 409

    owner_payload = {"home_id": seeded["home_id"], "user_id": seeded["owner_id"]}
    assert client.post("/api/v1/home-members", json=owner_payload, headers=headers).status_code == 400
