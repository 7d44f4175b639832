from __future__ import annotations

from typing import Callable

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from homelink_api.main import app
from homelink_api.relay.router import get_broker

from test_command_relay import FakePublisher


@pytest.fixture
def publisher() -> FakePublisher:
    fake = FakePublisher()
    app.dependency_overrides[get_broker] = lambda: fake
    return fake


def test_socket_without_token_is_closed_with_policy_violation(
    client: TestClient,
    publisher: FakePublisher,
) -> None:
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/api/v1/relay/ws"):
            pass
    assert excinfo.value.code == 1008


def test_socket_with_bad_token_is_closed(client: TestClient, publisher: FakePublisher) -> None:
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/api/v1/relay/ws?token=bogus"):
            pass
    assert excinfo.value.code == 1008


def test_command_round_trip(
    client: TestClient,
    publisher: FakePublisher,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    token = headers_for(seeded["member_id"])["Authorization"].split(" ", 1)[1]

    with client.websocket_connect(f"/api/v1/relay/ws?token={token}") as websocket:
        websocket.send_text('{"device": "fan", "action": "on"}')
        assert websocket.receive_json() == {
            "ok": True,
            "published": {"topic": "homelink/fan/set", "action": "on"},
        }

        websocket.send_text("garbage")
        assert websocket.receive_json()["ok"] is False

        websocket.send_bytes(b'{"device": "light", "action": 1, "circuitId": "c1", "index": 0}')
        reply = websocket.receive_json()
        assert reply["published"] == {"topic": "homelink/light/c1/0/set", "action": "1"}

    assert publisher.published == [("homelink/fan/set", "on"), ("homelink/light/c1/0/set", "1")]


def test_room_scoped_commands_follow_visibility(
    client: TestClient,
    publisher: FakePublisher,
    seeded: dict[str, str],
    headers_for: Callable[[str], dict[str, str]],
) -> None:
    headers = headers_for(seeded["member_id"])

    with client.websocket_connect("/api/v1/relay/ws", headers=headers) as websocket:
        websocket.send_json(
            {
                "device": "light",
                "action": "on",
                "circuitId": "c2",
                "index": 1,
                "roomId": seeded["garage_id"],
            }
        )
        assert websocket.receive_json() == {"ok": False, "error": "Not permitted to control this room"}

        websocket.send_json(
            {
                "device": "light",
                "action": "on",
                "circuitId": "c1",
                "index": 1,
                "roomId": seeded["kitchen_id"],
            }
        )
        reply = websocket.receive_json()
        assert reply["ok"] is True
        assert reply["roomId"] == seeded["kitchen_id"]

    assert publisher.published == [("homelink/light/c1/1/set", "on")]
