"""Maps inbound device-control messages onto MQTT topics.

Inbound frames look like ``{"device": "...", "action": ..., "circuitId"?,
"index"?, "roomId"?}``. Every frame gets exactly one reply on the same
connection; malformed frames never close the socket.
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Optional, Protocol

from pydantic import BaseModel

from homelink_api.config import Settings
from homelink_api.errors import UpstreamError
from homelink_api.logging_service import get_logger, log_with_context
from homelink_api.relay.broker import CommandPublisher


logger = get_logger(__name__)

INVALID_JSON = 'Invalid JSON. Expected: {"device":"...","action":"..."}'
MISSING_FIELDS = 'Missing "device" or "action"'
INVALID_DEVICE = 'Invalid "device": must not contain "/", "+", "#" or whitespace'
MISSING_LIGHT_ADDRESS = 'Missing "circuitId" or "index" for light'
INVALID_LIGHT_ADDRESS = 'Invalid "circuitId" or "index" for light'
ROOM_DENIED = "Not permitted to control this room"
INTERNAL_ERROR = "Internal error"

_TOPIC_RESERVED = ("/", "+", "#")

RoomAuthorizer = Callable[[str, Any], Awaitable[bool]]


class ReplyChannel(Protocol):
    user_id: Optional[str]

    async def send(self, payload: dict[str, Any]) -> None: ...


class PublishedCommand(BaseModel):
    topic: str
    action: str


class RelayReply(BaseModel):
    ok: bool
    error: Optional[str] = None
    published: Optional[PublishedCommand] = None
    roomId: Any = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class RelayRejection(Exception):
    """Frame rejected before publishing; `message` is sent to the client."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def stringify_action(action: Any) -> str:
    if isinstance(action, str):
        return action
    if isinstance(action, float) and action.is_integer():
        return str(int(action))
    return json.dumps(action, separators=(",", ":"))


def _topic_segment(value: Any) -> Optional[str]:
    """Render a scalar as a single topic level, or None when unusable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        segment = str(int(value)) if value.is_integer() else str(value)
    elif isinstance(value, (int, str)):
        segment = str(value)
    else:
        return None
    if not segment or any(ch in segment for ch in _TOPIC_RESERVED):
        return None
    if any(ch.isspace() for ch in segment):
        return None
    return segment


class CommandRelay:
    """Validates relay frames, derives topics and publishes via the broker."""

    def __init__(
        self,
        publisher: CommandPublisher,
        settings: Settings,
        room_authorizer: Optional[RoomAuthorizer] = None,
    ):
        self.publisher = publisher
        self.settings = settings
        self.room_authorizer = room_authorizer

    def topic_for_device(self, device: str) -> str:
        return f"{self.settings.topic_namespace}/{device}/set"

    def topic_for_light(self, circuit_id: str, index: str) -> str:
        template = self.settings.resolved_light_topic_template()
        return template.replace("{circuitId}", circuit_id).replace("{index}", index)

    async def handle_inbound(self, connection: ReplyChannel, raw_message: str | bytes) -> None:
        try:
            reply = await self._process(connection, raw_message)
        except RelayRejection as exc:
            reply = RelayReply(ok=False, error=exc.message)
        except Exception as exc:
            log_with_context(
                logger,
                "ERROR",
                f"Relay frame failed: {exc}",
                user_id=connection.user_id,
                exc_info=True,
            )
            reply = RelayReply(ok=False, error=INTERNAL_ERROR)
        await connection.send(reply.to_wire())

    async def _process(self, connection: ReplyChannel, raw_message: str | bytes) -> RelayReply:
        payload = self._parse(raw_message)

        device = payload.get("device")
        if not device or isinstance(device, bool) or "action" not in payload:
            raise RelayRejection(MISSING_FIELDS)
        device_segment = _topic_segment(device)
        if device_segment is None:
            raise RelayRejection(INVALID_DEVICE)

        action = stringify_action(payload["action"])
        room_id = payload.get("roomId")
        is_light = device_segment == "light"

        if is_light:
            topic = self._light_topic(payload)
        else:
            topic = self.topic_for_device(device_segment)

        await self._authorize_room(connection, room_id)

        try:
            await self.publisher.publish(topic, action)
        except UpstreamError as exc:
            log_with_context(
                logger,
                "WARNING",
                f"MQTT publish failed: {exc.detail}",
                topic=topic,
                user_id=connection.user_id,
            )
            return RelayReply(ok=False, error=f"MQTT publish failed: {exc.detail}")

        log_with_context(
            logger,
            "INFO",
            f"Relayed {action} to {topic}",
            topic=topic,
            user_id=connection.user_id,
        )
        published = PublishedCommand(topic=topic, action=action)
        if is_light:
            return RelayReply(ok=True, published=published, roomId=room_id)
        return RelayReply(ok=True, published=published)

    def _parse(self, raw_message: str | bytes) -> dict[str, Any]:
        try:
            text = raw_message.decode("utf-8") if isinstance(raw_message, bytes) else raw_message
            payload = json.loads(text)
        except (UnicodeDecodeError, ValueError) as exc:
            raise RelayRejection(INVALID_JSON) from exc
        if not isinstance(payload, dict):
            raise RelayRejection(MISSING_FIELDS)
        return payload

    def _light_topic(self, payload: dict[str, Any]) -> str:
        circuit_id = payload.get("circuitId")
        index = payload.get("index")
        if not circuit_id or isinstance(index, bool) or not isinstance(index, (int, float, str)):
            raise RelayRejection(MISSING_LIGHT_ADDRESS)
        circuit_segment = _topic_segment(circuit_id)
        index_segment = _topic_segment(index)
        if circuit_segment is None or index_segment is None:
            raise RelayRejection(INVALID_LIGHT_ADDRESS)
        return self.topic_for_light(circuit_segment, index_segment)

    async def _authorize_room(self, connection: ReplyChannel, room_id: Any) -> None:
        if room_id is None or self.room_authorizer is None or connection.user_id is None:
            return
        if not await self.room_authorizer(connection.user_id, room_id):
            log_with_context(
                logger,
                "WARNING",
                "Relay command rejected for room",
                user_id=connection.user_id,
            )
            raise RelayRejection(ROOM_DENIED)
