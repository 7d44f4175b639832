"""Relay WebSocket router: device commands in, MQTT publishes out."""

from __future__ import annotations

from typing import Any, Optional
import uuid

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.requests import HTTPConnection

from homelink_api.access.dependencies import get_schema_capabilities
from homelink_api.access.resolver import AccessResolver
from homelink_api.auth.dependencies import extract_bearer_token, user_from_access_token
from homelink_api.config import settings
from homelink_api.db.capabilities import SchemaCapabilities
from homelink_api.db.database import get_db
from homelink_api.errors import AuthenticationError
from homelink_api.logging_service import get_logger, log_with_context
from homelink_api.models.home_models import Room
from homelink_api.relay.broker import CommandPublisher, DisabledBroker
from homelink_api.relay.command_relay import CommandRelay, RoomAuthorizer
from homelink_api.relay.connection import connection_manager


router = APIRouter(prefix="/relay", tags=["relay"])
logger = get_logger(__name__)


def get_broker(connection: HTTPConnection) -> CommandPublisher:
    broker = getattr(connection.app.state, "broker", None)
    if broker is None:
        return DisabledBroker()
    return broker


def _room_authorizer(db: Session, capabilities: SchemaCapabilities) -> RoomAuthorizer:
    def can_control(user_id: str, room_key: str) -> bool:
        try:
            room = db.get(Room, room_key)
            if room is None:
                return False
            return AccessResolver(db, capabilities).can_view_room(room, user_id)
        finally:
            # Release the connection between frames on long-lived sockets.
            db.rollback()

    async def authorize(user_id: str, room_id: Any) -> bool:
        try:
            room_key = str(uuid.UUID(str(room_id)))
        except ValueError:
            return False
        return await run_in_threadpool(can_control, user_id, room_key)

    return authorize


def _authenticate(websocket: WebSocket, token: Optional[str], db: Session) -> Optional[str]:
    """Return the caller's user id, None for anonymous, or raise AuthenticationError."""
    authorization = websocket.headers.get("authorization")
    if token is None and authorization:
        token = extract_bearer_token(authorization)
    if not token:
        if settings.relay_require_auth:
            raise AuthenticationError()
        return None
    user_id = user_from_access_token(token, db).id
    db.rollback()
    return user_id


@router.websocket("/ws")
async def relay_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    capabilities: SchemaCapabilities = Depends(get_schema_capabilities),
    broker: CommandPublisher = Depends(get_broker),
):
    try:
        user_id = await run_in_threadpool(_authenticate, websocket, token, db)
    except AuthenticationError as exc:
        log_with_context(logger, "WARNING", f"Relay socket rejected: {exc.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.detail)
        return

    relay = CommandRelay(
        broker,
        settings,
        room_authorizer=_room_authorizer(db, capabilities) if user_id else None,
    )
    connection = await connection_manager.connect(websocket, user_id=user_id)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await relay.handle_inbound(connection, raw)
    except WebSocketDisconnect:
        pass
    finally:
        connection_manager.disconnect(connection)
