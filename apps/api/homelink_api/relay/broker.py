"""Process-wide MQTT broker handle used by the command relay."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Callable, Optional, Protocol
from urllib.parse import urlsplit
import uuid

import paho.mqtt.client as mqtt

from homelink_api.config import Settings
from homelink_api.errors import UpstreamError
from homelink_api.logging_service import get_logger, log_with_context


logger = get_logger(__name__)

DEFAULT_PORTS = {"mqtt": 1883, "tcp": 1883, "mqtts": 8883, "ssl": 8883, "ws": 80, "wss": 443}


class BrokerState(str, Enum):
    DISABLED = "disabled"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERRORED = "errored"
    CLOSED = "closed"


class BrokerPublishError(UpstreamError):
    """Raised when the broker rejects or cannot accept a publish."""


class CommandPublisher(Protocol):
    state: BrokerState

    async def publish(self, topic: str, payload: str) -> None: ...


def _default_client_factory(client_id: str, transport: str) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=client_id,
        transport=transport,
    )


class MqttBroker:
    """Long-lived paho client; reconnects on its own network loop thread.

    Publishing never buffers: while the client is not connected every
    publish fails immediately with BrokerPublishError.
    """

    def __init__(
        self,
        settings: Settings,
        client_factory: Optional[Callable[[str, str], Any]] = None,
    ):
        self.settings = settings
        self._client_factory = client_factory or _default_client_factory
        self._client: Any = None
        self.state = BrokerState.CLOSED

        parsed = urlsplit(settings.mqtt_url)
        scheme = (parsed.scheme or "mqtt").lower()
        self.host = parsed.hostname or "localhost"
        self.port = parsed.port or DEFAULT_PORTS.get(scheme, 1883)
        self.use_tls = scheme in ("mqtts", "ssl", "wss")
        self.transport = "websockets" if scheme in ("ws", "wss") else "tcp"
        self.username = settings.mqtt_username or parsed.username or ""
        self.password = settings.mqtt_password or parsed.password or ""
        self.client_id = settings.mqtt_client_id or f"homelink-api-{uuid.uuid4().hex[:8]}"

    @property
    def is_connected(self) -> bool:
        return self.state is BrokerState.CONNECTED

    def start(self) -> None:
        """Begin connecting in the background; returns without waiting."""
        client = self._client_factory(self.client_id, self.transport)
        if self.username:
            client.username_pw_set(self.username, self.password or None)
        if self.use_tls:
            client.tls_set()
        client.reconnect_delay_set(min_delay=1, max_delay=30)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_connect_fail = self._on_connect_fail

        self._client = client
        self._set_state(BrokerState.CONNECTING)
        client.connect_async(self.host, self.port, self.settings.mqtt_keepalive)
        client.loop_start()

    def close(self) -> None:
        client, self._client = self._client, None
        self._set_state(BrokerState.CLOSED)
        if client is not None:
            client.disconnect()
            client.loop_stop()

    async def publish(self, topic: str, payload: str) -> None:
        client = self._client
        if client is None or not self.is_connected:
            raise BrokerPublishError(f"broker not connected ({self.state.value})")

        qos = self.settings.mqtt_qos
        info = client.publish(topic, payload, qos=qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise BrokerPublishError(mqtt.error_string(info.rc))

        if qos > 0:
            timeout = self.settings.mqtt_publish_timeout_seconds
            try:
                await asyncio.to_thread(info.wait_for_publish, timeout)
            except (RuntimeError, ValueError) as exc:
                raise BrokerPublishError(str(exc)) from exc
            if not info.is_published():
                raise BrokerPublishError("timed out waiting for broker acknowledgment")

        log_with_context(logger, "DEBUG", f"MQTT publish: {topic} => {payload}", topic=topic)

    def _set_state(self, state: BrokerState, level: str = "INFO", detail: str = "") -> None:
        self.state = state
        message = f"MQTT broker {state.value}"
        if detail:
            message = f"{message}: {detail}"
        log_with_context(logger, level, message, broker_state=state.value)

    # paho callbacks run on the client's network thread.

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            self._set_state(BrokerState.ERRORED, "ERROR", str(reason_code))
            return
        self._set_state(BrokerState.CONNECTED, detail=f"{self.host}:{self.port}")

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        if self.state is BrokerState.CLOSED:
            return
        self._set_state(BrokerState.RECONNECTING, "WARNING", str(reason_code))

    def _on_connect_fail(self, client, userdata) -> None:
        if self.state is BrokerState.CLOSED:
            return
        self._set_state(BrokerState.ERRORED, "ERROR", f"could not reach {self.host}:{self.port}")


class DisabledBroker:
    """Stand-in publisher when MQTT is switched off in settings."""

    state = BrokerState.DISABLED

    async def publish(self, topic: str, payload: str) -> None:
        raise BrokerPublishError("MQTT publishing is disabled")

    def start(self) -> None:
        log_with_context(logger, "INFO", "MQTT broker disabled", broker_state=self.state.value)

    def close(self) -> None:
        return None


def create_broker(settings: Settings) -> MqttBroker | DisabledBroker:
    if not settings.mqtt_enabled:
        return DisabledBroker()
    return MqttBroker(settings)
