"""HomeLink API configuration."""

import os

from pydantic_settings import BaseSettings


DEFAULT_TOPIC_NAMESPACE = "homelink"


class Settings(BaseSettings):
    """API settings."""

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    environment: str = "development"
    log_level: str = "INFO"
    enable_logging: bool = True
    logger_endpoint: str = ""

    # Database URL (for SQLAlchemy)
    database_url: str = ""

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:3001"]

    # Access tokens
    auth_jwt_secret: str = "change-me"
    auth_jwt_algorithm: str = "HS256"
    auth_access_token_minutes: int = 60 * 24
    auth_refresh_token_days: int = 30

    # MQTT broker
    mqtt_enabled: bool = True
    mqtt_url: str = "mqtt://localhost:1883"
    mqtt_username: str = ""
    mqtt_password: str = ""
    mqtt_client_id: str = ""
    mqtt_keepalive: int = 60
    mqtt_qos: int = 0
    mqtt_publish_timeout_seconds: float | None = None

    # Topics
    mqtt_topic_namespace: str = DEFAULT_TOPIC_NAMESPACE
    light_topic_template: str = ""

    # Relay socket
    relay_require_auth: bool = True

    class Config:
        env_file = ".env"
        env_prefix = "HOMELINK_API_"
        extra = "ignore"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Also check for non-prefixed DATABASE_URL
        if "DATABASE_URL" in os.environ and not self.database_url:
            self.database_url = os.environ["DATABASE_URL"]

    @property
    def topic_namespace(self) -> str:
        return self.mqtt_topic_namespace.strip("/") or DEFAULT_TOPIC_NAMESPACE

    def resolved_light_topic_template(self) -> str:
        """Light topic template with the namespace applied."""
        template = self.light_topic_template.strip()
        if template:
            return template
        return f"{self.topic_namespace}/light/{{circuitId}}/{{index}}/set"


settings = Settings()
