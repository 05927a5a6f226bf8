"""Centralised service configuration, loaded from the environment and ``.env``."""
from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ------------------------------------------------------------
    # HTTP / runtime
    # ------------------------------------------------------------
    HOST: str = "0.0.0.0"
    PORT: int = 10000
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:10000"],
        description="Origins allowed to call the API from a browser",
    )

    # ------------------------------------------------------------
    # Discord relay
    # ------------------------------------------------------------
    CLOUD_WEBHOOK: SecretStr | None = Field(
        default=None,
        description="Webhook URL receiving relayed uploads; uploads fail fast with 500 when unset",
    )
    CONFIGS_CHANNEL_ID: str = "1426403948281200650"
    WEBHOOK_TIMEOUT_SECS: float = 30.0

    # ------------------------------------------------------------
    # Ingress limits
    # ------------------------------------------------------------
    ALLOWED_EXTENSION: str = ".ini"
    MAX_UPLOAD_BYTES: int = 1024 * 1024
    MAX_CONTENT_LENGTH: int = 2000
    MAX_EMBEDS: int = 1

    # ------------------------------------------------------------
    # Upload queue
    # ------------------------------------------------------------
    QUEUE_PACING_SECS: float = Field(
        default=0.0,
        description="Pause between consecutive webhook deliveries (0 disables pacing)",
    )
    SHUTDOWN_GRACE_SECS: float = 5.0

    # ------------------------------------------------------------
    # Storage Service
    # ------------------------------------------------------------
    STORAGE_API_URL: str = "http://localhost:3001"
    STORAGE_ENABLED: bool = True
    STORAGE_REQUIRED: bool = Field(
        default=False,
        description="Reject uploads with 503 when the config cannot be stored first",
    )
    STORAGE_TIMEOUT_SECS: float = 10.0
    STORAGE_HEALTH_TIMEOUT_SECS: float = 5.0
    STORAGE_HEALTH_INTERVAL_SECS: float = 30.0
    STORAGE_MAX_UPLOAD_BYTES: int = Field(
        default=5 * 1024 * 1024,
        description="Size ceiling for configs stored directly through /api/storage/upload",
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def webhook_url(self) -> str:
        if self.CLOUD_WEBHOOK is None:
            return ""
        return self.CLOUD_WEBHOOK.get_secret_value().strip()


settings = Settings()
