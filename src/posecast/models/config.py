from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from posecast.errors import ConfigError


class StreamSettings(BaseSettings):
    """Streaming settings populated from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="POSECAST_",
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = Field(default=4820, ge=1, le=65535)
    max_connection_attempts: int = Field(default=5, ge=1)
    retry_delay: float = Field(default=1.5, ge=0)
    """Fixed delay in seconds between failed connection attempts."""
    send_frequency: float = Field(default=30.0, gt=0)
    """Send-loop rate in Hz."""
    connect_timeout: float | None = Field(default=None, gt=0)
    """Optional cap on a single connect attempt. ``None`` relies on the OS."""
    local_only: bool = False
    """Collect telemetry without opening a connection."""

    @classmethod
    def load(cls, **overrides: Any) -> StreamSettings:
        """Build settings from the environment, raising :class:`ConfigError` if invalid."""
        try:
            return cls(**overrides)
        except ValidationError as exc:
            raise ConfigError(f"Invalid stream settings: {exc}") from exc

    def merge_overrides(self, **overrides: Any) -> StreamSettings:
        """Return a new validated copy with non-``None`` CLI overrides applied."""
        data: dict[str, Any] = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return StreamSettings.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid stream settings: {exc}") from exc
