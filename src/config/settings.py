"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # Track registry storage
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/relay.db",
        description="SQLAlchemy connection string.",
    )
    auto_create_db_schema: bool = Field(
        default=True,
        description="If true, creates tables automatically on startup (useful for local/dev).",
    )

    # SFU control API
    calls_base_url: str = Field(
        default="https://rtc.live.cloudflare.com/v1/apps",
        description="Base URL of the SFU control API; the app id is appended to it.",
    )
    calls_app_id: str | None = Field(default=None)
    calls_app_token: str | None = Field(default=None)

    # Third-party realtime media endpoint (WebRTC peer of the bridge)
    realtime_endpoint: str = Field(
        default="https://api.openai.com/v1/realtime?model=gpt-4o-realtime-preview-2024-12-17",
        description="Endpoint receiving the SFU-generated offer; its query string holds default parameters.",
    )
    realtime_api_key: str | None = Field(default=None)

    # Bridge track names
    user_track_name: str = Field(default="user-mic")
    remote_track_name: str = Field(default="ai-generated-voice")

    http_timeout_seconds: float = Field(default=30.0, gt=0)

    # ICE
    ice_server_hint: str = Field(
        default="stun:stun.cloudflare.com:3478",
        description="ICE server advertised in the OPTIONS link header.",
    )
    turn_api_base: str = Field(default="https://rtc.live.cloudflare.com/v1")
    turn_key_id: str | None = Field(default=None)
    turn_key_api_token: str | None = Field(default=None)
    turn_credential_ttl: int = Field(default=86400, gt=0, description="Seconds.")

    data_dir: Path = Field(default=Path("./data"))

    @field_validator("data_dir")
    @classmethod
    def ensure_data_dir(cls, value: Path) -> Path:
        value.mkdir(parents=True, exist_ok=True)
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
