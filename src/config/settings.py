"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

REQUIRED_FIELDS = (
    "elevenlabs_agent_id",
    "twilio_account_sid",
    "twilio_auth_token",
    "twilio_phone_number",
)


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="INFO")

    # Server
    host: str = Field(default="0.0.0.0", description="Listening address.")
    port: int = Field(default=8000, description="Listening port.")
    public_base_url: str | None = Field(
        default=None,
        description=(
            "Public base URL for Twilio callbacks (e.g. https://<ngrok>.ngrok-free.app). "
            "Falls back to the request Host header."
        ),
    )

    # ElevenLabs Conversational AI
    elevenlabs_agent_id: str | None = Field(default=None)
    elevenlabs_conversation_url: str = Field(
        default="wss://api.elevenlabs.io/v1/convai/conversation",
        description="Conversation WebSocket endpoint; the agent id is passed as a query parameter.",
    )

    # Twilio (Voice)
    twilio_account_sid: str | None = Field(default=None)
    twilio_auth_token: str | None = Field(default=None)
    twilio_phone_number: str | None = Field(default=None, description="E.164, e.g. +1555...")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    def missing_required(self) -> list[str]:
        """Return the environment names of mandatory settings that are unset."""

        return [name.upper() for name in REQUIRED_FIELDS if not getattr(self, name)]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
