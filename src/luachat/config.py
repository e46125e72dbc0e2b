"""Configuration management for luachat."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from luachat.errors import ApiKeyNotConfiguredError, ModelNotConfiguredError
from luachat.logging_utils import LogProfile

TranscriptFormat = Literal["header_id", "chat_markup"]


def _env(name: str) -> AliasChoices:
    # Prefixed name first; the bare name keeps deployments configured with
    # API_KEY / BASE_URL / MODEL / PORT working.
    return AliasChoices(f"LUACHAT_{name}", name)


class Settings(BaseSettings):
    """Process-wide settings, read once at startup."""

    model_config = SettingsConfigDict(
        env_prefix="LUACHAT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # API Configuration
    api_key: str | None = Field(default=None, validation_alias=_env("API_KEY"), description="API key")
    base_url: str | None = Field(default=None, validation_alias=_env("BASE_URL"), description="API base URL")
    model: str | None = Field(default=None, validation_alias=_env("MODEL"), description="Model identifier")
    max_tokens: int | None = Field(default=None, description="Maximum tokens per completion")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Listen address")  # noqa: S104
    port: int = Field(default=8080, validation_alias=_env("PORT"), description="Listen port")

    # Conversation Configuration
    transcript_format: TranscriptFormat = Field(default="header_id", description="Wire format of transcripts")
    system_prompt: str | None = Field(default=None, description="Override for the built-in system prompt")

    # Sandbox Configuration
    sandbox_instruction_limit: int = Field(default=10_000_000, ge=1, description="Lua instructions per script")
    sandbox_memory_limit_bytes: int = Field(default=64 * 1024 * 1024, ge=0, description="Lua heap cap, 0 disables")
    sandbox_time_limit_seconds: float = Field(default=5.0, gt=0, description="Wall-clock budget per script")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_profile: LogProfile = Field(default="default", description="Log output style")

    def require_model(self) -> str:
        """Return the model identifier or raise when it is not configured."""
        if not self.model:
            raise ModelNotConfiguredError("Model not configured. Set LUACHAT_MODEL (or MODEL).")
        return self.model

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ApiKeyNotConfiguredError("API key not configured. Set LUACHAT_API_KEY (or API_KEY).")
        return self.api_key


def load_settings(**overrides: object) -> Settings:
    """Load settings from the environment, applying non-empty overrides."""
    settings = Settings()
    updates = {key: value for key, value in overrides.items() if value is not None}
    if updates:
        settings = settings.model_copy(update=updates)
    return settings
