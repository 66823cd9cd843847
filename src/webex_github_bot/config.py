"""Configuration management using Pydantic settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

WEBEX_API_URL = "https://webexapis.com/v1"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Required settings
    webex_token: SecretStr = Field(
        ...,
        description="Webex bot access token",
    )
    github_secret: SecretStr = Field(
        ...,
        description="Secret for validating GitHub webhook signatures",
    )

    # Optional settings
    room_id: str = Field(
        default="",
        description="Webex space that receives GitHub event messages",
    )
    webex_webhook_secret: SecretStr | None = Field(
        default=None,
        description="Secret for validating Webex webhook signatures",
    )
    webhook_url: str = Field(
        default="",
        description="Public base URL of this service; Webex webhooks target {webhook_url}/webex",
    )
    webex_api_url: str = Field(default=WEBEX_API_URL, description="Webex REST API base URL")
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")

    # Webhook handling
    max_body_size: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum accepted webhook body size in bytes",
    )
    relay_timeout: float = Field(
        default=10.0,
        description="Seconds to wait for a chat message to be sent",
    )
    incomplete_event_policy: Literal["reject", "acknowledge"] = Field(
        default="reject",
        description="Reject (400) or acknowledge (200) supported events missing required fields",
    )
    uniform_auth_response: bool = Field(
        default=False,
        description="Answer 'Invalid signature' for missing signatures too",
    )

    def environment_check(self) -> dict[str, str]:
        """Summarise which settings are present, without their values."""

        def flag(value: object) -> str:
            return "configured" if value else "missing"

        return {
            "webex_token": flag(self.webex_token.get_secret_value()),
            "github_secret": flag(self.github_secret.get_secret_value()),
            "room_id": flag(self.room_id),
            "port": str(self.port),
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]
