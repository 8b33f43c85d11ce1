"""
Configuration for pushfanout using Pydantic Settings.

Supplies channel construction parameters (rates, chunk sizes, concurrency
ceilings, transport credentials) and logging options. Values come from
environment variables prefixed with PUSHFANOUT_, with fallback to a .env file.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Dispatch settings with validation.

    Non-positive rates, chunk sizes and concurrency ceilings are rejected when
    settings are loaded, before any channel is built.
    """

    model_config = SettingsConfigDict(
        env_prefix="PUSHFANOUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Rate limiter window shared by all channels
    rate_limit_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Token bucket refill interval in seconds",
    )

    # Firebase Cloud Messaging (batch-oriented channel)
    firebase_project_id: Optional[str] = Field(
        default=None,
        description="Firebase project id used to build the FCM v1 send URL",
    )
    firebase_max_messages_per_second: int = Field(
        default=500,
        gt=0,
        description="FCM requests admitted per interval (one request per chunk)",
    )
    firebase_chunk_size: int = Field(
        default=500,
        gt=0,
        le=500,
        description="Maximum device tokens per chunk (FCM multicast limit is 500)",
    )

    # Web Push (concurrency-bounded channel)
    vapid_public_key: Optional[str] = Field(
        default=None,
        description="VAPID public key advertised to browsers",
    )
    vapid_private_key: Optional[str] = Field(
        default=None,
        description="VAPID private key used to sign push requests",
    )
    vapid_contact_email: Optional[str] = Field(
        default=None,
        description="Contact email for the VAPID subject claim",
    )
    web_push_max_messages_per_second: int = Field(
        default=50,
        gt=0,
        description="Web push sends admitted per interval",
    )
    web_push_max_concurrent_sends: int = Field(
        default=5,
        gt=0,
        description="Maximum web push sends in flight at once",
    )

    # Transport
    transport_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout for a single transport call",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level",
    )
    log_json: bool = Field(
        default=False,
        description="Render logs as JSON lines instead of console output",
    )

    @property
    def vapid_subject(self) -> Optional[str]:
        """VAPID 'sub' claim derived from the contact email."""
        if not self.vapid_contact_email:
            return None
        if self.vapid_contact_email.startswith("mailto:"):
            return self.vapid_contact_email
        return f"mailto:{self.vapid_contact_email}"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
