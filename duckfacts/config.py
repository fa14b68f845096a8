"""
Configuration and settings for the duck facts service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CHAT_ENDPOINT = "https://api.openai.com/v1/chat/completions"


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    api_prefix: str = Field(default="")
    log_level: str = Field(default="INFO")

    # Chat completions (fact generation + translation)
    api_key: Optional[str] = Field(default=None)
    chat_endpoint: str = Field(default=DEFAULT_CHAT_ENDPOINT)
    chat_model: str = Field(default="gpt-3.5-turbo")
    chat_timeout_seconds: float = Field(default=60)

    # Shared secrets compared against the Authorization header
    send_secret: Optional[str] = Field(default=None)
    bonus_secret: Optional[str] = Field(default=None)

    # Database (any SQLAlchemy URL)
    database_url: str = Field(default="sqlite:///ducks.sqlite3")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Cache policy
    fact_expiration_seconds: int = Field(default=60 * 60 * 24)
    max_generation_attempts: int = Field(default=25)

    # Broadcast
    broadcast_max_workers: int = Field(default=8)

    # SMTP relay for email-to-SMS
    mailer_from: str = Field(default="unknown")
    mailer_host: str = Field(default="")
    mailer_port: int = Field(default=0)
    mailer_secure: bool = Field(default=False)
    mailer_user: str = Field(default="")
    mailer_pass: str = Field(default="")
    mailer_tls_reject_unauthorized: bool = Field(default=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
