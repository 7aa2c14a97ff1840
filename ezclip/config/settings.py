"""
Application settings - pydantic-settings configuration.

This module defines application configuration using pydantic-settings
for environment variable loading with validation and defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "default_secret_change_in_production"


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["development", "production"] = "development"

    # Database configuration (unset = in-memory event store only)
    database_url: str | None = None
    pool_min_size: int = 1  # Minimum connections in pool
    pool_max_size: int = 10  # Maximum connections in pool

    # SMS delivery (unset = codes logged to console)
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_phone_number: str | None = None

    # Tokens
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_expires_days: int = 7
    admin_token_hours: int = 24

    # Verification settings
    verification_ttl_seconds: int = 600  # Code validity window
    verification_max_attempts: int = 5  # Failed checks tolerated before the code is dropped
    verification_sweep_interval_seconds: int = 300

    # Event store settings
    event_retention_days: int = 7
    max_visits: int = 10000
    max_contact_submissions: int = 1000
    max_downloads: int = 5000
    max_subscription_events: int = 5000
    event_cleanup_interval_seconds: int = 3600

    # Security settings
    bcrypt_cost: int = 10  # bcrypt work factor
    admin_email: str | None = None
    admin_password_hash: str | None = None  # bcrypt hash

    # CORS
    client_url: str | None = None

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def twilio_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_phone_number)

    @model_validator(mode="after")
    def check_production_requirements(self) -> "Settings":
        """Refuse to start a production deployment with unsafe defaults."""
        if self.is_production:
            if self.jwt_secret == DEFAULT_JWT_SECRET:
                raise ValueError("JWT_SECRET must be set in production")
            if not self.client_url:
                raise ValueError("CLIENT_URL must be configured in production for CORS")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
