"""Application configuration using pydantic-settings.

All configuration is loaded from environment variables with sensible defaults.
Secrets should NEVER be logged or exposed in error messages.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are immutable after initialization.
    Secrets are wrapped in SecretStr to prevent accidental exposure.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Zoho Analytics OAuth client
    zoho_client_id: str | None = Field(
        default=None,
        description="Zoho API console client ID",
    )
    zoho_client_secret: SecretStr | None = Field(
        default=None,
        description="Zoho API console client secret",
    )
    zoho_redirect_uri: str = Field(
        default="http://localhost:8000/api/v1/oauth/zoho_analytics/callback",
        description="Zoho OAuth redirect URI",
    )
    zoho_default_country: Literal["au", "cn", "eu", "in", "jp", "us"] = Field(
        default="eu",
        description="Regional data center used when a credential does not name one",
    )

    # Outbound HTTP
    http_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=600.0,
        description="Timeout for Zoho API calls in seconds",
    )

    # Server Configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)
    debug: bool = Field(default=False)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed origins",
    )

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: str) -> str:
        """Validate CORS origins format."""
        origins = [o.strip() for o in v.split(",") if o.strip()]
        if not origins:
            raise ValueError("At least one CORS origin must be specified")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_masked_key(self, key_name: str) -> str:
        """Get a masked version of a secret key for logging.

        Only shows first 8 characters followed by '...'
        """
        secret = getattr(self, key_name, None)
        if secret is None:
            return "<not set>"
        if isinstance(secret, SecretStr):
            value = secret.get_secret_value()
        else:
            value = str(secret)
        if len(value) <= 8:
            return "***"
        return f"{value[:8]}..."


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once and cached for the application lifetime.
    """
    return Settings()


settings = get_settings()
