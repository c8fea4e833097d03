"""Application configuration via environment variables.

Provides type-safe settings loading using pydantic-settings.
Environment variables can be loaded from a .env file.

Settings are built once by the entry point and passed explicitly to the
SMTP handler, the ingestion pipeline and the Admin API.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings loaded from environment variables.

    Environment Variables:
        MAIL_ROOT: Directory holding recipient folders and weekly indexes
        EMAIL_DOMAIN: Comma-separated list of accepted recipient domains
        EMAIL_ACCOUNT_PREFIX: Required local-part prefix (empty accepts all)
        SMTP_HOST / SMTP_PORT: SMTP bind address
        ADMIN_APP_HOST / ADMIN_APP_PORT: Admin API bind address
        API_KEY: Shared secret for the Admin API
        MIME_STRICT: Treat structural MIME defects as decode failures (default True)
        LOG_LEVEL: Logging level (default INFO)
        LOG_JSON: Emit JSON log lines (default True)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Storage
    MAIL_ROOT: str = "mail"

    # Recipient policy
    EMAIL_DOMAIN: str = ""
    EMAIL_ACCOUNT_PREFIX: str = ""

    # SMTP
    SMTP_HOST: str = "0.0.0.0"
    SMTP_PORT: int = 25
    SMTP_MAX_SIZE: int = 26_214_400  # 25 MB
    SMTP_CHUNK_SIZE: int = 8192

    # Admin API
    ADMIN_APP_HOST: str = "0.0.0.0"
    ADMIN_APP_PORT: Optional[int] = None
    API_KEY: Optional[str] = None
    API_KEY_MIN_LENGTH: int = 20
    API_PREFIX: str = "/api"

    # Decoding
    MIME_STRICT: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    @property
    def email_domains(self) -> List[str]:
        """Configured domains, lowercased, blank entries dropped."""
        return [
            domain.strip().lower()
            for domain in self.EMAIL_DOMAIN.split(",")
            if domain.strip()
        ]

    @property
    def admin_api_enabled(self) -> bool:
        """Admin API runs only with a port and a long enough API key."""
        return (
            self.ADMIN_APP_PORT is not None
            and self.API_KEY is not None
            and len(self.API_KEY) >= self.API_KEY_MIN_LENGTH
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache for singleton behavior.
    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
