"""
Configuration Utility - Environment Variables Management

Centralized configuration loading from .env files using pydantic-settings.
Type-safe access to all environment variables with validation.

Usage:
    from utils.config import settings

    settings.validate_required()
    api_base = settings.API_BASE_URL
    bucket = settings.AWS_S3_BUCKET
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from utils.errors import ConfigurationError

REQUIRED_SETTINGS = ("API_BASE_URL", "API_AUTH_TOKEN", "AWS_S3_BUCKET")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    The reporting API and bucket settings default to empty strings so the
    module can be imported without them; ``validate_required()`` is the
    pre-flight check every run performs before talking to the API.
    """

    # Reporting API Configuration
    API_BASE_URL: str = Field(default="")
    API_AUTH_TOKEN: str = Field(default="")
    API_TIMEOUT: int = Field(default=30)
    API_MAX_PAGES: int = Field(default=1000, ge=1)

    # Object Storage Configuration
    AWS_S3_BUCKET: str = Field(default="")
    AWS_REGION: Optional[str] = Field(default=None)

    # Archive Run Configuration
    MAX_FILE_COUNT: int = Field(default=0, ge=0)
    ARCHIVE_CONCURRENCY: int = Field(default=5, ge=1)
    ARCHIVE_MAX_ERRORS: int = Field(default=5, ge=1)
    ARCHIVE_SCHEDULE_CRON: str = Field(default="10 6 * * *")

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")

    # Application Metadata
    ENVIRONMENT: str = Field(default="production")
    APP_NAME: str = Field(default="phish-report-archiver")
    APP_VERSION: str = Field(default="0.1.0")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    def validate_required(self) -> None:
        """Fail fast when a required setting is missing.

        Raises:
            ConfigurationError: Naming the first missing environment variable
        """
        for name in REQUIRED_SETTINGS:
            if not getattr(self, name):
                raise ConfigurationError(
                    f"required value missing for environment variable {name}"
                )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Singleton Settings instance
    """
    return Settings()


# Global settings instance
settings = get_settings()
