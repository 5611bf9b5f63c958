"""bodycheck configuration.

Settings are read from the environment (prefix ``BODYCHECK_``) and an optional
``.env`` file, using pydantic-settings for validation and type safety.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+\Z"


class Settings(BaseSettings):
    """Package settings."""

    model_config = SettingsConfigDict(
        env_prefix="BODYCHECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = Field(
        default=False,
        description="Include stack traces in error response bodies",
    )
    email_pattern: str = Field(
        default=DEFAULT_EMAIL_PATTERN,
        description="Regular expression an email field must match",
    )
    log_level: str = Field(default="WARNING", description="Level for the bodycheck logger")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Set the level of the package logger from settings.

    Handlers are left to the application.
    """
    if settings is None:
        settings = get_settings()
    package_logger = logging.getLogger("bodycheck")
    package_logger.setLevel(settings.log_level.upper())
    return package_logger


__all__ = [
    "DEFAULT_EMAIL_PATTERN",
    "Settings",
    "get_settings",
    "configure_logging",
]
