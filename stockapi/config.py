"""
Configuration module for the Stock API.

Uses Pydantic Settings to manage environment variables and configuration.
Settings are read once at startup and passed explicitly to the components
that need them.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
    )

    # Database Configuration
    postgresql_url: str = Field(
        ...,
        description="PostgreSQL connection string for the stocks store"
    )
    db_pool_size: int = Field(
        default=5,
        gt=0,
        description="Number of pooled connections kept open"
    )
    db_max_overflow: int = Field(
        default=10,
        ge=0,
        description="Connections allowed beyond the pool size under load"
    )
    db_echo: bool = Field(
        default=False,
        description="Echo SQL statements through the engine logger"
    )

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8080,
        gt=0,
        le=65535,
        description="API server port"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_file: Optional[Path] = Field(
        default=None,
        description="Log file path"
    )

    @field_validator("postgresql_url")
    @classmethod
    def validate_postgresql_url(cls, value: str) -> str:
        """Reject connection strings SQLAlchemy cannot parse."""
        value = value.strip()
        if not value:
            raise ValueError("POSTGRESQL_URL must not be empty")

        # lib/pq style URLs use the short scheme, SQLAlchemy does not accept it
        if value.startswith("postgres://"):
            value = "postgresql://" + value[len("postgres://"):]

        try:
            make_url(value)
        except ArgumentError as e:
            raise ValueError(f"Invalid POSTGRESQL_URL: {e}") from e

        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns:
        Settings: Application configuration object

    Raises:
        pydantic.ValidationError: If POSTGRESQL_URL is missing or invalid
    """
    global _settings
    if _settings is None:
        _settings = Settings()

        # Ensure log directory exists
        if _settings.log_file:
            _settings.log_file.parent.mkdir(parents=True, exist_ok=True)

    return _settings


def reload_settings() -> Settings:
    """
    Force reload of settings (useful for testing).

    Returns:
        Settings: Fresh application configuration object
    """
    global _settings
    _settings = None
    return get_settings()
