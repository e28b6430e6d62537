"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from downline.config.constants import (
    CHILD_PAGE_SIZE,
    MAX_TRACKED_LEVEL,
    MEMBERSHIP_FAN_IN,
    STORE_MAX_CONCURRENCY,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False
    database_pool_size: int = Field(default=10, ge=1)

    # API
    api_host: str = "0.0.0.0"
    api_port: int = Field(
        default=8080, ge=1, le=65535, description="HTTP API port"
    )

    # Bearer tokens (Fernet key, urlsafe base64, 32 bytes)
    token_secret: str | None = None
    token_ttl_seconds: int = Field(
        default=7 * 24 * 3600, gt=0, description="Bearer token lifetime"
    )

    # Store limits
    membership_fan_in: int = Field(
        default=MEMBERSHIP_FAN_IN,
        ge=1,
        description="Max ids per membership ('in') query",
    )
    max_tracked_level: int = Field(
        default=MAX_TRACKED_LEVEL,
        ge=1,
        description="Deepest level reported separately; deeper goes to overflow",
    )
    child_page_size: int = Field(
        default=CHILD_PAGE_SIZE, ge=1, le=500
    )
    store_max_concurrency: int = Field(
        default=STORE_MAX_CONCURRENCY,
        ge=1,
        description="Max store calls in flight; keep within the DB pool size",
    )

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = "logs/downline.log"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production':
            if self.debug:
                raise ValueError(
                    'DEBUG must be False in production environment. '
                    'Set DEBUG=false in your .env file.'
                )

            if not self.token_secret:
                raise ValueError(
                    'TOKEN_SECRET is required in production. Generate one with: '
                    "python -c 'from cryptography.fernet import Fernet; "
                    "print(Fernet.generate_key().decode())'"
                )

            if self.database_echo:
                logger.warning(
                    'DATABASE_ECHO is enabled in production. '
                    'SQL statements will be written to the log.'
                )

        return self

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(('postgresql://', 'postgresql+asyncpg://')):
            raise ValueError(
                'DATABASE_URL must start with postgresql:// or postgresql+asyncpg://'
            )
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f'Invalid LOG_LEVEL: {v}')
        return level

    @property
    def async_database_url(self) -> str:
        """Database URL with the asyncpg driver."""
        if self.database_url.startswith('postgresql://'):
            return self.database_url.replace(
                'postgresql://', 'postgresql+asyncpg://', 1
            )
        return self.database_url


# Global settings instance
settings = Settings()
