"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str
    database_echo: bool = False

    # Logging
    log_level: str = "INFO"
    log_file: str = "logs/supplynet.log"
    log_rotation: str = "1 day"
    log_retention: str = "7 days"

    # Upline cache
    cache_max_size: int = Field(default=10000, ge=1)
    cache_max_memory_bytes: int = Field(
        default=100 * 1024 * 1024, ge=1024,
        description="Estimated memory budget per cache instance"
    )
    cache_default_ttl_seconds: float = Field(default=300.0, gt=0)
    cache_eviction_policy: str = "LRU"
    cache_cleanup_interval_seconds: float = Field(default=60.0, gt=0)
    cache_background_cleanup: bool = True

    # Commission
    commission_max_depth: int = Field(default=5, ge=1, le=20)
    commission_decay_factor: Decimal = Field(
        default=Decimal("0.8"), gt=0, le=1
    )
    commission_min_amount: Decimal = Field(default=Decimal("0.01"), ge=0)

    # Purchase validation
    upline_search_max_depth: int = Field(default=10, ge=1, le=50)

    @field_validator('cache_eviction_policy')
    @classmethod
    def validate_eviction_policy(cls, v: str) -> str:
        """Validate cache eviction policy name."""
        value = v.strip().upper()
        if value not in ("LRU", "LFU", "TTL"):
            raise ValueError(
                f'Invalid cache eviction policy: {v}. '
                'Expected one of LRU, LFU, TTL.'
            )
        return value

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(('postgresql://', 'postgresql+asyncpg://')):
            raise ValueError(
                'DATABASE_URL must start with postgresql:// or postgresql+asyncpg://'
            )
        return v


# Global settings instance
settings = Settings()
