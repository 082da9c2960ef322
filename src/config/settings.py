"""
Centralized settings management using pydantic-settings.

All environment variables and configuration values are defined here.
Use get_settings() to access the singleton settings instance.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Required environment variables:
        - SUPABASE_URL: Supabase project URL
        - SUPABASE_SERVICE_KEY: Supabase service role key

    Optional environment variables:
        - SUPABASE_JWT_SECRET: Secret for verifying Supabase access tokens
        - REDIS_URL / REDIS_ENABLED: Cache backend (disabled = uncached)
        - SERPER_API_KEY: Shopping search provider key
        - ENVIRONMENT: Environment name (development, staging, production)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    # ==========================================================================
    # Server Configuration
    # ==========================================================================
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    cors_origins: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Allowed CORS origins"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # ==========================================================================
    # Supabase Configuration
    # ==========================================================================
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_service_key: str = Field(..., description="Supabase service role key")
    supabase_jwt_secret: str = Field(default="", description="JWT secret for token verification")

    # ==========================================================================
    # Cache (Redis) Configuration
    # ==========================================================================
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )
    redis_enabled: bool = Field(
        default=False,
        description="Enable the Redis cache. When disabled every cache call is a miss/no-op."
    )
    cache_key_prefix: str = Field(
        default="flair:",
        description="Prefix applied to every cache key"
    )
    cache_max_bytes: int = Field(
        default=1024 * 1024,
        description="Largest serialized payload stored for non-feed keys"
    )
    cache_feed_max_bytes: int = Field(
        default=256 * 1024,
        description="Largest serialized payload stored for community feed keys"
    )
    cache_feed_namespace: str = Field(
        default="community:feed:",
        description="Key namespace that gets the smaller feed ceiling"
    )

    # ==========================================================================
    # Preference Aggregation
    # ==========================================================================
    aggregation_window_days: int = Field(default=30, description="Trailing event window")
    aggregation_max_events: int = Field(default=500, description="Most recent events scanned")
    aggregation_decay_days: float = Field(default=7.0, description="Recency decay constant (days)")
    aggregation_top_n: int = Field(default=5, description="Favorite brands/categories kept")

    # ==========================================================================
    # Chat Keywords
    # ==========================================================================
    chat_keywords_per_message: int = Field(default=5, description="Keywords mined per message")
    chat_keywords_max: int = Field(default=10, description="Rolling keyword list cap")

    # ==========================================================================
    # Product Dedup
    # ==========================================================================
    dedup_title_threshold: float = Field(
        default=0.8,
        description="Title overlap above which listings may be duplicates"
    )
    dedup_price_threshold: float = Field(
        default=0.1,
        description="Relative price difference below which listings may be duplicates"
    )

    # ==========================================================================
    # Upstream Product Providers
    # ==========================================================================
    serper_api_key: str = Field(default="", description="Serper shopping search API key")
    serper_api_url: str = Field(
        default="https://google.serper.dev/shopping",
        description="Serper shopping endpoint"
    )
    provider_timeout_seconds: float = Field(
        default=6.0,
        description="Timeout for a single upstream provider request (seconds)"
    )
    provider_fanout_timeout_seconds: float = Field(
        default=8.0,
        description="Overall wait for all providers before returning partial results"
    )

    @field_validator("dedup_title_threshold", "dedup_price_threshold")
    @classmethod
    def check_unit_interval(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {v}")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses lru_cache to ensure only one instance is created.
    Settings are loaded from environment variables and .env file.

    Raises:
        ValidationError: If required environment variables are missing
    """
    env_file = Path(__file__).parent.parent.parent / ".env"
    if env_file.exists():
        os.environ.setdefault("ENV_FILE", str(env_file))

    return Settings(_env_file=env_file if env_file.exists() else None)


def get_settings_for_testing(**overrides) -> Settings:
    """
    Create a settings instance for testing with optional overrides.

    This bypasses the cache to allow different settings in tests.
    """
    test_defaults = {
        "supabase_url": "https://test.supabase.co",
        "supabase_service_key": "test-key",
        "supabase_jwt_secret": "test-jwt-secret",
        "environment": "testing",
        "debug": True,
    }
    test_defaults.update(overrides)

    return Settings(**test_defaults)
