# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Application configuration via environment variables and .env files."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from subkit.core.constants import (
    DEFAULT_BASE_DELAY,
    DEFAULT_CACHE_TTL,
    DEFAULT_CACHE_TTLS,
    DEFAULT_JITTER_RATIO,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY,
    DEFAULT_SWEEP_INTERVAL,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SUBKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )

    # Admin API
    api_base_url: str = "http://localhost:5001"
    api_token: str = ""
    api_timeout: float = 10.0

    # Cache (seconds)
    cache_default_ttl: float = DEFAULT_CACHE_TTL
    cache_ttls: dict[str, float] = dict(DEFAULT_CACHE_TTLS)
    cache_sweep_interval: float = DEFAULT_SWEEP_INTERVAL

    @field_validator("cache_ttls", mode="after")
    @classmethod
    def _merge_cache_ttls(cls, v: dict[str, float]) -> dict[str, float]:
        # Overrides from the environment only replace the types they name
        return {**DEFAULT_CACHE_TTLS, **v}

    @field_validator("cache_sweep_interval")
    @classmethod
    def _check_sweep_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("cache_sweep_interval must be positive")
        return v

    # Retry
    retry_max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_base_delay: float = DEFAULT_BASE_DELAY
    retry_max_delay: float = DEFAULT_MAX_DELAY
    retry_jitter_ratio: float = DEFAULT_JITTER_RATIO

    @field_validator("retry_max_attempts")
    @classmethod
    def _check_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("retry_max_attempts must be at least 1")
        return v

    @field_validator("retry_base_delay", "retry_max_delay")
    @classmethod
    def _check_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("retry delays must not be negative")
        return v

    @field_validator("retry_jitter_ratio")
    @classmethod
    def _check_jitter(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("retry_jitter_ratio must be between 0 and 1")
        return v

    # Bulk operations; None means every target starts at once
    bulk_max_concurrency: int | None = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"


def get_settings() -> Settings:
    return Settings()
