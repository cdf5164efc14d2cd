"""Configuration management for skill-router.

This module provides the Settings class for managing router configuration
with support for environment variables and .env files.

Example:
    SKILL_ROUTER_LOG_LEVEL=DEBUG
    SKILL_ROUTER_CACHE_TTL_MS=30000
    SKILL_ROUTER_HEALTH_CHECK_INTERVAL_MS=5000
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Router configuration settings.

    Settings can be configured via environment variables with the
    SKILL_ROUTER_ prefix, or via a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SKILL_ROUTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )

    # Decision cache
    enable_cache: bool = Field(default=True, description="Cache routing decisions")
    cache_ttl_ms: int = Field(
        default=60000, gt=0, description="Time-to-live of cached decisions in milliseconds"
    )
    cache_max_size: int = Field(
        default=1000, ge=1, description="Maximum number of cached decisions"
    )

    # Metrics
    enable_metrics: bool = Field(default=True, description="Collect routing metrics")
    baseline_decision_ms: float = Field(
        default=100.0,
        gt=0.0,
        description="Naive routing cost used as the speed improvement baseline",
    )

    # Health
    health_check_interval_ms: int = Field(
        default=0,
        ge=0,
        description="Interval of the load-based health sweep (0 disables it)",
    )
    failure_threshold: int = Field(
        default=5,
        ge=1,
        description="Consecutive execution failures before an expert is marked unhealthy",
    )
    recovery_timeout_s: float = Field(
        default=30.0,
        gt=0.0,
        description="Seconds before an expert tripped by failures is readmitted as degraded",
    )

    # Decisions
    fallback_on_execution_error: bool = Field(
        default=False,
        description="Retry a failed execution once through the direct fallback path",
    )
    high_confidence_threshold: float = Field(
        default=0.8, ge=0.0, le=1.0, description="Confidence at or above which a decision is high"
    )
    max_alternatives: int = Field(
        default=3, ge=0, description="Maximum runner-up experts reported per decision"
    )


# Global settings instance (lazy-loaded)
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns:
        The global Settings instance, created on first access.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def configure_settings(**overrides: Any) -> Settings:
    """Configure settings with overrides.

    Args:
        **overrides: Setting values to override.

    Returns:
        New Settings instance with overrides applied.
    """
    global _settings
    _settings = Settings(**overrides)
    return _settings


__all__ = [
    "Settings",
    "configure_settings",
    "get_settings",
]
