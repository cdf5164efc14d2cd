"""Tests for skill_router.config module."""

from __future__ import annotations

import pytest

from skill_router.config import Settings, configure_settings, get_settings


class TestSettings:
    """Tests for Settings class."""

    def test_default_values(self):
        """Test Settings has correct default values."""
        settings = Settings()
        assert settings.log_level == "INFO"
        assert settings.log_format == "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        assert settings.enable_cache is True
        assert settings.cache_ttl_ms == 60000
        assert settings.cache_max_size == 1000
        assert settings.enable_metrics is True
        assert settings.baseline_decision_ms == 100.0
        assert settings.health_check_interval_ms == 0
        assert settings.failure_threshold == 5
        assert settings.recovery_timeout_s == 30.0
        assert settings.fallback_on_execution_error is False
        assert settings.high_confidence_threshold == 0.8
        assert settings.max_alternatives == 3

    def test_cache_ttl_minimum(self):
        """Test cache_ttl_ms must be positive."""
        with pytest.raises(ValueError):
            Settings(cache_ttl_ms=0)

    def test_cache_max_size_minimum(self):
        """Test cache_max_size has minimum validation."""
        with pytest.raises(ValueError):
            Settings(cache_max_size=0)

    def test_health_check_interval_minimum(self):
        """Test health_check_interval_ms cannot be negative."""
        with pytest.raises(ValueError):
            Settings(health_check_interval_ms=-5)

    def test_failure_threshold_minimum(self):
        """Test failure_threshold has minimum validation."""
        with pytest.raises(ValueError):
            Settings(failure_threshold=0)

    def test_confidence_threshold_bounds(self):
        """Test high_confidence_threshold must lie within [0, 1]."""
        with pytest.raises(ValueError):
            Settings(high_confidence_threshold=1.2)
        assert Settings(high_confidence_threshold=0.0).high_confidence_threshold == 0.0

    def test_log_level_validation(self):
        """Test log_level only accepts valid values."""
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            assert Settings(log_level=level).log_level == level
        with pytest.raises(ValueError):
            Settings(log_level="VERBOSE")

    def test_env_prefix(self, monkeypatch):
        """Test Settings reads SKILL_ROUTER_ prefixed environment variables."""
        monkeypatch.setenv("SKILL_ROUTER_CACHE_TTL_MS", "30000")
        monkeypatch.setenv("SKILL_ROUTER_ENABLE_CACHE", "false")
        monkeypatch.setenv("SKILL_ROUTER_LOG_LEVEL", "DEBUG")

        settings = Settings()
        assert settings.cache_ttl_ms == 30000
        assert settings.enable_cache is False
        assert settings.log_level == "DEBUG"

    def test_unrelated_env_ignored(self, monkeypatch):
        """Test unprefixed variables do not leak into settings."""
        monkeypatch.setenv("CACHE_TTL_MS", "1")
        assert Settings().cache_ttl_ms == 60000


class TestGetSettings:
    """Tests for get_settings and configure_settings."""

    def test_get_settings_singleton(self):
        """Test get_settings returns the same instance."""
        assert get_settings() is get_settings()

    def test_configure_settings(self):
        """Test configure_settings replaces the global instance."""
        original = get_settings()
        try:
            configured = configure_settings(cache_ttl_ms=1234)
            assert configured.cache_ttl_ms == 1234
            assert get_settings() is configured
        finally:
            configure_settings(**original.model_dump())
