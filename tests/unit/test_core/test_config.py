#!/usr/bin/env python3
"""Tests for environment-based configuration."""

import pytest

from fundflow.core.config import Config, Environment, get_config, reload_config


class TestConfig:
    """Test configuration loading and validation."""

    @pytest.mark.unit
    def test_test_environment_uses_data_dir_override(self, tmp_path):
        config = Config.from_environment()

        assert config.environment == Environment.TEST
        assert config.data_dir == tmp_path / "fundflow_data"
        assert config.data_dir.exists()

    @pytest.mark.unit
    def test_defaults(self):
        config = Config.from_environment()

        assert config.llm.default_model == "gemini-2.0-flash"
        assert config.validation.silent_tolerance == 10
        assert config.validation.reject_tolerance == 100
        assert config.refresh.poll_interval_seconds == 30
        assert config.cache.user_ttl_seconds == 1800
        assert config.cache.search_ttl_seconds == 300
        assert config.validate() == []

    @pytest.mark.unit
    def test_tolerances_from_environment(self, monkeypatch):
        monkeypatch.setenv("FUNDFLOW_SILENT_TOLERANCE", "500")
        monkeypatch.setenv("FUNDFLOW_REJECT_TOLERANCE", "100")

        errors = Config.from_environment().validate()
        assert "Silent tolerance must not exceed reject tolerance" in errors

    @pytest.mark.unit
    def test_production_requires_provider_key(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FUNDFLOW_ENV", "production")
        monkeypatch.setenv("FUNDFLOW_DATA_DIR", str(tmp_path / "prod"))

        config = Config.from_environment()
        assert "GOOGLE_API_KEY or GROQ_API_KEY is required in production" in config.validate()

    @pytest.mark.unit
    def test_to_dict_redacts_keys(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "secret")

        data = Config.from_environment().to_dict()
        assert data["llm"]["groq_api_key"] == "***REDACTED***"
        assert data["llm"]["google_api_key"] is None
        assert data["environment"] == "test"
        assert Config.from_environment().to_dict(include_sensitive=True)["llm"]["groq_api_key"] == "secret"

    @pytest.mark.unit
    def test_get_config_is_cached_until_reload(self, monkeypatch):
        first = get_config()
        assert get_config() is first

        monkeypatch.setenv("FUNDFLOW_POLL_SECONDS", "5")
        assert reload_config().refresh.poll_interval_seconds == 5

    @pytest.mark.unit
    def test_invalid_configuration_raises(self, monkeypatch):
        monkeypatch.setenv("FUNDFLOW_POLL_SECONDS", "0")

        with pytest.raises(ValueError, match="Poll interval must be positive"):
            get_config()
