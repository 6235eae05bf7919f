"""Tests for scrapedash.core.config module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from scrapedash.client.policy import RetryPolicy
from scrapedash.core.config import (
    ApiConfig,
    HealthSettings,
    LoggingSettings,
    RetrySettings,
    ScrapeDashConfig,
    load_config,
)
from scrapedash.core.errors import ErrorKind
from scrapedash.core.exceptions import ConfigError


class TestApiConfig:
    """Tests for ApiConfig model."""

    def test_defaults(self):
        config = ApiConfig()
        assert config.base_url == "http://localhost:8000"
        assert config.timeout_seconds == 30.0
        assert config.headers == {}

    def test_trailing_slash_stripped(self):
        assert ApiConfig(base_url=" https://scraper.example.com/ ").base_url == (
            "https://scraper.example.com"
        )

    def test_non_http_url_rejected(self):
        with pytest.raises(ValidationError):
            ApiConfig(base_url="ftp://scraper.example.com")

    @pytest.mark.parametrize("timeout", [0, -1, 601])
    def test_timeout_bounds(self, timeout: float):
        with pytest.raises(ValidationError):
            ApiConfig(timeout_seconds=timeout)


class TestRetrySettings:
    """Tests for RetrySettings model."""

    def test_defaults_match_default_policy(self):
        policy = RetrySettings().to_policy()
        assert policy == RetryPolicy()

    def test_custom_policy(self):
        policy = RetrySettings(
            max_attempts=5,
            base_delay_seconds=0.5,
            max_delay_seconds=4.0,
            retry_on=["server"],
        ).to_policy()
        assert policy.max_attempts == 5
        assert policy.base_delay == 0.5
        assert policy.max_delay == 4.0
        assert policy.retry_on == frozenset({ErrorKind.SERVER})

    def test_max_delay_below_base_rejected(self):
        with pytest.raises(ValidationError):
            RetrySettings(base_delay_seconds=5.0, max_delay_seconds=1.0)

    def test_factor_must_grow(self):
        with pytest.raises(ValidationError):
            RetrySettings(backoff_factor=1.0)


class TestHealthSettings:
    """Tests for HealthSettings model."""

    def test_defaults(self):
        settings = HealthSettings()
        assert settings.interval_seconds == 30.0
        assert settings.path == "/health"
        assert settings.immediate is False

    def test_policy_is_short(self):
        policy = HealthSettings().to_policy()
        assert policy.max_attempts == 2
        assert policy.max_delay == 1.0

    def test_unknown_path_rejected(self):
        with pytest.raises(ValidationError):
            HealthSettings(path="/status")

    def test_versioned_path_allowed(self):
        assert HealthSettings(path="/api/v1/health").path == "/api/v1/health"


class TestLoggingSettings:
    def test_level_is_uppercased(self):
        assert LoggingSettings(level="debug").level == "DEBUG"

    def test_unknown_level_rejected(self):
        with pytest.raises(ValidationError):
            LoggingSettings(level="TRACE")


class TestLoadConfig:
    """Tests for load_config()."""

    def test_defaults_without_file_or_env(self):
        config = load_config(env={})
        assert config == ScrapeDashConfig()
        assert config.config_file is None

    def test_yaml_file(self, tmp_path: Path):
        path = tmp_path / "scrapedash.yaml"
        path.write_text(
            "api:\n"
            "  base_url: https://scraper.example.com/\n"
            "  timeout_seconds: 12\n"
            "retry:\n"
            "  max_attempts: 4\n"
            "health:\n"
            "  interval_seconds: 5\n"
            "  path: /api/v1/health\n"
        )
        config = load_config(path, env={})
        assert config.api.base_url == "https://scraper.example.com"
        assert config.api.timeout_seconds == 12
        assert config.retry.max_attempts == 4
        assert config.health.interval_seconds == 5
        assert config.health.path == "/api/v1/health"
        assert config.config_file == path.resolve()

    def test_empty_file_gives_defaults(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path, env={}).api == ApiConfig()

    def test_env_overrides_file(self, tmp_path: Path):
        path = tmp_path / "scrapedash.yaml"
        path.write_text("api:\n  base_url: https://file.example.com\n  timeout_seconds: 12\n")
        config = load_config(
            path,
            env={
                "SCRAPEDASH_API_BASE_URL": "https://env.example.com",
                "SCRAPEDASH_LOG_LEVEL": "info",
            },
        )
        assert config.api.base_url == "https://env.example.com"
        assert config.api.timeout_seconds == 12
        assert config.logging.level == "INFO"

    def test_env_timeout(self):
        config = load_config(env={"SCRAPEDASH_TIMEOUT_SECONDS": "7.5"})
        assert config.api.timeout_seconds == 7.5

    def test_blank_env_values_ignored(self):
        config = load_config(env={"SCRAPEDASH_API_BASE_URL": ""})
        assert config.api.base_url == "http://localhost:8000"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml", env={})

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "broken.yaml"
        path.write_text("api: [unclosed\n")
        with pytest.raises(ConfigError, match="Cannot parse"):
            load_config(path, env={})

    def test_non_mapping_document(self, tmp_path: Path):
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path, env={})

    def test_invalid_values(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("api:\n  timeout_seconds: -3\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path, env={})

    def test_invalid_env_value(self):
        with pytest.raises(ConfigError):
            load_config(env={"SCRAPEDASH_API_BASE_URL": "scraper.example.com"})
