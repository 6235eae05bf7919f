"""Configuration models for scrapedash.

Defines Pydantic v2 models for the API endpoint, retry behaviour, health
polling and logging. Configuration is read from an optional YAML file
and then overridden by environment variables:

    SCRAPEDASH_API_BASE_URL     api.base_url
    SCRAPEDASH_TIMEOUT_SECONDS  api.timeout_seconds
    SCRAPEDASH_LOG_LEVEL        logging.level

Example YAML:

    api:
      base_url: https://scraper.example.com
      timeout_seconds: 30
    retry:
      max_attempts: 4
    health:
      interval_seconds: 15
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from scrapedash.client.policy import RetryPolicy
from scrapedash.core.errors import RETRYABLE_KINDS, ErrorKind
from scrapedash.core.exceptions import ConfigError

ENV_PREFIX = "SCRAPEDASH_"


class ApiConfig(BaseModel):
    """Where the scraping service lives and how long a call may take."""

    base_url: str = Field(
        default="http://localhost:8000",
        description="Root URL of the scraping service API.",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Ceiling for every outbound call. Exceeding it is a timeout failure.",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra headers sent with every request (e.g. Authorization).",
    )

    @field_validator("base_url")
    @classmethod
    def _require_http_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {value!r}")
        return value.rstrip("/")


class RetrySettings(BaseModel):
    """Default retry policy for data requests."""

    max_attempts: int = Field(default=3, ge=1, le=20)
    base_delay_seconds: float = Field(default=1.0, ge=0)
    max_delay_seconds: float = Field(default=10.0, ge=0)
    backoff_factor: float = Field(default=2.0, gt=1)
    retry_on: list[ErrorKind] = Field(
        default_factory=lambda: sorted(RETRYABLE_KINDS, key=lambda k: k.value),
        description="Error kinds eligible for retry. Non-transient kinds are ignored.",
    )

    @model_validator(mode="after")
    def _check_delays(self) -> RetrySettings:
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        return self

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay_seconds,
            max_delay=self.max_delay_seconds,
            backoff_factor=self.backoff_factor,
            retry_on=frozenset(self.retry_on),
        )


class HealthSettings(BaseModel):
    """Liveness polling.

    The per-tick retry policy is deliberately small and fast, independent
    of ``retry``: a health check should report an outage quickly rather
    than hide it behind long backoff.
    """

    interval_seconds: float = Field(default=30.0, ge=0.1)
    path: Literal["/health", "/api/v1/health"] = Field(
        default="/health",
        description="Liveness endpoint; /api/v1/health is the versioned alias.",
    )
    immediate: bool = Field(
        default=False,
        description="Run the first check at start instead of after one interval.",
    )
    max_attempts: int = Field(default=2, ge=1, le=5)
    base_delay_seconds: float = Field(default=0.25, ge=0)
    max_delay_seconds: float = Field(default=1.0, ge=0)

    @model_validator(mode="after")
    def _check_delays(self) -> HealthSettings:
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        return self

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay_seconds,
            max_delay=self.max_delay_seconds,
        )


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    format: Literal["console", "json"] = "console"
    file: Path | None = None

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class ScrapeDashConfig(BaseModel):
    """Top-level configuration."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    config_file: Path | None = Field(
        default=None,
        description="YAML file this config was loaded from, set by load_config().",
    )


def _env_overrides(env: Mapping[str, str]) -> dict[str, dict[str, str]]:
    overrides: dict[str, dict[str, str]] = {}
    mapping = {
        "API_BASE_URL": ("api", "base_url"),
        "TIMEOUT_SECONDS": ("api", "timeout_seconds"),
        "LOG_LEVEL": ("logging", "level"),
    }
    for suffix, (section, key) in mapping.items():
        value = env.get(f"{ENV_PREFIX}{suffix}")
        if value:
            overrides.setdefault(section, {})[key] = value
    return overrides


def load_config(
    config_file: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ScrapeDashConfig:
    """Load configuration from YAML (if given) and environment overrides.

    Raises:
        ConfigError: If the file is missing or unparseable, or the merged
            values fail validation.
    """
    data: dict[str, object] = {}
    if config_file is not None:
        if not config_file.exists():
            raise ConfigError(f"Config file not found: {config_file}")
        try:
            with open(config_file) as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Cannot parse {config_file}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigError(f"{config_file} must contain a mapping at the top level")
        data = loaded

    for section, values in _env_overrides(os.environ if env is None else env).items():
        existing = data.get(section)
        merged = dict(existing) if isinstance(existing, dict) else {}
        merged.update(values)
        data[section] = merged

    try:
        config = ScrapeDashConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    if config_file is not None:
        config.config_file = config_file.resolve()
    return config


__all__ = [
    "ApiConfig",
    "ENV_PREFIX",
    "HealthSettings",
    "LoggingSettings",
    "RetrySettings",
    "ScrapeDashConfig",
    "load_config",
]
