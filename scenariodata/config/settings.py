"""Configuration settings and loading."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from scenariodata.errors import ConfigurationError, ErrorContext

logger = logging.getLogger(__name__)


class DataCreationConfig(BaseSettings):
    """Configuration for the data creation helper."""

    model_config = SettingsConfigDict(
        env_prefix="SCENARIODATA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_url: str | None = None
    echo_sql: bool = False
    cleanup: bool = Field(
        default=True, description="Roll back everything a test flushed once it finishes"
    )
    refresh_on_persist: bool = Field(
        default=True, description="Reload persisted entities so column conversions are exercised"
    )
    query_alias: str = "s"
    log_queries: bool = True

    # Fake data settings for entity factories
    faker_seed: int | None = Field(default=None, description="Seed for reproducible fake data")
    faker_locale: str = Field(default="en_US", description="Locale for generated data")

    @field_validator("db_url", mode="before")
    @classmethod
    def validate_db_url(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        try:
            make_url(v)
        except ArgumentError as e:
            raise ValueError(f"db_url is not a valid SQLAlchemy URL: {v}") from e
        return v

    @field_validator("query_alias")
    @classmethod
    def validate_query_alias(cls, v: str) -> str:
        if not v.isidentifier():
            raise ValueError(f"query_alias must be a valid identifier, got {v!r}")
        return v


def load_config(config_path: str | Path | None = None) -> DataCreationConfig:
    """Load configuration from file and environment.

    Priority: env vars > config file > defaults

    Raises:
        ConfigurationError: If the file cannot be parsed or holds invalid values.
    """
    config_data: dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    message=f"Cannot parse configuration file {config_path}",
                    cause=e,
                    context=ErrorContext(extra={"path": str(config_path)}),
                ) from e
            if not isinstance(config_data, dict):
                raise ConfigurationError(
                    message=f"Configuration file {config_path} must contain a mapping",
                    context=ErrorContext(extra={"path": str(config_path)}),
                )
            logger.info(f"Loaded configuration from {config_path}")
        else:
            logger.warning(f"Configuration file {config_path} not found, using defaults")

    config_data.update(_get_env_overrides())

    try:
        return DataCreationConfig(**config_data)
    except ValidationError as e:
        raise ConfigurationError(message=f"Invalid configuration: {e}", cause=e) from e


def _get_env_overrides() -> dict[str, Any]:
    """Get configuration overrides from environment variables.

    Every field can be overridden; values stay strings and are coerced by
    DataCreationConfig validation.
    """
    overrides: dict[str, Any] = {}
    prefix = DataCreationConfig.model_config.get("env_prefix", "")

    for field_name in DataCreationConfig.model_fields:
        value = os.environ.get(f"{prefix}{field_name.upper()}")
        if value is not None:
            overrides[field_name] = value

    return overrides
