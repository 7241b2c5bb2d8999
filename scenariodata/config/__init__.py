"""Configuration management for scenariodata."""

from scenariodata.config.settings import DataCreationConfig, load_config

__all__ = [
    "DataCreationConfig",
    "load_config",
]
