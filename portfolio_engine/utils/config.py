"""Configuration management for Portfolio Engine.

This module provides simple YAML configuration loading and access.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from portfolio_engine.utils.logging import get_logger

logger = get_logger(__name__)

# Shipped inside the package so installed copies find it
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "default.yaml"

# Environment variables that override YAML keys
ENV_OVERRIDES = {
    "PORTFOLIO_ENGINE_DB_PATH": "storage.db_path",
    "PORTFOLIO_ENGINE_BACKEND": "storage.backend",
    "PORTFOLIO_ENGINE_ADMIN": "portfolio.admin",
    "PORTFOLIO_ENGINE_LOG_LEVEL": "logging.level",
}


class Config:
    """Simple configuration loader and accessor.

    Loads YAML configuration files and provides dict-like access to settings.

    Example:
        >>> config = Config.from_file("portfolio_engine/config/default.yaml")
        >>> threshold = config.get("portfolio.rebalance_threshold", 144)
    """

    def __init__(self, config_dict: dict[str, Any]) -> None:
        """Initialize with configuration dictionary.

        Args:
            config_dict: Configuration data as nested dictionary
        """
        self._config = config_dict

    @classmethod
    def from_file(cls, filepath: str | Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            filepath: Path to YAML configuration file

        Returns:
            Config instance with loaded configuration

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {filepath}")

        with open(path, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)

        if config_dict is None:
            config_dict = {}

        return cls(config_dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Supports nested keys using dot notation (e.g., "storage.backend").

        Args:
            key: Configuration key (supports dot notation for nested keys)
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Intermediate sections are created when missing.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to store
        """
        keys = key.split(".")
        section = self._config
        for k in keys[:-1]:
            if not isinstance(section.get(k), dict):
                section[k] = {}
            section = section[k]
        section[keys[-1]] = value

    def __getitem__(self, key: str) -> Any:
        """Get configuration value using bracket notation.

        Raises:
            KeyError: If key not found
        """
        value = self.get(key)
        if value is None:
            raise KeyError(f"Configuration key not found: {key}")
        return value

    def to_dict(self) -> dict[str, Any]:
        """Get the full configuration as dictionary."""
        return self._config.copy()


def load_config(filepath: str | Path = None) -> Config:
    """Helper function to load configuration.

    Args:
        filepath: Path to YAML configuration file. If None, uses default path.

    Returns:
        Config instance
    """
    if filepath is None:
        filepath = DEFAULT_CONFIG_PATH
    return Config.from_file(filepath)


def load_engine_config(
    config_file: str | Path = None,
    env_file: str | Path = None,
) -> Config:
    """Load engine configuration from YAML and environment variables.

    Reads the YAML file, then loads a .env file if one exists and applies
    the PORTFOLIO_ENGINE_* environment overrides on top.

    Args:
        config_file: Path to YAML file. If None, uses the packaged default.yaml.
        env_file: Path to .env file. If None, uses .env in the working directory.

    Returns:
        Config instance with overrides applied

    Example:
        >>> config = load_engine_config()
        >>> db_path = config.get("storage.db_path")
    """
    if env_file is None:
        env_file = Path.cwd() / ".env"

    if Path(env_file).exists():
        load_dotenv(env_file)
        logger.debug(f"Loaded environment from {env_file}")

    config = load_config(config_file)

    for env_var, key in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            config.set(key, value)
            logger.debug(f"Config override {key} from {env_var}")

    return config
