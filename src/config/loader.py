"""
Configuration loader for validation runs.

Handles loading from multiple sources with proper priority:
Explicit overrides > Environment Variables > Config File > Defaults
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from src.exceptions import ConfigError

from .models import ValidatorConfig

logger = logging.getLogger(__name__)


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Priority order (highest to lowest):
    1. Explicit overrides (passed directly to methods)
    2. Environment variables (VNET_VALIDATOR_*)
    3. Configuration file
    4. Default values
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".config" / "vnet-topology-validator"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
    ENV_PREFIX = "VNET_VALIDATOR_"
    # Variables under ENV_PREFIX that are not config fields
    RESERVED_ENV = ("CONFIG_PATH", "TIMEOUT_")

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration loader.

        Args:
            config_path: Path to configuration file. If None, uses default location.
        """
        self.config_path = config_path or self._get_config_path_from_env()

    @classmethod
    def _get_config_path_from_env(cls) -> Path:
        """Get configuration path from environment variable or default."""
        env_path = os.environ.get(f"{cls.ENV_PREFIX}CONFIG_PATH")
        if env_path:
            return Path(env_path).expanduser()
        return cls.DEFAULT_CONFIG_FILE

    def load(self, overrides: Optional[dict[str, Any]] = None) -> ValidatorConfig:
        """
        Load configuration from all sources and merge.

        Args:
            overrides: Highest-priority values; None entries are ignored

        Returns:
            Validated ValidatorConfig object

        Raises:
            ConfigError: If configuration is invalid
        """
        config_dict: dict[str, Any] = {}

        if self.config_path.exists():
            logger.debug(f"Loading validator config from {self.config_path}")
            config_dict = self._deep_merge(config_dict, self._load_file(self.config_path))

        config_dict = self._deep_merge(config_dict, self._load_from_env())

        if overrides:
            config_dict = self._deep_merge(
                config_dict, self._filter_none_values(overrides)
            )

        try:
            return ValidatorConfig.model_validate(config_dict)
        except ValidationError as e:
            raise ConfigError(
                f"Configuration validation failed: {e}",
                config_path=str(self.config_path),
                cause=e,
            ) from e

    def _load_file(self, path: Path) -> dict[str, Any]:
        """
        Load configuration from YAML file.

        Raises:
            ConfigError: If file cannot be read or parsed
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}", config_path=str(path)) from e
        except OSError as e:
            raise ConfigError(
                f"Cannot read config file {path}: {e}", config_path=str(path)
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"Config file {path} must contain a mapping", config_path=str(path)
            )
        return data

    def _load_from_env(self) -> dict[str, Any]:
        """
        Load configuration from environment variables.

        Environment variable format:
        - VNET_VALIDATOR_LIST_MODE
        - VNET_VALIDATOR_MAX_WORKERS
        - VNET_VALIDATOR_ATTRIBUTE_ALIASES__RESOURCEGROUP

        Double underscore (__) separates nested keys.
        """
        config: dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(self.ENV_PREFIX):
                continue
            config_key = key[len(self.ENV_PREFIX) :]
            if config_key.startswith(self.RESERVED_ENV):
                continue

            parts = config_key.lower().split("__")

            current = config
            for part in parts[:-1]:
                current = current.setdefault(part, {})

            current[parts[-1]] = self._convert_env_value(value)

        return config

    def _convert_env_value(self, value: str) -> Any:
        """Convert environment variable string to bool, int, float, or str."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        return value

    def _deep_merge(
        self, base: dict[str, Any], update: dict[str, Any]
    ) -> dict[str, Any]:
        """Deep merge two dictionaries; base is not modified."""
        result = base.copy()

        for key, value in update.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _filter_none_values(self, data: dict[str, Any]) -> dict[str, Any]:
        """Recursively filter out None values from a dictionary."""
        result = {}
        for key, value in data.items():
            if value is None:
                continue
            elif isinstance(value, dict):
                filtered = self._filter_none_values(value)
                if filtered:
                    result[key] = filtered
            else:
                result[key] = value
        return result


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> ValidatorConfig:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to configuration file
        overrides: Values that take precedence over every other source

    Returns:
        Validated ValidatorConfig object

    Raises:
        ConfigError: If configuration is invalid
    """
    return ConfigLoader(config_path).load(overrides)
