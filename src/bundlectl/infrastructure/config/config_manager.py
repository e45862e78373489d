"""Loading of .bundlectl.yml with environment overrides"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from bundlectl.domain.config import (
    AppConfig,
    IgnoreConfig,
    PathsConfig,
    RetryConfig,
    UpdateConfig,
)

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".bundlectl.yml"


class ConfigurationError(Exception):
    """Configuration validation error."""

    pass


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Look for .bundlectl.yml in start (default: cwd) and each parent directory"""
    current = start or Path.cwd()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            logger.info(f"Found config file: {candidate}")
            return candidate
    logger.debug(f"No {CONFIG_FILE_NAME} found, using defaults")
    return None


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base, descending into nested sections"""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _format_validation_error(error: ValidationError) -> str:
    lines = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        lines.append(f"  - {location}: {item['msg']}")
    return "Configuration validation failed:\n" + "\n".join(lines)


class ConfigManager:
    """Resolves the effective configuration for one CLI invocation

    Sources, lowest priority first:
    1. Model defaults (``AppConfig``)
    2. .bundlectl.yml (explicit path, or searched from the current directory upwards)
    3. BUNDLECTL_* environment variables
    4. CLI options (applied by the CLI layer)
    """

    ENV_OVERRIDES = {
        "BUNDLECTL_USER_DIR": ("paths", "user_dir"),
        "BUNDLECTL_PROJECT_DIR": ("paths", "project_dir"),
        "BUNDLECTL_LIBRARY_DIR": ("paths", "library_dir"),
    }

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """Initialize config manager

        Args:
            config_path: Path to the config file (searched from cwd if None)

        Raises:
            ConfigurationError: If the merged configuration does not validate
        """
        self.config_path = Path(config_path) if config_path else find_config_file()
        settings = deep_merge(AppConfig().model_dump(), self._read_file())
        settings = self._apply_env_overrides(settings)
        try:
            self.config = AppConfig.model_validate(settings)
        except ValidationError as e:
            raise ConfigurationError(_format_validation_error(e)) from e

    def _read_file(self) -> Dict[str, Any]:
        """Read the YAML file, falling back to no overrides if it is unusable"""
        if self.config_path is None or not self.config_path.exists():
            return {}
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {self.config_path}: {e}")
            logger.info("Using default configuration")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {self.config_path}: top level must be a mapping")
            return {}
        logger.info(f"Loaded configuration from {self.config_path}")
        return data

    def _apply_env_overrides(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        for env_name, (section, key) in self.ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                logger.debug(f"{env_name} overrides {section}.{key}")
                settings.setdefault(section, {})[key] = value
        return settings

    def get_paths_config(self) -> PathsConfig:
        return self.config.paths

    def get_ignore_config(self) -> IgnoreConfig:
        return self.config.ignore

    def get_ignore_patterns(self) -> List[str]:
        """Extra ignore patterns from the config file"""
        return self.config.ignore.patterns

    def get_update_config(self) -> UpdateConfig:
        return self.config.update

    def get_retry_config(self) -> RetryConfig:
        return self.config.retry

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key

        Args:
            key: Key such as "ignore.files" or "update"
            default: Returned when the key does not exist

        Returns:
            Configuration value or default
        """
        value: Any = self.config.model_dump()
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value
