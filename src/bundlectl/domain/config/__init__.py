"""Configuration models with Pydantic validation."""

from bundlectl.domain.config.app import AppConfig
from bundlectl.domain.config.ignore import IgnoreConfig
from bundlectl.domain.config.paths import PathsConfig
from bundlectl.domain.config.retry import RetryConfig
from bundlectl.domain.config.update import UpdateConfig

__all__ = [
    "AppConfig",
    "IgnoreConfig",
    "PathsConfig",
    "RetryConfig",
    "UpdateConfig",
]
