"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from bundlectl.domain.config.ignore import IgnoreConfig
from bundlectl.domain.config.paths import PathsConfig
from bundlectl.domain.config.retry import RetryConfig
from bundlectl.domain.config.update import UpdateConfig


class AppConfig(BaseModel):
    """Root of .bundlectl.yml.

    Unknown sections and keys are rejected.

    Attributes:
        paths: Bundle directory configuration
        ignore: Scan filtering configuration
        update: Update check configuration
        retry: Retry logic configuration
    """

    paths: PathsConfig = Field(default_factory=PathsConfig)
    ignore: IgnoreConfig = Field(default_factory=IgnoreConfig)
    update: UpdateConfig = Field(default_factory=UpdateConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    model_config = ConfigDict(
        validate_assignment=True,  # Validate on attribute assignment
        extra="forbid",  # Reject unknown fields
        json_schema_extra={
            "example": {
                "paths": {
                    "user_dir": "~/.claude",
                    "project_dir": None,
                    "library_dir": None,
                },
                "ignore": {
                    "use_defaults": True,
                    "patterns": ["drafts/", "*.bak"],
                    "files": [".gitignore", ".claude-ignore"],
                },
                "update": {
                    "enabled": True,
                    "package_name": "bundlectl",
                    "timeout": 5.0,
                },
                "retry": {
                    "max_attempts": 3,
                    "initial_delay": 1.0,
                    "backoff_multiplier": 2.0,
                    "max_delay": 30.0,
                    "jitter": 0.1,
                },
            }
        },
    )
