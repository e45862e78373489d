"""Ignore patterns configuration model."""

from typing import List

from pydantic import BaseModel, Field


class IgnoreConfig(BaseModel):
    """Configuration for directory scan filtering.

    Attributes:
        use_defaults: Whether the built-in baseline patterns apply
        patterns: Extra gitignore-style patterns, applied after the defaults
        files: Ignore files read from the project root, in precedence order
    """

    use_defaults: bool = True
    patterns: List[str] = Field(default_factory=list)
    files: List[str] = Field(default_factory=lambda: [".gitignore", ".claude-ignore"])
