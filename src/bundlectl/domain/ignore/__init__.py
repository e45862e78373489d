"""Gitignore-compatible ignore pattern engine."""

from bundlectl.domain.ignore.matcher import compile_glob, create_filter, is_excluded
from bundlectl.domain.ignore.patterns import (
    DEFAULT_IGNORE_PATTERNS,
    combine_patterns,
    default_patterns,
    parse_line,
    parse_patterns,
)

__all__ = [
    "DEFAULT_IGNORE_PATTERNS",
    "combine_patterns",
    "compile_glob",
    "create_filter",
    "default_patterns",
    "is_excluded",
    "parse_line",
    "parse_patterns",
]
