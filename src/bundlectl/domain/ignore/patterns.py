"""Parsing and combining of gitignore-style pattern sources.

A pattern source is the text of one ignore file (``.gitignore``,
``.claude-ignore``) or the built-in default list. Parsing turns it into an
ordered list of :class:`IgnorePattern` records; combining concatenates those
lists in precedence order so that later rules can override earlier ones.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from bundlectl.domain.models.ignore_pattern import IgnorePattern

RECURSIVE_SUFFIX = "**"

DEFAULT_IGNORE_PATTERNS: List[str] = [
    "node_modules/**",
    ".git/**",
    "*.log",
    ".DS_Store",
    "Thumbs.db",
    ".env",
    ".env.*",
    "*.swp",
    "*.swo",
    "*~",
    ".idea/**",
    ".vscode/**",
    "coverage/**",
    "dist/**",
    "build/**",
    "*.tgz",
    ".npm/**",
    ".npmrc",
]


def parse_line(line: str) -> Optional[IgnorePattern]:
    """Parse a single ignore line.

    Args:
        line: Raw line from a pattern source

    Returns:
        IgnorePattern, or None for blank and comment lines
    """
    raw_text = line.strip()
    if not raw_text or raw_text.startswith("#"):
        return None

    text = raw_text
    negated = text.startswith("!")
    if negated:
        text = text[1:]

    anchored = text.startswith("/")
    if anchored:
        text = text[1:]

    directory_only = text.endswith("/")
    glob = text + RECURSIVE_SUFFIX if directory_only else text

    return IgnorePattern(
        raw_text=raw_text,
        glob=glob,
        negated=negated,
        anchored=anchored,
        directory_only=directory_only,
    )


def parse_patterns(source_text: Optional[str]) -> List[IgnorePattern]:
    """Parse the text of one pattern source into ordered records.

    Args:
        source_text: File content, or None if the source was missing or unreadable

    Returns:
        Records in source order (empty list for missing sources)
    """
    if not source_text:
        return []

    patterns = []
    for line in source_text.splitlines():
        pattern = parse_line(line)
        if pattern is not None:
            patterns.append(pattern)
    return patterns


def default_patterns() -> List[IgnorePattern]:
    """Built-in baseline exclusions as fresh records"""
    return parse_patterns("\n".join(DEFAULT_IGNORE_PATTERNS))


def combine_patterns(
    defaults: Iterable[IgnorePattern], *sources: Iterable[IgnorePattern]
) -> List[IgnorePattern]:
    """Concatenate pattern lists in precedence order.

    Duplicates are kept: matching always honours the last applicable rule,
    so repeating a rule is harmless.

    Args:
        defaults: Built-in patterns, applied first
        *sources: Discovered pattern lists, in fixed discovery order

    Returns:
        Combined ordered pattern list
    """
    combined = list(defaults)
    for source in sources:
        combined.extend(source)
    return combined
