"""IgnorePattern model - one normalized rule from an ignore file"""

from dataclasses import dataclass


@dataclass(frozen=True)
class IgnorePattern:
    """Represents a single parsed ignore rule"""

    raw_text: str  # Original line, trimmed
    glob: str  # Matchable glob (directory rules end with "/**")
    negated: bool = False  # Line started with "!" (re-include)
    anchored: bool = False  # Line started with "/" (match from base root only)
    directory_only: bool = False  # Line ended with "/"

    def __str__(self) -> str:
        return self.raw_text
