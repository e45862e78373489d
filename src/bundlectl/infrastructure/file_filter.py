"""File filtering utilities backed by project ignore files"""

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from bundlectl.domain.config.ignore import IgnoreConfig
from bundlectl.domain.ignore import combine_patterns, create_filter, default_patterns, parse_patterns
from bundlectl.domain.models.ignore_pattern import IgnorePattern

logger = logging.getLogger(__name__)


def read_pattern_file(path: Path) -> Optional[str]:
    """Read an ignore file

    Args:
        path: Ignore file location

    Returns:
        File content, or None if the file is missing or unreadable
    """
    if not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Error reading {path}: {e}")
        return None


def load_project_patterns(
    project_dir: Path, ignore_config: Optional[IgnoreConfig] = None
) -> List[IgnorePattern]:
    """Build the combined pattern list for a project

    Order: built-in defaults, configured extra patterns, then each
    configured ignore file in turn.

    Args:
        project_dir: Directory holding the ignore files
        ignore_config: Ignore configuration (defaults if None)

    Returns:
        Ordered pattern list
    """
    ignore_config = ignore_config or IgnoreConfig()
    defaults = default_patterns() if ignore_config.use_defaults else []
    sources = [parse_patterns("\n".join(ignore_config.patterns))]

    for file_name in ignore_config.files:
        file_patterns = parse_patterns(read_pattern_file(project_dir / file_name))
        if file_patterns:
            logger.debug(f"Loaded {len(file_patterns)} patterns from {project_dir / file_name}")
        sources.append(file_patterns)

    return combine_patterns(defaults, *sources)


def format_patterns_for_prompt(patterns: Iterable[IgnorePattern]) -> str:
    """Render patterns as a markdown section for agent prompts"""
    lines = "\n".join(f"  - {pattern.raw_text}" for pattern in patterns)
    return (
        "The following patterns should be ignored:\n"
        f"{lines}\n"
        "\n"
        "Always use these patterns when:\n"
        "- Searching for files (Glob, Grep)\n"
        "- Reading directory contents (LS)\n"
        "- Analyzing code structure\n"
    )


class FileFilter:
    """Filter for files based on gitignore-style patterns"""

    def __init__(self, base_directory: Path, patterns: Sequence[IgnorePattern] = ()):
        """Initialize file filter

        Args:
            base_directory: Root that anchored patterns are relative to
            patterns: Ordered ignore rules
        """
        self.base_directory = Path(base_directory)
        self.patterns = list(patterns)
        self._should_skip = create_filter(self.base_directory, self.patterns)

    @classmethod
    def for_project(
        cls, project_dir: Path, ignore_config: Optional[IgnoreConfig] = None
    ) -> "FileFilter":
        """Create a filter from the project's ignore files"""
        return cls(project_dir, load_project_patterns(project_dir, ignore_config))

    def rebased(self, base_directory: Path) -> "FileFilter":
        """Same patterns, anchored at another directory"""
        return FileFilter(base_directory, self.patterns)

    def should_ignore(self, path: Path) -> bool:
        """Check if a path should be skipped"""
        return self._should_skip(path)

    def filter_paths(self, paths: Iterable[Path]) -> Tuple[List[Path], List[Path]]:
        """Split paths into kept and ignored

        Args:
            paths: Paths to check

        Returns:
            Tuple of (kept_paths, ignored_paths)
        """
        kept = []
        ignored = []

        for path in paths:
            if self.should_ignore(path):
                ignored.append(path)
                logger.debug(f"Ignoring {path}")
            else:
                kept.append(path)

        if ignored:
            logger.info(f"Filtered out {len(ignored)} files, {len(kept)} files remaining")

        return kept, ignored

    def walk(self, root: Path, suffix: Optional[str] = None) -> Iterator[Path]:
        """Yield files under root that are not ignored

        Ignored directories are pruned without descending into them.

        Args:
            root: Directory to scan
            suffix: Only yield files with this suffix (e.g. ".md")
        """
        root = Path(root)
        if not root.is_dir():
            return

        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            dirnames[:] = sorted(d for d in dirnames if not self.should_ignore(current / d))
            for filename in sorted(filenames):
                path = current / filename
                if suffix and path.suffix != suffix:
                    continue
                if self.should_ignore(path):
                    logger.debug(f"Skipping ignored file {path}")
                    continue
                yield path
