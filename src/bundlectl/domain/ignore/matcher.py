"""Path matching against an ordered list of ignore patterns.

Rules are applied in order and the last rule that matches decides: a plain
rule excludes the path, a negated rule re-includes it. Unanchored rules match
at any depth, anchored rules only from the base directory. An excluding rule that
matches a directory also excludes everything below it; a negated rule only
re-includes paths it matches directly.
"""

from __future__ import annotations

import os
import posixpath
import re
from typing import Callable, Iterable, List, NamedTuple, Optional, Pattern, Sequence, Tuple, Union

from bundlectl.domain.models.ignore_pattern import IgnorePattern

PathLike = Union[str, "os.PathLike[str]"]


def _translate_segment(segment: str) -> str:
    """Translate one path segment of a glob into a regex fragment"""
    parts = []
    for char in segment:
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
    return "".join(parts)


def compile_glob(glob: str) -> Optional[Pattern[str]]:
    """Compile a glob into an anchored regular expression.

    ``*`` and ``?`` never cross a path separator. A ``**`` segment stands for
    zero or more whole segments.

    Args:
        glob: Glob expression using "/" as separator

    Returns:
        Compiled pattern, or None if the glob can never match
    """
    if not glob:
        return None

    segments = glob.split("/")
    last = len(segments) - 1
    regex = []
    skip_separator = True

    for idx, segment in enumerate(segments):
        if segment == "**":
            if last == 0:
                regex.append(".*")
            elif idx == 0:
                regex.append("(?:.*/)?")
            elif idx == last:
                regex.append("(?:/.*)?")
            else:
                regex.append("/(?:.*/)?")
            skip_separator = True
            continue

        if not skip_separator:
            regex.append("/")
        regex.append(_translate_segment(segment))
        skip_separator = False

    return re.compile("".join(regex), re.DOTALL)


def relative_to_base(path: PathLike, base_directory: Optional[PathLike] = None) -> Optional[str]:
    """Normalize a path to the slash-separated form used for matching.

    Args:
        path: Absolute or relative path
        base_directory: Directory that absolute paths are made relative to

    Returns:
        Relative path ("" for the base itself), or None if the path lies
        outside the base directory
    """
    path_str = os.fspath(path).replace("\\", "/")

    if base_directory is not None and posixpath.isabs(path_str):
        base = posixpath.normpath(os.fspath(base_directory).replace("\\", "/"))
        normalized = posixpath.normpath(path_str)
        if normalized == base:
            return ""
        prefix = base if base.endswith("/") else base + "/"
        if not normalized.startswith(prefix):
            return None
        return normalized[len(prefix):]

    relative = posixpath.normpath(path_str.lstrip("/")) if path_str.strip("/") else ""
    if relative == ".":
        return ""
    if relative == ".." or relative.startswith("../"):
        return None
    return relative


class Candidates(NamedTuple):
    """Strings a path is tested against, grouped by rule kind"""

    anchored: List[str]
    unanchored: List[str]
    ancestor_anchored: List[str]
    ancestor_unanchored: List[str]


def _suffixes(parts: List[str]) -> List[str]:
    return ["/".join(parts[start:]) for start in range(len(parts))]


def _candidates(relative_path: str) -> Candidates:
    """Build the strings each kind of rule is tested against.

    Every rule sees the path itself; unanchored rules also see each suffix
    starting at a segment boundary. Excluding rules additionally see the
    ancestor directories (and their suffixes), so a rule that matches a
    directory excludes what lies below it. Negated rules never see ancestors:
    re-including a directory name does not re-include files excluded by name.
    """
    parts = relative_path.split("/")
    exact_unanchored = _suffixes(parts)
    ancestor_anchored = []
    ancestor_unanchored = []
    for end in range(len(parts) - 1, 0, -1):
        ancestor_anchored.append("/".join(parts[:end]))
        ancestor_unanchored.extend(_suffixes(parts[:end]))
    return Candidates(
        anchored=[relative_path],
        unanchored=exact_unanchored,
        ancestor_anchored=ancestor_anchored,
        ancestor_unanchored=ancestor_unanchored,
    )


CompiledRule = Tuple[IgnorePattern, Optional[Pattern[str]]]


def compile_rules(patterns: Iterable[IgnorePattern]) -> Tuple[CompiledRule, ...]:
    """Pair each rule with its compiled glob, keeping the order"""
    return tuple((pattern, compile_glob(pattern.glob)) for pattern in patterns)


def rule_matches(pattern: IgnorePattern, regex: Optional[Pattern[str]], candidates: Candidates) -> bool:
    """Check a single compiled rule against precomputed candidates"""
    if regex is None:
        return False
    if pattern.anchored:
        tested = candidates.anchored
        ancestors = candidates.ancestor_anchored
    else:
        tested = candidates.unanchored
        ancestors = candidates.ancestor_unanchored
    if any(regex.fullmatch(candidate) for candidate in tested):
        return True
    if pattern.negated:
        return False
    return any(regex.fullmatch(candidate) for candidate in ancestors)


def _decide(relative_path: Optional[str], rules: Sequence[CompiledRule]) -> bool:
    if not rules or not relative_path:
        return False
    candidates = _candidates(relative_path)
    excluded = False
    for pattern, regex in rules:
        if rule_matches(pattern, regex, candidates):
            excluded = not pattern.negated
    return excluded


def is_excluded(
    path: PathLike,
    patterns: Sequence[IgnorePattern],
    base_directory: Optional[PathLike] = None,
) -> bool:
    """Decide whether a path is excluded by an ordered pattern list.

    Args:
        path: Path to check (absolute paths are resolved against base_directory)
        patterns: Ordered ignore rules
        base_directory: Root for relative and anchored matching

    Returns:
        True if the last matching rule excludes the path
    """
    if not patterns:
        return False
    return _decide(relative_to_base(path, base_directory), compile_rules(patterns))


def create_filter(
    base_directory: Optional[PathLike], patterns: Iterable[IgnorePattern]
) -> Callable[[PathLike], bool]:
    """Bind a base directory and pattern list into a reusable predicate.

    The globs are compiled once here. The predicate returns True for paths a
    scan should skip and only reads its captured state, so it can be shared
    between threads.

    Args:
        base_directory: Root for relative and anchored matching
        patterns: Ordered ignore rules

    Returns:
        Predicate taking a candidate path
    """
    bound_rules = compile_rules(patterns)
    bound_base = os.fspath(base_directory) if base_directory is not None else None

    def should_skip(candidate_path: PathLike) -> bool:
        return _decide(relative_to_base(candidate_path, bound_base), bound_rules)

    return should_skip
