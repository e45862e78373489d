"""Shared fixtures for bundlectl tests"""

from __future__ import annotations

from pathlib import Path

import pytest

from bundlectl.infrastructure.paths import ScopePaths


def write_bundle(path: Path, name: str, description: str = "Test bundle", body: str = "Body text", **extra) -> Path:
    """Write a markdown bundle with YAML frontmatter"""
    lines = ["---", f"name: {name}", f"description: {description}"]
    for key, value in extra.items():
        lines.append(f"{key}: {value}")
    lines += ["---", "", body, ""]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines), encoding="utf-8")
    return path


@pytest.fixture
def scope_paths(tmp_path) -> ScopePaths:
    """User, project and library directories under tmp_path"""
    library = tmp_path / "library"
    write_bundle(library / "agents" / "code-reviewer.md", "code-reviewer", "Reviews code", tools="Read, Grep")
    write_bundle(library / "agents" / "test-runner.md", "test-runner", "Runs tests", version="2.0.0")
    write_bundle(library / "processes" / "release.md", "release", "Release steps", type="process")
    write_bundle(library / "standards" / "python-style.md", "python-style", "Python style", type="standard")

    return ScopePaths(
        user_dir=tmp_path / "home" / ".claude",
        project_dir=tmp_path / "project" / ".claude",
        library_dir=library,
    )
