"""Filesystem access for bundles in the library and in both scopes"""

import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import ValidationError

from bundlectl.domain.models.bundle import Bundle, BundleKind, BundleMetadata
from bundlectl.domain.validators.name_validator import is_valid_bundle_name, validate_bundle_name
from bundlectl.infrastructure.frontmatter import extract_frontmatter
from bundlectl.infrastructure.paths import ScopePaths

logger = logging.getLogger(__name__)

DEPRECATIONS_FILE = "deprecated.yml"


def load_bundle(path: Path, kind: BundleKind, name: Optional[str] = None) -> Optional[Bundle]:
    """Load a bundle from a markdown file

    Args:
        path: Markdown file with YAML frontmatter
        kind: Bundle kind
        name: Bundle name (defaults to the file stem)

    Returns:
        Bundle, or None if the file is unreadable or has no frontmatter
    """
    name = name or path.stem
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error loading {kind.value} from {path}: {e}")
        return None

    parsed = extract_frontmatter(content)
    if parsed.data is None:
        logger.warning(f"No YAML frontmatter found in {path}, skipping")
        return None

    try:
        metadata = BundleMetadata.model_validate(parsed.data)
    except ValidationError as e:
        logger.warning(f"Invalid frontmatter in {path}: {e}")
        return None

    if metadata.name is None:
        metadata.name = name
    if metadata.type is None:
        metadata.type = kind.value

    return Bundle(
        name=name,
        kind=kind,
        path=path,
        metadata=metadata,
        body=parsed.body,
        full_content=content,
    )


def scan_bundle_dir(directory: Path, kind: BundleKind) -> List[Bundle]:
    """Load every bundle in a directory

    Supports single files (<name>.md) and the directory form (<name>/<kind>.md).
    """
    if not directory.is_dir():
        return []

    bundles = []
    for entry in sorted(directory.iterdir()):
        bundle = None
        if entry.is_dir():
            nested = entry / kind.nested_file
            if nested.is_file():
                bundle = load_bundle(nested, kind, name=entry.name)
        elif entry.is_file() and entry.suffix == ".md":
            bundle = load_bundle(entry, kind)

        if bundle is not None:
            bundles.append(bundle)
    return bundles


class BundleStore:
    """Reads the library and copies bundles into scope directories"""

    def __init__(self, paths: ScopePaths):
        self.paths = paths

    def list_library(self, kind: BundleKind) -> List[Bundle]:
        """Bundles available for installation"""
        return scan_bundle_dir(self.paths.library_bundle_dir(kind), kind)

    def get_library_bundle(self, kind: BundleKind, name: str) -> Optional[Bundle]:
        validate_bundle_name(name)
        directory = self.paths.library_bundle_dir(kind)
        single = directory / f"{name}.md"
        if single.is_file():
            return load_bundle(single, kind)
        nested = directory / name / kind.nested_file
        if nested.is_file():
            return load_bundle(nested, kind, name=name)
        return None

    def installed_path(self, kind: BundleKind, name: str, project: bool = False) -> Path:
        validate_bundle_name(name)
        return self.paths.bundle_dir(kind, project) / f"{name}.md"

    def find(self, kind: BundleKind, name: str) -> Optional[Bundle]:
        """Find an installed bundle, user scope first, then project scope"""
        for project in (False, True):
            path = self.installed_path(kind, name, project)
            if path.is_file():
                return load_bundle(path, kind)
            nested = self.paths.bundle_dir(kind, project) / name / kind.nested_file
            if nested.is_file():
                return load_bundle(nested, kind, name=name)
        return None

    def install(self, bundle: Bundle, project: bool = False) -> Path:
        """Copy a bundle into a scope directory

        Returns:
            Destination path
        """
        destination = self.installed_path(bundle.kind, bundle.name, project)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(bundle.path, destination)
        logger.debug(f"Copied {bundle.path} to {destination}")
        return destination

    def remove(self, kind: BundleKind, name: str, project: bool = False) -> bool:
        """Delete an installed bundle file

        Returns:
            True if a file was removed
        """
        path = self.installed_path(kind, name, project)
        if not path.exists():
            return False
        path.unlink()
        logger.debug(f"Removed {path}")
        return True

    def load_deprecations(self) -> Dict[str, Optional[str]]:
        """Retired agents from the library's deprecated.yml

        Returns:
            Agent name mapped to its replacement (None if there is none)
        """
        path = self.paths.library_dir / DEPRECATIONS_FILE
        if not path.is_file():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {path}: top level must be a mapping")
            return {}

        deprecations: Dict[str, Optional[str]] = {}
        for name, replacement in data.items():
            name = str(name)
            if not is_valid_bundle_name(name):
                logger.warning(f"Ignoring invalid deprecated agent name: {name}")
                continue
            if replacement is not None and not is_valid_bundle_name(str(replacement)):
                logger.warning(f"Ignoring invalid replacement for {name}: {replacement}")
                replacement = None
            deprecations[name] = str(replacement) if replacement is not None else None
        return deprecations
