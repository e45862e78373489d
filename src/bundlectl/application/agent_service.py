"""Service for installing and managing agents"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from bundlectl.domain.errors import (
    BundleError,
    BundleNotFoundError,
    BundleNotInstalledError,
    InvalidBundleNameError,
)
from bundlectl.domain.models.bundle import Bundle, BundleKind
from bundlectl.domain.models.registry import AgentRecord, utc_now
from bundlectl.domain.validators.name_validator import validate_bundle_name
from bundlectl.infrastructure.bundle_store import BundleStore, scan_bundle_dir
from bundlectl.infrastructure.registry_store import RegistryStore

logger = logging.getLogger(__name__)

AGENT = BundleKind.AGENT

# Agents containing this line are left alone by `update --preserve-custom`
CUSTOM_MARKER = "# Custom modifications below"


@dataclass
class InstallResult:
    """Outcome of an install run"""

    installed: List[str] = field(default_factory=list)
    already_installed: List[str] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


@dataclass
class UpdateResult:
    """Outcome of an update run"""

    updated: List[str] = field(default_factory=list)
    replaced: Dict[str, str] = field(default_factory=dict)  # deprecated name -> replacement
    skipped: Dict[str, str] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)


@dataclass
class DeprecatedAgent:
    name: str
    scope: str
    path: Optional[str]  # None when only the registry entry is left
    replacement: Optional[str]


@dataclass
class CleanupResult:
    """Deprecated agents found (or removed) by cleanup"""

    removed: List[DeprecatedAgent] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)
    registry_cleaned: bool = False


@dataclass
class AgentListing:
    """One row of `list` output"""

    name: str
    status: str  # "enabled", "disabled" or "available"
    scope: str  # "user", "project" or "-"
    version: str
    description: str

    @property
    def installed(self) -> bool:
        return self.status != "available"


@dataclass
class ValidationIssue:
    """Problems found in one installed agent file"""

    name: str
    path: str
    problems: List[str]


class AgentService:
    """Install, remove, enable and disable agents in either scope"""

    def __init__(self, bundle_store: BundleStore, registry_store: RegistryStore):
        self.bundle_store = bundle_store
        self.registry_store = registry_store

    def installed_agents(self) -> Dict[str, AgentRecord]:
        """Installed agents from both scopes, project entries taking precedence"""
        agents = dict(self.registry_store.load_agents(project=False).installed_agents)
        agents.update(self.registry_store.load_agents(project=True).installed_agents)
        return agents

    def is_enabled(self, name: str) -> bool:
        """Enabled in either scope and disabled in neither"""
        user = self.registry_store.load_agents(project=False)
        project = self.registry_store.load_agents(project=True)
        if name in user.disabled_agents or name in project.disabled_agents:
            return False
        return name in user.enabled_agents or name in project.enabled_agents

    def install(
        self, names: Optional[List[str]] = None, install_all: bool = False, project: bool = False
    ) -> InstallResult:
        """Install agents from the library

        Args:
            names: Agents to install
            install_all: Install every available agent not yet installed
            project: Install into the project scope instead of the user scope

        Returns:
            InstallResult describing what happened to each agent
        """
        result = InstallResult()
        available = {bundle.name: bundle for bundle in self.bundle_store.list_library(AGENT)}
        installed = self.installed_agents()

        selected: List[Bundle] = []
        if names:
            for name in names:
                try:
                    validate_bundle_name(name)
                except InvalidBundleNameError as e:
                    result.failed[name] = str(e)
                    continue
                if name in installed:
                    result.already_installed.append(name)
                elif name not in available:
                    result.not_found.append(name)
                else:
                    selected.append(available[name])
        elif install_all:
            for name in sorted(available):
                if name in installed:
                    result.already_installed.append(name)
                else:
                    selected.append(available[name])

        if not selected:
            return result

        scope = "project" if project else "user"
        registry = self.registry_store.load_agents(project)
        for bundle in selected:
            try:
                self.bundle_store.install(bundle, project)
            except OSError as e:
                logger.error(f"Failed to install {bundle.name}: {e}")
                result.failed[bundle.name] = str(e)
                continue
            registry.add_installed(bundle.name, AgentRecord(scope=scope, **bundle.registry_record()))
            result.installed.append(bundle.name)
            logger.info(f"Installed {bundle.name} to {scope} scope")

        self.registry_store.save_agents(registry, project)
        return result

    def remove(self, name: str, project: bool = False) -> None:
        """Remove an installed agent and its registry entries

        Raises:
            BundleNotInstalledError: If the agent is not installed in the scope
        """
        validate_bundle_name(name)
        registry = self.registry_store.load_agents(project)
        removed_file = self.bundle_store.remove(AGENT, name, project)
        if not removed_file and name not in registry.installed_agents:
            raise BundleNotInstalledError(name)

        registry.remove_installed(name)
        self.registry_store.save_agents(registry, project)
        logger.info(f"Removed {name}")

    def update(
        self,
        names: Optional[List[str]] = None,
        update_all: bool = False,
        project: bool = False,
        preserve_custom: bool = False,
    ) -> UpdateResult:
        """Refresh installed agents from the library

        A deprecated agent is swapped for its replacement when the library
        has one. The registry keeps the original install time and scope.

        Args:
            names: Installed agents to update
            update_all: Update every agent installed in the scope
            project: Update the project scope instead of the user scope
            preserve_custom: Skip agents containing CUSTOM_MARKER

        Raises:
            BundleNotInstalledError: If a named agent is not installed in the scope
        """
        result = UpdateResult()
        registry = self.registry_store.load_agents(project)
        if update_all:
            selected = sorted(registry.installed_agents)
        else:
            selected = []
            for name in names or []:
                validate_bundle_name(name)
                if name not in registry.installed_agents:
                    raise BundleNotInstalledError(name)
                selected.append(name)
        if not selected:
            return result

        deprecations = self.bundle_store.load_deprecations()
        for name in selected:
            target = self.bundle_store.installed_path(AGENT, name, project)
            if preserve_custom and _has_custom_marker(target):
                logger.info(f"Skipping {name}: has custom modifications")
                result.skipped[name] = "custom modifications"
                continue

            if name in deprecations:
                replacement = deprecations[name]
                bundle = self.bundle_store.get_library_bundle(AGENT, replacement) if replacement else None
                if bundle is None:
                    result.skipped[name] = "deprecated, no replacement available"
                    continue
            else:
                bundle = self.bundle_store.get_library_bundle(AGENT, name)
                if bundle is None:
                    result.failed[name] = "source not found"
                    continue

            try:
                self.bundle_store.install(bundle, project)
                if bundle.name != name:
                    self.bundle_store.remove(AGENT, name, project)
            except OSError as e:
                logger.error(f"Failed to update {name}: {e}")
                result.failed[name] = str(e)
                continue

            previous = registry.installed_agents[name]
            record = AgentRecord(
                scope=previous.scope,
                installed_at=previous.installed_at,
                updated_at=utc_now(),
                **bundle.registry_record(),
            )
            if bundle.name == name:
                registry.installed_agents[name] = record
                result.updated.append(name)
                logger.info(f"Updated {name} to version {record.version}")
            else:
                was_disabled = name in registry.disabled_agents
                registry.remove_installed(name)
                registry.add_installed(bundle.name, record)
                if was_disabled:
                    registry.disable(bundle.name)
                result.replaced[name] = bundle.name
                logger.info(f"Replaced deprecated {name} with {bundle.name}")

        self.registry_store.save_agents(registry, project)
        return result

    def cleanup(self, dry_run: bool = False) -> CleanupResult:
        """Remove deprecated agents and their registry entries from both scopes

        Args:
            dry_run: Only report what would be removed
        """
        result = CleanupResult()
        deprecations = self.bundle_store.load_deprecations()
        if not deprecations:
            return result

        for project in (False, True):
            scope = "project" if project else "user"
            registry = self.registry_store.load_agents(project)
            registry_changed = False
            for name in sorted(deprecations):
                path = self.bundle_store.installed_path(AGENT, name, project)
                has_file = path.is_file()
                if not has_file and name not in registry.installed_agents:
                    continue

                result.removed.append(
                    DeprecatedAgent(name, scope, str(path) if has_file else None, deprecations[name])
                )
                if dry_run:
                    logger.debug(f"Would remove deprecated agent {name} ({scope})")
                    continue
                try:
                    self.bundle_store.remove(AGENT, name, project)
                except OSError as e:
                    logger.error(f"Failed to remove {name}: {e}")
                    result.errors[name] = str(e)
                    continue
                if name in registry.installed_agents:
                    registry.remove_installed(name)
                    registry_changed = True
                logger.debug(f"Removed deprecated agent {name} ({scope})")

            if registry_changed:
                self.registry_store.save_agents(registry, project)
                result.registry_cleaned = True
        return result

    def _require_installed(self, name: str) -> None:
        validate_bundle_name(name)
        if name not in self.installed_agents():
            raise BundleNotInstalledError(name)

    def enable(self, name: str, project: bool = False) -> None:
        self._require_installed(name)
        registry = self.registry_store.load_agents(project)
        registry.enable(name)
        self.registry_store.save_agents(registry, project)
        logger.info(f"Enabled {name}")

    def disable(self, name: str, project: bool = False) -> None:
        self._require_installed(name)
        registry = self.registry_store.load_agents(project)
        registry.disable(name)
        self.registry_store.save_agents(registry, project)
        logger.info(f"Disabled {name}")

    def list_agents(self, installed_only: bool = False, available_only: bool = False) -> List[AgentListing]:
        """Available and installed agents, sorted by name"""
        listings: Dict[str, AgentListing] = {}
        for bundle in self.bundle_store.list_library(AGENT):
            listings[bundle.name] = AgentListing(
                name=bundle.name,
                status="available",
                scope="-",
                version=bundle.version,
                description=bundle.description,
            )

        for name, record in self.installed_agents().items():
            listing = listings.get(name)
            listings[name] = AgentListing(
                name=name,
                status="enabled" if self.is_enabled(name) else "disabled",
                scope=record.scope,
                version=record.version,
                description=record.description or (listing.description if listing else ""),
            )

        rows = sorted(listings.values(), key=lambda row: row.name)
        if installed_only:
            rows = [row for row in rows if row.installed]
        elif available_only:
            rows = [row for row in rows if not row.installed]
        return rows

    def info(self, name: str) -> Bundle:
        """Load an agent from the installed scopes or the library

        Raises:
            BundleNotFoundError: If the agent exists nowhere
        """
        validate_bundle_name(name)
        bundle = self.bundle_store.find(AGENT, name) or self.bundle_store.get_library_bundle(AGENT, name)
        if bundle is None:
            raise BundleNotFoundError(name)
        return bundle

    def validate(self, project: bool = False) -> List[ValidationIssue]:
        """Check installed agent files for missing or malformed frontmatter"""
        directory = self.bundle_store.paths.bundle_dir(AGENT, project)
        if not directory.is_dir():
            return []

        issues = []
        loaded = {bundle.path: bundle for bundle in scan_bundle_dir(directory, AGENT)}
        for path in sorted(directory.glob("*.md")):
            bundle = loaded.get(path)
            if bundle is None:
                issues.append(ValidationIssue(path.stem, str(path), ["missing or invalid frontmatter"]))
                continue

            problems = []
            try:
                validate_bundle_name(bundle.name)
            except BundleError as e:
                problems.append(str(e))
            if bundle.metadata.name and bundle.metadata.name != bundle.name:
                problems.append(f'frontmatter name "{bundle.metadata.name}" does not match file name')
            if not bundle.metadata.description.strip():
                problems.append("description is empty")
            if not bundle.body.strip():
                problems.append("agent body is empty")
            if problems:
                issues.append(ValidationIssue(bundle.name, str(path), problems))
        return issues


def _has_custom_marker(path: Path) -> bool:
    try:
        return CUSTOM_MARKER in path.read_text(encoding="utf-8")
    except OSError:
        return False
