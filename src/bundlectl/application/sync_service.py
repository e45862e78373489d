"""Service for discovering and synchronizing bundles between scopes"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from bundlectl.domain.models.bundle import BundleKind
from bundlectl.domain.models.registry import AgentRecord, CatalogRecord, utc_now
from bundlectl.domain.validators.name_validator import is_valid_bundle_name
from bundlectl.infrastructure.bundle_store import BundleStore, load_bundle
from bundlectl.infrastructure.file_filter import FileFilter
from bundlectl.infrastructure.registry_store import RegistryStore

logger = logging.getLogger(__name__)

AGENT = BundleKind.AGENT


@dataclass
class DiscoveredAgent:
    """Agent file found on disk without a registry entry"""

    name: str
    scope: str
    path: Path


@dataclass
class SyncResult:
    """Outcome of an agent sync"""

    discovered: List[DiscoveredAgent] = field(default_factory=list)
    registered: List[str] = field(default_factory=list)
    copied: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


@dataclass
class CatalogSyncResult:
    """Outcome of a process or standard sync"""

    synced: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


class SyncService:
    """Discovers externally installed bundles and copies them between scopes.

    Every directory scan goes through the project's ignore rules, rebased
    onto the directory being scanned.
    """

    def __init__(
        self,
        bundle_store: BundleStore,
        registry_store: RegistryStore,
        file_filter: FileFilter,
    ):
        self.bundle_store = bundle_store
        self.registry_store = registry_store
        self.file_filter = file_filter
        self.paths = bundle_store.paths

    def _scan(self, kind: BundleKind, project: bool) -> Iterator[Tuple[str, Path]]:
        """Yield (name, path) for bundle files in a scope, skipping ignored ones"""
        directory = self.paths.bundle_dir(kind, project)
        scan_filter = self.file_filter.rebased(directory)
        for path in scan_filter.walk(directory, suffix=".md"):
            relative = path.relative_to(directory)
            if len(relative.parts) == 1:
                name = path.stem
            elif len(relative.parts) == 2 and path.name == kind.nested_file:
                name = relative.parts[0]
            else:
                continue
            if not is_valid_bundle_name(name):
                logger.debug(f"Skipping {path}: not a valid {kind.value} name")
                continue
            yield name, path

    def sync_agents(self, auto: bool = False, force_copy: bool = False) -> SyncResult:
        """Find agent files missing from the registries

        Args:
            auto: Register discovered agents without asking
            force_copy: Copy every registered user agent into the project instead

        Returns:
            SyncResult
        """
        if force_copy:
            return self._copy_agents_to_project()

        result = SyncResult()
        user_registry = self.registry_store.load_agents(project=False)
        project_registry = self.registry_store.load_agents(project=True)
        registered = set(user_registry.installed_agents) | set(project_registry.installed_agents)

        for project, registry in ((False, user_registry), (True, project_registry)):
            scope = "project" if project else "user"
            for name, path in self._scan(AGENT, project):
                if name in registered:
                    continue
                registered.add(name)
                result.discovered.append(DiscoveredAgent(name=name, scope=scope, path=path))
                if not auto:
                    continue

                bundle = load_bundle(path, AGENT, name=name)
                if bundle is None:
                    result.failed[name] = "missing or invalid frontmatter"
                    continue
                record = bundle.registry_record()
                record["author"] = bundle.metadata.author if bundle.metadata.author != "Unknown" else "External"
                registry.add_installed(name, AgentRecord(scope=scope, **record))
                result.registered.append(name)
                logger.info(f"Registered external agent {name} ({scope})")

        if auto:
            user_registry.last_sync_time = time.time()
            self.registry_store.save_agents(user_registry, project=False)
            if any(d.scope == "project" for d in result.discovered):
                self.registry_store.save_agents(project_registry, project=True)

        return result

    def _copy_agents_to_project(self) -> SyncResult:
        result = SyncResult()
        registered = dict(self.registry_store.load_agents(project=False).installed_agents)
        registered.update(self.registry_store.load_agents(project=True).installed_agents)

        for name in sorted(registered):
            source = self.paths.bundle_dir(AGENT, project=False) / f"{name}.md"
            if not source.is_file():
                logger.debug(f"Agent file not found: {source}")
                result.failed[name] = "not found in user scope"
                continue
            bundle = load_bundle(source, AGENT)
            if bundle is None:
                result.failed[name] = "missing or invalid frontmatter"
                continue
            try:
                self.bundle_store.install(bundle, project=True)
            except OSError as e:
                logger.error(f"Failed to copy {name} to project: {e}")
                result.failed[name] = str(e)
                continue
            result.copied.append(name)
        return result

    def sync_catalog(self, kind: BundleKind, project: bool = False, force: bool = False) -> CatalogSyncResult:
        """Copy user-scope processes or standards into the project

        Args:
            kind: BundleKind.PROCESS or BundleKind.STANDARD
            project: Record the sync in the project registry instead of the user one
            force: Copy even when the project copy is identical

        Returns:
            CatalogSyncResult
        """
        if kind == AGENT:
            raise ValueError("Agents are synced with sync_agents()")

        result = CatalogSyncResult()
        registry = self.registry_store.load_catalog(kind, project)

        for name, path in self._scan(kind, project=False):
            bundle = load_bundle(path, kind, name=name)
            if bundle is None:
                result.failed[name] = "missing or invalid frontmatter"
                continue

            destination = self.bundle_store.installed_path(kind, name, project=True)
            if not force and _same_content(path, destination):
                result.unchanged.append(name)
                continue

            try:
                self.bundle_store.install(bundle, project=True)
            except OSError as e:
                logger.error(f"Failed to sync {kind.value} {name}: {e}")
                result.failed[name] = str(e)
                continue

            registry.entries[name] = CatalogRecord(
                version=bundle.version,
                description=bundle.description,
                source=str(path),
            )
            result.synced.append(name)
            logger.info(f"Synced {kind.value} {name}")

        registry.last_sync = utc_now()
        self.registry_store.save_catalog(registry, kind, project)
        return result

    def should_auto_sync(self) -> bool:
        """Whether an agents directory changed after the last recorded sync"""
        last_sync = self.registry_store.load_agents(project=False).last_sync_time or 0.0
        for project in (False, True):
            directory = self.paths.bundle_dir(AGENT, project)
            if not directory.is_dir():
                continue
            if directory.stat().st_mtime > last_sync:
                logger.debug(f"Directory {directory} modified after last sync")
                return True
        return False

    def set_auto_sync(self, enabled: bool) -> None:
        registry = self.registry_store.load_agents(project=False)
        registry.auto_sync = enabled
        self.registry_store.save_agents(registry, project=False)

    def is_auto_sync_enabled(self) -> bool:
        return self.registry_store.load_agents(project=False).auto_sync

    def run_auto_sync_if_needed(self) -> Optional[SyncResult]:
        """Register external agents when auto-sync is on and something changed"""
        if not self.is_auto_sync_enabled() or not self.should_auto_sync():
            return None
        logger.info("Detected external agent changes, running sync")
        return self.sync_agents(auto=True)


def _same_content(source: Path, destination: Path) -> bool:
    if not destination.is_file():
        return False
    try:
        return source.read_bytes() == destination.read_bytes()
    except OSError:
        return False
