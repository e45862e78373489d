"""JSON persistence for the agent, process and standard registries"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from bundlectl.domain.errors import RegistryError
from bundlectl.domain.models.bundle import BundleKind
from bundlectl.domain.models.registry import AgentsRegistry, CatalogRegistry
from bundlectl.infrastructure.paths import ScopePaths

logger = logging.getLogger(__name__)


class RegistryStore:
    """Loads and saves registries with explicit calls.

    Nothing is cached between calls: every load reads the file again, so
    callers work on their own copy and persist it with the matching save.
    """

    def __init__(self, paths: ScopePaths):
        self.paths = paths

    def _read(self, path: Path) -> Optional[Dict[str, Any]]:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading registry {path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.error(f"Registry {path} is not a JSON object, ignoring it")
            return None
        return data

    def _write(self, path: Path, data: Dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
        except OSError as e:
            raise RegistryError(f"Failed to save registry {path}: {e}") from e
        logger.debug(f"Saved registry {path}")

    def load_agents(self, project: bool = False) -> AgentsRegistry:
        """Load the agents registry for a scope (defaults if missing or corrupt)"""
        path = self.paths.registry_path(BundleKind.AGENT, project)
        data = self._read(path)
        if data is None:
            return AgentsRegistry()
        try:
            return AgentsRegistry.model_validate(data)
        except ValidationError as e:
            logger.error(f"Invalid registry {path}: {e}")
            return AgentsRegistry()

    def save_agents(self, registry: AgentsRegistry, project: bool = False) -> None:
        path = self.paths.registry_path(BundleKind.AGENT, project)
        self._write(path, registry.model_dump(by_alias=True))

    def load_catalog(self, kind: BundleKind, project: bool = False) -> CatalogRegistry:
        """Load the process or standard registry for a scope"""
        path = self.paths.registry_path(kind, project)
        data = self._read(path)
        if data is None:
            return CatalogRegistry()
        try:
            return CatalogRegistry.from_json_dict(data, kind)
        except ValidationError as e:
            logger.error(f"Invalid registry {path}: {e}")
            return CatalogRegistry()

    def save_catalog(self, registry: CatalogRegistry, kind: BundleKind, project: bool = False) -> None:
        path = self.paths.registry_path(kind, project)
        self._write(path, registry.to_json_dict(kind))
