"""Registry models - installation state persisted as JSON.

Field aliases follow the camelCase keys used in the registry files
(``.claude-agents.json``, ``.claude-processes.json``, ``.claude-standards.json``).
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from bundlectl.domain.models.bundle import BundleKind

REGISTRY_VERSION = "1.0.0"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class _RegistryModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class AgentRecord(_RegistryModel):
    """Installed agent entry"""

    version: str = "1.0.0"
    installed_at: str = Field(default_factory=utc_now, alias="installedAt")
    updated_at: Optional[str] = Field(None, alias="updatedAt")
    scope: str = "user"
    description: str = ""
    author: str = "Unknown"
    tags: List[str] = Field(default_factory=list)
    tools: List[str] = Field(default_factory=list)


class RegistrySettings(_RegistryModel):
    auto_enable_on_install: bool = Field(True, alias="autoEnableOnInstall")
    prefer_project_scope: bool = Field(False, alias="preferProjectScope")
    auto_update_check: bool = Field(True, alias="autoUpdateCheck")


class AgentsRegistry(_RegistryModel):
    """Installed, enabled and disabled agents for one scope"""

    version: str = REGISTRY_VERSION
    installed_agents: Dict[str, AgentRecord] = Field(default_factory=dict, alias="installedAgents")
    enabled_agents: List[str] = Field(default_factory=list, alias="enabledAgents")
    disabled_agents: List[str] = Field(default_factory=list, alias="disabledAgents")
    settings: RegistrySettings = Field(default_factory=RegistrySettings)
    auto_sync: bool = Field(False, alias="autoSync")
    last_sync_time: Optional[float] = Field(None, alias="lastSyncTime")

    def add_installed(self, name: str, record: AgentRecord) -> None:
        """Record an installation, enabling it unless explicitly disabled"""
        self.installed_agents[name] = record
        if self.settings.auto_enable_on_install and name not in self.disabled_agents:
            if name not in self.enabled_agents:
                self.enabled_agents.append(name)

    def remove_installed(self, name: str) -> None:
        self.installed_agents.pop(name, None)
        self.enabled_agents = [n for n in self.enabled_agents if n != name]
        self.disabled_agents = [n for n in self.disabled_agents if n != name]

    def enable(self, name: str) -> None:
        self.disabled_agents = [n for n in self.disabled_agents if n != name]
        if name not in self.enabled_agents:
            self.enabled_agents.append(name)

    def disable(self, name: str) -> None:
        self.enabled_agents = [n for n in self.enabled_agents if n != name]
        if name not in self.disabled_agents:
            self.disabled_agents.append(name)


class CatalogRecord(_RegistryModel):
    """Synced process or standard entry"""

    version: str = "1.0.0"
    description: str = ""
    synced_at: str = Field(default_factory=utc_now, alias="syncedAt")
    source: Optional[str] = None


class CatalogRegistry(_RegistryModel):
    """Synced processes or standards for one scope.

    On disk the entries live under ``processes`` or ``standards``
    depending on the kind.
    """

    version: str = REGISTRY_VERSION
    entries: Dict[str, CatalogRecord] = Field(default_factory=dict)
    last_sync: Optional[str] = Field(None, alias="lastSync")

    @classmethod
    def from_json_dict(cls, data: Dict[str, Any], kind: BundleKind) -> "CatalogRegistry":
        data = dict(data)
        entries = data.pop(kind.directory, {}) or {}
        return cls(entries=entries, **data)

    def to_json_dict(self, kind: BundleKind) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True, exclude={"entries"})
        data[kind.directory] = {
            name: record.model_dump(by_alias=True) for name, record in self.entries.items()
        }
        return data
