"""Tests for registry persistence"""

from __future__ import annotations

import json
import logging

import pytest

from bundlectl.domain.errors import RegistryError
from bundlectl.domain.models.bundle import BundleKind
from bundlectl.domain.models.registry import AgentRecord, AgentsRegistry, CatalogRecord
from bundlectl.infrastructure.registry_store import RegistryStore


@pytest.fixture
def store(scope_paths):
    return RegistryStore(scope_paths)


@pytest.fixture
def agents_file(scope_paths):
    path = scope_paths.user_dir.parent / ".claude-agents.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


class TestAgentsRegistry:
    """Tests for the agents registry file"""

    def test_missing_file_gives_defaults(self, store):
        registry = store.load_agents()
        assert registry == AgentsRegistry()
        assert registry.settings.auto_enable_on_install is True
        assert registry.auto_sync is False

    def test_reads_existing_file(self, store, agents_file):
        agents_file.write_text(
            json.dumps(
                {
                    "version": "1.0.0",
                    "installedAgents": {"code-reviewer": {"version": "1.2.0", "scope": "user"}},
                    "enabledAgents": ["code-reviewer"],
                    "disabledAgents": [],
                    "autoSync": True,
                    "lastSyncTime": 1700000000.5,
                    "customKey": "kept",
                }
            )
        )

        registry = store.load_agents()

        assert registry.installed_agents["code-reviewer"].version == "1.2.0"
        assert registry.enabled_agents == ["code-reviewer"]
        assert registry.auto_sync is True
        assert registry.last_sync_time == 1700000000.5

        store.save_agents(registry)
        assert json.loads(agents_file.read_text())["customKey"] == "kept"

    @pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]", '{"installedAgents": 5}'])
    def test_corrupt_file_gives_defaults(self, store, agents_file, content, caplog):
        agents_file.write_text(content)

        with caplog.at_level(logging.ERROR):
            registry = store.load_agents()

        assert registry == AgentsRegistry()
        assert "registry" in caplog.text.lower()

    def test_save_format(self, store, agents_file):
        registry = AgentsRegistry()
        registry.add_installed("code-reviewer", AgentRecord(description="Reviews"))

        store.save_agents(registry)

        text = agents_file.read_text()
        assert text.endswith("}\n")
        assert '\n  "installedAgents": {' in text
        data = json.loads(text)
        assert data["enabledAgents"] == ["code-reviewer"]
        assert data["installedAgents"]["code-reviewer"]["description"] == "Reviews"

    def test_save_failure_raises(self, store, agents_file):
        agents_file.mkdir()

        with pytest.raises(RegistryError, match="Failed to save registry"):
            store.save_agents(AgentsRegistry())

    def test_scopes_are_separate(self, store, scope_paths):
        registry = AgentsRegistry()
        registry.add_installed("team-agent", AgentRecord(scope="project"))

        store.save_agents(registry, project=True)

        assert (scope_paths.project_dir.parent / ".claude-agents.json").is_file()
        assert store.load_agents(project=False).installed_agents == {}
        assert "team-agent" in store.load_agents(project=True).installed_agents


class TestRegistryModel:
    """Tests for registry state changes"""

    def test_disable_and_enable(self):
        registry = AgentsRegistry()
        registry.add_installed("code-reviewer", AgentRecord())

        registry.disable("code-reviewer")
        assert registry.enabled_agents == []
        assert registry.disabled_agents == ["code-reviewer"]

        registry.enable("code-reviewer")
        registry.enable("code-reviewer")
        assert registry.enabled_agents == ["code-reviewer"]
        assert registry.disabled_agents == []

    def test_auto_enable_can_be_turned_off(self):
        registry = AgentsRegistry.model_validate({"settings": {"autoEnableOnInstall": False}})
        registry.add_installed("code-reviewer", AgentRecord())
        assert registry.enabled_agents == []

    def test_remove_installed(self):
        registry = AgentsRegistry()
        registry.add_installed("code-reviewer", AgentRecord())
        registry.disable("code-reviewer")

        registry.remove_installed("code-reviewer")

        assert registry.installed_agents == {}
        assert registry.disabled_agents == []


class TestCatalogRegistry:
    """Tests for process and standard registries"""

    def test_entries_stored_under_kind_key(self, store, scope_paths):
        registry = store.load_catalog(BundleKind.PROCESS)
        registry.entries["release"] = CatalogRecord(version="1.1.0", description="Release steps")

        store.save_catalog(registry, BundleKind.PROCESS)

        data = json.loads((scope_paths.user_dir.parent / ".claude-processes.json").read_text())
        assert data["processes"]["release"]["version"] == "1.1.0"
        assert "syncedAt" in data["processes"]["release"]
        assert "entries" not in data

        loaded = store.load_catalog(BundleKind.PROCESS)
        assert loaded.entries["release"].description == "Release steps"

    def test_standards_file(self, store, scope_paths):
        path = scope_paths.user_dir.parent / ".claude-standards.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"version": "1.0.0", "standards": {"python-style": {}}, "lastSync": None}))

        registry = store.load_catalog(BundleKind.STANDARD)

        assert list(registry.entries) == ["python-style"]
        assert registry.last_sync is None
