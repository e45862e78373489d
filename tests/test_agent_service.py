"""Tests for AgentService"""

from __future__ import annotations

import json

import pytest
from conftest import write_bundle

from bundlectl.application.agent_service import CUSTOM_MARKER, AgentService
from bundlectl.domain.errors import (
    BundleNotFoundError,
    BundleNotInstalledError,
    InvalidBundleNameError,
)
from bundlectl.domain.models.bundle import BundleKind
from bundlectl.domain.models.registry import AgentRecord
from bundlectl.infrastructure.bundle_store import BundleStore
from bundlectl.infrastructure.registry_store import RegistryStore


@pytest.fixture
def registry_store(scope_paths):
    return RegistryStore(scope_paths)


@pytest.fixture
def service(scope_paths, registry_store):
    return AgentService(BundleStore(scope_paths), registry_store)


class TestInstall:
    """Tests for installing agents"""

    def test_install_single_agent(self, service, scope_paths, registry_store):
        """Test an agent is copied and registered as enabled"""
        result = service.install(["code-reviewer"])

        assert result.installed == ["code-reviewer"]
        assert (scope_paths.user_dir / "agents" / "code-reviewer.md").is_file()

        registry = registry_store.load_agents()
        record = registry.installed_agents["code-reviewer"]
        assert record.scope == "user"
        assert record.description == "Reviews code"
        assert record.tools == ["Read", "Grep"]
        assert registry.enabled_agents == ["code-reviewer"]

    def test_registry_file_uses_camel_case_keys(self, service, scope_paths):
        service.install(["test-runner"])

        data = json.loads((scope_paths.user_dir.parent / ".claude-agents.json").read_text())

        assert data["installedAgents"]["test-runner"]["version"] == "2.0.0"
        assert "installedAt" in data["installedAgents"]["test-runner"]
        assert data["enabledAgents"] == ["test-runner"]
        assert data["settings"]["autoEnableOnInstall"] is True

    def test_install_to_project(self, service, scope_paths, registry_store):
        result = service.install(["test-runner"], project=True)

        assert result.installed == ["test-runner"]
        assert (scope_paths.project_dir / "agents" / "test-runner.md").is_file()
        assert registry_store.load_agents(project=True).installed_agents["test-runner"].scope == "project"
        assert registry_store.load_agents(project=False).installed_agents == {}

    def test_install_all(self, service):
        service.install(["code-reviewer"])

        result = service.install(install_all=True)

        assert result.installed == ["test-runner"]
        assert result.already_installed == ["code-reviewer"]

    def test_install_reports_problems(self, service):
        """Test unknown, invalid and duplicate names are reported separately"""
        service.install(["code-reviewer"])

        result = service.install(["code-reviewer", "missing-agent", "../escape"])

        assert result.installed == []
        assert result.already_installed == ["code-reviewer"]
        assert result.not_found == ["missing-agent"]
        assert "../escape" in result.failed

    def test_install_nothing(self, service, scope_paths):
        result = service.install()
        assert result.installed == []
        assert not (scope_paths.user_dir.parent / ".claude-agents.json").exists()

    def test_install_respects_disabled_entry(self, service, registry_store):
        """Test reinstalling does not re-enable an agent the user disabled"""
        service.install(["code-reviewer"])
        service.disable("code-reviewer")
        registry = registry_store.load_agents()
        registry.installed_agents.pop("code-reviewer")
        registry_store.save_agents(registry)

        service.install(["code-reviewer"])

        assert service.is_enabled("code-reviewer") is False


class TestRemove:
    """Tests for removing agents"""

    def test_remove(self, service, scope_paths, registry_store):
        service.install(["code-reviewer"])

        service.remove("code-reviewer")

        assert not (scope_paths.user_dir / "agents" / "code-reviewer.md").exists()
        registry = registry_store.load_agents()
        assert "code-reviewer" not in registry.installed_agents
        assert "code-reviewer" not in registry.enabled_agents

    def test_remove_not_installed(self, service):
        with pytest.raises(BundleNotInstalledError, match='Agent "code-reviewer" is not installed'):
            service.remove("code-reviewer")

    def test_remove_orphaned_registry_entry(self, service, scope_paths, registry_store):
        """Test an entry whose file was deleted by hand can still be removed"""
        service.install(["code-reviewer"])
        (scope_paths.user_dir / "agents" / "code-reviewer.md").unlink()

        service.remove("code-reviewer")

        assert registry_store.load_agents().installed_agents == {}

    def test_remove_invalid_name(self, service):
        with pytest.raises(InvalidBundleNameError):
            service.remove("../../etc")


class TestEnableDisable:
    """Tests for enabling and disabling agents"""

    def test_disable_then_enable(self, service, registry_store):
        service.install(["code-reviewer"])

        service.disable("code-reviewer")
        assert service.is_enabled("code-reviewer") is False
        assert registry_store.load_agents().disabled_agents == ["code-reviewer"]

        service.enable("code-reviewer")
        assert service.is_enabled("code-reviewer") is True
        assert registry_store.load_agents().disabled_agents == []

    def test_disable_in_project_overrides_user(self, service):
        service.install(["code-reviewer"])
        service.disable("code-reviewer", project=True)
        assert service.is_enabled("code-reviewer") is False

    def test_enable_requires_installation(self, service):
        with pytest.raises(BundleNotInstalledError):
            service.enable("code-reviewer")
        with pytest.raises(BundleNotInstalledError):
            service.disable("test-runner")


class TestListAndInfo:
    """Tests for listing and describing agents"""

    def test_list_agents(self, service):
        service.install(["test-runner"])
        service.disable("test-runner")

        rows = {row.name: row for row in service.list_agents()}

        assert rows["code-reviewer"].status == "available"
        assert rows["code-reviewer"].scope == "-"
        assert rows["test-runner"].status == "disabled"
        assert rows["test-runner"].scope == "user"
        assert rows["test-runner"].version == "2.0.0"

    def test_list_filters(self, service):
        service.install(["code-reviewer"])

        assert [row.name for row in service.list_agents(installed_only=True)] == ["code-reviewer"]
        assert [row.name for row in service.list_agents(available_only=True)] == ["test-runner"]

    def test_list_includes_external_agents(self, service, registry_store):
        """Test registered agents missing from the library are listed"""
        service.install(["code-reviewer"])
        registry = registry_store.load_agents()
        registry.installed_agents["custom-helper"] = registry.installed_agents["code-reviewer"].model_copy(
            update={"description": "Custom"}
        )
        registry_store.save_agents(registry)

        rows = {row.name: row for row in service.list_agents()}

        assert rows["custom-helper"].description == "Custom"
        assert rows["custom-helper"].status == "disabled"

    def test_info_prefers_installed_copy(self, service, scope_paths):
        service.install(["code-reviewer"])
        installed = scope_paths.user_dir / "agents" / "code-reviewer.md"
        write_bundle(installed, "code-reviewer", "Locally edited")

        bundle = service.info("code-reviewer")

        assert bundle.description == "Locally edited"
        assert bundle.path == installed

    def test_info_falls_back_to_library(self, service):
        bundle = service.info("test-runner")
        assert bundle.kind == BundleKind.AGENT
        assert bundle.version == "2.0.0"

    def test_info_not_found(self, service):
        with pytest.raises(BundleNotFoundError, match='Agent "nowhere" not found'):
            service.info("nowhere")


class TestValidate:
    """Tests for validating installed agents"""

    def test_valid_agents(self, service):
        service.install(install_all=True)
        assert service.validate() == []

    def test_missing_directory(self, service):
        assert service.validate(project=True) == []

    def test_problems_are_reported(self, service, scope_paths):
        agents = scope_paths.user_dir / "agents"
        agents.mkdir(parents=True)
        (agents / "no-frontmatter.md").write_text("# Just text\n")
        write_bundle(agents / "mismatch.md", "other-name", "Described")
        write_bundle(agents / "empty-body.md", "empty-body", "", body="")

        issues = {issue.name: issue for issue in service.validate()}

        assert issues["no-frontmatter"].problems == ["missing or invalid frontmatter"]
        assert issues["mismatch"].problems == ['frontmatter name "other-name" does not match file name']
        assert "description is empty" in issues["empty-body"].problems
        assert "agent body is empty" in issues["empty-body"].problems

    def test_invalid_file_name(self, service, scope_paths):
        write_bundle(scope_paths.user_dir / "agents" / "Bad_Name.md", "Bad_Name", "Described")

        issues = service.validate()

        assert len(issues) == 1
        assert issues[0].name == "Bad_Name"
        assert "Invalid name" in issues[0].problems[0]


def _register_external(scope_paths, registry_store, name: str, project: bool = False, disabled: bool = False):
    """Put an agent file and registry entry in place without the library"""
    scope_dir = scope_paths.project_dir if project else scope_paths.user_dir
    write_bundle(scope_dir / "agents" / f"{name}.md", name, "Old agent")
    registry = registry_store.load_agents(project)
    registry.add_installed(name, AgentRecord(scope="project" if project else "user"))
    if disabled:
        registry.disable(name)
    registry_store.save_agents(registry, project)


class TestUpdate:
    """Tests for refreshing installed agents from the library"""

    def test_update_refreshes_file_and_record(self, service, scope_paths, registry_store):
        """Test the new library version is copied and the install time kept"""
        service.install(["test-runner"])
        installed_at = registry_store.load_agents().installed_agents["test-runner"].installed_at
        write_bundle(
            scope_paths.library_dir / "agents" / "test-runner.md", "test-runner", "Runs tests faster", version="2.1.0"
        )

        result = service.update(["test-runner"])

        assert result.updated == ["test-runner"]
        record = registry_store.load_agents().installed_agents["test-runner"]
        assert record.version == "2.1.0"
        assert record.description == "Runs tests faster"
        assert record.installed_at == installed_at
        assert record.updated_at is not None
        assert "Runs tests faster" in (scope_paths.user_dir / "agents" / "test-runner.md").read_text()

    def test_update_all_in_project(self, service, scope_paths):
        service.install(install_all=True, project=True)

        result = service.update(update_all=True, project=True)

        assert result.updated == ["code-reviewer", "test-runner"]

    def test_update_all_with_nothing_installed(self, service):
        result = service.update(update_all=True)
        assert result.updated == []
        assert result.failed == {}

    def test_update_not_installed(self, service):
        with pytest.raises(BundleNotInstalledError):
            service.update(["code-reviewer"])

    def test_update_only_looks_at_given_scope(self, service):
        service.install(["code-reviewer"], project=True)
        with pytest.raises(BundleNotInstalledError):
            service.update(["code-reviewer"], project=False)

    def test_preserve_custom(self, service, scope_paths):
        """Test customized agents are skipped when asked"""
        service.install(["code-reviewer"])
        installed = scope_paths.user_dir / "agents" / "code-reviewer.md"
        installed.write_text(installed.read_text() + f"\n{CUSTOM_MARKER}\nMine\n")

        result = service.update(["code-reviewer"], preserve_custom=True)

        assert result.skipped == {"code-reviewer": "custom modifications"}
        assert "Mine" in installed.read_text()

    def test_custom_marker_ignored_without_flag(self, service, scope_paths):
        service.install(["code-reviewer"])
        installed = scope_paths.user_dir / "agents" / "code-reviewer.md"
        installed.write_text(installed.read_text() + f"\n{CUSTOM_MARKER}\nMine\n")

        result = service.update(["code-reviewer"])

        assert result.updated == ["code-reviewer"]
        assert "Mine" not in installed.read_text()

    def test_source_missing(self, service, scope_paths):
        service.install(["code-reviewer"])
        (scope_paths.library_dir / "agents" / "code-reviewer.md").unlink()

        result = service.update(["code-reviewer"])

        assert result.failed == {"code-reviewer": "source not found"}

    def test_deprecated_agent_is_replaced(self, service, scope_paths, registry_store):
        """Test a retired agent is swapped for its replacement, keeping it disabled"""
        (scope_paths.library_dir / "deprecated.yml").write_text("old-helper: code-reviewer\n")
        _register_external(scope_paths, registry_store, "old-helper", disabled=True)

        result = service.update(["old-helper"])

        assert result.replaced == {"old-helper": "code-reviewer"}
        assert not (scope_paths.user_dir / "agents" / "old-helper.md").exists()
        assert (scope_paths.user_dir / "agents" / "code-reviewer.md").is_file()
        registry = registry_store.load_agents()
        assert set(registry.installed_agents) == {"code-reviewer"}
        assert registry.disabled_agents == ["code-reviewer"]
        assert registry.enabled_agents == []

    def test_deprecated_without_replacement(self, service, scope_paths, registry_store):
        (scope_paths.library_dir / "deprecated.yml").write_text("old-helper: null\n")
        _register_external(scope_paths, registry_store, "old-helper")

        result = service.update(["old-helper"])

        assert result.skipped == {"old-helper": "deprecated, no replacement available"}
        assert (scope_paths.user_dir / "agents" / "old-helper.md").is_file()


class TestCleanup:
    """Tests for removing deprecated agents"""

    @pytest.fixture
    def deprecated(self, scope_paths, registry_store):
        (scope_paths.library_dir / "deprecated.yml").write_text("old-helper: code-reviewer\nretired-tool: null\n")
        _register_external(scope_paths, registry_store, "old-helper")
        write_bundle(scope_paths.project_dir / "agents" / "retired-tool.md", "retired-tool", "Gone")

    def test_dry_run_reports_without_removing(self, service, scope_paths, deprecated):
        result = service.cleanup(dry_run=True)

        assert [(a.name, a.scope, a.replacement) for a in result.removed] == [
            ("old-helper", "user", "code-reviewer"),
            ("retired-tool", "project", None),
        ]
        assert (scope_paths.user_dir / "agents" / "old-helper.md").is_file()
        assert (scope_paths.project_dir / "agents" / "retired-tool.md").is_file()
        assert result.registry_cleaned is False

    def test_cleanup_removes_files_and_entries(self, service, scope_paths, registry_store, deprecated):
        result = service.cleanup()

        assert len(result.removed) == 2
        assert result.errors == {}
        assert result.registry_cleaned is True
        assert not (scope_paths.user_dir / "agents" / "old-helper.md").exists()
        assert not (scope_paths.project_dir / "agents" / "retired-tool.md").exists()
        registry = registry_store.load_agents()
        assert "old-helper" not in registry.installed_agents
        assert "old-helper" not in registry.enabled_agents

    def test_registry_only_entry(self, service, scope_paths, registry_store):
        """Test a stale registry entry is cleaned even without a file"""
        (scope_paths.library_dir / "deprecated.yml").write_text("old-helper: null\n")
        _register_external(scope_paths, registry_store, "old-helper")
        (scope_paths.user_dir / "agents" / "old-helper.md").unlink()

        result = service.cleanup()

        assert [(a.name, a.path) for a in result.removed] == [("old-helper", None)]
        assert registry_store.load_agents().installed_agents == {}

    def test_nothing_deprecated(self, service):
        service.install(["code-reviewer"])
        result = service.cleanup()
        assert result.removed == []
        assert result.registry_cleaned is False
