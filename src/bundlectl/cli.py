"""CLI interface for bundlectl"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import click

from bundlectl import __version__
from bundlectl.application.agent_service import AgentService
from bundlectl.application.sync_service import SyncService
from bundlectl.domain.errors import BundleError
from bundlectl.domain.ignore import is_excluded
from bundlectl.domain.models.bundle import BundleKind
from bundlectl.infrastructure.bundle_store import BundleStore
from bundlectl.infrastructure.config.config_manager import ConfigManager, ConfigurationError
from bundlectl.infrastructure.file_filter import FileFilter, format_patterns_for_prompt, load_project_patterns
from bundlectl.infrastructure.paths import ScopePaths
from bundlectl.infrastructure.registry_store import RegistryStore
from bundlectl.infrastructure.update_checker import UpdateChecker

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)
    for logger_name in logging.Logger.manager.loggerDict:
        logging.getLogger(logger_name).setLevel(level)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


@dataclass
class AppContext:
    """Services wired from configuration for one CLI invocation"""

    config_manager: ConfigManager
    paths: ScopePaths
    bundle_store: BundleStore
    registry_store: RegistryStore
    file_filter: FileFilter
    agent_service: AgentService
    sync_service: SyncService


def build_context(config_path: Optional[Path] = None) -> AppContext:
    """Load configuration and create the services

    Args:
        config_path: Explicit config file (searched from cwd if None)

    Returns:
        AppContext
    """
    config_manager = ConfigManager(config_path=config_path)
    paths = ScopePaths.from_config(config_manager.get_paths_config())
    bundle_store = BundleStore(paths)
    registry_store = RegistryStore(paths)
    file_filter = FileFilter.for_project(paths.project_root(), config_manager.get_ignore_config())
    return AppContext(
        config_manager=config_manager,
        paths=paths,
        bundle_store=bundle_store,
        registry_store=registry_store,
        file_filter=file_filter,
        agent_service=AgentService(bundle_store, registry_store),
        sync_service=SyncService(bundle_store, registry_store, file_filter),
    )


def _context(ctx: click.Context) -> AppContext:
    """Build the AppContext once per invocation, converting config errors"""
    if ctx.obj.get("app") is None:
        try:
            ctx.obj["app"] = build_context(ctx.obj.get("config_path"))
        except ConfigurationError as e:
            _die(str(e), verbose=ctx.obj.get("verbose", False), exc=e)
    return ctx.obj["app"]


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .bundlectl.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """bundlectl - manage agent, process and standard bundles"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("names", nargs=-1)
@click.option("--all", "-a", "install_all", is_flag=True, help="Install all available agents")
@click.option("--project", "-p", is_flag=True, help="Install to project directory instead of user directory")
@click.pass_context
def install(ctx, names: Tuple[str, ...], install_all: bool, project: bool):
    """Install agents from the library.

    NAMES: Agents to install (use --all for every available agent)
    """
    if not names and not install_all:
        raise click.UsageError("Specify agent names or use --all")

    app = _context(ctx)
    try:
        result = app.agent_service.install(list(names), install_all=install_all, project=project)
    except BundleError as e:
        _die(str(e), verbose=ctx.obj["verbose"], exc=e)

    for name in result.installed:
        click.echo(f"Installed {name}")
    if result.already_installed:
        click.echo(f"Already installed: {', '.join(result.already_installed)}")
    if result.not_found:
        click.echo(f"Agents not found: {', '.join(result.not_found)}", err=True)
    for name, reason in result.failed.items():
        click.echo(f"Failed to install {name}: {reason}", err=True)

    if not result.installed:
        click.echo("No agents installed.")
    else:
        click.echo(f"\nInstallation complete: {len(result.installed)} agent(s)")


@cli.command(name="list")
@click.option("--installed", "-i", is_flag=True, help="Show only installed agents")
@click.option("--available", "-a", is_flag=True, help="Show only available agents")
@click.pass_context
def list_command(ctx, installed: bool, available: bool):
    """List available and installed agents."""
    app = _context(ctx)
    synced = app.sync_service.run_auto_sync_if_needed()
    if synced and synced.registered:
        click.echo(f"Auto-sync registered: {', '.join(synced.registered)}")

    rows = app.agent_service.list_agents(installed_only=installed, available_only=available)
    if not rows:
        if installed:
            click.echo("No agents installed yet.")
        elif available:
            click.echo("No new agents available.")
        else:
            click.echo("No agents found.")
        return

    click.echo(f"{'Agent':<24}{'Status':<11}{'Scope':<9}{'Version':<10}Description")
    click.echo("-" * 80)
    for row in rows:
        click.echo(f"{row.name:<24}{row.status:<11}{row.scope:<9}{row.version:<10}{row.description or '-'}")


@cli.command()
@click.argument("name")
@click.pass_context
def info(ctx, name: str):
    """Show details about an agent."""
    app = _context(ctx)
    try:
        bundle = app.agent_service.info(name)
    except BundleError as e:
        _die(str(e), verbose=ctx.obj["verbose"], exc=e)

    metadata = bundle.metadata
    click.echo(f"Name:        {bundle.name}")
    click.echo(f"Version:     {metadata.version}")
    click.echo(f"Author:      {metadata.author}")
    click.echo(f"Description: {metadata.description or '-'}")
    click.echo(f"Tools:       {', '.join(metadata.tools) or '-'}")
    click.echo(f"Tags:        {', '.join(metadata.tags) or '-'}")
    click.echo(f"Path:        {bundle.path}")


def _toggle(ctx, name: str, project: bool, enable: bool) -> None:
    app = _context(ctx)
    try:
        if enable:
            app.agent_service.enable(name, project=project)
        else:
            app.agent_service.disable(name, project=project)
    except BundleError as e:
        _die(str(e), verbose=ctx.obj["verbose"], exc=e)
    click.echo(f"{'Enabled' if enable else 'Disabled'} {name}")


@cli.command()
@click.argument("name")
@click.option("--project", "-p", is_flag=True, help="Enable in project scope")
@click.pass_context
def enable(ctx, name: str, project: bool):
    """Enable an installed agent."""
    _toggle(ctx, name, project, enable=True)


@cli.command()
@click.argument("name")
@click.option("--project", "-p", is_flag=True, help="Disable in project scope")
@click.pass_context
def disable(ctx, name: str, project: bool):
    """Disable an agent without removing it."""
    _toggle(ctx, name, project, enable=False)


@cli.command()
@click.argument("name")
@click.option("--project", "-p", is_flag=True, help="Remove from project scope")
@click.pass_context
def remove(ctx, name: str, project: bool):
    """Remove an installed agent."""
    app = _context(ctx)
    try:
        app.agent_service.remove(name, project=project)
    except BundleError as e:
        _die(str(e), verbose=ctx.obj["verbose"], exc=e)
    click.echo(f"Removed {name}")


@cli.command()
@click.argument("names", nargs=-1)
@click.option("--all", "-a", "update_all", is_flag=True, help="Update all installed agents")
@click.option("--project", "-p", is_flag=True, help="Update agents in project scope")
@click.option("--force", "-f", is_flag=True, help="Update without confirmation")
@click.option("--preserve-custom", is_flag=True, help="Skip agents marked as customized")
@click.pass_context
def update(ctx, names: Tuple[str, ...], update_all: bool, project: bool, force: bool, preserve_custom: bool):
    """Refresh installed agents from the library.

    NAMES: Agents to update (use --all for every installed agent)
    """
    if not names and not update_all:
        raise click.UsageError("Specify agent names or use --all")

    app = _context(ctx)
    if not force:
        target = "all installed agents" if update_all else ", ".join(names)
        if not click.confirm(f"Update {target}?", default=True):
            click.echo("Update cancelled.")
            return

    try:
        result = app.agent_service.update(
            list(names), update_all=update_all, project=project, preserve_custom=preserve_custom
        )
    except BundleError as e:
        _die(str(e), verbose=ctx.obj["verbose"], exc=e)

    for name in result.updated:
        click.echo(f"Updated {name}")
    for old, new in result.replaced.items():
        click.echo(f"Replaced {old} with {new}")
    for name, reason in result.skipped.items():
        click.echo(f"Skipped {name}: {reason}")
    for name, reason in result.failed.items():
        click.echo(f"Failed to update {name}: {reason}", err=True)

    if not result.updated and not result.replaced:
        click.echo("No agents updated.")


@cli.command()
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def cleanup(ctx, force: bool):
    """Remove deprecated agents from both scopes."""
    app = _context(ctx)
    preview = app.agent_service.cleanup(dry_run=True)
    if not preview.removed:
        click.echo("No deprecated agents found.")
        return

    click.echo(f"Found {len(preview.removed)} deprecated agent(s):")
    for agent in preview.removed:
        click.echo(f"  {agent.name} ({agent.scope})")
        if agent.replacement:
            click.echo(f"    replaced by: {agent.replacement}")
        else:
            click.echo("    no direct replacement")

    if not force and not click.confirm("Remove all deprecated agents?", default=True):
        click.echo("Cleanup cancelled.")
        return

    result = app.agent_service.cleanup()
    for name, reason in result.errors.items():
        click.echo(f"Failed to remove {name}: {reason}", err=True)
    click.echo(f"Removed {len(result.removed) - len(result.errors)} agent(s)")
    if result.registry_cleaned:
        click.echo("Registry cleaned.")


@cli.command()
@click.option("--project", "-p", is_flag=True, help="Validate project scope agents")
@click.option("--strict", is_flag=True, help="Exit with an error if any agent is invalid")
@click.pass_context
def validate(ctx, project: bool, strict: bool):
    """Check installed agent files for frontmatter problems."""
    app = _context(ctx)
    issues = app.agent_service.validate(project=project)
    if not issues:
        click.echo("All agents are valid.")
        return

    for issue in issues:
        click.echo(f"{issue.name} ({issue.path})")
        for problem in issue.problems:
            click.echo(f"  - {problem}")

    if strict:
        _die(f"Validation failed for {len(issues)} agent(s)")


@cli.command()
@click.option("--auto", "-a", is_flag=True, help="Register discovered agents without confirmation")
@click.option("--force-copy", "-f", is_flag=True, help="Copy all registered agents to the project directory")
@click.pass_context
def sync(ctx, auto: bool, force_copy: bool):
    """Register agents installed outside bundlectl."""
    app = _context(ctx)

    if force_copy:
        result = app.sync_service.sync_agents(force_copy=True)
        suffix = f" ({len(result.failed)} failed)" if result.failed else ""
        click.echo(f"Copied {len(result.copied)} agent(s) to project directory{suffix}")
        return

    if not auto:
        preview = app.sync_service.sync_agents(auto=False)
        if not preview.discovered:
            click.echo("All agents are registered.")
            return
        click.echo("Unregistered agents:")
        for agent in preview.discovered:
            click.echo(f"  {agent.name} ({agent.scope}) {agent.path}")
        if not click.confirm("Register these agents?", default=True):
            click.echo("Sync cancelled.")
            return

    result = app.sync_service.sync_agents(auto=True)
    for name, reason in result.failed.items():
        click.echo(f"Failed to register {name}: {reason}", err=True)
    click.echo(f"Registered {len(result.registered)} agent(s)")


def _sync_catalog(ctx, kind: BundleKind, project: bool, force: bool) -> None:
    app = _context(ctx)
    result = app.sync_service.sync_catalog(kind, project=project, force=force)
    for name in result.synced:
        click.echo(f"Synced {name}")
    for name, reason in result.failed.items():
        click.echo(f"Failed to sync {name}: {reason}", err=True)
    click.echo(
        f"{len(result.synced)} {kind.directory} synced, {len(result.unchanged)} unchanged"
    )


@cli.command(name="sync-processes")
@click.option("--project", "-p", is_flag=True, help="Record the sync in the project registry")
@click.option("--force", "-f", is_flag=True, help="Overwrite identical project copies")
@click.pass_context
def sync_processes(ctx, project: bool, force: bool):
    """Copy processes from the user directory into the project."""
    _sync_catalog(ctx, BundleKind.PROCESS, project, force)


@cli.command(name="sync-standards")
@click.option("--project", "-p", is_flag=True, help="Record the sync in the project registry")
@click.option("--force", "-f", is_flag=True, help="Overwrite identical project copies")
@click.pass_context
def sync_standards(ctx, project: bool, force: bool):
    """Copy coding standards from the user directory into the project."""
    _sync_catalog(ctx, BundleKind.STANDARD, project, force)


@cli.group()
def ignore():
    """Inspect the active ignore patterns."""


@ignore.command(name="check")
@click.argument("paths", nargs=-1, required=True)
@click.option(
    "--base",
    type=click.Path(file_okay=False, path_type=Path),
    help="Base directory (default: project root)",
)
@click.pass_context
def ignore_check(ctx, paths: Tuple[str, ...], base: Optional[Path]):
    """Report whether each PATH is ignored."""
    app = _context(ctx)
    base_dir = (base or app.paths.project_root()).resolve()
    patterns = load_project_patterns(base_dir, app.config_manager.get_ignore_config())

    for raw_path in paths:
        path = Path(raw_path)
        candidate = path if path.is_absolute() else base_dir / path
        status = "ignored" if is_excluded(candidate, patterns, base_dir) else "included"
        click.echo(f"{status}\t{raw_path}")


@ignore.command(name="show")
@click.option(
    "--base",
    type=click.Path(file_okay=False, path_type=Path),
    help="Base directory (default: project root)",
)
@click.pass_context
def ignore_show(ctx, base: Optional[Path]):
    """Print the combined ignore patterns for agent prompts."""
    app = _context(ctx)
    base_dir = base or app.paths.project_root()
    patterns = load_project_patterns(base_dir, app.config_manager.get_ignore_config())
    click.echo(format_patterns_for_prompt(patterns))


@cli.group(name="config")
def config_group():
    """Configure settings."""


@config_group.command(name="autosync")
@click.argument("value", required=False, type=click.Choice(["on", "off", "true", "false"]))
@click.pass_context
def config_autosync(ctx, value: Optional[str]):
    """Show or set automatic registration of external agents."""
    app = _context(ctx)
    if value is None:
        state = "enabled" if app.sync_service.is_auto_sync_enabled() else "disabled"
        click.echo(f"Auto-sync is currently: {state}")
        return

    enabled = value in ("on", "true")
    app.sync_service.set_auto_sync(enabled)
    click.echo("Auto-sync enabled" if enabled else "Auto-sync disabled")


@cli.command()
@click.pass_context
def version(ctx):
    """Show version and check for updates."""
    click.echo(f"bundlectl v{__version__}")
    app = _context(ctx)
    update_config = app.config_manager.get_update_config()
    if not update_config.enabled:
        return

    checker = UpdateChecker(update_config, app.config_manager.get_retry_config())
    update = checker.check(__version__)
    if update is None:
        click.echo("Could not check for updates")
    elif update.update_available:
        click.echo(f"Update available: {update.current} -> {update.latest}")
        click.echo(f"Run: pip install --upgrade {update_config.package_name}")
    else:
        click.echo("You are using the latest version")


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
