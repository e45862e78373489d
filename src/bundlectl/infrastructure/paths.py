"""Resolution of user, project and library directories"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from bundlectl.domain.config.paths import PathsConfig
from bundlectl.domain.models.bundle import BundleKind

SCOPE_DIR_NAME = ".claude"
LIBRARY_DIR = Path(__file__).resolve().parent.parent / "library"

REGISTRY_FILES = {
    BundleKind.AGENT: ".claude-agents.json",
    BundleKind.PROCESS: ".claude-processes.json",
    BundleKind.STANDARD: ".claude-standards.json",
}


@dataclass(frozen=True)
class ScopePaths:
    """Resolved directory layout for both scopes"""

    user_dir: Path  # ~/.claude
    project_dir: Path  # <cwd>/.claude
    library_dir: Path  # Bundles available for install

    @classmethod
    def from_config(cls, config: Optional[PathsConfig] = None) -> "ScopePaths":
        """Resolve configured directories, filling in defaults"""
        config = config or PathsConfig()
        return cls(
            user_dir=_resolve(config.user_dir, Path.home() / SCOPE_DIR_NAME),
            project_dir=_resolve(config.project_dir, Path.cwd() / SCOPE_DIR_NAME),
            library_dir=_resolve(config.library_dir, LIBRARY_DIR),
        )

    def scope_dir(self, project: bool = False) -> Path:
        return self.project_dir if project else self.user_dir

    def bundle_dir(self, kind: BundleKind, project: bool = False) -> Path:
        """Directory holding installed bundles of a kind, e.g. ~/.claude/agents"""
        return self.scope_dir(project) / kind.directory

    def library_bundle_dir(self, kind: BundleKind) -> Path:
        return self.library_dir / kind.directory

    def registry_path(self, kind: BundleKind, project: bool = False) -> Path:
        """Registry JSON file, stored next to the scope directory"""
        return self.scope_dir(project).parent / REGISTRY_FILES[kind]

    def project_root(self) -> Path:
        """Directory the project ignore files are read from"""
        return self.project_dir.parent


def _resolve(value: Optional[Path], default: Path) -> Path:
    if value is None:
        return default
    return Path(value).expanduser()
