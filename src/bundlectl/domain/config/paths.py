"""Directory layout configuration model."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel


class PathsConfig(BaseModel):
    """Configuration for bundle directories.

    Unset values fall back to ``~/.claude``, ``<cwd>/.claude`` and the
    library shipped with the package.

    Attributes:
        user_dir: User scope directory
        project_dir: Project scope directory
        library_dir: Directory holding the available bundles
    """

    user_dir: Optional[Path] = None
    project_dir: Optional[Path] = None
    library_dir: Optional[Path] = None
