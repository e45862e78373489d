"""Bundle model - a markdown file with YAML frontmatter"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_KIND_DIRECTORIES = {"agent": "agents", "process": "processes", "standard": "standards"}


class BundleKind(str, Enum):
    """Kinds of bundles managed by the CLI"""

    AGENT = "agent"
    PROCESS = "process"
    STANDARD = "standard"

    @property
    def directory(self) -> str:
        """Directory name inside a scope or the library"""
        return _KIND_DIRECTORIES[self.value]

    @property
    def nested_file(self) -> str:
        """File name used by the directory form (<name>/<kind>.md)"""
        return f"{self.value}.md"


class BundleMetadata(BaseModel):
    """Typed view of a bundle's frontmatter.

    Unknown frontmatter keys are kept so they survive a round trip.
    """

    name: Optional[str] = None
    type: Optional[str] = None
    version: str = "1.0.0"
    description: str = ""
    author: str = "Unknown"
    tags: List[str] = Field(default_factory=list)
    tools: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: Any) -> Any:
        # YAML reads `version: 1.0` as a float
        if value is None:
            return "1.0.0"
        return str(value)

    @field_validator("description", "author", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return "" if value is None else str(value)

    @field_validator("tags", "tools", mode="before")
    @classmethod
    def _split_list(cls, value: Any) -> Any:
        # Tools are usually written as "Read, Grep, Glob"
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return [str(item) for item in value]


@dataclass
class Bundle:
    """A loaded agent, process or standard"""

    name: str  # Bundle name (file stem)
    kind: BundleKind
    path: Path  # Source file
    metadata: BundleMetadata
    body: str = ""  # Markdown after the frontmatter
    full_content: str = ""  # Whole file as read

    @property
    def version(self) -> str:
        return self.metadata.version

    @property
    def description(self) -> str:
        return self.metadata.description

    def registry_record(self) -> Dict[str, Any]:
        """Metadata stored in the registry when the bundle is installed"""
        return {
            "version": self.metadata.version,
            "description": self.metadata.description,
            "author": self.metadata.author,
            "tags": list(self.metadata.tags),
            "tools": list(self.metadata.tools),
        }
