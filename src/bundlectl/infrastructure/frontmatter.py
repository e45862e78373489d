"""YAML frontmatter extraction for markdown bundles"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
KEY_RE = re.compile(r"^([A-Za-z_][\w-]*):\s*(.*)$")

# Keys that terminate an unquoted multi-line description
KNOWN_KEYS = ("name", "tools", "color", "version", "author", "tags", "type", "model")


@dataclass
class Frontmatter:
    """Parsed frontmatter and the markdown that follows it"""

    data: Optional[Dict[str, Any]]  # None when the text has no frontmatter block
    body: str


def extract_frontmatter(text: str) -> Frontmatter:
    """Split markdown text into frontmatter data and body

    Args:
        text: Full markdown file content

    Returns:
        Frontmatter with parsed data (None if absent) and stripped body
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return Frontmatter(data=None, body=text)

    block = match.group(1)
    body = text[match.end():].strip()
    return Frontmatter(data=parse_frontmatter_block(block), body=body)


def parse_frontmatter_block(block: str) -> Dict[str, Any]:
    """Parse a frontmatter block, tolerating unquoted long descriptions

    Standard YAML is tried first. Agent files often carry descriptions with
    colons and escaped newlines that are not valid YAML; those fall back to a
    line-based reader.
    """
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as e:
        logger.debug(f"Frontmatter is not valid YAML, using lenient parser: {e}")
        return _parse_lenient(block)

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.debug("Frontmatter is not a mapping, using lenient parser")
        return _parse_lenient(block)
    return data


def _parse_lenient(block: str) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    current_key: Optional[str] = None
    current_value = ""

    for line in block.splitlines():
        if not line.strip():
            continue

        match = KEY_RE.match(line)
        starts_key = match is not None and (
            current_key != "description" or match.group(1) in KNOWN_KEYS
        )
        if starts_key:
            if current_key is not None:
                result[current_key] = _coerce_scalar(current_value.strip())
            current_key, current_value = match.group(1), match.group(2)
        elif current_key is not None:
            current_value += " " + line.strip()

    if current_key is not None:
        result[current_key] = _coerce_scalar(current_value.strip())
    return result


def _coerce_scalar(value: str) -> Any:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    if value == "true":
        return True
    if value == "false":
        return False
    if re.fullmatch(r"\d+", value):
        return int(value)
    if re.fullmatch(r"\d+\.\d+", value):
        return float(value)
    return value


def render_frontmatter(data: Dict[str, Any], body: str) -> str:
    """Serialize frontmatter data and body back into markdown"""
    dumped = yaml.safe_dump(data, sort_keys=False, allow_unicode=True).strip()
    return f"---\n{dumped}\n---\n\n{body.strip()}\n"
