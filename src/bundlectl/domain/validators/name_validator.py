"""Validation of bundle names before they are used as file names"""

import re

from bundlectl.domain.errors import InvalidBundleNameError

NAME_PATTERN = re.compile(r"^[a-z0-9-]+$")
MIN_LENGTH = 3
MAX_LENGTH = 50
DANGEROUS_SEQUENCES = ("..", "/", "\\", "~", "%2e", "%2f", "%5c")


def validate_bundle_name(name: str) -> str:
    """Check that a bundle name is safe to turn into a path

    Args:
        name: Candidate bundle name

    Returns:
        The name, unchanged

    Raises:
        InvalidBundleNameError: If the name is rejected
    """
    if not name or not isinstance(name, str):
        raise InvalidBundleNameError(str(name), "name must be a non-empty string")

    if not MIN_LENGTH <= len(name) <= MAX_LENGTH:
        raise InvalidBundleNameError(
            name, f"name must be between {MIN_LENGTH} and {MAX_LENGTH} characters"
        )

    lowered = name.lower()
    if any(seq in lowered for seq in DANGEROUS_SEQUENCES):
        raise InvalidBundleNameError(name, "name contains invalid characters")

    if not NAME_PATTERN.match(name):
        raise InvalidBundleNameError(
            name, "name can only contain lowercase letters, numbers, and hyphens"
        )

    if name.startswith("-") or name.endswith("-"):
        raise InvalidBundleNameError(name, "name cannot start or end with a hyphen")

    return name


def is_valid_bundle_name(name: str) -> bool:
    try:
        validate_bundle_name(name)
    except InvalidBundleNameError:
        return False
    return True
