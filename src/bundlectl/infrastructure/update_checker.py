"""Release update check against the package index"""

import logging
from dataclasses import dataclass
from typing import Optional

import requests
from packaging.version import InvalidVersion, Version

from bundlectl.domain.config.retry import RetryConfig
from bundlectl.domain.config.update import UpdateConfig
from bundlectl.infrastructure.http_client import get_json_with_retries

logger = logging.getLogger(__name__)


def parse_version(version: str) -> Optional[Version]:
    """Parse a PEP 440 version, or None if the string is not one"""
    try:
        return Version(version.strip())
    except InvalidVersion:
        logger.debug(f"Unparsable version: {version!r}")
        return None


@dataclass
class UpdateInfo:
    """Result of an update check"""

    current: str
    latest: str

    @property
    def update_available(self) -> bool:
        current = parse_version(self.current)
        latest = parse_version(self.latest)
        if current is None or latest is None:
            return False
        return latest > current


class UpdateChecker:
    """Looks up the latest published release"""

    def __init__(self, update_config: UpdateConfig, retry_config: Optional[RetryConfig] = None):
        self.update_config = update_config
        self.retry_config = retry_config or RetryConfig()

    @property
    def url(self) -> str:
        base = self.update_config.index_url.rstrip("/")
        return f"{base}/{self.update_config.package_name}/json"

    def latest_version(self) -> Optional[str]:
        """Fetch the latest version, or None if the index cannot be reached"""
        try:
            payload = get_json_with_retries(
                self.url,
                timeout=self.update_config.timeout,
                retry=self.retry_config,
            )
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.debug(f"Could not check for updates: {e}")
            return None

        version = (payload.get("info") or {}).get("version") if isinstance(payload, dict) else None
        if not version:
            logger.debug("Package index response has no version")
            return None
        return str(version)

    def check(self, current_version: str) -> Optional[UpdateInfo]:
        """Compare the running version with the latest release"""
        if not self.update_config.enabled:
            logger.debug("Update check disabled")
            return None
        latest = self.latest_version()
        if latest is None:
            return None
        return UpdateInfo(current=current_version, latest=latest)
