"""Shared HTTP client utilities (requests + retry/backoff)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from bundlectl.domain.config.retry import RetryConfig
from bundlectl.infrastructure.retry import create_retry_decorator

logger = logging.getLogger(__name__)


def get_json_with_retries(
    url: str,
    *,
    timeout: float,
    retry: RetryConfig,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    """GET a JSON document with retry on network errors, 429 and 5xx."""

    @create_retry_decorator(retry)
    def _request() -> requests.Response:
        logger.debug(f"HTTP GET {url}")
        resp = requests.get(url, headers=headers or {"Accept": "application/json"}, timeout=timeout)
        resp.raise_for_status()
        return resp

    return _request().json()
