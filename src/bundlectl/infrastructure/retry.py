"""Retry policy for package index requests using tenacity."""

from __future__ import annotations

import logging
from typing import Callable

import requests
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from bundlectl.domain.config.retry import RetryConfig

logger = logging.getLogger(__name__)

# Client errors worth another attempt
RETRYABLE_CLIENT_STATUSES = (408, 429)


def should_retry_http_error(exception: requests.exceptions.HTTPError) -> bool:
    """Retry on 5xx and throttling, never on other 4xx."""
    response = exception.response
    if response is None:
        return True
    status_code = response.status_code
    if 400 <= status_code < 500:
        return status_code in RETRYABLE_CLIENT_STATUSES
    return True


def should_retry_request(exception: BaseException) -> bool:
    if isinstance(exception, requests.exceptions.HTTPError):
        return should_retry_http_error(exception)
    return isinstance(exception, requests.exceptions.RequestException)


def _log_retry(retry_config: RetryConfig) -> Callable[[RetryCallState], None]:
    def _before_sleep(retry_state: RetryCallState) -> None:
        if retry_state.outcome is None:
            return
        exception = retry_state.outcome.exception()
        attempt = retry_state.attempt_number
        logger.warning(f"Request failed (attempt {attempt}/{retry_config.max_attempts}): {exception}. Retrying...")

    return _before_sleep


def create_retry_decorator(
    retry_config: RetryConfig,
    retry_condition: Callable[[BaseException], bool] = should_retry_request,
    before_sleep: Callable[[RetryCallState], None] | None = None,
) -> Callable[[Callable], Callable]:
    """Build a tenacity decorator from a RetryConfig.

    Args:
        retry_config: Attempts and backoff settings
        retry_condition: Returns True for exceptions worth another attempt
        before_sleep: Callback run before each wait (logs a warning if None)

    Returns:
        Decorator that re-raises the last exception once attempts run out
    """
    wait = wait_exponential(
        multiplier=retry_config.initial_delay,
        exp_base=retry_config.backoff_multiplier,
        min=retry_config.initial_delay,
        max=retry_config.max_delay,
    )
    if retry_config.jitter > 0:
        spread = retry_config.initial_delay * retry_config.jitter
        wait = wait + wait_random(-spread, spread)

    return retry(
        stop=stop_after_attempt(retry_config.max_attempts),
        wait=wait,
        retry=retry_if_exception(retry_condition),
        reraise=True,
        before_sleep=before_sleep or _log_retry(retry_config),
    )
