"""Retry settings for package index requests."""

from pydantic import BaseModel, Field


class RetryConfig(BaseModel):
    """Backoff policy used when the package index cannot be reached.

    Delays grow as ``initial_delay * backoff_multiplier ** attempt``, are
    capped at ``max_delay`` and shifted by up to ``jitter * initial_delay``
    in either direction.

    Attributes:
        max_attempts: Requests made before giving up
        initial_delay: First delay in seconds (0 disables waiting)
        backoff_multiplier: Growth factor between attempts
        max_delay: Upper bound for a single delay in seconds
        jitter: Random spread as a fraction of initial_delay
    """

    max_attempts: int = Field(3, gt=0, le=10)
    initial_delay: float = Field(1.0, ge=0.0)
    backoff_multiplier: float = Field(2.0, ge=1.0, le=10.0)
    max_delay: float = Field(30.0, gt=0.0, le=300.0)
    jitter: float = Field(0.1, ge=0.0, le=1.0)
