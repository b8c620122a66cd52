# ============================================================================
# RETRY POLICY MODEL
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core model - Backoff settings for activities
# PURPOSE: Exponential backoff with non-retryable error classes
# CREATED: 19 OCT 2026
# EXPORTS: RetryPolicy, DEFAULT_RETRY_POLICY
# DEPENDENCIES: pydantic
# ============================================================================
"""
Retry Policy

Applied uniformly to every activity call:

    attempt 1 fails -> wait 1s
    attempt 2 fails -> wait 2s
    attempt 3 fails -> wait 4s
    ...
    capped at 100s, at most 10 attempts

Errors whose type name is listed in non_retryable_error_types (or which
carry non_retryable=True) fail on the first attempt. Retrying a
structurally invalid locator can never succeed.
"""

from typing import List

from pydantic import BaseModel, Field, model_validator


class RetryPolicy(BaseModel):
    """Retry configuration for an activity."""

    initial_interval_seconds: float = Field(default=1.0, gt=0)
    backoff_coefficient: float = Field(default=2.0, ge=1.0)
    maximum_interval_seconds: float = Field(default=100.0, gt=0)
    maximum_attempts: int = Field(default=10, ge=1)
    non_retryable_error_types: List[str] = Field(
        default_factory=lambda: ["LocatorParseError", "MalformedInputError"],
        description="Error type names that are never retried",
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_interval_bounds(self) -> "RetryPolicy":
        if self.maximum_interval_seconds < self.initial_interval_seconds:
            raise ValueError("maximum_interval_seconds must be >= initial_interval_seconds")
        return self

    def delay_for_attempt(self, attempt: int) -> float:
        """
        Delay before the next attempt, after `attempt` has failed.

        Args:
            attempt: 1-based number of the attempt that just failed

        Returns:
            Seconds to wait
        """
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")
        delay = self.initial_interval_seconds * (self.backoff_coefficient ** (attempt - 1))
        return min(delay, self.maximum_interval_seconds)

    def is_retryable(self, error: BaseException) -> bool:
        """Check whether an error may ever be retried under this policy."""
        if getattr(error, "non_retryable", False):
            return False
        error_type = getattr(error, "error_type", None) or type(error).__name__
        return error_type not in self.non_retryable_error_types

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """Check whether another attempt should follow a failed `attempt`."""
        return attempt < self.maximum_attempts and self.is_retryable(error)


DEFAULT_RETRY_POLICY = RetryPolicy()


__all__ = ["RetryPolicy", "DEFAULT_RETRY_POLICY"]
