# ============================================================================
# ERROR TAXONOMY
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Foundation - Exception hierarchy
# PURPOSE: Classify failures as retryable / non-retryable across boundaries
# CREATED: 19 OCT 2026
# ============================================================================
"""
Error Taxonomy

Failures fall into four groups:
- Transient external-call failures: retried per RetryPolicy
- Malformed input (bad locator, bad MIME type): never retried
- Per-artifact extraction failures: isolated to their branch
- Workspace / infrastructure failures: fatal to the run

Activity failures cross the worker boundary as ActivityError, which keeps
the original error type name so the retry policy can classify it.
"""

from typing import Any, Dict, Iterable, Optional


class OrchestrationError(Exception):
    """Base exception for orchestrator errors."""
    pass


# ============================================================================
# INPUT ERRORS (NON-RETRYABLE)
# ============================================================================

class LocatorParseError(OrchestrationError):
    """Raised when an object locator cannot be parsed."""

    non_retryable = True

    def __init__(self, locator: str):
        self.locator = locator
        super().__init__(f"invalid object locator: '{locator}'")


class MalformedInputError(OrchestrationError):
    """Raised when input is structurally invalid (e.g. unsupported MIME type)."""

    non_retryable = True


# ============================================================================
# PROCESSING ERRORS
# ============================================================================

class WorkspaceError(OrchestrationError):
    """Raised when a workspace cannot be created or used."""
    pass


class ExtractionError(OrchestrationError):
    """Raised when the extraction engine fails for one file."""
    pass


class ArchiveError(OrchestrationError):
    """Raised when packaging a directory into an archive fails."""
    pass


class ActivityTimeoutError(OrchestrationError):
    """Raised when an activity exceeds its start-to-close or heartbeat timeout."""

    def __init__(self, activity: str, kind: str, seconds: float):
        self.activity = activity
        self.kind = kind
        self.seconds = seconds
        super().__init__(f"Activity '{activity}' exceeded {kind} timeout of {seconds}s")


# ============================================================================
# REGISTRY ERRORS
# ============================================================================

class ActivityNotFoundError(OrchestrationError):
    """Raised when no worker has registered an activity."""

    non_retryable = True

    def __init__(self, name: str, task_queue: Optional[str] = None):
        self.name = name
        self.task_queue = task_queue
        where = f" on task queue '{task_queue}'" if task_queue else ""
        super().__init__(f"Activity not found: {name}{where}")


class DuplicateActivityError(OrchestrationError):
    """Raised when an activity name is already registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Activity already registered: {name}")


class WorkflowNotFoundError(OrchestrationError):
    """Raised when a workflow name or id is unknown to the runtime."""
    pass


class RelayClosedError(OrchestrationError):
    """Raised when the output relay closes while its expansion still needs it."""

    def __init__(self, relay_id: str, status: Any):
        self.relay_id = relay_id
        self.status = status
        super().__init__(f"Relay {relay_id} closed ({status}) before expansion completed")


# ============================================================================
# ACTIVITY BOUNDARY
# ============================================================================

class ActivityError(OrchestrationError):
    """
    Failure of an activity as seen by workflow code.

    Attributes:
        activity: Activity name
        error_type: Class name of the original exception
        non_retryable: True if retrying can never succeed
        attempts: Number of attempts made before giving up
    """

    def __init__(
        self,
        message: str,
        error_type: str,
        activity: str = "",
        non_retryable: bool = False,
        attempts: int = 0,
        cause: Optional[BaseException] = None,
    ):
        self.activity = activity
        self.error_type = error_type
        self.non_retryable = non_retryable
        self.attempts = attempts
        self.cause = cause
        super().__init__(message)

    @classmethod
    def wrap(
        cls,
        error: BaseException,
        activity: str,
        non_retryable_types: Iterable[str] = (),
    ) -> "ActivityError":
        """
        Wrap an arbitrary exception raised by an activity.

        Args:
            error: Original exception
            activity: Activity name
            non_retryable_types: Error type names the policy never retries

        Returns:
            ActivityError carrying the original type name
        """
        if isinstance(error, ActivityError):
            return error
        error_type = type(error).__name__
        non_retryable = bool(getattr(error, "non_retryable", False)) or (
            error_type in set(non_retryable_types)
        )
        return cls(
            str(error) or error_type,
            error_type=error_type,
            activity=activity,
            non_retryable=non_retryable,
            cause=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activity": self.activity,
            "error_type": self.error_type,
            "message": str(self),
            "non_retryable": self.non_retryable,
            "attempts": self.attempts,
        }


# ============================================================================
# CONTROL FLOW
# ============================================================================

class ContinueAsNew(Exception):
    """
    Raised by workflow code to replace its run with a fresh one.

    The runtime catches it, persists the payload as the new run's input and
    starts the same workflow again under the same workflow id.
    """

    def __init__(self, payload: Any):
        self.payload = payload
        super().__init__("continue as new")


__all__ = [
    "OrchestrationError",
    "LocatorParseError",
    "MalformedInputError",
    "WorkspaceError",
    "ExtractionError",
    "ArchiveError",
    "ActivityTimeoutError",
    "ActivityNotFoundError",
    "DuplicateActivityError",
    "WorkflowNotFoundError",
    "RelayClosedError",
    "ActivityError",
    "ContinueAsNew",
]
