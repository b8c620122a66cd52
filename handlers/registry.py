# ============================================================================
# ACTIVITY REGISTRY
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core - Activity registration and lookup
# PURPOSE: Register and discover activity functions by name, per worker
# CREATED: 19 OCT 2026
# ============================================================================
"""
Activity Registry

Each worker owns one ActivityRegistry mapping activity names to the
functions that implement them. The runtime looks up the function for an
activity call on the worker that the call was routed to.

Design:
- Activities are registered explicitly by the objects that hold their
  collaborators (object store, engine, relay log)
- Registry is a simple dict (activity_name -> function)
- Fail-fast on duplicate registration
- Supports both sync and async activities; sync ones run in the default
  executor so blocking file and network I/O never stalls the event loop
"""

import asyncio
import functools
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from core.errors import ActivityNotFoundError, DuplicateActivityError

logger = logging.getLogger(__name__)


# ============================================================================
# ACTIVITY TYPES
# ============================================================================

@dataclass
class ActivityContext:
    """
    Context passed to activity functions.

    Contains all information about the current attempt.
    """
    activity: str
    activity_id: str
    attempt: int
    worker_id: str
    task_queue: str

    # Monotonic time of the last heartbeat; the runtime's watchdog reads it
    last_heartbeat: float = field(default_factory=time.monotonic)
    heartbeat_details: Optional[Any] = None
    heartbeat_count: int = 0

    def heartbeat(self, details: Optional[Any] = None) -> None:
        """Record liveness. Long-running activities call this periodically."""
        self.last_heartbeat = time.monotonic()
        self.heartbeat_count += 1
        if details is not None:
            self.heartbeat_details = details

    @property
    def sticky_queue(self) -> str:
        """Task queue that reaches only the worker running this attempt."""
        return self.worker_id


# Activity function type
ActivityFunc = Callable[[ActivityContext, Any], Union[Any, Awaitable[Any]]]


# ============================================================================
# REGISTRY
# ============================================================================

class ActivityRegistry:
    """
    Registry of activity functions for one worker.

    Example:
        registry = ActivityRegistry()

        @registry.activity("identify")
        def identify(ctx: ActivityContext, request: IdentifyRequest) -> str:
            return store.content_type(request.locator)
    """

    def __init__(self):
        self._activities: Dict[str, ActivityFunc] = {}
        self._metadata: Dict[str, Dict[str, Any]] = {}

    def register(
        self,
        name: str,
        func: ActivityFunc,
        *,
        description: str = "",
    ) -> ActivityFunc:
        """
        Register an activity function.

        Args:
            name: Activity name (must be unique within the registry)
            func: Function taking (ActivityContext, payload)
            description: Human-readable description

        Returns:
            The function, unchanged

        Raises:
            DuplicateActivityError: If the name is already registered
        """
        name = str(getattr(name, "value", name))
        if name in self._activities:
            raise DuplicateActivityError(name)

        self._activities[name] = func
        self._metadata[name] = {
            "name": name,
            "description": description,
            "function": getattr(func, "__qualname__", repr(func)),
            "module": getattr(func, "__module__", None),
            "is_async": asyncio.iscoroutinefunction(func),
            "registered_at": datetime.utcnow().isoformat(),
        }

        logger.debug(f"Registered activity: {name}")
        return func

    def activity(
        self,
        name: str,
        *,
        description: str = "",
    ) -> Callable[[ActivityFunc], ActivityFunc]:
        """Decorator form of register()."""
        def decorator(func: ActivityFunc) -> ActivityFunc:
            return self.register(name, func, description=description)
        return decorator

    def get(self, name: str) -> Optional[ActivityFunc]:
        return self._activities.get(str(getattr(name, "value", name)))

    def get_or_raise(self, name: str) -> ActivityFunc:
        """
        Get an activity by name, raising if not found.

        Raises:
            ActivityNotFoundError if the activity is not registered
        """
        func = self.get(name)
        if func is None:
            raise ActivityNotFoundError(str(getattr(name, "value", name)))
        return func

    def __contains__(self, name: object) -> bool:
        return str(getattr(name, "value", name)) in self._activities

    def names(self) -> List[str]:
        return sorted(self._activities)

    def list_activities(self) -> List[Dict[str, Any]]:
        """List all registered activities with metadata."""
        return list(self._metadata.values())

    def clear(self) -> None:
        """
        Clear all registered activities.

        Primarily for testing.
        """
        self._activities.clear()
        self._metadata.clear()

    # ========================================================================
    # EXECUTION
    # ========================================================================

    async def execute(self, name: str, context: ActivityContext, payload: Any) -> Any:
        """
        Execute an activity by name.

        Handles both sync and async activities. Exceptions propagate to the
        runtime, which classifies them against the retry policy.

        Raises:
            ActivityNotFoundError if the activity is not registered
        """
        func = self.get_or_raise(name)

        if asyncio.iscoroutinefunction(func):
            return await func(context, payload)

        # Run sync activity in thread pool
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, context, payload))


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ActivityContext",
    "ActivityFunc",
    "ActivityRegistry",
]
