# ============================================================================
# WORKFLOW CONTEXT
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Engine - The API workflow code is written against
# PURPOSE: Activities, child workflows, signals, history and continue-as-new
# CREATED: 19 OCT 2026
# ============================================================================
"""
Workflow Context

A WorkflowContext is handed to every workflow run. Workflow code never
touches workers, the network or the filesystem directly; everything with a
side effect goes through an activity:

    future = ctx.execute_activity(ActivityName.EXTRACT, task, options)
    result = await future

History is metered per run. Once ctx.history_length passes the configured
bound, long-lived workflows drain their selector, capture a checkpoint and
call ctx.continue_as_new(next_input).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NoReturn, Optional

from core.errors import ContinueAsNew
from core.models.retry import RetryPolicy
from orchestrator.engine.channels import SignalChannel
from orchestrator.engine.selector import Selector

if TYPE_CHECKING:
    from core.config import OrchestrationConfig
    from orchestrator.engine.runtime import Runtime, WorkflowExecution, WorkflowHandle

logger = logging.getLogger(__name__)


def name_of(name: Any) -> str:
    """Normalise an enum member or string to its string value."""
    return str(getattr(name, "value", name))


@dataclass(frozen=True)
class ActivityOptions:
    """
    Per-call activity options.

    Attributes:
        task_queue: Queue to dispatch on; None means the shared queue
        start_to_close_timeout: Seconds one attempt may run
        heartbeat_timeout: Seconds allowed between heartbeats
        retry_policy: Overrides the runtime's default policy
    """
    task_queue: Optional[str] = None
    start_to_close_timeout: Optional[float] = None
    heartbeat_timeout: Optional[float] = None
    retry_policy: Optional[RetryPolicy] = None


class WorkflowContext:
    """Handle on the runtime for one run of one workflow."""

    def __init__(self, runtime: "Runtime", execution: "WorkflowExecution"):
        self._runtime = runtime
        self._execution = execution

    # ========================================================================
    # IDENTITY
    # ========================================================================

    @property
    def workflow_id(self) -> str:
        return self._execution.workflow_id

    @property
    def run_id(self) -> str:
        return self._execution.run_id

    @property
    def workflow_name(self) -> str:
        return self._execution.name

    @property
    def config(self) -> "OrchestrationConfig":
        return self._runtime.config

    @property
    def history_length(self) -> int:
        """Events recorded in the current run."""
        return self._execution.history_length

    def is_continue_as_new_suggested(self) -> bool:
        return self.history_length > self._runtime.config.history.max_history_length

    # ========================================================================
    # SIGNALS
    # ========================================================================

    def get_signal_channel(self, name: Any) -> SignalChannel:
        return self._execution.channel(name_of(name))

    def new_selector(self) -> Selector:
        return Selector()

    async def signal_external(self, workflow_id: str, name: Any, payload: Any) -> None:
        """Deliver a signal to another workflow id."""
        self._execution.record()
        await self._runtime.signal(workflow_id, name, payload)

    # ========================================================================
    # ACTIVITIES
    # ========================================================================

    def execute_activity(
        self,
        name: Any,
        payload: Any = None,
        options: Optional[ActivityOptions] = None,
        activity_id: Optional[str] = None,
    ) -> "asyncio.Task":
        """
        Schedule an activity and return a future for its result.

        With an explicit activity_id the activity outlives this run: a later
        run of the same workflow id can re-attach to it with get_activity().
        Scheduling an id that is still known returns the existing future.

        Raises (through the future):
            ActivityError: After the retry policy gives up
        """
        return self._runtime.schedule_activity(
            self._execution,
            name_of(name),
            payload,
            options or ActivityOptions(),
            activity_id,
        )

    def get_activity(self, activity_id: str) -> Optional["asyncio.Task"]:
        """Future of a previously scheduled activity, if the runtime still knows it."""
        return self._execution.activities.get(activity_id)

    def release_activity(self, activity_id: str) -> None:
        """Forget a consumed activity so it is no longer re-attachable."""
        self._execution.activities.pop(activity_id, None)

    # ========================================================================
    # CHILD WORKFLOWS
    # ========================================================================

    async def start_child(self, name: Any, workflow_id: str, payload: Any) -> "WorkflowHandle":
        """Start a child workflow. Children are cancelled when this workflow closes."""
        self._execution.record()
        return await self._runtime.start_workflow(
            name,
            workflow_id,
            payload,
            parent=self._execution,
        )

    # ========================================================================
    # CONTINUE AS NEW
    # ========================================================================

    def continue_as_new(self, payload: Any) -> NoReturn:
        """Replace this run with a fresh one that starts from `payload`."""
        logger.info(
            f"Workflow {self.workflow_id} continuing as new after "
            f"{self.history_length} history events"
        )
        raise ContinueAsNew(payload)


__all__ = ["ActivityOptions", "WorkflowContext", "name_of"]
