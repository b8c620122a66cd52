# ============================================================================
# EXPANSION CONTROLLER
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Orchestrator - Dynamic fan-out over embedded artifacts
# PURPOSE: Launch an extraction per discovered artifact until the tree is done
# CREATED: 19 OCT 2026
# ============================================================================
"""
Expansion Controller

The controller owns the dynamically discovered part of the extraction
tree. It never knows the size of the tree up front; it learns it from
three event sources and decides completion from counters alone:

    outputs channel   - batches of artifacts (relay log entries forwarded
                        by the output relay, or inline refs from the root)
    task completion   - an extraction finished; its inline embedded refs
                        are new work, its `relayed` count is what the
                        relay still owes us for its producer tag
    terminate channel - the root is done; carries the root's own
                        relayed count and producer tag

Relay entries are counted per producer tag. Only producers that completed
successfully have an expected count; entries of a failed attempt still
become work but never satisfy another producer's count.

Complete when: terminated, no task outstanding, nothing buffered and every
reporting producer has received at least the entries it reported.
Completions and batches arrive in any order; none of them is trusted to be
"the last one".

ExpansionState is a plain state object so the transitions can be tested
without a runtime. The driver only wires it to a selector and launches the
tasks the state hands back.

Continue-as-new:
    Once history passes the configured bound, every ready event is drained,
    the state is captured into an ExpansionCheckpoint and the next run
    resumes from it. Outstanding tasks are re-attached to their running
    activities by task id (or relaunched if the runtime no longer knows
    them).
"""

import functools
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.contracts import ActivityName, OutputKind, SignalName
from core.errors import ActivityError
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import (
    ArtifactRef,
    ExpansionCheckpoint,
    ExpansionInput,
    ExpansionResult,
    ExtractionResult,
    ExtractionTask,
    RelayBatch,
    TerminateNotice,
)
from orchestrator.engine.context import WorkflowContext
from orchestrator.options import extraction_options

logger = get_logger(__name__, ComponentType.EXPANSION)


# ============================================================================
# STATE
# ============================================================================

@dataclass
class ExpansionState:
    """Counters, outstanding tasks and buffered artifacts of one controller."""
    types: List[OutputKind] = field(default_factory=list)
    relay_key: Optional[str] = None

    discovered: int = 0
    expected: Dict[str, int] = field(default_factory=dict)
    received: Dict[str, int] = field(default_factory=dict)
    terminated: bool = False
    failed: int = 0
    restarts: int = 0
    outstanding: Dict[str, ExtractionTask] = field(default_factory=dict)
    buffered: List[ArtifactRef] = field(default_factory=list)

    # ------------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------------

    def on_batch(self, batch: RelayBatch) -> None:
        for entry in batch.entries:
            self.received[entry.producer] = self.received.get(entry.producer, 0) + 1
        self.buffered.extend(batch.all_artifacts())

    def on_completed(self, task_id: str, result: ExtractionResult) -> None:
        self.outstanding.pop(task_id, None)
        self._expect(result.relay_producer or task_id, result.relayed)
        self.buffered.extend(result.embedded)

    def on_failed(self, task_id: str) -> None:
        self.outstanding.pop(task_id, None)
        self.failed += 1

    def on_terminate(self, notice: TerminateNotice) -> None:
        self.terminated = True
        self._expect(notice.producer or "", notice.relayed)

    def _expect(self, producer: str, count: int) -> None:
        if count:
            self.expected[producer] = self.expected.get(producer, 0) + count

    def launch_buffered(self, prefix: str) -> List[ExtractionTask]:
        """
        Turn buffered artifacts into outstanding tasks, in arrival order.

        Task ids are "<prefix>/extract-<n>" with n the cumulative discovered
        count, so they stay unique across continue-as-new.
        """
        tasks = []
        for artifact in self.buffered:
            self.discovered += 1
            task = ExtractionTask.for_artifact(
                f"{prefix}/extract-{self.discovered}",
                artifact,
                self.types,
                self.relay_key,
            )
            self.outstanding[task.task_id] = task
            tasks.append(task)
        self.buffered = []
        return tasks

    @property
    def is_complete(self) -> bool:
        return (
            self.terminated
            and not self.outstanding
            and not self.buffered
            and not self.awaiting_relay
        )

    @property
    def awaiting_relay(self) -> int:
        """Relay entries reported by successful producers and not yet received."""
        return sum(
            max(count - self.received.get(producer, 0), 0)
            for producer, count in self.expected.items()
        )

    # ------------------------------------------------------------------------
    # Checkpoint
    # ------------------------------------------------------------------------

    def capture_checkpoint(self) -> ExpansionCheckpoint:
        return ExpansionCheckpoint(
            discovered=self.discovered,
            expected=dict(self.expected),
            received=dict(self.received),
            terminated=self.terminated,
            outstanding=list(self.outstanding.values()),
            buffered=list(self.buffered),
            failed=self.failed,
            restarts=self.restarts,
        )

    @classmethod
    def resume(
        cls,
        checkpoint: Optional[ExpansionCheckpoint],
        types: Optional[List[OutputKind]] = None,
        relay_key: Optional[str] = None,
    ) -> "ExpansionState":
        state = cls(types=list(types or []), relay_key=relay_key)
        if checkpoint is None:
            return state
        state.discovered = checkpoint.discovered
        state.expected = dict(checkpoint.expected)
        state.received = dict(checkpoint.received)
        state.terminated = checkpoint.terminated
        state.failed = checkpoint.failed
        state.restarts = checkpoint.restarts
        state.outstanding = {task.task_id: task for task in checkpoint.outstanding}
        state.buffered = list(checkpoint.buffered)
        return state


# ============================================================================
# WORKFLOW
# ============================================================================

async def expansion_workflow(ctx: WorkflowContext, payload: ExpansionInput) -> ExpansionResult:
    """Drive ExpansionState until the discovered tree is fully extracted."""
    state = ExpansionState.resume(payload.checkpoint, payload.types, payload.relay_key)
    options = extraction_options(ctx.config, payload.task_queue)
    selector = ctx.new_selector()

    def on_task_done(task_id: str, future) -> None:
        ctx.release_activity(task_id)
        try:
            result = future.result()
        except ActivityError as e:
            logger.warning(
                f"Extraction {task_id} failed after {e.attempts} attempt(s), "
                f"dropping branch: {e.error_type}: {e}"
            )
            state.on_failed(task_id)
            return
        state.on_completed(task_id, result)

    def launch(task: ExtractionTask) -> None:
        future = ctx.execute_activity(ActivityName.EXTRACT, task, options, activity_id=task.task_id)
        selector.add_future(future, functools.partial(on_task_done, task.task_id))

    def launch_buffered() -> None:
        for task in state.launch_buffered(ctx.workflow_id):
            launch(task)

    selector.add_receive(
        ctx.get_signal_channel(SignalName.OUTPUTS),
        lambda batch: state.on_batch(RelayBatch.model_validate(batch)),
    )
    selector.add_receive(
        ctx.get_signal_channel(SignalName.TERMINATE),
        lambda notice: state.on_terminate(TerminateNotice.model_validate(notice)),
    )

    with log_context(relay_key=payload.relay_key, operation="expansion"):
        if state.outstanding:
            reattached = sum(1 for task_id in state.outstanding if ctx.get_activity(task_id))
            logger.info(
                f"Resuming expansion: {len(state.outstanding)} outstanding "
                f"({reattached} re-attached), discovered={state.discovered}"
            )
        for task in list(state.outstanding.values()):
            launch(task)
        launch_buffered()

        try:
            while not state.is_complete:
                if ctx.is_continue_as_new_suggested():
                    while selector.has_pending():
                        await selector.select()
                        launch_buffered()
                    if state.is_complete:
                        break
                    state.restarts += 1
                    checkpoint = state.capture_checkpoint()
                    log_checkpoint(
                        "expansion_continued",
                        {
                            "discovered": checkpoint.discovered,
                            "outstanding": checkpoint.outstanding_count,
                            "awaiting_relay": state.awaiting_relay,
                            "restarts": checkpoint.restarts,
                        },
                    )
                    ctx.continue_as_new(payload.model_copy(update={"checkpoint": checkpoint}))

                await selector.select()
                launch_buffered()
        finally:
            selector.close()

        log_checkpoint(
            "expansion_completed",
            {"discovered": state.discovered, "failed": state.failed, "restarts": state.restarts},
        )
        return ExpansionResult(discovered=state.discovered, failed=state.failed)


__all__ = ["ExpansionState", "expansion_workflow"]
