# ============================================================================
# DURABLE EXECUTION RUNTIME
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Engine - Workflow executions, workers and activity dispatch
# PURPOSE: Run workflows as asyncio tasks with retried, timed activities
# CREATED: 19 OCT 2026
# ============================================================================
"""
Durable Execution Runtime

The Runtime owns:
- Workflow executions, one per workflow id, each an asyncio task that
  spans every run of that id (continue-as-new restarts the run in place)
- Signal channels, owned by the execution so they survive run restarts
- Workers, each serving the shared task queue plus a sticky queue named
  after itself, bounded by a semaphore of max_concurrent_activities
- Activity dispatch with retry policy, start-to-close timeout and a
  heartbeat-timeout watchdog

On continue-as-new the next run's input is persisted through the
CheckpointStore. A process that restarts calls recover(workflow_id) to
resume a long-lived workflow from its last checkpoint.

Closing an execution (completed, failed or cancelled) cancels its child
workflows and any activities it still has in flight.
"""

import asyncio
import itertools
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Type

from pydantic import BaseModel

from core.config import OrchestrationConfig
from core.contracts import RunStatus
from core.errors import (
    ActivityError,
    ActivityNotFoundError,
    ActivityTimeoutError,
    ContinueAsNew,
    OrchestrationError,
    WorkflowNotFoundError,
)
from core.logging import log_checkpoint, log_context
from core.models.checkpoint import WorkflowCheckpoint
from core.models.retry import RetryPolicy
from handlers.registry import ActivityContext, ActivityRegistry
from orchestrator.engine.channels import SignalChannel
from orchestrator.engine.context import ActivityOptions, WorkflowContext, name_of
from repositories.checkpoint_repo import CheckpointStore

logger = logging.getLogger(__name__)

WorkflowFunc = Callable[[WorkflowContext, Any], Awaitable[Any]]
SleepFunc = Callable[[float], Awaitable[Any]]


# ============================================================================
# WORKFLOW REGISTRATION
# ============================================================================

@dataclass(frozen=True)
class WorkflowDefinition:
    """A workflow function and the model its input is validated against."""
    name: str
    func: WorkflowFunc
    input_type: Optional[Type[BaseModel]] = None

    def coerce(self, payload: Any) -> Any:
        """
        Validate a payload into the input model.

        Models are dumped to JSON-compatible data first, so a run started
        in-process sees exactly what a run recovered from storage would.
        """
        if self.input_type is None:
            return payload
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(mode="json")
        return self.input_type.model_validate(payload)


# ============================================================================
# WORKFLOW EXECUTION
# ============================================================================

@dataclass
class WorkflowExecution:
    """Runtime state of one workflow id across all of its runs."""
    workflow_id: str
    name: str
    run_id: str = ""
    runs: int = 0
    status: RunStatus = RunStatus.RUNNING
    history_length: int = 0
    parent_id: Optional[str] = None
    channels: Dict[str, SignalChannel] = field(default_factory=dict)
    children: List["WorkflowExecution"] = field(default_factory=list)
    activities: Dict[str, asyncio.Task] = field(default_factory=dict)
    inflight: Set[asyncio.Task] = field(default_factory=set)
    task: Optional[asyncio.Task] = None
    recovered: bool = False
    activity_sequence: "itertools.count" = field(default_factory=lambda: itertools.count(1))

    def channel(self, name: str) -> SignalChannel:
        """Get or create a named signal channel."""
        if name not in self.channels:
            self.channels[name] = SignalChannel(self.workflow_id, name)
        return self.channels[name]

    def record(self, events: int = 1) -> None:
        self.history_length += events

    def begin_run(self) -> None:
        self.run_id = str(uuid.uuid4())
        self.runs += 1
        self.history_length = 0
        self.status = RunStatus.RUNNING

    @property
    def is_open(self) -> bool:
        return not self.status.is_terminal()


class WorkflowHandle:
    """Handle returned by start_workflow / start_child."""

    def __init__(self, execution: WorkflowExecution):
        self._execution = execution

    @property
    def workflow_id(self) -> str:
        return self._execution.workflow_id

    @property
    def status(self) -> RunStatus:
        return self._execution.status

    @property
    def future(self) -> asyncio.Task:
        """Task spanning every run; usable with Selector.add_future."""
        return self._execution.task

    async def result(self) -> Any:
        """Wait for the workflow to close and return its result."""
        return await asyncio.shield(self._execution.task)

    def cancel(self) -> None:
        if self._execution.task is not None:
            self._execution.task.cancel()


# ============================================================================
# WORKER
# ============================================================================

class Worker:
    """
    Executes activities from a set of task queues.

    Every worker serves the shared queue and a sticky queue equal to its
    worker_id, so activities that touch worker-local files can be pinned
    to the worker that created them.
    """

    def __init__(
        self,
        worker_id: str,
        registry: ActivityRegistry,
        task_queues: List[str],
        max_concurrent_activities: int = 1000,
    ):
        self.worker_id = worker_id
        self.registry = registry
        self.task_queues = list(task_queues)
        self.max_concurrent_activities = max_concurrent_activities
        self._semaphore = asyncio.Semaphore(max_concurrent_activities)
        self.active = 0
        self.completed = 0

    def serves(self, task_queue: str, activity: str) -> bool:
        return task_queue in self.task_queues and activity in self.registry

    async def run(
        self,
        activity: str,
        payload: Any,
        activity_id: str,
        attempt: int,
        task_queue: str,
        options: ActivityOptions,
    ) -> Any:
        """Run one attempt under the concurrency bound and timeouts."""
        async with self._semaphore:
            self.active += 1
            context = ActivityContext(
                activity=activity,
                activity_id=activity_id,
                attempt=attempt,
                worker_id=self.worker_id,
                task_queue=task_queue,
            )
            try:
                with log_context(worker_id=self.worker_id, task_id=activity_id, operation=activity):
                    task = asyncio.ensure_future(self.registry.execute(activity, context, payload))
                    try:
                        return await self._supervise(task, context, options)
                    finally:
                        if not task.done():
                            task.cancel()
            finally:
                self.active -= 1
                self.completed += 1

    async def _supervise(
        self,
        task: asyncio.Future,
        context: ActivityContext,
        options: ActivityOptions,
    ) -> Any:
        """Wait for an attempt, enforcing start-to-close and heartbeat timeouts."""
        started = time.monotonic()
        deadline = (
            started + options.start_to_close_timeout
            if options.start_to_close_timeout is not None
            else None
        )

        while True:
            now = time.monotonic()
            waits = []
            if deadline is not None:
                waits.append(deadline - now)
            if options.heartbeat_timeout is not None:
                waits.append(context.last_heartbeat + options.heartbeat_timeout - now)
            timeout = max(0.0, min(waits)) if waits else None

            done, _ = await asyncio.wait({task}, timeout=timeout)
            if done:
                return task.result()

            now = time.monotonic()
            if deadline is not None and now >= deadline:
                raise ActivityTimeoutError(
                    context.activity, "start_to_close", options.start_to_close_timeout
                )
            if (
                options.heartbeat_timeout is not None
                and now - context.last_heartbeat >= options.heartbeat_timeout
            ):
                raise ActivityTimeoutError(
                    context.activity, "heartbeat", options.heartbeat_timeout
                )


# ============================================================================
# RUNTIME
# ============================================================================

class Runtime:
    """
    In-process durable execution runtime.

    Usage:
        runtime = Runtime(config, checkpoints=MemoryCheckpointStore())
        runtime.register_workflow("process", process_workflow, ProcessRequest)
        runtime.add_worker(registry)

        result = await runtime.execute_workflow("process", "job-1", request)
    """

    def __init__(
        self,
        config: Optional[OrchestrationConfig] = None,
        checkpoints: Optional[CheckpointStore] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """
        Initialize runtime.

        Args:
            config: Orchestration configuration (defaults when None)
            checkpoints: Store for continue-as-new payloads (not persisted when None)
            sleep: Backoff sleep; tests inject a zero-delay version
        """
        self.config = config or OrchestrationConfig()
        self.checkpoints = checkpoints
        self.retry_policy: RetryPolicy = self.config.retry_policy
        self._sleep = sleep

        self._workflows: Dict[str, WorkflowDefinition] = {}
        self._executions: Dict[str, WorkflowExecution] = {}
        self._workers: List[Worker] = []
        self._round_robin: Dict[str, "itertools.count"] = {}

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register_workflow(
        self,
        name: Any,
        func: WorkflowFunc,
        input_type: Optional[Type[BaseModel]] = None,
    ) -> None:
        name = name_of(name)
        if name in self._workflows:
            raise OrchestrationError(f"Workflow already registered: {name}")
        self._workflows[name] = WorkflowDefinition(name=name, func=func, input_type=input_type)
        logger.debug(f"Registered workflow: {name}")

    def add_worker(
        self,
        registry: ActivityRegistry,
        worker_id: Optional[str] = None,
        task_queues: Optional[List[str]] = None,
    ) -> Worker:
        """
        Add a worker serving the shared queue and its own sticky queue.

        Args:
            registry: Activities this worker can run
            worker_id: Worker identity, also its sticky queue name
            task_queues: Overrides the default [shared, sticky] queues
        """
        worker_id = worker_id or self.config.worker.worker_id
        if any(w.worker_id == worker_id for w in self._workers):
            raise OrchestrationError(f"Worker already registered: {worker_id}")
        queues = task_queues or [self.config.worker.task_queue, worker_id]
        worker = Worker(
            worker_id=worker_id,
            registry=registry,
            task_queues=queues,
            max_concurrent_activities=self.config.worker.max_concurrent_activities,
        )
        self._workers.append(worker)
        logger.info(
            f"Worker {worker_id} serving {queues} "
            f"({len(registry.names())} activities)"
        )
        return worker

    @property
    def workers(self) -> List[Worker]:
        return list(self._workers)

    # ========================================================================
    # WORKFLOWS
    # ========================================================================

    async def start_workflow(
        self,
        name: Any,
        workflow_id: str,
        payload: Any,
        parent: Optional[WorkflowExecution] = None,
    ) -> WorkflowHandle:
        """
        Start a workflow execution.

        Raises:
            WorkflowNotFoundError: If the workflow name is not registered
            OrchestrationError: If workflow_id is already running
        """
        definition = self._definition(name)
        existing = self._executions.get(workflow_id)
        if existing is not None and existing.is_open:
            raise OrchestrationError(f"Workflow already running: {workflow_id}")

        execution = WorkflowExecution(
            workflow_id=workflow_id,
            name=definition.name,
            parent_id=parent.workflow_id if parent else None,
        )
        self._executions[workflow_id] = execution
        if parent is not None:
            parent.children.append(execution)

        execution.task = asyncio.ensure_future(
            self._run_execution(execution, definition, definition.coerce(payload))
        )
        execution.task.add_done_callback(lambda t: self._on_task_done(execution, t))
        if parent is not None:
            execution.task.add_done_callback(lambda _t: parent.record())

        logger.info(f"Started workflow {definition.name} ({workflow_id})")
        return WorkflowHandle(execution)

    async def execute_workflow(self, name: Any, workflow_id: str, payload: Any) -> Any:
        """Start a workflow and wait for its result."""
        handle = await self.start_workflow(name, workflow_id, payload)
        return await handle.result()

    def get_handle(self, workflow_id: str) -> WorkflowHandle:
        execution = self._executions.get(workflow_id)
        if execution is None:
            raise WorkflowNotFoundError(f"Unknown workflow id: {workflow_id}")
        return WorkflowHandle(execution)

    async def signal(self, workflow_id: str, name: Any, payload: Any) -> None:
        """
        Deliver a signal to an open workflow.

        Raises:
            WorkflowNotFoundError: If the workflow id is unknown or closed
        """
        execution = self._executions.get(workflow_id)
        if execution is None or not execution.is_open:
            raise WorkflowNotFoundError(f"No open workflow with id: {workflow_id}")
        execution.record()
        execution.channel(name_of(name)).send(payload)

    async def recover(self, workflow_id: str) -> WorkflowHandle:
        """
        Resume a workflow from its last persisted checkpoint.

        Returns the existing handle if the workflow is still running in
        this process.

        Raises:
            WorkflowNotFoundError: If no checkpoint exists
        """
        execution = self._executions.get(workflow_id)
        if execution is not None and execution.is_open:
            return WorkflowHandle(execution)

        if self.checkpoints is None:
            raise WorkflowNotFoundError(f"No checkpoint store to recover {workflow_id}")
        checkpoint = await self.checkpoints.load_latest(workflow_id)
        if checkpoint is None:
            raise WorkflowNotFoundError(f"No checkpoint for workflow id: {workflow_id}")

        logger.info(
            f"Recovering workflow {checkpoint.workflow_name} ({workflow_id}) "
            f"from checkpoint {checkpoint.checkpoint_id}"
        )
        handle = await self.start_workflow(checkpoint.workflow_name, workflow_id, checkpoint.payload)
        handle._execution.recovered = True
        return handle

    async def shutdown(self) -> None:
        """Cancel every open execution and wait for them to close."""
        tasks = [e.task for e in self._executions.values() if e.task and not e.task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _definition(self, name: Any) -> WorkflowDefinition:
        definition = self._workflows.get(name_of(name))
        if definition is None:
            raise WorkflowNotFoundError(f"Workflow not registered: {name_of(name)}")
        return definition

    async def _run_execution(
        self,
        execution: WorkflowExecution,
        definition: WorkflowDefinition,
        payload: Any,
    ) -> Any:
        try:
            while True:
                execution.begin_run()
                context = WorkflowContext(self, execution)
                with log_context(
                    workflow_id=execution.workflow_id,
                    run_id=execution.run_id,
                    component=definition.name,
                ):
                    try:
                        result = await definition.func(context, payload)
                    except ContinueAsNew as exc:
                        payload = definition.coerce(exc.payload)
                        execution.status = RunStatus.CONTINUED_AS_NEW
                        await self._save_checkpoint(execution, payload)
                        log_checkpoint(
                            "workflow_continued_as_new",
                            {"workflow": definition.name, "run": execution.runs},
                        )
                        continue
                    except asyncio.CancelledError:
                        execution.status = RunStatus.CANCELLED
                        logger.info(f"Workflow {execution.workflow_id} cancelled")
                        raise
                    except Exception as e:
                        execution.status = RunStatus.FAILED
                        logger.error(f"Workflow {execution.workflow_id} failed: {e}")
                        raise

                    execution.status = RunStatus.COMPLETED
                    if self.checkpoints is not None and (execution.runs > 1 or execution.recovered):
                        await self.checkpoints.delete(execution.workflow_id)
                    logger.info(
                        f"Workflow {execution.workflow_id} completed after {execution.runs} run(s)"
                    )
                    return result
        finally:
            self._close(execution)

    async def _save_checkpoint(self, execution: WorkflowExecution, payload: Any) -> None:
        if self.checkpoints is None:
            return
        data = payload.model_dump(mode="json") if isinstance(payload, BaseModel) else payload
        await self.checkpoints.save(
            WorkflowCheckpoint(
                workflow_id=execution.workflow_id,
                workflow_name=execution.name,
                run_id=execution.run_id,
                payload=data or {},
            )
        )

    @staticmethod
    def _on_task_done(execution: WorkflowExecution, task: asyncio.Task) -> None:
        # A task cancelled before its first step never enters _run_execution
        if task.cancelled() and execution.is_open:
            execution.status = RunStatus.CANCELLED

    def _close(self, execution: WorkflowExecution) -> None:
        """Cancel children and in-flight activities of a closed execution."""
        for child in execution.children:
            if child.task is not None and not child.task.done():
                logger.info(f"Cancelling child {child.workflow_id} of {execution.workflow_id}")
                child.task.cancel()
        for task in list(execution.inflight):
            if not task.done():
                task.cancel()
        execution.activities.clear()

    # ========================================================================
    # ACTIVITIES
    # ========================================================================

    def schedule_activity(
        self,
        owner: WorkflowExecution,
        name: str,
        payload: Any,
        options: ActivityOptions,
        activity_id: Optional[str] = None,
    ) -> asyncio.Task:
        """Schedule an activity on behalf of a workflow execution."""
        explicit = activity_id is not None
        if explicit:
            existing = owner.activities.get(activity_id)
            if existing is not None:
                return existing
        else:
            activity_id = f"{owner.workflow_id}/{name}-{next(owner.activity_sequence)}"

        owner.record()
        task = asyncio.ensure_future(self.run_activity(name, payload, options, activity_id))
        owner.inflight.add(task)
        task.add_done_callback(owner.inflight.discard)
        task.add_done_callback(lambda _t: owner.record())
        if explicit:
            owner.activities[activity_id] = task
        return task

    async def run_activity(
        self,
        name: str,
        payload: Any,
        options: Optional[ActivityOptions] = None,
        activity_id: Optional[str] = None,
    ) -> Any:
        """
        Run an activity to completion under the retry policy.

        Raises:
            ActivityError: Once the policy gives up; attempts is set
        """
        options = options or ActivityOptions()
        policy = options.retry_policy or self.retry_policy
        task_queue = options.task_queue or self.config.worker.task_queue
        activity_id = activity_id or f"{name}-{uuid.uuid4().hex[:8]}"

        attempt = 0
        while True:
            attempt += 1
            try:
                worker = self._route(name, task_queue)
                return await worker.run(name, payload, activity_id, attempt, task_queue, options)
            except ActivityError as e:
                error = e
                original: Optional[BaseException] = None
            except Exception as e:
                error = ActivityError.wrap(e, name, policy.non_retryable_error_types)
                original = e

            error.attempts = attempt
            if not policy.should_retry(error, attempt):
                logger.error(
                    f"Activity {name} ({activity_id}) failed after {attempt} attempt(s): "
                    f"{error.error_type}: {error}"
                )
                if original is not None:
                    raise error from original
                raise error

            delay = policy.delay_for_attempt(attempt)
            logger.warning(
                f"Activity {name} ({activity_id}) attempt {attempt} failed "
                f"({error.error_type}: {error}); retrying in {delay:.1f}s"
            )
            await self._sleep(delay)

    def _route(self, name: str, task_queue: str) -> Worker:
        """
        Pick a worker for an activity on a task queue (round robin).

        Raises:
            ActivityNotFoundError: If no worker serves the queue with that activity
        """
        candidates = [w for w in self._workers if w.serves(task_queue, name)]
        if not candidates:
            raise ActivityNotFoundError(name, task_queue)
        counter = self._round_robin.setdefault(task_queue, itertools.count())
        return candidates[next(counter) % len(candidates)]


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "Runtime",
    "Worker",
    "WorkflowDefinition",
    "WorkflowExecution",
    "WorkflowHandle",
    "WorkflowFunc",
]
