# ============================================================================
# EXECUTION SUBSTRATE TESTS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Tests - Channels, selector, runtime, workers, registry
# PURPOSE: Verify signal delivery, activity retries, timeouts and routing
# CREATED: 19 OCT 2026
# ============================================================================
"""
Execution Substrate Tests

Covers:
1. SignalChannel FIFO delivery
2. Selector readiness order and has_pending()
3. Activity retries with backoff; non-retryable errors fail once
4. Start-to-close and heartbeat timeouts
5. Routing to sticky queues; unknown activities
6. Workflow lifecycle: duplicates, signals, children, continue-as-new
7. ActivityRegistry registration and sync/async execution

Run with:
    pytest tests/test_engine.py -v
"""

import asyncio
import threading

import pytest

from core.config import HistoryDefaults, OrchestrationConfig, WorkerDefaults
from core.contracts import RunStatus
from core.errors import (
    ActivityError,
    DuplicateActivityError,
    ExtractionError,
    LocatorParseError,
    OrchestrationError,
    WorkflowNotFoundError,
)
from core.models import RetryPolicy
from handlers.registry import ActivityContext, ActivityRegistry
from orchestrator.engine import ActivityOptions, Runtime, Selector, SignalChannel
from repositories.checkpoint_repo import MemoryCheckpointStore


def make_runtime(tmp_path, registry=None, worker_ids=("worker-1",), **sections):
    sections.setdefault(
        "worker",
        WorkerDefaults(worker_id="worker-1", workspace_root=str(tmp_path), max_concurrent_activities=4),
    )
    delays = []

    async def sleep(delay):
        delays.append(delay)
        await asyncio.sleep(0)

    runtime = Runtime(OrchestrationConfig(**sections), checkpoints=MemoryCheckpointStore(), sleep=sleep)
    for worker_id in worker_ids:
        runtime.add_worker(registry or ActivityRegistry(), worker_id=worker_id)
    return runtime, delays


# ============================================================================
# CHANNELS & SELECTOR
# ============================================================================

class TestSignalChannel:

    def test_fifo(self):
        channel = SignalChannel("wf", "outputs")
        for i in range(3):
            channel.send(i)

        assert channel.pending == 3
        assert [channel.receive_nowait() for _ in range(3)] == [0, 1, 2]
        assert channel.delivered == 3
        assert not channel.has_pending()

    def test_receive_empty_raises(self):
        with pytest.raises(IndexError):
            SignalChannel("wf", "outputs").receive_nowait()


class TestSelector:

    def test_channels_before_futures(self):
        async def scenario():
            seen = []
            channel = SignalChannel("wf", "c")
            future = asyncio.get_running_loop().create_future()
            future.set_result("done")
            channel.send("signal")

            selector = Selector()
            selector.add_future(future, lambda f: seen.append(f.result()))
            selector.add_receive(channel, seen.append)

            await selector.select()
            await selector.select()
            return seen

        assert asyncio.run(scenario()) == ["signal", "done"]

    def test_one_callback_per_select(self):
        async def scenario():
            seen = []
            channel = SignalChannel("wf", "c")
            selector = Selector().add_receive(channel, seen.append)
            channel.send(1)
            channel.send(2)

            await selector.select()
            first = list(seen)
            await selector.select()
            return first, seen

        first, seen = asyncio.run(scenario())
        assert first == [1]
        assert seen == [1, 2]

    def test_blocks_until_signal(self):
        async def scenario():
            seen = []
            channel = SignalChannel("wf", "c")
            selector = Selector().add_receive(channel, seen.append)

            waiter = asyncio.ensure_future(selector.select())
            await asyncio.sleep(0.01)
            blocked = not waiter.done()
            channel.send("late")
            await asyncio.wait_for(waiter, timeout=1)
            return blocked, seen

        blocked, seen = asyncio.run(scenario())
        assert blocked
        assert seen == ["late"]

    def test_awaits_coroutine_callbacks(self):
        async def scenario():
            seen = []
            channel = SignalChannel("wf", "c")

            async def on_receive(value):
                await asyncio.sleep(0)
                seen.append(value)

            selector = Selector().add_receive(channel, on_receive)
            channel.send("x")
            await selector.select()
            return seen

        assert asyncio.run(scenario()) == ["x"]

    def test_has_pending_ignores_default(self):
        async def scenario():
            selector = Selector().add_default(lambda: None)
            channel = SignalChannel("wf", "c")
            selector.add_receive(channel, lambda _v: None)
            before = selector.has_pending()
            channel.send(1)
            return before, selector.has_pending()

        before, after = asyncio.run(scenario())
        assert before is False
        assert after is True

    def test_future_callback_runs_once(self):
        async def scenario():
            calls = []
            future = asyncio.get_running_loop().create_future()
            selector = Selector()
            selector.add_future(future, calls.append)
            selector.add_default(lambda: calls.append("default"))
            future.set_result(1)

            await selector.select()
            await selector.select()
            return calls, selector.outstanding_futures

        calls, outstanding = asyncio.run(scenario())
        assert calls[0].result() == 1
        assert calls[1] == "default"
        assert outstanding == 0


# ============================================================================
# ACTIVITIES
# ============================================================================

class TestActivityRetries:

    def test_retries_with_backoff(self, tmp_path):
        registry = ActivityRegistry()
        attempts = []

        async def flaky(ctx, payload):
            attempts.append(ctx.attempt)
            if ctx.attempt < 3:
                raise ExtractionError("transient")
            return payload * 2

        registry.register("flaky", flaky)
        runtime, delays = make_runtime(tmp_path, registry)

        result = asyncio.run(runtime.run_activity("flaky", 21))

        assert result == 42
        assert attempts == [1, 2, 3]
        assert delays == [1.0, 2.0]

    def test_gives_up_after_max_attempts(self, tmp_path):
        registry = ActivityRegistry()

        async def broken(ctx, payload):
            raise ExtractionError("no")

        registry.register("broken", broken)
        runtime, delays = make_runtime(tmp_path, registry)
        options = ActivityOptions(retry_policy=RetryPolicy(maximum_attempts=4))

        with pytest.raises(ActivityError) as exc_info:
            asyncio.run(runtime.run_activity("broken", None, options))

        assert exc_info.value.attempts == 4
        assert exc_info.value.error_type == "ExtractionError"
        assert delays == [1.0, 2.0, 4.0]

    def test_non_retryable_fails_once(self, tmp_path):
        registry = ActivityRegistry()

        def parse(ctx, locator):
            raise LocatorParseError(locator)

        registry.register("parse", parse)
        runtime, delays = make_runtime(tmp_path, registry)

        with pytest.raises(ActivityError) as exc_info:
            asyncio.run(runtime.run_activity("parse", "bogus"))

        assert exc_info.value.attempts == 1
        assert exc_info.value.non_retryable is True
        assert isinstance(exc_info.value.__cause__, LocatorParseError)
        assert delays == []

    def test_sync_activity_runs_off_loop(self, tmp_path):
        registry = ActivityRegistry()
        registry.register("thread", lambda ctx, payload: threading.current_thread().name)
        runtime, _ = make_runtime(tmp_path, registry)

        name = asyncio.run(runtime.run_activity("thread", None))

        assert name != threading.main_thread().name


class TestActivityTimeouts:

    def test_start_to_close_timeout(self, tmp_path):
        registry = ActivityRegistry()

        async def slow(ctx, payload):
            await asyncio.sleep(10)

        registry.register("slow", slow)
        runtime, _ = make_runtime(tmp_path, registry)
        options = ActivityOptions(
            start_to_close_timeout=0.05,
            retry_policy=RetryPolicy(maximum_attempts=2),
        )

        with pytest.raises(ActivityError) as exc_info:
            asyncio.run(runtime.run_activity("slow", None, options))

        assert exc_info.value.error_type == "ActivityTimeoutError"
        assert exc_info.value.attempts == 2

    def test_missing_heartbeat_times_out(self, tmp_path):
        registry = ActivityRegistry()

        async def silent(ctx, payload):
            await asyncio.sleep(10)

        registry.register("silent", silent)
        runtime, _ = make_runtime(tmp_path, registry)
        options = ActivityOptions(heartbeat_timeout=0.05, retry_policy=RetryPolicy(maximum_attempts=1))

        with pytest.raises(ActivityError) as exc_info:
            asyncio.run(runtime.run_activity("silent", None, options))

        assert "heartbeat" in str(exc_info.value)

    def test_heartbeats_keep_activity_alive(self, tmp_path):
        registry = ActivityRegistry()

        async def chatty(ctx, payload):
            for _ in range(10):
                ctx.heartbeat()
                await asyncio.sleep(0.02)
            return ctx.heartbeat_count

        registry.register("chatty", chatty)
        runtime, _ = make_runtime(tmp_path, registry)
        options = ActivityOptions(heartbeat_timeout=0.15, retry_policy=RetryPolicy(maximum_attempts=1))

        assert asyncio.run(runtime.run_activity("chatty", None, options)) == 10


class TestRouting:

    def test_sticky_queue_reaches_one_worker(self, tmp_path):
        registry = ActivityRegistry()
        registry.register("whoami", lambda ctx, payload: ctx.worker_id)
        runtime, _ = make_runtime(tmp_path, registry, worker_ids=("worker-1", "worker-2"))

        async def scenario():
            options = ActivityOptions(task_queue="worker-2")
            return [await runtime.run_activity("whoami", None, options) for _ in range(4)]

        assert asyncio.run(scenario()) == ["worker-2"] * 4

    def test_shared_queue_round_robin(self, tmp_path):
        registry = ActivityRegistry()
        registry.register("whoami", lambda ctx, payload: ctx.worker_id)
        runtime, _ = make_runtime(tmp_path, registry, worker_ids=("worker-1", "worker-2"))

        async def scenario():
            return [await runtime.run_activity("whoami", None) for _ in range(4)]

        assert sorted(set(asyncio.run(scenario()))) == ["worker-1", "worker-2"]

    def test_unknown_activity_is_not_retried(self, tmp_path):
        runtime, delays = make_runtime(tmp_path)

        with pytest.raises(ActivityError) as exc_info:
            asyncio.run(runtime.run_activity("missing", None))

        assert exc_info.value.error_type == "ActivityNotFoundError"
        assert exc_info.value.attempts == 1
        assert delays == []

    def test_duplicate_worker_rejected(self, tmp_path):
        runtime, _ = make_runtime(tmp_path)
        with pytest.raises(OrchestrationError):
            runtime.add_worker(ActivityRegistry(), worker_id="worker-1")


# ============================================================================
# WORKFLOWS
# ============================================================================

class TestWorkflowLifecycle:

    def test_signal_unknown_workflow(self, tmp_path):
        runtime, _ = make_runtime(tmp_path)
        with pytest.raises(WorkflowNotFoundError):
            asyncio.run(runtime.signal("nobody", "outputs", None))

    def test_unregistered_workflow(self, tmp_path):
        runtime, _ = make_runtime(tmp_path)
        with pytest.raises(WorkflowNotFoundError):
            asyncio.run(runtime.start_workflow("nothing", "wf", None))

    def test_duplicate_running_id_rejected(self, tmp_path):
        runtime, _ = make_runtime(tmp_path)

        async def forever(ctx, payload):
            await asyncio.Event().wait()

        runtime.register_workflow("forever", forever)

        async def scenario():
            await runtime.start_workflow("forever", "wf", None)
            try:
                await runtime.start_workflow("forever", "wf", None)
            finally:
                await runtime.shutdown()

        with pytest.raises(OrchestrationError):
            asyncio.run(scenario())

    def test_signals_buffer_until_received(self, tmp_path):
        runtime, _ = make_runtime(tmp_path)

        async def echo(ctx, payload):
            selector = ctx.new_selector()
            received = []
            selector.add_receive(ctx.get_signal_channel("in"), received.append)
            while len(received) < 3:
                await selector.select()
            return received

        runtime.register_workflow("echo", echo)

        async def scenario():
            handle = await runtime.start_workflow("echo", "wf", None)
            for i in range(3):
                await runtime.signal("wf", "in", i)
            return await handle.result()

        assert asyncio.run(scenario()) == [0, 1, 2]

    def test_continue_as_new_keeps_channels(self, tmp_path):
        runtime, _ = make_runtime(tmp_path)

        async def counter(ctx, payload):
            channel = ctx.get_signal_channel("tick")
            selector = ctx.new_selector()
            ticks = []
            selector.add_receive(channel, ticks.append)
            await selector.select()
            total = payload["total"] + len(ticks)
            if total < 3:
                ctx.continue_as_new({"total": total})
            return {"total": total, "run": ctx._execution.runs}

        runtime.register_workflow("counter", counter)

        async def scenario():
            handle = await runtime.start_workflow("counter", "wf", {"total": 0})
            for _ in range(3):
                await runtime.signal("wf", "tick", None)
            result = await handle.result()
            return result, handle.status, runtime.checkpoints.save_count

        result, status, saves = asyncio.run(scenario())
        assert result == {"total": 3, "run": 3}
        assert status == RunStatus.COMPLETED
        assert saves == 2

    def test_closing_parent_cancels_children(self, tmp_path):
        runtime, _ = make_runtime(tmp_path)

        async def child(ctx, payload):
            await asyncio.Event().wait()

        async def parent(ctx, payload):
            await ctx.start_child("child", "wf/child", None)
            return "done"

        runtime.register_workflow("child", child)
        runtime.register_workflow("parent", parent)

        async def scenario():
            result = await runtime.execute_workflow("parent", "wf", None)
            child_handle = runtime.get_handle("wf/child")
            await asyncio.gather(child_handle.future, return_exceptions=True)
            return result, child_handle.status

        result, child_status = asyncio.run(scenario())
        assert result == "done"
        assert child_status == RunStatus.CANCELLED

    def test_history_threshold(self, tmp_path):
        runtime, _ = make_runtime(tmp_path, history=HistoryDefaults(max_history_length=2))

        async def noisy(ctx, payload):
            for i in range(3):
                await runtime.signal(ctx.workflow_id, "self", i)
            return ctx.history_length, ctx.is_continue_as_new_suggested()

        runtime.register_workflow("noisy", noisy)

        length, suggested = asyncio.run(runtime.execute_workflow("noisy", "wf", None))
        assert length == 3
        assert suggested is True


# ============================================================================
# REGISTRY
# ============================================================================

class TestActivityRegistry:

    def test_duplicate_registration(self):
        registry = ActivityRegistry()
        registry.register("a", lambda ctx, p: None)
        with pytest.raises(DuplicateActivityError):
            registry.register("a", lambda ctx, p: None)

    def test_decorator_and_listing(self):
        registry = ActivityRegistry()

        @registry.activity("upper", description="Uppercase")
        async def upper(ctx, payload):
            return payload.upper()

        assert "upper" in registry
        assert registry.names() == ["upper"]
        (meta,) = registry.list_activities()
        assert meta["is_async"] is True
        assert meta["description"] == "Uppercase"

    def test_execute_sync_and_async(self):
        registry = ActivityRegistry()
        registry.register("sync", lambda ctx, p: p + 1)

        async def plus_two(ctx, p):
            return p + 2

        registry.register("async", plus_two)
        ctx = ActivityContext(activity="x", activity_id="x-1", attempt=1, worker_id="w", task_queue="q")

        async def scenario():
            return await registry.execute("sync", ctx, 1), await registry.execute("async", ctx, 1)

        assert asyncio.run(scenario()) == (2, 3)

    def test_heartbeat_records_details(self):
        ctx = ActivityContext(activity="x", activity_id="x-1", attempt=1, worker_id="w", task_queue="q")
        ctx.heartbeat({"progress": 5})
        assert ctx.heartbeat_count == 1
        assert ctx.heartbeat_details == {"progress": 5}
        assert ctx.sticky_queue == "w"
