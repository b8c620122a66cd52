# ============================================================================
# RESULT AGGREGATOR & COLLECTION DRIVER TESTS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Tests - Push-topology collection
# PURPOSE: Verify add/finish counting, upload shapes and the BFS driver
# CREATED: 19 OCT 2026
# ============================================================================
"""
Result Aggregator & Collection Driver Tests

Covers:
1. AggregationState compares counters, not arrival order
2. finish(3) before the third add does not complete early
3. 0 files -> no upload, 1 file -> uploaded as is, >1 -> archive
4. Failed downloads are excluded
5. collect_workflow pushes every produced output and a final total

Run with:
    pytest tests/test_aggregator.py -v
"""

import asyncio

import pytest

from core.config import HistoryDefaults
from core.contracts import SignalName, WorkflowName
from core.errors import ActivityError, MalformedInputError
from core.models import AddNotice, AggregateInput, AggregationState, CollectInput, FinishNotice
from orchestrator.aggregator import download_name

OUTPUT = "object://results/collected.zip"


# ============================================================================
# STATE
# ============================================================================

class TestAggregationState:
    """Counter comparison."""

    def test_finish_before_adds(self):
        state = AggregationState()
        state.on_finish(2)
        assert not state.is_satisfied

        state.on_add("object://b/1")
        assert not state.is_satisfied
        state.on_add("object://b/2")
        assert state.is_satisfied

    def test_adds_before_finish(self):
        state = AggregationState()
        state.on_add("object://b/1")
        assert not state.is_satisfied

        state.on_finish(1)
        assert state.is_satisfied

    def test_finish_zero(self):
        state = AggregationState()
        state.on_finish(0)
        assert state.is_satisfied

    def test_not_finished_without_notice(self):
        state = AggregationState()
        for i in range(5):
            state.on_add(f"object://b/{i}")
        assert state.finished is False
        assert not state.is_satisfied


class TestDownloadName:

    def test_prefixes_index(self):
        assert download_name(3, "object://bucket/a/b/report.pdf") == "000003-report.pdf"

    def test_trailing_slash(self):
        assert download_name(0, "object://bucket/dir/") == "000000-dir"


# ============================================================================
# AGGREGATOR WORKFLOW
# ============================================================================

def seed(harness, names):
    locators = []
    for name in names:
        locator = f"object://inputs/{name}"
        harness.store.put_bytes(locator, name.encode())
        locators.append(locator)
    return locators


class TestAggregateWorkflow:
    """Aggregator through the runtime."""

    def test_finish_before_third_add_does_not_complete_early(self, make_harness):
        harness = make_harness()
        one, two, three = seed(harness, ["one.txt", "two.txt", "three.txt"])

        async def scenario():
            runtime = harness.runtime
            handle = await runtime.start_workflow(
                WorkflowName.AGGREGATE, "agg", AggregateInput(output_locator=OUTPUT)
            )
            await runtime.signal("agg", SignalName.FINISH, FinishNotice(total=3))
            await runtime.signal("agg", SignalName.ADD, AddNotice(locator=one))
            await runtime.signal("agg", SignalName.ADD, AddNotice(locator=two))
            await asyncio.sleep(0.05)
            early = handle.future.done()

            await runtime.signal("agg", SignalName.ADD, AddNotice(locator=three))
            return early, await handle.result()

        early, result = asyncio.run(scenario())

        assert early is False
        assert result.count == 3
        assert result.output_locator == OUTPUT
        assert harness.archive_names(OUTPUT) == [
            "000000-one.txt",
            "000001-two.txt",
            "000002-three.txt",
        ]
        assert harness.workspace_entries() == []

    def test_zero_files_uploads_nothing(self, make_harness):
        harness = make_harness()

        async def scenario():
            handle = await harness.runtime.start_workflow(
                WorkflowName.AGGREGATE, "agg", AggregateInput(output_locator=OUTPUT)
            )
            await harness.runtime.signal("agg", SignalName.FINISH, FinishNotice(total=0))
            return await handle.result()

        result = asyncio.run(scenario())

        assert result.count == 0
        assert result.output_locator is None
        assert not harness.store.exists(OUTPUT)
        assert harness.workspace_entries() == []

    def test_single_file_uploaded_as_is(self, make_harness):
        harness = make_harness()
        (only,) = seed(harness, ["only.txt"])

        async def scenario():
            handle = await harness.runtime.start_workflow(
                WorkflowName.AGGREGATE, "agg", AggregateInput(output_locator=OUTPUT)
            )
            await harness.runtime.signal("agg", SignalName.ADD, AddNotice(locator=only))
            await harness.runtime.signal("agg", SignalName.FINISH, FinishNotice(total=1))
            return await handle.result()

        result = asyncio.run(scenario())

        assert result.count == 1
        assert harness.store.path_for(OUTPUT).read_bytes() == b"only.txt"

    def test_failed_download_excluded(self, make_harness):
        harness = make_harness()
        (present,) = seed(harness, ["present.txt"])

        async def scenario():
            handle = await harness.runtime.start_workflow(
                WorkflowName.AGGREGATE, "agg", AggregateInput(output_locator=OUTPUT)
            )
            await harness.runtime.signal("agg", SignalName.ADD, AddNotice(locator=present))
            await harness.runtime.signal(
                "agg", SignalName.ADD, AddNotice(locator="object://inputs/missing.txt")
            )
            await harness.runtime.signal("agg", SignalName.FINISH, FinishNotice(total=2))
            return await handle.result()

        result = asyncio.run(scenario())

        assert result.count == 1
        assert result.failed == 1
        assert harness.store.path_for(OUTPUT).read_bytes() == b"present.txt"


# ============================================================================
# COLLECTION DRIVER
# ============================================================================

TREE = {
    "root": {"produced": ["r"], "embedded": ["a.bin"]},
    "a.bin": {"produced": ["a"], "embedded": ["b.bin"]},
    "b.bin": {"produced": ["b"]},
}


def run_collect(harness, recurse=True):
    harness.store.put_bytes("object://bucket/doc.zip", b"root")

    async def scenario():
        runtime = harness.runtime
        aggregator = await runtime.start_workflow(
            WorkflowName.AGGREGATE, "agg", AggregateInput(output_locator=OUTPUT)
        )
        collected = await runtime.execute_workflow(
            WorkflowName.COLLECT,
            "collect",
            CollectInput(
                input_locator="object://bucket/doc.zip",
                aggregator_id="agg",
                output_prefix="object://bucket/derived",
                recurse=recurse,
            ),
        )
        return collected, await aggregator.result()

    return asyncio.run(scenario())


class TestCollectWorkflow:
    """Breadth-first driver feeding the aggregator."""

    def test_collects_whole_tree(self, make_harness):
        harness = make_harness(tree=TREE)

        collected, aggregated = run_collect(harness)

        assert collected.total == 3
        assert collected.discovered == 2
        assert harness.engine.keys == ["root", "a.bin", "b.bin"]
        assert aggregated.count == 3
        assert [n.split("-", 1)[1] for n in harness.archive_names(OUTPUT)] == ["r.txt", "a.txt", "b.txt"]
        assert harness.store.exists("object://bucket/derived/collect/extract-root/output/r.txt")
        assert harness.workspace_entries() == []

    def test_without_recursion(self, make_harness):
        harness = make_harness(tree=TREE)

        collected, aggregated = run_collect(harness, recurse=False)

        assert collected.total == 1
        assert collected.discovered == 0
        assert aggregated.count == 1

    def test_failed_branch_skipped(self, make_harness):
        harness = make_harness(tree=TREE, fail={"a.bin": MalformedInputError("corrupt")})

        collected, aggregated = run_collect(harness)

        assert collected.failed == 1
        assert collected.total == 1
        assert aggregated.count == 1

    def test_failed_root_is_fatal(self, make_harness):
        harness = make_harness(tree=TREE, fail={"root": MalformedInputError("corrupt")})
        harness.store.put_bytes("object://bucket/doc.zip", b"root")

        async def scenario():
            try:
                await harness.runtime.execute_workflow(
                    WorkflowName.COLLECT,
                    "collect",
                    CollectInput(
                        input_locator="object://bucket/doc.zip",
                        aggregator_id="agg",
                        output_prefix="object://bucket/derived",
                    ),
                )
            finally:
                await harness.runtime.shutdown()

        with pytest.raises(ActivityError) as exc_info:
            asyncio.run(scenario())
        assert exc_info.value.error_type == "MalformedInputError"

    def test_continue_as_new_carries_queue(self, make_harness):
        harness = make_harness(tree=TREE, history=HistoryDefaults(max_history_length=2))

        collected, aggregated = run_collect(harness)

        assert collected.total == 3
        assert collected.discovered == 2
        assert aggregated.count == 3
        assert harness.checkpoints.save_count >= 1
