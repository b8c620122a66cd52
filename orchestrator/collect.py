# ============================================================================
# COLLECTION DRIVER
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Orchestrator - Push-topology producer for the aggregator
# PURPOSE: Breadth-first extraction over stored objects, adds to an aggregator
# CREATED: 19 OCT 2026
# ============================================================================
"""
Collection Driver

Push-topology counterpart of the root pipeline. Instead of one workspace
and one archive, every file is extracted straight from the object store
(extract_object) and every produced output is pushed to a result
aggregator as an add notice. When the tree is exhausted the driver sends
finish with the number of adds.

Traversal is breadth-first and sequential. A failed root extraction fails
the driver; any other failed branch is logged, counted and skipped.

The queue of pending requests and the counters are carried across
continue-as-new, so a deep tree does not grow one run's history without
bound.
"""

from collections import deque
from typing import Deque

from core.contracts import ActivityName, SignalName
from core.errors import ActivityError
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import (
    AddNotice,
    CollectInput,
    CollectResult,
    FinishNotice,
    ObjectExtractionRequest,
)
from orchestrator.engine.context import WorkflowContext
from orchestrator.options import extraction_options

logger = get_logger(__name__, ComponentType.PIPELINE)


async def collect_workflow(ctx: WorkflowContext, payload: CollectInput) -> CollectResult:
    """Extract a tree of stored objects and push every output to the aggregator."""
    options = extraction_options(ctx.config)
    total = payload.total
    discovered = payload.discovered
    failed = payload.failed

    fresh = payload.pending is None
    if fresh:
        pending: Deque[ObjectExtractionRequest] = deque([
            ObjectExtractionRequest(
                task_id=f"{ctx.workflow_id}/extract-root",
                locator=payload.input_locator,
                output_prefix=payload.output_prefix,
                mimetype=payload.mimetype,
                types=payload.types,
            )
        ])
    else:
        pending = deque(payload.pending)

    with log_context(operation="collect"):
        while pending:
            if ctx.is_continue_as_new_suggested():
                log_checkpoint(
                    "collect_continued",
                    {"pending": len(pending), "total": total, "discovered": discovered},
                )
                ctx.continue_as_new(payload.model_copy(update={
                    "pending": list(pending),
                    "total": total,
                    "discovered": discovered,
                    "failed": failed,
                }))

            request = pending.popleft()
            is_root = request.task_id == f"{ctx.workflow_id}/extract-root"
            try:
                result = await ctx.execute_activity(ActivityName.EXTRACT_OBJECT, request, options)
            except ActivityError as e:
                if is_root:
                    raise
                failed += 1
                logger.warning(f"Skipping {request.locator}: {e.error_type}: {e}")
                continue

            for artifact in result.produced:
                await ctx.signal_external(payload.aggregator_id, SignalName.ADD, AddNotice(locator=artifact.path))
                total += 1

            if payload.recurse:
                for artifact in result.embedded:
                    discovered += 1
                    pending.append(ObjectExtractionRequest(
                        task_id=f"{ctx.workflow_id}/extract-{discovered}",
                        locator=artifact.path,
                        output_prefix=payload.output_prefix,
                        mimetype=artifact.mimetype,
                        types=payload.types,
                    ))

        await ctx.signal_external(payload.aggregator_id, SignalName.FINISH, FinishNotice(total=total))
        log_checkpoint("collect_finished", {"total": total, "discovered": discovered, "failed": failed})
        return CollectResult(total=total, discovered=discovered, failed=failed)


__all__ = ["collect_workflow"]
