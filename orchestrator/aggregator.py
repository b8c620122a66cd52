# ============================================================================
# RESULT AGGREGATOR
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Orchestrator - Push-based collection of produced artifacts
# PURPOSE: Download every added artifact, then upload one result
# CREATED: 19 OCT 2026
# ============================================================================
"""
Result Aggregator

Producers push two kinds of signal:

    add(locator)   - one artifact to include
    finish(total)  - how many adds there will be in total

The channels are unordered with respect to each other, so finish(3) can
arrive before the third add. AggregationState compares the two counters
on every event and the loop only ends once both agree.

Each add starts its download immediately, pinned to the worker that owns
the aggregator's working directory. After the last add every download is
awaited; failed ones are logged and left out.

    0 files  -> nothing uploaded
    1 file   -> uploaded as is
    >1 files -> packaged into a zip archive and the archive uploaded
"""

import asyncio
import os
from typing import List, Optional, Tuple

from core.contracts import ActivityName, SignalName
from core.errors import ActivityError
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import (
    AddNotice,
    AggregateInput,
    AggregateResult,
    AggregationState,
    CleanupRequest,
    FinishNotice,
    PackageRequest,
    TransferRequest,
)
from orchestrator.engine.context import WorkflowContext
from orchestrator.options import package_options, short_options, transfer_options

logger = get_logger(__name__, ComponentType.AGGREGATOR)


def download_name(index: int, locator: str) -> str:
    """Local file name for the index-th add; the prefix keeps names unique."""
    base = locator.rstrip("/").rsplit("/", 1)[-1] or "artifact"
    return f"{index:06d}-{base}"


async def aggregate_workflow(ctx: WorkflowContext, payload: AggregateInput) -> AggregateResult:
    """Collect added artifacts and upload them as one result."""
    config = ctx.config
    working = await ctx.execute_activity(
        ActivityName.CREATE_WORKING_DIRECTORY,
        None,
        short_options(config),
    )
    queue = working.affinity_key

    state = AggregationState()
    downloads: List[Tuple[str, asyncio.Future]] = []
    archive_path: Optional[str] = None

    def on_add(notice) -> None:
        notice = AddNotice.model_validate(notice)
        path = os.path.join(working.path, download_name(state.added, notice.locator))
        state.on_add(notice.locator)
        future = ctx.execute_activity(
            ActivityName.DOWNLOAD,
            TransferRequest(locator=notice.locator, path=path),
            transfer_options(config, queue),
        )
        downloads.append((notice.locator, future))

    def on_finish(notice) -> None:
        notice = FinishNotice.model_validate(notice)
        state.on_finish(notice.total)
        logger.info(f"Finish received: total={notice.total}, added so far={state.added}")

    selector = ctx.new_selector()
    selector.add_receive(ctx.get_signal_channel(SignalName.ADD), on_add)
    selector.add_receive(ctx.get_signal_channel(SignalName.FINISH), on_finish)

    with log_context(operation="aggregate"):
        try:
            try:
                while not state.is_satisfied:
                    await selector.select()
            finally:
                selector.close()

            results = await asyncio.gather(
                *(future for _, future in downloads),
                return_exceptions=True,
            )
            files = []
            for (locator, _), result in zip(downloads, results):
                if isinstance(result, ActivityError):
                    logger.warning(f"Excluding {locator}: {result.error_type}: {result}")
                    state.on_failed(locator)
                elif isinstance(result, BaseException):
                    raise result
                else:
                    files.append(result)

            if not files:
                logger.info("No artifacts to upload")
                return AggregateResult(count=0, output_locator=None, failed=len(state.failed))

            if len(files) == 1:
                upload_path = files[0]
            else:
                archive_path = await ctx.execute_activity(
                    ActivityName.PACKAGE,
                    PackageRequest(directory=working.path),
                    package_options(config, queue),
                )
                upload_path = archive_path

            await ctx.execute_activity(
                ActivityName.UPLOAD,
                TransferRequest(locator=payload.output_locator, path=upload_path),
                transfer_options(config, queue),
            )
            log_checkpoint(
                "aggregate_uploaded",
                {"count": len(files), "failed": len(state.failed), "output": payload.output_locator},
            )
            return AggregateResult(
                count=len(files),
                output_locator=payload.output_locator,
                failed=len(state.failed),
            )

        finally:
            paths = [working.path]
            if archive_path:
                paths.append(os.path.dirname(archive_path))
            try:
                await ctx.execute_activity(
                    ActivityName.REMOVE_WORKSPACE,
                    CleanupRequest(paths=paths),
                    short_options(config, queue),
                )
            except ActivityError as e:
                logger.error(f"Failed to remove working directory {working.path}: {e}")


__all__ = ["aggregate_workflow", "download_name"]
