# ============================================================================
# ROOT PIPELINE
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Orchestrator - One input object -> one packaged result
# PURPOSE: Workspace, download, extract (+ expansion), package, upload, cleanup
# CREATED: 19 OCT 2026
# ============================================================================
"""
Root Pipeline

    create_workspace            (shared queue; pins the run to one worker)
    identify                    (only without a MIME hint)
    download -> root_path
    [recurse] start expansion + relay children
    extract root
    [recurse] send inline embedded refs, terminate expansion, await it
              (the run fails if the relay closes first), terminate relay,
              await it
    package working directory
    upload archive -> output_locator
    remove_workspace            (always, once a workspace exists)

Everything after create_workspace runs on the workspace's affinity key,
because the working directory only exists on that worker.

Child workflow ids are derived from this workflow id:

    <id>/expansion, <id>/relay, relay key <id>/outputs
"""

import asyncio
import os
from typing import Optional

from core.contracts import ActivityName, SignalName, WorkflowName
from core.errors import ActivityError, RelayClosedError
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import (
    CleanupRequest,
    ExpansionInput,
    ExtractionTask,
    IdentifyRequest,
    PackageRequest,
    ProcessRequest,
    ProcessResult,
    RelayBatch,
    RelayInput,
    TerminateNotice,
    TransferRequest,
)
from orchestrator.engine.context import WorkflowContext
from orchestrator.options import extraction_options, package_options, short_options, transfer_options

logger = get_logger(__name__, ComponentType.PIPELINE)


async def process_workflow(ctx: WorkflowContext, request: ProcessRequest) -> ProcessResult:
    """Extract one input object and upload the packaged result."""
    config = ctx.config
    workspace = await ctx.execute_activity(ActivityName.CREATE_WORKSPACE, None, short_options(config))
    queue = workspace.affinity_key
    archive_path: Optional[str] = None

    with log_context(worker_id=queue, operation="process"):
        try:
            mimetype = request.mimetype
            if not mimetype:
                mimetype = await ctx.execute_activity(
                    ActivityName.IDENTIFY,
                    IdentifyRequest(locator=request.input_locator),
                    short_options(config, queue),
                )

            await ctx.execute_activity(
                ActivityName.DOWNLOAD,
                TransferRequest(locator=request.input_locator, path=workspace.root_path),
                transfer_options(config, queue),
            )
            log_checkpoint("pipeline_downloaded", {"input": request.input_locator, "mimetype": mimetype})

            relay_key = None
            expansion = relay = None
            expansion_id = f"{ctx.workflow_id}/expansion"
            relay_id = f"{ctx.workflow_id}/relay"
            if request.recurse:
                relay_key = f"{ctx.workflow_id}/outputs"
                expansion = await ctx.start_child(
                    WorkflowName.EXPANSION,
                    expansion_id,
                    ExpansionInput(types=request.types, relay_key=relay_key, task_queue=queue),
                )
                relay = await ctx.start_child(
                    WorkflowName.RELAY,
                    relay_id,
                    RelayInput(relay_key=relay_key, expansion_id=expansion_id),
                )

            root_task = ExtractionTask(
                task_id=f"{ctx.workflow_id}/extract-root",
                path=workspace.root_path,
                directory=workspace.directory,
                mimetype=mimetype,
                types=request.types,
                relay_key=relay_key,
            )
            result = await ctx.execute_activity(
                ActivityName.EXTRACT,
                root_task,
                extraction_options(config, queue),
            )
            log_checkpoint(
                "pipeline_root_extracted",
                {
                    "produced": len(result.produced),
                    "embedded": len(result.embedded),
                    "relayed": result.relayed,
                },
            )

            discovered = 0
            if request.recurse:
                if result.embedded:
                    await ctx.signal_external(
                        expansion_id,
                        SignalName.OUTPUTS,
                        RelayBatch(artifacts=result.embedded),
                    )
                await ctx.signal_external(
                    expansion_id,
                    SignalName.TERMINATE,
                    TerminateNotice(relayed=result.relayed, producer=result.relay_producer),
                )
                # Logged entries reach the expansion only through the relay
                await asyncio.wait(
                    {expansion.future, relay.future},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if not expansion.future.done():
                    raise RelayClosedError(relay_id, relay.status.value)
                expansion_result = await expansion.result()
                discovered = expansion_result.discovered

                await ctx.signal_external(relay_id, SignalName.TERMINATE, TerminateNotice())
                await relay.result()
                log_checkpoint(
                    "pipeline_expanded",
                    {"discovered": discovered, "failed": expansion_result.failed},
                )

            archive_path = await ctx.execute_activity(
                ActivityName.PACKAGE,
                PackageRequest(directory=workspace.directory),
                package_options(config, queue),
            )
            await ctx.execute_activity(
                ActivityName.UPLOAD,
                TransferRequest(locator=request.output_locator, path=archive_path),
                transfer_options(config, queue),
            )
            log_checkpoint("pipeline_uploaded", {"output": request.output_locator, "discovered": discovered})
            return ProcessResult(output_locator=request.output_locator, discovered=discovered)

        finally:
            paths = workspace.cleanup_paths(os.path.dirname(archive_path) if archive_path else None)
            try:
                await ctx.execute_activity(
                    ActivityName.REMOVE_WORKSPACE,
                    CleanupRequest(paths=paths),
                    short_options(config, queue),
                )
            except ActivityError as e:
                logger.error(f"Workspace cleanup failed on {queue}: {e}")


__all__ = ["process_workflow"]
