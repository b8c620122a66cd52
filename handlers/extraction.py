# ============================================================================
# EXTRACTION ACTIVITIES
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Handlers - Extraction task runner
# PURPOSE: extract (workspace files), extract_object (stored objects)
# CREATED: 19 OCT 2026
# ============================================================================
"""
Extraction Activities

extract
    Runs the engine on a file inside a workspace. When the task carries a
    relay key and the engine returns more embedded artifacts than the
    inline limit, the overflow is appended to the relay log under the
    producer tag <task_id>#<attempt> and only its count and tag are
    returned (ExtractionResult.relayed, relay_producer). The output relay delivers
    those entries to the expansion controller.

extract_object
    Runs the engine on a stored object without a workspace: download into
    a scratch directory, extract, upload every output under the request's
    output prefix. The result carries locators instead of local paths.

Both heartbeat while the engine runs. Object store calls are blocking and
run in the loop's default executor.
"""

import asyncio
import functools
import logging
import os
import posixpath
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

from core.config import ExtractionDefaults, WorkerDefaults
from core.contracts import ActivityName
from core.locators import build_locator, parse_locator
from core.models import ArtifactRef, ExtractionResult, ExtractionTask, ObjectExtractionRequest
from handlers.registry import ActivityContext, ActivityRegistry
from infrastructure.extraction import ExtractionEngine
from infrastructure.relay_log import RelayLog
from infrastructure.storage import ObjectStore

logger = logging.getLogger(__name__)


class ExtractionActivities:
    """Extraction task runner."""

    def __init__(
        self,
        engine: ExtractionEngine,
        relay_log: Optional[RelayLog] = None,
        store: Optional[ObjectStore] = None,
        defaults: Optional[ExtractionDefaults] = None,
        worker_defaults: Optional[WorkerDefaults] = None,
    ):
        self.engine = engine
        self.relay_log = relay_log
        self.store = store
        self.inline_limit = (defaults or ExtractionDefaults()).inline_embedded_limit
        self.scratch_root = (worker_defaults or WorkerDefaults()).workspace_root

    def register(self, registry: ActivityRegistry) -> None:
        registry.register(ActivityName.EXTRACT, self.extract, description="Extract a workspace file")
        if self.store is not None:
            registry.register(
                ActivityName.EXTRACT_OBJECT,
                self.extract_object,
                description="Extract a stored object and upload its outputs",
            )

    async def extract(self, ctx: ActivityContext, task: ExtractionTask) -> ExtractionResult:
        """
        Extract one workspace file.

        Returns:
            ExtractionResult; `relayed` counts embedded artifacts appended
            to the relay log instead of returned inline
        """
        logger.info(f"Extracting {task.path} ({task.mimetype}) attempt {ctx.attempt}")
        result = await self.engine.extract(task, heartbeat=ctx.heartbeat)

        if task.relay_key and self.relay_log is not None and len(result.embedded) > self.inline_limit:
            inline = result.embedded[:self.inline_limit]
            overflow = result.embedded[self.inline_limit:]
            producer = f"{task.task_id}#{ctx.attempt}"
            await self.relay_log.append_many(task.relay_key, overflow, producer)
            ctx.heartbeat()
            logger.info(
                f"Relayed {len(overflow)} embedded artifact(s) of {task.task_id} "
                f"under {task.relay_key}"
            )
            result = ExtractionResult(
                produced=result.produced,
                embedded=inline,
                relayed=len(overflow),
                relay_producer=producer,
            )

        logger.info(
            f"Extracted {task.task_id}: produced={len(result.produced)} "
            f"embedded={len(result.embedded)} relayed={result.relayed}"
        )
        return result

    async def extract_object(
        self,
        ctx: ActivityContext,
        request: ObjectExtractionRequest,
    ) -> ExtractionResult:
        """
        Extract a stored object and upload its outputs.

        Outputs land under <output_prefix>/<task_id>/<relative path>.
        """
        source = parse_locator(request.locator)
        prefix = parse_locator(request.output_prefix)

        loop = asyncio.get_running_loop()
        os.makedirs(self.scratch_root, exist_ok=True)
        scratch = tempfile.mkdtemp(prefix="object-", dir=self.scratch_root)
        try:
            input_path = os.path.join(scratch, "input", source.name)
            output_dir = os.path.join(scratch, "output")
            os.makedirs(output_dir)

            await loop.run_in_executor(None, functools.partial(self.store.download, request.locator, input_path))
            ctx.heartbeat()

            task = ExtractionTask(
                task_id=request.task_id,
                path=input_path,
                directory=output_dir,
                mimetype=request.effective_mimetype,
                types=request.types,
            )
            result = await self.engine.extract(task, heartbeat=ctx.heartbeat)

            async def publish(artifacts: List[ArtifactRef]) -> List[ArtifactRef]:
                published = []
                for artifact in artifacts:
                    relative = Path(artifact.path).resolve().relative_to(Path(scratch).resolve())
                    key = posixpath.join(prefix.key, request.task_id, relative.as_posix())
                    locator = build_locator(prefix.container, key)
                    await loop.run_in_executor(
                        None,
                        functools.partial(self.store.upload, artifact.path, locator, artifact.mimetype),
                    )
                    ctx.heartbeat()
                    published.append(
                        ArtifactRef(path=locator, mimetype=artifact.mimetype, checksum=artifact.checksum)
                    )
                return published

            return ExtractionResult(
                produced=await publish(result.produced),
                embedded=await publish(result.embedded),
            )
        finally:
            shutil.rmtree(scratch, ignore_errors=True)


__all__ = ["ExtractionActivities"]
