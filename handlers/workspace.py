# ============================================================================
# WORKSPACE ACTIVITIES
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Handlers - Worker-local working areas
# PURPOSE: create_workspace, create_working_directory, remove_workspace
# CREATED: 19 OCT 2026
# ============================================================================
"""
Workspace Activities

A workspace is created on whichever worker picks the activity up from the
shared queue. Its affinity_key is that worker's sticky queue, so every
later activity that reads or writes the workspace is sent back to the
same worker.

Removal only touches paths under the configured workspace root; anything
else in the request is logged and skipped. Removing a path that no longer
exists is not an error, so a retried removal converges.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List

from core.config import WorkerDefaults
from core.contracts import ActivityName
from core.errors import WorkspaceError
from core.models import CleanupRequest, WorkingDirectory, Workspace
from handlers.registry import ActivityContext, ActivityRegistry

logger = logging.getLogger(__name__)


class WorkspaceActivities:
    """Workspace lifecycle on one worker."""

    def __init__(self, defaults: WorkerDefaults):
        self.root = Path(defaults.workspace_root)

    def register(self, registry: ActivityRegistry) -> None:
        registry.register(
            ActivityName.CREATE_WORKSPACE,
            self.create_workspace,
            description="Allocate input slot and working directory",
        )
        registry.register(
            ActivityName.CREATE_WORKING_DIRECTORY,
            self.create_working_directory,
            description="Allocate a scratch directory",
        )
        registry.register(
            ActivityName.REMOVE_WORKSPACE,
            self.remove_workspace,
            description="Remove workspace paths under the workspace root",
        )

    def _ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceError(f"Workspace root {self.root} unavailable: {e}")

    def create_workspace(self, ctx: ActivityContext, _payload: object = None) -> Workspace:
        """
        Create an input slot and an empty working directory.

        Returns:
            Workspace pinned to this worker's sticky queue
        """
        self._ensure_root()
        try:
            fd, root_path = tempfile.mkstemp(prefix="input-", dir=self.root)
            os.close(fd)
            directory = tempfile.mkdtemp(prefix="work-", dir=self.root)
        except OSError as e:
            raise WorkspaceError(f"Failed to create workspace under {self.root}: {e}")

        workspace = Workspace(
            root_path=root_path,
            directory=directory,
            affinity_key=ctx.sticky_queue,
        )
        logger.info(f"Created workspace {directory} on {ctx.worker_id}")
        return workspace

    def create_working_directory(self, ctx: ActivityContext, _payload: object = None) -> WorkingDirectory:
        """Create a scratch directory pinned to this worker."""
        self._ensure_root()
        try:
            path = tempfile.mkdtemp(prefix="collect-", dir=self.root)
        except OSError as e:
            raise WorkspaceError(f"Failed to create working directory under {self.root}: {e}")
        logger.info(f"Created working directory {path} on {ctx.worker_id}")
        return WorkingDirectory(path=path, affinity_key=ctx.sticky_queue)

    def remove_workspace(self, ctx: ActivityContext, request: CleanupRequest) -> List[str]:
        """
        Remove files and directories under the workspace root.

        Returns:
            Paths actually removed
        """
        removed = []
        root = self.root.resolve()
        for raw in request.paths:
            path = Path(raw).resolve()
            if root not in path.parents:
                logger.warning(f"Refusing to remove {raw}: outside workspace root {root}")
                continue
            if path.is_dir():
                shutil.rmtree(path)
            elif path.exists():
                path.unlink()
            else:
                continue
            removed.append(str(path))

        logger.info(f"Removed {len(removed)} workspace path(s) on {ctx.worker_id}")
        return removed


__all__ = ["WorkspaceActivities"]
