# ============================================================================
# CHECKPOINT REPOSITORY
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core - Continue-as-new payload persistence
# PURPOSE: Database access for the workflow_checkpoints table
# CREATED: 19 OCT 2026
# ============================================================================
"""
Checkpoint Repository

Stores the input of the next run each time a long-lived workflow continues
as new, so a restarted process can recover the workflow id from its latest
checkpoint. Only the latest checkpoint per workflow id is ever read; older
rows are pruned on save.

Two implementations of CheckpointStore:
- CheckpointRepository: PostgreSQL (psycopg async pool)
- MemoryCheckpointStore: in-process dict, for tests and single-process runs
"""

import abc
import logging
from typing import Dict, List, Optional

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Json
from psycopg_pool import AsyncConnectionPool

from core.models.checkpoint import WorkflowCheckpoint
from .database import SCHEMA_ID, TABLE_CHECKPOINTS

logger = logging.getLogger(__name__)


class CheckpointStore(abc.ABC):
    """Persistence for continue-as-new payloads."""

    @abc.abstractmethod
    async def save(self, checkpoint: WorkflowCheckpoint) -> WorkflowCheckpoint:
        """Persist a checkpoint, superseding earlier ones for the workflow id."""

    @abc.abstractmethod
    async def load_latest(self, workflow_id: str) -> Optional[WorkflowCheckpoint]:
        """Latest checkpoint for a workflow id, or None."""

    @abc.abstractmethod
    async def delete(self, workflow_id: str) -> int:
        """Remove every checkpoint for a workflow id. Returns rows removed."""


# ============================================================================
# POSTGRESQL
# ============================================================================

class CheckpointRepository(CheckpointStore):
    """Repository for WorkflowCheckpoint entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def ensure_schema(self) -> None:
        """Create the schema and table if they do not exist."""
        async with self.pool.connection() as conn:
            await conn.execute(
                sql.SQL("CREATE SCHEMA IF NOT EXISTS {schema}").format(schema=SCHEMA_ID)
            )
            await conn.execute(
                sql.SQL(
                    """
                    CREATE TABLE IF NOT EXISTS {table} (
                        checkpoint_id VARCHAR(64) PRIMARY KEY,
                        workflow_id VARCHAR(256) NOT NULL,
                        workflow_name VARCHAR(64) NOT NULL,
                        run_id VARCHAR(64) NOT NULL,
                        payload JSONB NOT NULL,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                    """
                ).format(table=TABLE_CHECKPOINTS)
            )
            await conn.execute(
                sql.SQL(
                    "CREATE INDEX IF NOT EXISTS {index} ON {table} (workflow_id, created_at DESC)"
                ).format(
                    index=sql.Identifier("idx_workflow_checkpoints_workflow"),
                    table=TABLE_CHECKPOINTS,
                )
            )
        logger.info("Checkpoint table ready")

    async def save(self, checkpoint: WorkflowCheckpoint) -> WorkflowCheckpoint:
        """
        Insert a checkpoint and prune older ones for the same workflow id.

        Args:
            checkpoint: Checkpoint to persist

        Returns:
            The persisted checkpoint
        """
        async with self.pool.connection() as conn:
            async with conn.transaction():
                await conn.execute(
                    sql.SQL(
                        """
                        INSERT INTO {table} (
                            checkpoint_id, workflow_id, workflow_name, run_id, payload, created_at
                        ) VALUES (
                            %(checkpoint_id)s, %(workflow_id)s, %(workflow_name)s,
                            %(run_id)s, %(payload)s, %(created_at)s
                        )
                        """
                    ).format(table=TABLE_CHECKPOINTS),
                    {
                        "checkpoint_id": checkpoint.checkpoint_id,
                        "workflow_id": checkpoint.workflow_id,
                        "workflow_name": checkpoint.workflow_name,
                        "run_id": checkpoint.run_id,
                        "payload": Json(checkpoint.payload),
                        "created_at": checkpoint.created_at,
                    },
                )
                await conn.execute(
                    sql.SQL(
                        "DELETE FROM {table} WHERE workflow_id = %s AND checkpoint_id <> %s"
                    ).format(table=TABLE_CHECKPOINTS),
                    (checkpoint.workflow_id, checkpoint.checkpoint_id),
                )
        logger.debug(
            f"Saved checkpoint {checkpoint.checkpoint_id} for "
            f"{checkpoint.workflow_name} ({checkpoint.workflow_id})"
        )
        return checkpoint

    async def load_latest(self, workflow_id: str) -> Optional[WorkflowCheckpoint]:
        """
        Get the most recent checkpoint for a workflow id.

        Args:
            workflow_id: Workflow identifier

        Returns:
            Most recent WorkflowCheckpoint or None
        """
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL(
                    """
                    SELECT * FROM {table}
                    WHERE workflow_id = %s
                    ORDER BY created_at DESC
                    LIMIT 1
                    """
                ).format(table=TABLE_CHECKPOINTS),
                (workflow_id,),
            )
            row = await result.fetchone()

            if row is None:
                return None

            return self._row_to_checkpoint(row)

    async def delete(self, workflow_id: str) -> int:
        async with self.pool.connection() as conn:
            result = await conn.execute(
                sql.SQL("DELETE FROM {table} WHERE workflow_id = %s").format(
                    table=TABLE_CHECKPOINTS
                ),
                (workflow_id,),
            )
            deleted = result.rowcount
        if deleted:
            logger.debug(f"Deleted {deleted} checkpoint(s) for {workflow_id}")
        return deleted

    def _row_to_checkpoint(self, row: dict) -> WorkflowCheckpoint:
        """Convert database row to WorkflowCheckpoint model."""
        return WorkflowCheckpoint(
            checkpoint_id=row["checkpoint_id"],
            workflow_id=row["workflow_id"],
            workflow_name=row["workflow_name"],
            run_id=row["run_id"],
            payload=row["payload"] or {},
            created_at=row["created_at"],
        )


# ============================================================================
# IN-MEMORY
# ============================================================================

class MemoryCheckpointStore(CheckpointStore):
    """Checkpoint store held in process memory."""

    def __init__(self):
        self._checkpoints: Dict[str, List[WorkflowCheckpoint]] = {}
        self.save_count = 0

    async def save(self, checkpoint: WorkflowCheckpoint) -> WorkflowCheckpoint:
        self._checkpoints[checkpoint.workflow_id] = [checkpoint]
        self.save_count += 1
        return checkpoint

    async def load_latest(self, workflow_id: str) -> Optional[WorkflowCheckpoint]:
        saved = self._checkpoints.get(workflow_id)
        return saved[-1] if saved else None

    async def delete(self, workflow_id: str) -> int:
        return len(self._checkpoints.pop(workflow_id, []))


__all__ = [
    "CheckpointStore",
    "CheckpointRepository",
    "MemoryCheckpointStore",
]
