# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core - Database access layer
# PURPOSE: Connection pool and checkpoint persistence
# CREATED: 19 OCT 2026
# ============================================================================
"""
Repositories Module

Provides database access for the orchestrator.
Uses psycopg3 async with connection pooling.

Usage:
    from repositories import DatabasePool, CheckpointRepository

    async with DatabasePool(config.database) as pool:
        checkpoints = CheckpointRepository(pool)
        await checkpoints.ensure_schema()
"""

from .database import create_pool, DatabasePool
from .checkpoint_repo import CheckpointStore, CheckpointRepository, MemoryCheckpointStore

__all__ = [
    "create_pool",
    "DatabasePool",
    "CheckpointStore",
    "CheckpointRepository",
    "MemoryCheckpointStore",
]
