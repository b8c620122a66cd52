# ============================================================================
# RELAY LOG INFRASTRUCTURE
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Infrastructure - Append-only log of discovered artifacts
# PURPOSE: Hand embedded artifacts from extraction tasks to the output relay
# CREATED: 19 OCT 2026
# ============================================================================
"""
Relay Log Infrastructure

Extraction tasks append the embedded artifacts they discover under a relay
key; the output relay tails the same key and forwards new entries to the
expansion controller.

Ids are assigned by the log and strictly increase within a key, so a
reader only needs the last id it has seen:

    entries = await log.read(key, after_id=cursor, limit=100)

Two implementations of RelayLog:
- PostgresRelayLog: relay_log table with a BIGSERIAL id
- MemoryRelayLog: in-process lists, for tests and single-process runs
"""

import abc
import logging
from typing import Dict, Iterable, List

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.models.artifact import ArtifactRef, RelayEntry
from repositories.database import SCHEMA_ID, TABLE_RELAY_LOG

logger = logging.getLogger(__name__)


class RelayLog(abc.ABC):
    """Append-only log keyed by relay key."""

    @abc.abstractmethod
    async def append(self, key: str, artifact: ArtifactRef, producer: str = "") -> int:
        """Append one artifact tagged with its producer. Returns its id."""

    async def append_many(
        self,
        key: str,
        artifacts: Iterable[ArtifactRef],
        producer: str = "",
    ) -> List[int]:
        """Append artifacts in order. Returns their ids."""
        return [await self.append(key, artifact, producer) for artifact in artifacts]

    @abc.abstractmethod
    async def read(self, key: str, after_id: int = 0, limit: int = 100) -> List[RelayEntry]:
        """Entries of `key` with id > after_id, in id order, at most `limit`."""


# ============================================================================
# POSTGRESQL
# ============================================================================

class PostgresRelayLog(RelayLog):
    """Relay log stored in PostgreSQL."""

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
                        id BIGSERIAL PRIMARY KEY,
                        relay_key VARCHAR(256) NOT NULL,
                        path TEXT NOT NULL,
                        mimetype VARCHAR(255) NOT NULL,
                        checksum VARCHAR(128) NOT NULL DEFAULT '',
                        producer VARCHAR(300) NOT NULL DEFAULT '',
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                    """
                ).format(table=TABLE_RELAY_LOG)
            )
            await conn.execute(
                sql.SQL("CREATE INDEX IF NOT EXISTS {index} ON {table} (relay_key, id)").format(
                    index=sql.Identifier("idx_relay_log_key_id"),
                    table=TABLE_RELAY_LOG,
                )
            )
        logger.info("Relay log table ready")

    async def append(self, key: str, artifact: ArtifactRef, producer: str = "") -> int:
        async with self.pool.connection() as conn:
            result = await conn.execute(
                sql.SQL(
                    """
                    INSERT INTO {table} (relay_key, path, mimetype, checksum, producer)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING id
                    """
                ).format(table=TABLE_RELAY_LOG),
                (key, artifact.path, artifact.mimetype, artifact.checksum or "", producer),
            )
            row = await result.fetchone()
        return int(row[0])

    async def read(self, key: str, after_id: int = 0, limit: int = 100) -> List[RelayEntry]:
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL(
                    """
                    SELECT id, path, mimetype, checksum, producer FROM {table}
                    WHERE relay_key = %s AND id > %s
                    ORDER BY id
                    LIMIT %s
                    """
                ).format(table=TABLE_RELAY_LOG),
                (key, after_id, limit),
            )
            rows = await result.fetchall()
        return [RelayEntry(**row) for row in rows]


# ============================================================================
# IN-MEMORY
# ============================================================================

class MemoryRelayLog(RelayLog):
    """Relay log held in process memory. Ids are global, like a sequence."""

    def __init__(self):
        self._entries: Dict[str, List[RelayEntry]] = {}
        self._next_id = 1

    async def append(self, key: str, artifact: ArtifactRef, producer: str = "") -> int:
        entry = RelayEntry(
            id=self._next_id,
            path=artifact.path,
            mimetype=artifact.mimetype,
            checksum=artifact.checksum or "",
            producer=producer,
        )
        self._next_id += 1
        self._entries.setdefault(key, []).append(entry)
        return entry.id

    async def read(self, key: str, after_id: int = 0, limit: int = 100) -> List[RelayEntry]:
        entries = [e for e in self._entries.get(key, []) if e.id > after_id]
        return entries[:limit]

    def count(self, key: str) -> int:
        return len(self._entries.get(key, []))


__all__ = ["RelayLog", "PostgresRelayLog", "MemoryRelayLog"]
