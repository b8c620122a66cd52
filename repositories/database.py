# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core - Async PostgreSQL connection management
# PURPOSE: Provide connection pooling for psycopg3 async
# CREATED: 19 OCT 2026
# ============================================================================
"""
Database Connection Pool

Manages async PostgreSQL connections using psycopg3 and psycopg_pool.
The pool is created from DatabaseDefaults and passed explicitly to the
relay log and checkpoint repository; there is no module-level pool.

Usage:
    from repositories.database import DatabasePool

    async with DatabasePool(config.database) as pool:
        relay_log = PostgresRelayLog(pool)
        checkpoints = CheckpointRepository(pool)
"""

import logging
import os
from typing import Optional

from psycopg import sql as psycopg_sql
from psycopg_pool import AsyncConnectionPool

from core.config import DatabaseDefaults

logger = logging.getLogger(__name__)


def get_connection_string(defaults: Optional[DatabaseDefaults] = None) -> str:
    """
    Get database connection string.

    Priority:
    1. DatabaseDefaults.url (DATABASE_URL)
    2. Individual POSTGRES_* components

    Returns:
        PostgreSQL connection string
    """
    if defaults is not None and defaults.url:
        return defaults.url

    host = os.environ.get("POSTGRES_HOST", "localhost")
    port = os.environ.get("POSTGRES_PORT", "5432")
    name = os.environ.get("POSTGRES_DB", "postgres")
    user = os.environ.get("POSTGRES_USER", "postgres")
    password = os.environ.get("POSTGRES_PASSWORD", "")
    sslmode = os.environ.get("POSTGRES_SSLMODE", "prefer")

    return f"postgresql://{user}:{password}@{host}:{port}/{name}?sslmode={sslmode}"


def _safe_conninfo(conninfo: str) -> str:
    """Strip credentials for logging."""
    if "@" in conninfo:
        return conninfo.split("@")[-1]
    if "password=" in conninfo:
        return conninfo.split("password=")[0] + "password=***"
    return conninfo


async def create_pool(
    defaults: Optional[DatabaseDefaults] = None,
    connection_string: Optional[str] = None,
) -> AsyncConnectionPool:
    """
    Create and open a connection pool.

    Args:
        defaults: Pool sizing and DSN
        connection_string: Override connection string

    Returns:
        Opened AsyncConnectionPool
    """
    defaults = defaults or DatabaseDefaults()
    conninfo = connection_string or get_connection_string(defaults)

    logger.info(f"Initializing connection pool: {_safe_conninfo(conninfo)}")

    pool = AsyncConnectionPool(
        conninfo=conninfo,
        min_size=defaults.min_pool_size,
        max_size=defaults.max_pool_size,
        open=False,  # We'll open it explicitly
    )
    await pool.open()
    logger.info(
        f"Connection pool opened (min={defaults.min_pool_size}, max={defaults.max_pool_size})"
    )
    return pool


class DatabasePool:
    """
    Context manager for pool lifecycle.

    Usage:
        async with DatabasePool(config.database) as pool:
            async with pool.connection() as conn:
                ...
    """

    def __init__(
        self,
        defaults: Optional[DatabaseDefaults] = None,
        connection_string: Optional[str] = None,
    ):
        self.defaults = defaults
        self.connection_string = connection_string
        self._pool: Optional[AsyncConnectionPool] = None

    async def __aenter__(self) -> AsyncConnectionPool:
        self._pool = await create_pool(self.defaults, self.connection_string)
        return self._pool

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Connection pool closed")


# ============================================================================
# SCHEMA CONSTANTS
# ============================================================================

SCHEMA = os.environ.get("ORCHESTRATOR_SCHEMA", "extraction")

# Table identifiers - use with psycopg sql.SQL().format() for injection-safe queries
SCHEMA_ID = psycopg_sql.Identifier(SCHEMA)
TABLE_CHECKPOINTS = psycopg_sql.Identifier(SCHEMA, "workflow_checkpoints")
TABLE_RELAY_LOG = psycopg_sql.Identifier(SCHEMA, "relay_log")


__all__ = [
    "get_connection_string",
    "create_pool",
    "DatabasePool",
    "SCHEMA",
    "SCHEMA_ID",
    "TABLE_CHECKPOINTS",
    "TABLE_RELAY_LOG",
]
