# ============================================================================
# RELAY LOG QUERY ACTIVITY
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Handlers - Tailing read of the relay log
# PURPOSE: Long-poll the relay log for entries after a cursor
# CREATED: 19 OCT 2026
# ============================================================================
"""
Relay Log Query Activity

query_relay_log blocks until at least one entry with id > after_id exists
under the relay key, then returns up to `limit` of them in id order. It
heartbeats on every poll, so a dead worker is noticed through the
heartbeat timeout while a quiet log simply keeps the activity open. The
output relay cancels the query when it is told to stop.
"""

import asyncio
import logging

from core.config import TimeoutDefaults
from core.contracts import ActivityName
from core.models import RelayBatch, RelayQuery
from handlers.registry import ActivityContext, ActivityRegistry
from infrastructure.relay_log import RelayLog

logger = logging.getLogger(__name__)


class RelayLogActivities:
    """Tailing query against the relay log."""

    def __init__(self, relay_log: RelayLog, defaults: TimeoutDefaults):
        self.relay_log = relay_log
        self.poll_interval = defaults.query_poll_interval

    def register(self, registry: ActivityRegistry) -> None:
        registry.register(
            ActivityName.QUERY_RELAY_LOG,
            self.query_relay_log,
            description="Wait for relay log entries after a cursor",
        )

    async def query_relay_log(self, ctx: ActivityContext, query: RelayQuery) -> RelayBatch:
        """
        Wait for entries after query.after_id.

        Returns:
            RelayBatch with at least one entry, ids strictly increasing
        """
        polls = 0
        while True:
            entries = await self.relay_log.read(query.relay_key, query.after_id, query.limit)
            ctx.heartbeat(query.after_id)
            if entries:
                entries = sorted(entries, key=lambda e: e.id)
                logger.debug(
                    f"Relay {query.relay_key}: {len(entries)} entries after "
                    f"{query.after_id} ({polls} empty polls)"
                )
                return RelayBatch(entries=entries)
            polls += 1
            await asyncio.sleep(self.poll_interval)


__all__ = ["RelayLogActivities"]
