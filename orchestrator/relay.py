# ============================================================================
# OUTPUT RELAY
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Orchestrator - Relay log tail -> expansion controller
# PURPOSE: Forward relay log entries in id order, each exactly once
# CREATED: 19 OCT 2026
# ============================================================================
"""
Output Relay

Extraction tasks with large trees append embedded artifacts to the relay
log instead of returning them. The relay tails that log and forwards
what it reads to the expansion controller's outputs channel:

    query_relay_log(after_id=cursor)  -> batch
    forward batch                     -> expansion outputs channel
    cursor = last id; query again

The query activity blocks until entries exist, so there is always exactly
one query in flight. A query that exhausts its retries is issued again
from the same cursor; the relay only stops on terminate. A terminate
signal cancels the in-flight query; whatever already completed is still
forwarded before the relay returns.

RelayState.accept() drops every id at or below the cursor, which is what
keeps forwarding strictly increasing and duplicate-free even when a
query is retried or re-read after continue-as-new.
"""

import asyncio
from dataclasses import dataclass
from typing import Iterable, List, Optional

from core.contracts import ActivityName, SignalName
from core.errors import ActivityError, WorkflowNotFoundError
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import (
    RelayBatch,
    RelayCheckpoint,
    RelayEntry,
    RelayInput,
    RelayQuery,
    RelayResult,
)
from orchestrator.engine.context import WorkflowContext
from orchestrator.options import query_options

logger = get_logger(__name__, ComponentType.RELAY)


# ============================================================================
# STATE
# ============================================================================

@dataclass
class RelayState:
    """Cursor over the relay log."""
    cursor: int = 0
    forwarded: int = 0
    restarts: int = 0

    def accept(self, entries: Iterable[RelayEntry]) -> List[RelayEntry]:
        """
        Select the entries to forward and advance the cursor past them.

        Returns:
            Entries with id > cursor, in id order, without duplicates
        """
        fresh = []
        for entry in sorted(entries, key=lambda e: e.id):
            if entry.id > self.cursor:
                fresh.append(entry)
                self.cursor = entry.id
        self.forwarded += len(fresh)
        return fresh

    def capture_checkpoint(self) -> RelayCheckpoint:
        return RelayCheckpoint(cursor=self.cursor, forwarded=self.forwarded, restarts=self.restarts)

    @classmethod
    def resume(cls, checkpoint: Optional[RelayCheckpoint]) -> "RelayState":
        if checkpoint is None:
            return cls()
        return cls(
            cursor=checkpoint.cursor,
            forwarded=checkpoint.forwarded,
            restarts=checkpoint.restarts,
        )


# ============================================================================
# WORKFLOW
# ============================================================================

async def relay_workflow(ctx: WorkflowContext, payload: RelayInput) -> RelayResult:
    """Tail the relay log until terminated."""
    state = RelayState.resume(payload.checkpoint)
    selector = ctx.new_selector()
    batch_size = ctx.config.timeouts.query_batch_size
    query: Optional[asyncio.Future] = None
    querying = True
    terminated = False

    def issue_query() -> None:
        nonlocal query
        request = RelayQuery(relay_key=payload.relay_key, after_id=state.cursor, limit=batch_size)
        query = ctx.execute_activity(ActivityName.QUERY_RELAY_LOG, request, query_options(ctx.config))
        selector.add_future(query, on_query)

    async def on_query(future: asyncio.Future) -> None:
        if future.cancelled():
            return
        try:
            batch = RelayBatch.model_validate(future.result())
        except ActivityError as e:
            if not querying:
                logger.info(f"Relay query ended while stopping: {e.error_type}")
                return
            logger.warning(
                f"Relay query failed after {e.attempts} attempt(s), querying again "
                f"after id {state.cursor}: {e.error_type}: {e}"
            )
            issue_query()
            return

        fresh = state.accept(batch.entries)
        if fresh:
            try:
                await ctx.signal_external(payload.expansion_id, SignalName.OUTPUTS, RelayBatch(entries=fresh))
            except WorkflowNotFoundError:
                logger.warning(
                    f"Expansion {payload.expansion_id} closed; dropped {len(fresh)} "
                    f"entries up to id {state.cursor}"
                )
        if querying:
            issue_query()

    def on_terminate(_notice) -> None:
        nonlocal querying, terminated
        terminated = True
        querying = False

    async def stop_querying() -> None:
        nonlocal querying
        querying = False
        if query is not None and not query.done():
            query.cancel()
            await asyncio.wait({query})
        while selector.has_pending():
            await selector.select()

    selector.add_receive(ctx.get_signal_channel(SignalName.TERMINATE), on_terminate)

    with log_context(relay_key=payload.relay_key, operation="relay"):
        issue_query()
        try:
            while not terminated:
                if ctx.is_continue_as_new_suggested():
                    await stop_querying()
                    if terminated:
                        break
                    state.restarts += 1
                    checkpoint = state.capture_checkpoint()
                    log_checkpoint(
                        "relay_continued",
                        {"cursor": checkpoint.cursor, "restarts": checkpoint.restarts},
                    )
                    ctx.continue_as_new(payload.model_copy(update={"checkpoint": checkpoint}))

                await selector.select()

            await stop_querying()
        finally:
            selector.close()

        log_checkpoint("relay_completed", {"cursor": state.cursor, "forwarded": state.forwarded})
        return RelayResult(cursor=state.cursor, forwarded=state.forwarded)


__all__ = ["RelayState", "relay_workflow"]
