# ============================================================================
# SIGNAL CHANNELS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Engine - Named FIFO mailboxes between workflow instances
# PURPOSE: Buffer signals until the receiving workflow selects on them
# CREATED: 19 OCT 2026
# ============================================================================
"""
Signal Channels

A SignalChannel belongs to a workflow id, not to a run. Signals delivered
while a workflow is between runs (continue-as-new) stay buffered and are
received by the next run.

Delivery is FIFO within one channel. There is no ordering between two
channels of the same workflow.
"""

import asyncio
import logging
import weakref
from collections import deque
from typing import Any, Deque

logger = logging.getLogger(__name__)


class SignalChannel:
    """FIFO mailbox for one named signal of one workflow id."""

    def __init__(self, workflow_id: str, name: str):
        self.workflow_id = workflow_id
        self.name = name
        self._queue: Deque[Any] = deque()
        self._listeners: "weakref.WeakSet[asyncio.Event]" = weakref.WeakSet()
        self.delivered = 0

    def send(self, payload: Any) -> None:
        """Append a payload and wake every selector listening on this channel."""
        self._queue.append(payload)
        self.delivered += 1
        for event in list(self._listeners):
            event.set()

    def receive_nowait(self) -> Any:
        """
        Pop the oldest payload.

        Raises:
            IndexError: If the channel is empty
        """
        return self._queue.popleft()

    @property
    def pending(self) -> int:
        return len(self._queue)

    def has_pending(self) -> bool:
        return bool(self._queue)

    def subscribe(self, event: asyncio.Event) -> None:
        self._listeners.add(event)
        if self._queue:
            event.set()

    def unsubscribe(self, event: asyncio.Event) -> None:
        self._listeners.discard(event)

    def __repr__(self) -> str:
        return f"SignalChannel({self.workflow_id!r}, {self.name!r}, pending={self.pending})"


__all__ = ["SignalChannel"]
