# ============================================================================
# SELECTOR
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Engine - Multiplex signal channels and activity futures
# PURPOSE: Run exactly one ready callback per select() call
# CREATED: 19 OCT 2026
# ============================================================================
"""
Selector

Workflow code waits on several sources at once through a Selector:

    selector = ctx.new_selector()
    selector.add_receive(outputs, on_batch)     # persistent
    selector.add_future(task_future, on_done)   # one-shot

    while not state.is_complete:
        await selector.select()

select() blocks until at least one source is ready, then runs exactly one
callback. Channels are checked before futures, each in registration
order. Callbacks may be plain functions or coroutines; state mutation
happens only inside them, one at a time.

has_pending() reports whether select() would return without blocking,
which is how a workflow drains every ready event before checkpointing.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, List, Optional, Tuple

from orchestrator.engine.channels import SignalChannel

logger = logging.getLogger(__name__)

ReceiveCallback = Callable[[Any], Any]
FutureCallback = Callable[[asyncio.Future], Any]


class Selector:
    """Waits on channels and futures; dispatches one ready callback at a time."""

    def __init__(self):
        self._receives: List[Tuple[SignalChannel, ReceiveCallback]] = []
        self._futures: List[Tuple[asyncio.Future, FutureCallback]] = []
        self._default: Optional[Callable[[], Any]] = None
        self._wakeup = asyncio.Event()

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def add_receive(self, channel: SignalChannel, callback: ReceiveCallback) -> "Selector":
        """Call `callback(payload)` for every payload received on `channel`."""
        self._receives.append((channel, callback))
        channel.subscribe(self._wakeup)
        return self

    def add_future(self, future: asyncio.Future, callback: FutureCallback) -> "Selector":
        """Call `callback(future)` once, after `future` completes."""
        self._futures.append((future, callback))
        future.add_done_callback(self._on_future_done)
        return self

    def add_default(self, callback: Callable[[], Any]) -> "Selector":
        """Run `callback()` from select() when nothing else is ready."""
        self._default = callback
        return self

    def _on_future_done(self, _future: asyncio.Future) -> None:
        self._wakeup.set()

    # ========================================================================
    # SELECTION
    # ========================================================================

    def has_pending(self) -> bool:
        """True if a channel or future is ready. The default callback does not count."""
        if any(channel.has_pending() for channel, _ in self._receives):
            return True
        return any(future.done() for future, _ in self._futures)

    @property
    def outstanding_futures(self) -> int:
        return len(self._futures)

    def _pop_ready(self) -> Optional[Tuple[Callable, Any]]:
        for channel, callback in self._receives:
            if channel.has_pending():
                return callback, channel.receive_nowait()
        for index, (future, callback) in enumerate(self._futures):
            if future.done():
                del self._futures[index]
                return callback, future
        return None

    async def select(self) -> None:
        """Block until a source is ready, then run its callback."""
        while True:
            ready = self._pop_ready()
            if ready is not None:
                callback, argument = ready
                result = callback(argument)
                if inspect.isawaitable(result):
                    await result
                return

            if self._default is not None:
                result = self._default()
                if inspect.isawaitable(result):
                    await result
                return

            # No await between the readiness check and clear(), so a wakeup
            # cannot be lost
            self._wakeup.clear()
            await self._wakeup.wait()

    def close(self) -> None:
        """Detach from every channel. Pending futures are left untouched."""
        for channel, _ in self._receives:
            channel.unsubscribe(self._wakeup)
        self._receives.clear()


__all__ = ["Selector"]
