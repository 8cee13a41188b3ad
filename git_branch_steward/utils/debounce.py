"""Per-key debouncing on the asyncio event loop."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Hashable, Set

from git_branch_steward.logging_config import get_logger

logger = get_logger(__name__)


class KeyedDebouncer:
    """Collapse bursts of triggers into one call per key.

    Each ``trigger(key)`` cancels the key's pending timer and schedules a new
    one ``delay`` seconds out with ``loop.call_later``. When a timer fires the
    callback runs as a task to completion; a later trigger never cancels a
    running call. Calls for the same key are serialized, calls for different
    keys are independent.
    """

    def __init__(self, delay: float, callback: Callable[..., Awaitable[Any]]):
        self.delay = delay
        self._callback = callback
        self._handles: Dict[Hashable, asyncio.TimerHandle] = {}
        self._running: Dict[Hashable, asyncio.Task] = {}
        self._tasks: Set[asyncio.Task] = set()

    def trigger(self, key: Hashable, *args) -> None:
        """(Re)start the timer for ``key``. Must be called from the event loop."""
        loop = asyncio.get_running_loop()
        self.cancel(key)
        self._handles[key] = loop.call_later(self.delay, self._fire, key, args)

    def pending(self, key: Hashable) -> bool:
        return key in self._handles

    def cancel(self, key: Hashable) -> None:
        """Cancel the pending timer for ``key``; a running call is left alone."""
        handle = self._handles.pop(key, None)
        if handle is not None:
            handle.cancel()

    def _fire(self, key: Hashable, args: tuple) -> None:
        self._handles.pop(key, None)
        previous = self._running.get(key)
        task = asyncio.ensure_future(self._run(key, args, previous))
        self._running[key] = task
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._task_done(key, t))

    async def _run(self, key: Hashable, args: tuple, previous) -> None:
        if previous is not None and not previous.done():
            await asyncio.gather(previous, return_exceptions=True)
        await self._callback(key, *args)

    def _task_done(self, key: Hashable, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if self._running.get(key) is task:
            del self._running[key]
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Debounced call for {key} failed: {error}", exc_info=error)

    async def drain(self) -> None:
        """Wait until no timer is pending and no call is running."""
        while self._handles or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(min(self.delay, 0.05))

    def close(self) -> None:
        """Cancel every pending timer.

        Calls that already started are left to finish; await ``drain()`` to
        wait for them.
        """
        for key in list(self._handles):
            self.cancel(key)
