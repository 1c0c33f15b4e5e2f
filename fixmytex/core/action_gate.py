"""Serializes everything that touches the clipboard and sends keystrokes.

The gate owns one asyncio.Lock bound to the action loop. Hotkey actions are
submitted to that loop from the hook/timer threads; callers already running
on another loop (the API server) hop over to the action loop and await the
result there, so both paths queue behind the same lock.
"""

import asyncio
from concurrent.futures import Future
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")

Action = Callable[[], Awaitable[T]]


class ActionGate:
    """One-at-a-time runner for clipboard actions."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self.loop = loop
        self._lock = asyncio.Lock()

    def submit(self, action: Action) -> Future:
        """Schedule ``action`` on the gate's loop. Safe to call from any thread."""
        if self.loop is None:
            raise RuntimeError("ActionGate has no action loop to submit to")
        return asyncio.run_coroutine_threadsafe(self.run(action), self.loop)

    async def run(self, action: Action) -> T:
        """Run ``action`` under the lock. Must be awaited on the gate's loop."""
        async with self._lock:
            return await action()

    async def run_from_any_loop(self, action: Action) -> T:
        """Run ``action`` under the lock from whichever loop is current.

        Exceptions raised by ``action`` propagate to the caller.
        """
        if self.loop is None or asyncio.get_running_loop() is self.loop:
            return await self.run(action)
        return await asyncio.wrap_future(self.submit(action))
