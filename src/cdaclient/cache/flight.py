"""Pending-request registry that collapses concurrent fetches of one key.

A naive "check the cache, else fetch" sequence lets every caller that
arrives before the first response issue its own request.  :class:`SingleFlight`
keeps the in-flight task per key so that later callers await the same task
instead.

The registry is loop-local: every coroutine that touches it must run on the
same event loop, which :class:`~cdaclient.scheduler.LoopScheduler`
guarantees for a client.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Hashable, TypeVar

T = TypeVar("T")


class SingleFlight:
    """Deduplicate concurrent coroutines by key.

    Each waiter awaits the shared task through :func:`asyncio.shield`, so a
    cancelled waiter never cancels the fetch other waiters depend on.  The
    key is released as soon as its task finishes, successfully or not; a
    failed fetch is therefore never replayed to later callers.

    Example::

        flight = SingleFlight()
        space = await flight.do("space", fetch_space)
    """

    def __init__(self) -> None:
        self._pending: dict[Hashable, asyncio.Future[Any]] = {}

    async def do(
        self,
        key: Hashable,
        fn: Callable[[], Awaitable[T]],
        fresh: bool = False,
    ) -> T:
        """Run *fn* for *key*, or join the run already in flight.

        Args:
            key: Identity of the fetch (for example a cache slot).
            fn: Zero-argument coroutine function performing the fetch.
            fresh: Start a new run even when one is in flight.  The new run
                becomes the one later callers join.

        Returns:
            The result of the shared run.
        """
        task = self._pending.get(key)
        if task is None or fresh:
            task = asyncio.ensure_future(fn())
            self._pending[key] = task
            task.add_done_callback(lambda done, key=key: self._release(key, done))
        return await asyncio.shield(task)

    def in_flight(self, key: Hashable) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def _release(self, key: Hashable, task: asyncio.Future[Any]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        # Mark the outcome as retrieved when every waiter has gone away.
        if not task.cancelled():
            task.exception()
