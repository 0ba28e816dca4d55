"""Background event loop that runs every fetch pipeline of a client.

Each :class:`~cdaclient.client.CDAClient` owns one :class:`LoopScheduler`.
Running all pipelines on one loop keeps the HTTP connection pool bound to a
single loop and makes the pending-request registry loop-local, while
callers stay free to use any thread or any event loop of their own.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
from typing import Any, Coroutine, Optional, TypeVar

T = TypeVar("T")


class LoopScheduler:
    """Owns an asyncio event loop running on a daemon thread.

    The loop is started lazily on first use and stopped by :meth:`close`.

    Args:
        name: Thread name, visible in debuggers and thread dumps.
    """

    def __init__(self, name: str = "cdaclient-loop") -> None:
        self._name = name
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """The running loop, started on first access."""
        with self._lock:
            if self._loop is None:
                self._start()
            assert self._loop is not None
            return self._loop

    @property
    def running(self) -> bool:
        return self._loop is not None and self._loop.is_running()

    def submit(self, coro: Coroutine[Any, Any, T]) -> concurrent.futures.Future[T]:
        """Schedule *coro* on the loop and return a thread-safe future for it."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def in_loop(self) -> bool:
        """Whether the caller is executing on this scheduler's loop."""
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def close(self, timeout: float = 5.0) -> None:
        """Cancel outstanding tasks, stop the loop and join its thread.

        Safe to call more than once.
        """
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
        if loop is None or thread is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        if threading.current_thread() is not thread:
            thread.join(timeout)

    def _start(self) -> None:
        loop = asyncio.new_event_loop()
        ready = threading.Event()
        thread = threading.Thread(
            target=self._run, args=(loop, ready), name=self._name, daemon=True
        )
        thread.start()
        ready.wait()
        self._loop = loop
        self._thread = thread

    @staticmethod
    def _run(loop: asyncio.AbstractEventLoop, ready: threading.Event) -> None:
        asyncio.set_event_loop(loop)
        loop.call_soon(ready.set)
        try:
            loop.run_forever()
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()
