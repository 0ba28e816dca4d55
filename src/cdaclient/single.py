"""Cold, single-value asynchronous results.

A :class:`Single` describes a pipeline without running it.  Nothing touches
the network until someone subscribes, and every subscription runs the
pipeline again from the start.  Three ways to subscribe:

* ``await single`` -- from any event loop; the pipeline itself runs on the
  client's :class:`~cdaclient.scheduler.LoopScheduler`.
* :meth:`Single.blocking` -- suspends the calling thread.
* :meth:`Single.subscribe` -- delivers to callbacks on the executor chosen
  with :meth:`Single.run_on`.

Example::

    space = client.orchestrator.resolve_space()
    name = space.map(lambda s: s.name)
    print(name.blocking())
"""

from __future__ import annotations

import asyncio
import concurrent.futures
from typing import Any, Awaitable, Callable, Generator, Generic, Optional, TypeVar

from cdaclient.exceptions import InvalidUsageError
from cdaclient.output import get_output
from cdaclient.scheduler import LoopScheduler

T = TypeVar("T")
U = TypeVar("U")

SuccessHandler = Callable[[Any], Any]
FailureHandler = Callable[[BaseException], Any]


class Single(Generic[T]):
    """A lazily executed asynchronous computation yielding one value or one error.

    Args:
        factory: Zero-argument coroutine function producing the value.  It is
            invoked once per subscription.
        scheduler: Loop the computation runs on.
        delivery: Executor used by :meth:`subscribe` to run callbacks.  When
            ``None``, callbacks run inline on the loop thread.
    """

    def __init__(
        self,
        factory: Callable[[], Awaitable[T]],
        scheduler: LoopScheduler,
        delivery: Optional[concurrent.futures.Executor] = None,
    ) -> None:
        self._factory = factory
        self._scheduler = scheduler
        self._delivery = delivery

    @classmethod
    def just(cls, value: T, scheduler: LoopScheduler) -> Single[T]:
        """A Single that yields *value* without doing any work."""

        async def run() -> T:
            return value

        return cls(run, scheduler)

    # ------------------------------------------------------------------ #
    # Composition
    # ------------------------------------------------------------------ #

    def map(self, fn: Callable[[T], U]) -> Single[U]:
        """Transform the value once it is available; errors pass through."""
        source = self._factory

        async def run() -> U:
            return fn(await source())

        return Single(run, self._scheduler, self._delivery)

    def flat_map(self, fn: Callable[[T], Single[U]]) -> Single[U]:
        """Chain another Single after this one.

        *fn* is only called after this Single succeeded, so a failure here
        prevents the next step from ever starting.
        """
        source = self._factory

        async def run() -> U:
            value = await source()
            return await fn(value).run()

        return Single(run, self._scheduler, self._delivery)

    def run_on(self, executor: concurrent.futures.Executor) -> Single[T]:
        """Return a copy that delivers :meth:`subscribe` callbacks on *executor*."""
        return Single(self._factory, self._scheduler, executor)

    # ------------------------------------------------------------------ #
    # Subscription
    # ------------------------------------------------------------------ #

    def run(self) -> Awaitable[T]:
        """Start one execution on the current loop.

        Only meaningful from coroutines already running on the scheduler's
        loop; use ``await single`` everywhere else.
        """
        return self._factory()

    def __await__(self) -> Generator[Any, None, T]:
        if self._scheduler.in_loop():
            return self._factory().__await__()
        future = self._scheduler.submit(self._factory())
        return asyncio.wrap_future(future).__await__()

    def blocking(self, timeout: Optional[float] = None) -> T:
        """Run the pipeline and wait for its value on the calling thread.

        Args:
            timeout: Seconds to wait before raising
                :class:`concurrent.futures.TimeoutError`.  ``None`` waits
                indefinitely.

        Raises:
            InvalidUsageError: When called from the scheduler's own loop,
                where waiting would deadlock.
        """
        if self._scheduler.in_loop():
            raise InvalidUsageError(
                "Blocking call made from the client's event loop; await the value instead"
            )
        future = self._scheduler.submit(self._factory())
        try:
            return future.result(timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise

    def subscribe(
        self,
        on_success: SuccessHandler,
        on_failure: Optional[FailureHandler] = None,
    ) -> concurrent.futures.Future[T]:
        """Run the pipeline in the background and deliver its outcome.

        Exactly one of the handlers is called, through the delivery
        executor, unless the returned future is cancelled first.

        Returns:
            The future of the running pipeline.  Cancelling it cancels the
            pipeline and suppresses delivery.
        """
        future = self._scheduler.submit(self._factory())
        delivery = self._delivery

        def deliver(done: concurrent.futures.Future[T]) -> None:
            if done.cancelled():
                return
            error = done.exception()
            if error is None:
                _dispatch(delivery, on_success, done.result())
            elif on_failure is not None:
                _dispatch(delivery, on_failure, error)

        future.add_done_callback(deliver)
        return future


def _dispatch(
    executor: Optional[concurrent.futures.Executor],
    handler: Callable[[Any], Any],
    argument: Any,
) -> None:
    if executor is None:
        try:
            handler(argument)
        except Exception as exc:
            _report_handler_error(exc)
        return
    executor.submit(handler, argument).add_done_callback(_report_failed_delivery)


def _report_failed_delivery(future: concurrent.futures.Future[Any]) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        _report_handler_error(error)


def _report_handler_error(error: BaseException) -> None:
    get_output().error(f"Callback raised {type(error).__name__}: {error}")
