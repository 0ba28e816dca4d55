"""Callback delivery for asynchronous fetches.

:class:`CDACallback` is the object handed to the callback forms of the
fetch API (``client.fetch_space(callback)``, ``query.all(callback)``, ...).
:func:`subscribe_async` starts the pipeline on the client's loop and hands
the outcome to the callback on the client's callback executor.

The default executor, :class:`InlineExecutor`, runs callbacks immediately
on whichever thread completed the fetch.  Pass a
:class:`concurrent.futures.ThreadPoolExecutor` (or any object with the
``Executor.submit`` signature, such as a GUI toolkit adapter) to
:meth:`~cdaclient.client.ClientBuilder.set_callback_executor` to choose the
delivery thread.
"""

from __future__ import annotations

import concurrent.futures
import threading
from typing import TYPE_CHECKING, Any, Callable, Generic, Optional, TypeVar

from cdaclient.output import get_output

if TYPE_CHECKING:
    from cdaclient.client import CDAClient
    from cdaclient.single import Single

T = TypeVar("T")
C = TypeVar("C", bound="CDACallback[Any]")


class InlineExecutor(concurrent.futures.Executor):
    """Executor that runs each task immediately in the submitting thread.

    The returned future is already complete; an exception raised by the
    task is stored on it rather than propagated.
    """

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> concurrent.futures.Future[Any]:
        future: concurrent.futures.Future[Any] = concurrent.futures.Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


class CDACallback(Generic[T]):
    """Receives the outcome of one asynchronous fetch.

    Subclass and override :meth:`on_success`; override :meth:`on_failure`
    to handle errors (the default reports them through the output system).
    After :meth:`cancel` neither method is called.

    Example::

        class PrintName(CDACallback[CDASpace]):
            def on_success(self, result):
                print(result.name)

        client.fetch_space(PrintName())
    """

    def __init__(self) -> None:
        self._cancelled = threading.Event()
        self._future: Optional[concurrent.futures.Future[Any]] = None

    def on_success(self, result: T) -> None:
        """Called with the fetched value."""

    def on_failure(self, error: BaseException) -> None:
        """Called with the error that ended the fetch."""
        get_output().error(f"{type(error).__name__}: {error}")

    def cancel(self) -> None:
        """Stop delivery and cancel the underlying fetch if it is still running."""
        self._cancelled.set()
        if self._future is not None:
            self._future.cancel()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def future(self) -> Optional[concurrent.futures.Future[Any]]:
        """Future of the running fetch, once subscribed."""
        return self._future

    def _deliver_success(self, result: T) -> None:
        if not self.is_cancelled:
            self.on_success(result)

    def _deliver_failure(self, error: BaseException) -> None:
        if not self.is_cancelled:
            self.on_failure(error)


def subscribe_async(single: Single[T], callback: C, client: CDAClient) -> C:
    """Run *single* in the background and report to *callback*.

    Delivery happens on ``client.callback_executor``.

    Returns:
        The same *callback*, for chaining.
    """
    future = single.run_on(client.callback_executor).subscribe(
        callback._deliver_success, callback._deliver_failure
    )
    callback._future = future
    if callback.is_cancelled:
        future.cancel()
    return callback
