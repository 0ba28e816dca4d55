"""Client facade and builder.

:class:`CDAClient` is the entry point of the library.  It wires one
transport, one cache, one resource factory and one fetch orchestrator
together, all bound to the client's own :class:`~cdaclient.scheduler.LoopScheduler`.

Clients are created through :class:`ClientBuilder`, which validates the
space id and access token before anything else is constructed::

    client = (
        CDAClient.builder()
        .set_space("cfexampleapi")
        .set_token("b4c0n73n7fu1")
        .build()
    )

The endpoint is chosen by :func:`resolve_endpoint`: the preview endpoint
when preview mode is on, an explicit endpoint when one was set, otherwise
production.  :meth:`ClientBuilder.set_endpoint` and
:meth:`ClientBuilder.preview` override each other, so the last call wins.

See Also:
    :mod:`cdaclient.orchestrator`: The cache-or-fetch policy behind every call.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
from types import TracebackType
from typing import Any, Optional, TypeVar, Union

import httpx

from cdaclient.cache import ResourceCache
from cdaclient.callbacks import CDACallback, InlineExecutor, subscribe_async
from cdaclient.constants import ENDPOINT_PREVIEW, ENDPOINT_PROD
from cdaclient.exceptions import ConfigurationError
from cdaclient.factory import ResourceFactory
from cdaclient.models import (
    CDAResource,
    CDASpace,
    ClientConfig,
    LogLevel,
    RequestConfig,
    SynchronizedSpace,
)
from cdaclient.orchestrator import FetchOrchestrator
from cdaclient.output import get_output
from cdaclient.query import FetchQuery, ObserveQuery
from cdaclient.scheduler import LoopScheduler
from cdaclient.single import Single
from cdaclient.sync import SyncQuery
from cdaclient.transport import HttpTransport, Transport

T = TypeVar("T", bound=CDAResource)
C = TypeVar("C", bound=CDACallback[Any])


def resolve_endpoint(config: ClientConfig) -> str:
    """Base URL for *config*: preview, explicit endpoint, or production."""
    if config.preview:
        return ENDPOINT_PREVIEW
    if config.endpoint:
        return config.endpoint.rstrip("/")
    return ENDPOINT_PROD


class ClientBuilder:
    """Collects client settings and produces a validated :class:`CDAClient`."""

    def __init__(self) -> None:
        self._space_id: Optional[str] = None
        self._access_token: Optional[str] = None
        self._endpoint: Optional[str] = None
        self._preview = False
        self._log_level = LogLevel.NONE
        self._request = RequestConfig()
        self._http_client: Optional[httpx.AsyncClient] = None
        self._transport: Optional[Transport] = None
        self._callback_executor: Optional[concurrent.futures.Executor] = None

    def set_space(self, space_id: str) -> ClientBuilder:
        self._space_id = space_id
        return self

    def set_token(self, access_token: str) -> ClientBuilder:
        self._access_token = access_token
        return self

    def set_endpoint(self, endpoint: str) -> ClientBuilder:
        """Use a custom endpoint; turns preview mode off."""
        self._endpoint = endpoint
        self._preview = False
        return self

    def preview(self) -> ClientBuilder:
        """Use the preview endpoint; discards any custom endpoint."""
        self._preview = True
        self._endpoint = None
        return self

    def set_log_level(self, log_level: Union[LogLevel, str]) -> ClientBuilder:
        self._log_level = LogLevel(log_level)
        return self

    def set_request_config(self, request: RequestConfig) -> ClientBuilder:
        self._request = request
        return self

    def set_http_client(self, http_client: httpx.AsyncClient) -> ClientBuilder:
        """Use a pre-built :class:`httpx.AsyncClient` for the default transport."""
        self._http_client = http_client
        return self

    def set_transport(self, transport: Transport) -> ClientBuilder:
        """Replace the HTTP transport altogether (tests, custom protocols)."""
        self._transport = transport
        return self

    def set_callback_executor(self, executor: concurrent.futures.Executor) -> ClientBuilder:
        """Executor on which callback results are delivered."""
        self._callback_executor = executor
        return self

    def build(self) -> CDAClient:
        """Validate the settings and create the client.

        Raises:
            ConfigurationError: If the space id or the access token is missing.
        """
        if not self._space_id:
            raise ConfigurationError("Space ID must be provided.")
        if not self._access_token:
            raise ConfigurationError("Access token must be provided.")
        config = ClientConfig(
            space_id=self._space_id,
            access_token=self._access_token,
            endpoint=self._endpoint,
            preview=self._preview,
            log_level=self._log_level,
            request=self._request,
        )
        return CDAClient(
            config,
            transport=self._transport,
            http_client=self._http_client,
            callback_executor=self._callback_executor,
        )


class CDAClient:
    """Client for one space of the Content Delivery API.

    Args:
        config: Validated configuration.
        transport: Custom transport.  Defaults to :class:`HttpTransport`
            against :func:`resolve_endpoint`.
        http_client: :class:`httpx.AsyncClient` for the default transport.
        callback_executor: Where callback results are delivered.  Defaults
            to :class:`~cdaclient.callbacks.InlineExecutor`.

    The client is a context manager; leaving the block calls :meth:`close`.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[Transport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        callback_executor: Optional[concurrent.futures.Executor] = None,
    ) -> None:
        self.config = config
        self.space_id = config.space_id
        self.cache = ResourceCache()
        self.scheduler = LoopScheduler()
        self.transport: Transport = transport or HttpTransport(
            config, resolve_endpoint(config), http_client
        )
        self.factory = ResourceFactory()
        self.orchestrator = FetchOrchestrator(
            self.space_id, self.transport, self.cache, self.factory, self.scheduler
        )
        self.callback_executor = callback_executor or InlineExecutor()
        self._closing: Optional[asyncio.Future[None]] = None

    @staticmethod
    def builder() -> ClientBuilder:
        return ClientBuilder()

    @property
    def endpoint(self) -> str:
        return resolve_endpoint(self.config)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def fetch(self, resource_type: type[T]) -> FetchQuery[T]:
        """Blocking/callback query for entries, assets or content types."""
        return FetchQuery(resource_type, self)

    def observe(self, resource_type: type[T]) -> ObserveQuery[T]:
        """Query returning cold :class:`~cdaclient.single.Single` values."""
        return ObserveQuery(resource_type, self)

    def sync(
        self,
        sync_token: Union[str, SynchronizedSpace, None] = None,
        space: Optional[SynchronizedSpace] = None,
    ) -> SyncQuery:
        """Start a sync run.

        ``sync()`` is an initial sync, ``sync(token)`` continues from a
        token and ``sync(snapshot)`` continues from a previous result.  When
        a token and a snapshot are both passed the token wins.
        """
        if isinstance(sync_token, SynchronizedSpace):
            if space is None:
                space = sync_token
            sync_token = None
        return SyncQuery(self, sync_token=sync_token, space=space)

    # ------------------------------------------------------------------ #
    # Space
    # ------------------------------------------------------------------ #

    def observe_space(self) -> Single[CDASpace]:
        """The space descriptor, always re-fetched from the API."""
        return self.orchestrator.resolve_space(invalidate=True)

    def fetch_space(self, callback: Optional[C] = None) -> Union[CDASpace, C]:
        """Fetch the space descriptor, refreshing the cached one.

        Blocks and returns the space, or runs in the background and returns
        *callback* when one is given.
        """
        single = self.observe_space()
        if callback is None:
            return single.blocking()
        return subscribe_async(single, callback, self)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Close the transport and stop the client's loop thread.

        Called from the loop thread itself (a callback delivered inline),
        the shutdown is scheduled on the loop and this returns at once.
        """
        if self.scheduler.in_loop():
            self._closing = asyncio.ensure_future(self._close_in_loop())
            return
        if self.scheduler.running:
            try:
                self.scheduler.submit(self.transport.aclose()).result(timeout=5.0)
            except Exception as exc:
                get_output().debug(f"Error closing transport: {exc}")
        self.scheduler.close()

    async def _close_in_loop(self) -> None:
        try:
            await self.transport.aclose()
        except Exception as exc:
            get_output().debug(f"Error closing transport: {exc}")
        self.scheduler.close()

    def __enter__(self) -> CDAClient:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"CDAClient(space_id={self.space_id!r}, endpoint={self.endpoint!r})"
