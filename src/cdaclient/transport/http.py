"""Asynchronous HTTP transport for the Content Delivery API.

This module provides :class:`HttpTransport`, the production implementation
of :class:`~cdaclient.transport.base.Transport`.  It wraps
:class:`httpx.AsyncClient` and layers on:

- **Auth injection** -- the access token is sent as
  ``Authorization: Bearer <token>`` on every request.
- **Request logging** -- driven by :class:`~cdaclient.models.LogLevel`,
  written to stderr through :mod:`cdaclient.output`.
- **Retry with backoff** -- optional, on 5xx and network errors with
  exponential delay (1 s, 2 s, 4 s, ...).
- **Error mapping** -- status codes become
  :class:`~cdaclient.exceptions.TransportError` subclasses.

The underlying :class:`httpx.AsyncClient` is created lazily, on the loop
that issues the first request.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from cdaclient import __version__
from cdaclient.constants import PATH_SPACES, USER_AGENT
from cdaclient.exceptions import (
    AuthError,
    ConnectionError_,
    NotFoundError,
    RateLimitError,
    ServerError,
)
from cdaclient.models import ClientConfig, LogLevel
from cdaclient.output import get_output
from cdaclient.transport.base import Payload
from cdaclient.transport.response import decode_payload, error_message


class HttpTransport:
    """GET-only HTTP transport bound to one endpoint and access token.

    Args:
        config: Client configuration (token, log level, request settings).
        endpoint: Base URL, already resolved by
            :func:`~cdaclient.client.resolve_endpoint`.
        http_client: Optional pre-built :class:`httpx.AsyncClient` (custom
            proxies, mock transports, ...).  Requests use absolute URLs, so
            it needs no ``base_url``.  A client passed in is not closed by
            :meth:`aclose`.

    Example::

        transport = HttpTransport(config, "https://cdn.contentful.com")
        payload = await transport.fetch_collection("abc", "entries", {"limit": 10})
    """

    def __init__(
        self,
        config: ClientConfig,
        endpoint: str,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._endpoint = endpoint.rstrip("/")
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def endpoint(self) -> str:
        return self._endpoint

    # ------------------------------------------------------------------ #
    # Transport protocol
    # ------------------------------------------------------------------ #

    async def fetch_space(self, space_id: str) -> Payload:
        return await self._get(f"/{PATH_SPACES}/{space_id}")

    async def fetch_collection(
        self,
        space_id: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
    ) -> Payload:
        return await self._get(f"/{PATH_SPACES}/{space_id}/{path}", params)

    async def fetch_single(self, space_id: str, path: str, resource_id: str) -> Payload:
        return await self._get(f"/{PATH_SPACES}/{space_id}/{path}/{resource_id}")

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.access_token}",
            "User-Agent": f"{USER_AGENT}/{__version__}",
            "Accept": "application/json",
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.request.timeout,
                follow_redirects=True,
            )
        return self._client

    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Payload:
        url = f"{self._endpoint}{path}"
        headers = self._headers()
        self._log_request(url, headers, params)
        response = await self._execute_with_retry(url, headers, params or {})
        self._log_response(response)
        self._map_response_error(response)
        return decode_payload(response)

    async def _execute_with_retry(
        self,
        url: str,
        headers: dict[str, str],
        params: dict[str, Any],
    ) -> httpx.Response:
        """GET *url*, retrying on 5xx and network errors up to ``max_retries`` times.

        The delay doubles each attempt: 1 s, 2 s, 4 s, ...
        """
        client = self._get_client()
        max_retries = self._config.request.max_retries
        output = get_output()

        for attempt in range(max_retries + 1):
            try:
                response = await client.get(url, headers=headers, params=params)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt
                    output.debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection failed after {max_retries + 1} attempts: {exc}"
                ) from exc

            if response.status_code >= 500 and attempt < max_retries:
                delay = 2 ** attempt
                output.debug(
                    f"Server error {response.status_code}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                await asyncio.sleep(delay)
                continue
            return response

        raise ServerError("Request failed after all retries")  # pragma: no cover

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return
        message = error_message(response)
        if status in (401, 403):
            raise AuthError(message, status)
        if status == 404:
            raise NotFoundError(message, status)
        if status == 429:
            raise RateLimitError(message, status)
        raise ServerError(message, status)

    def _log_request(
        self,
        url: str,
        headers: dict[str, str],
        params: Optional[dict[str, Any]],
    ) -> None:
        level = self._config.log_level
        if level is LogLevel.NONE:
            return
        output = get_output()
        query = "&".join(f"{k}={v}" for k, v in (params or {}).items())
        output.info(f"---> GET {url}{'?' + query if query else ''}")
        if level in (LogLevel.HEADERS, LogLevel.FULL):
            for name, value in headers.items():
                if name.lower() == "authorization":
                    value = "Bearer ***"
                output.info(f"{name}: {value}")

    def _log_response(self, response: httpx.Response) -> None:
        level = self._config.log_level
        if level is LogLevel.NONE:
            return
        output = get_output()
        output.info(f"<--- HTTP {response.status_code} {response.request.url}")
        if level in (LogLevel.HEADERS, LogLevel.FULL):
            for name, value in response.headers.items():
                output.info(f"{name}: {value}")
        if level is LogLevel.FULL and response.content:
            output.info(response.text)
