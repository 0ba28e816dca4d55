"""Transport contract consumed by the fetch layer.

The fetch layer depends only on this protocol.  :class:`~cdaclient.transport.http.HttpTransport`
is the production implementation; tests and embedding applications can
supply any object with the same coroutine methods through
:meth:`~cdaclient.client.ClientBuilder.set_transport`.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

Payload = dict[str, Any]
"""A decoded JSON object as returned by the delivery API."""


@runtime_checkable
class Transport(Protocol):
    """Issues GET requests for a space's resources and returns decoded payloads.

    Implementations raise :class:`~cdaclient.exceptions.TransportError`
    subclasses for failed requests and
    :class:`~cdaclient.exceptions.MalformedResourceError` for bodies that
    are not a JSON object.  Timeouts and retries are theirs to apply.
    """

    async def fetch_space(self, space_id: str) -> Payload:
        """GET the space descriptor."""
        ...

    async def fetch_collection(
        self,
        space_id: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
    ) -> Payload:
        """GET a collection (``content_types``, ``entries``, ``assets``, ``sync``)."""
        ...

    async def fetch_single(self, space_id: str, path: str, resource_id: str) -> Payload:
        """GET one resource of a collection by id."""
        ...

    async def aclose(self) -> None:
        """Release connections held by the transport."""
        ...
