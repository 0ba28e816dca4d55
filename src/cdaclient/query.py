"""Fetch and observe queries for entries, assets and content types.

``client.observe(CDAEntry)`` returns an :class:`ObserveQuery` whose methods
return cold :class:`~cdaclient.single.Single` values;
``client.fetch(CDAEntry)`` returns a :class:`FetchQuery` whose methods run
the same pipelines to completion, or hand them to a callback.

Every query first resolves the space and the content-type dictionary
through the cache (``resolve_all(False)``), fetches from the network, makes
sure the content types referenced by the result are known, then decodes.
Query parameters are passed to the API verbatim: ``where("fields.name",
"Nyan")`` becomes ``?fields.name=Nyan``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, Optional, TypeVar, Union

from cdaclient.callbacks import CDACallback, subscribe_async
from cdaclient.constants import PATH_ASSETS, PATH_CONTENT_TYPES, PATH_ENTRIES
from cdaclient.exceptions import InvalidUsageError, NotFoundError
from cdaclient.models import CDAArray, CDAAsset, CDAContentType, CDAEntry, CDAResource
from cdaclient.single import Single

if TYPE_CHECKING:
    from cdaclient.client import CDAClient

T = TypeVar("T", bound=CDAResource)
C = TypeVar("C", bound=CDACallback[Any])
Q = TypeVar("Q", bound="AbsQuery[Any]")

_PATHS: dict[type[CDAResource], str] = {
    CDAEntry: PATH_ENTRIES,
    CDAAsset: PATH_ASSETS,
    CDAContentType: PATH_CONTENT_TYPES,
}


def path_for(resource_type: type[CDAResource]) -> str:
    """Collection path of *resource_type*.

    Raises:
        InvalidUsageError: For types that have no collection (e.g. spaces).
    """
    try:
        return _PATHS[resource_type]
    except KeyError:
        raise InvalidUsageError(
            f"Cannot query resources of type {resource_type.__name__}"
        ) from None


class AbsQuery(Generic[T]):
    """Shared state of fetch and observe queries: resource type and parameters."""

    def __init__(self, resource_type: type[T], client: CDAClient) -> None:
        self._path = path_for(resource_type)
        self._type = resource_type
        self._client = client
        self._params: dict[str, Any] = {}

    @property
    def params(self) -> dict[str, Any]:
        return dict(self._params)

    def where(self: Q, key: str, value: Any) -> Q:
        """Add a query parameter; returns the query for chaining."""
        self._params[key] = value
        return self

    def limit(self: Q, count: int) -> Q:
        return self.where("limit", count)

    def skip(self: Q, count: int) -> Q:
        return self.where("skip", count)


class ObserveQuery(AbsQuery[T]):
    """Query whose results are cold :class:`~cdaclient.single.Single` values."""

    def all(self) -> Single[CDAArray]:
        """All resources matching the query parameters, as one page."""
        client = self._client
        params = self.params

        async def run() -> CDAArray:
            await client.orchestrator.resolve_all(False)
            payload = await client.transport.fetch_collection(client.space_id, self._path, params)
            types = await client.orchestrator.resolve_referenced_types(payload)
            return client.factory.decode_collection(payload, types)

        return Single(run, client.scheduler)

    def one(self, resource_id: str) -> Single[T]:
        """The resource with id *resource_id*.

        Entries and assets are looked up through the collection endpoint so
        that linked resources arrive in ``includes`` and get resolved.

        Raises:
            NotFoundError: If no resource has that id.
        """
        client = self._client

        if self._type is CDAContentType:

            async def run_single() -> T:
                await client.orchestrator.resolve_all(False)
                payload = await client.transport.fetch_single(
                    client.space_id, self._path, resource_id
                )
                return client.factory.decode_content_type(payload)

            return Single(run_single, client.scheduler)

        by_id: ObserveQuery[T] = ObserveQuery(self._type, client)
        by_id._params = {**self._params, "sys.id": resource_id}
        return by_id.all().map(lambda array: _first(array, self._type, resource_id))


def _first(array: CDAArray, resource_type: type[T], resource_id: str) -> T:
    for item in array.items:
        if isinstance(item, resource_type) and item.id == resource_id:
            return item
    raise NotFoundError(f"{resource_type.__name__} {resource_id!r} not found", 404)


class FetchQuery(AbsQuery[T]):
    """Query that blocks for its result, or delivers it to a callback."""

    def _observe(self) -> ObserveQuery[T]:
        query = ObserveQuery(self._type, self._client)
        query._params = self.params
        return query

    def all(self, callback: Optional[C] = None) -> Union[CDAArray, C]:
        """Fetch all matching resources.

        Args:
            callback: When given, the fetch runs in the background and the
                callback is returned immediately.
        """
        single = self._observe().all()
        if callback is None:
            return single.blocking()
        return subscribe_async(single, callback, self._client)

    def one(self, resource_id: str, callback: Optional[C] = None) -> Union[T, C]:
        """Fetch the resource with id *resource_id*; see :meth:`ObserveQuery.one`."""
        single = self._observe().one(resource_id)
        if callback is None:
            return single.blocking()
        return subscribe_async(single, callback, self._client)
