"""Cache-or-fetch decisions for the metadata every response depends on.

:class:`FetchOrchestrator` owns the policy for the two cached slots:

* ``invalidate=False`` -- return the cached value without network access;
  on an empty slot, fetch once and let concurrent callers join that fetch.
* ``invalidate=True`` -- always issue exactly one fetch, which replaces the
  slot on success and becomes the fetch later non-forcing callers join.

A slot is only written after its fetch and decode both succeeded, so a
failure never replaces a good cached value.  Transport errors pass through
unchanged and nothing is retried here.

Every operation returns a cold :class:`~cdaclient.single.Single`.
"""

from __future__ import annotations

import asyncio
from typing import Mapping

from cdaclient.cache import CacheSlot, ResourceCache, SingleFlight
from cdaclient.constants import PATH_CONTENT_TYPES
from cdaclient.exceptions import NotFoundError
from cdaclient.factory import ResourceFactory
from cdaclient.models import CDAContentType, CDASpace
from cdaclient.output import get_output
from cdaclient.scheduler import LoopScheduler
from cdaclient.single import Single
from cdaclient.transport.base import Payload, Transport


class FetchOrchestrator:
    """Populates and serves the :class:`~cdaclient.cache.ResourceCache` of one client.

    Args:
        space_id: Space every request is made against.
        transport: Network collaborator.
        cache: The client's cache; this orchestrator is its only writer.
        factory: Decoder for payloads.
        scheduler: Loop the returned Singles run on.
    """

    def __init__(
        self,
        space_id: str,
        transport: Transport,
        cache: ResourceCache,
        factory: ResourceFactory,
        scheduler: LoopScheduler,
    ) -> None:
        self._space_id = space_id
        self._transport = transport
        self._cache = cache
        self._factory = factory
        self._scheduler = scheduler
        self._flight = SingleFlight()

    @property
    def cache(self) -> ResourceCache:
        return self._cache

    # ------------------------------------------------------------------ #
    # Space
    # ------------------------------------------------------------------ #

    def resolve_space(self, invalidate: bool = False) -> Single[CDASpace]:
        """Return the space descriptor, from the cache unless *invalidate* is set."""

        async def run() -> CDASpace:
            if not invalidate:
                space = self._cache.space
                if space is not None:
                    get_output().debug(f"Cache hit: space {space.id}")
                    return space
            return await self._flight.do(CacheSlot.SPACE, self._fetch_space, fresh=invalidate)

        return Single(run, self._scheduler)

    async def _fetch_space(self) -> CDASpace:
        payload = await self._transport.fetch_space(self._space_id)
        space = self._factory.decode_space(payload)
        self._cache.set(CacheSlot.SPACE, space)
        get_output().debug(f"Cached space {space.id}")
        return space

    # ------------------------------------------------------------------ #
    # Content types
    # ------------------------------------------------------------------ #

    def resolve_content_types(
        self, invalidate: bool = False
    ) -> Single[Mapping[str, CDAContentType]]:
        """Return the content-type dictionary, from the cache unless *invalidate* is set.

        A fetched dictionary replaces the cached one entirely.
        """

        async def run() -> Mapping[str, CDAContentType]:
            if not invalidate:
                types = self._cache.content_types
                if types is not None:
                    get_output().debug(f"Cache hit: {len(types)} content types")
                    return types
            return await self._flight.do(
                CacheSlot.CONTENT_TYPES, self._fetch_content_types, fresh=invalidate
            )

        return Single(run, self._scheduler)

    async def _fetch_content_types(self) -> Mapping[str, CDAContentType]:
        payload = await self._transport.fetch_collection(self._space_id, PATH_CONTENT_TYPES)
        types = self._factory.content_type_map(payload)
        self._cache.set(CacheSlot.CONTENT_TYPES, types)
        get_output().debug(f"Cached {len(types)} content types")
        return self._cache.content_types

    def resolve_content_type(self, content_type_id: str) -> Single[CDAContentType]:
        """Return one content type, fetching and adding it to the dictionary on a miss.

        A miss adds exactly one entry; every other cached type is kept as
        is.  When no dictionary has been fetched yet, the full dictionary
        is resolved first.

        Raises:
            NotFoundError: If the API does not know *content_type_id*.
        """

        async def run() -> CDAContentType:
            if self._cache.content_types is None:
                await self.resolve_content_types(False)
            content_type = self._cache.content_type(content_type_id)
            if content_type is not None:
                return content_type
            return await self._flight.do(
                (CacheSlot.CONTENT_TYPES, content_type_id),
                lambda: self._fetch_content_type(content_type_id),
            )

        return Single(run, self._scheduler)

    async def _fetch_content_type(self, content_type_id: str) -> CDAContentType:
        payload = await self._transport.fetch_single(
            self._space_id, PATH_CONTENT_TYPES, content_type_id
        )
        content_type = self._factory.decode_content_type(payload)
        self._cache.put_content_type(content_type)
        get_output().debug(f"Added content type {content_type.id} to cache")
        return content_type

    # ------------------------------------------------------------------ #
    # Composites
    # ------------------------------------------------------------------ #

    def resolve_all(self, invalidate: bool = False) -> Single[ResourceCache]:
        """Resolve the space, then the content types, and yield the cache.

        The content-type step never starts when the space step fails.
        """
        return (
            self.resolve_space(invalidate)
            .flat_map(lambda _space: self.resolve_content_types(invalidate))
            .map(lambda _types: self._cache)
        )

    def resolve_referenced_types(self, payload: Payload) -> Single[Mapping[str, CDAContentType]]:
        """Make sure every content type referenced by *payload*'s entries is cached.

        Types absent from the API are skipped; the factory then flags the
        entries that use them.  Other errors propagate.
        """

        async def run() -> Mapping[str, CDAContentType]:
            if self._cache.content_types is None:
                await self.resolve_content_types(False)
            known = self._cache.content_types or {}
            missing = sorted(self._factory.referenced_content_type_ids(payload) - set(known))
            if missing:
                get_output().debug(f"Resolving missing content types: {', '.join(missing)}")
                results = await asyncio.gather(
                    *(self.resolve_content_type(type_id).run() for type_id in missing),
                    return_exceptions=True,
                )
                for type_id, result in zip(missing, results):
                    if isinstance(result, NotFoundError):
                        get_output().warning(f"Content type {type_id} not found; entries flagged")
                    elif isinstance(result, BaseException):
                        raise result
            return self._cache.content_types or {}

        return Single(run, self._scheduler)
