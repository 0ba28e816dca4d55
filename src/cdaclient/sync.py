"""Synchronization against the space's append-only change stream.

A :class:`SyncQuery` starts from one of three seeds:

* nothing -- an initial sync that returns every published resource;
* a sync token -- only the changes since that cursor;
* a :class:`~cdaclient.models.SynchronizedSpace` from an earlier run --
  the changes since its token, merged into its resources.

When both a token and a snapshot are supplied the token wins and the
snapshot is dropped.

Sync responses are paged: the query follows ``nextPageUrl`` until the API
answers with a ``nextSyncUrl``, which carries the token for the next run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional, TypeVar, Union

from cdaclient.callbacks import CDACallback, subscribe_async
from cdaclient.constants import PARAM_INITIAL, PARAM_SYNC_TOKEN, PATH_SYNC
from cdaclient.exceptions import MalformedResourceError
from cdaclient.factory import ResourceFactory
from cdaclient.models import (
    CDAAsset,
    CDAContentType,
    CDADeletedResource,
    CDAEntry,
    SynchronizedSpace,
    token_from_url,
)
from cdaclient.single import Single
from cdaclient.transport.base import Payload

if TYPE_CHECKING:
    from cdaclient.client import CDAClient

C = TypeVar("C", bound=CDACallback[Any])


class SyncQuery:
    """One synchronization run, seeded from nothing, a token, or a snapshot.

    Args:
        client: Client to run against.
        sync_token: Cursor from a previous run.  Takes precedence over
            *space*.
        space: Snapshot from a previous run to continue from.
    """

    def __init__(
        self,
        client: CDAClient,
        sync_token: Optional[str] = None,
        space: Optional[SynchronizedSpace] = None,
    ) -> None:
        if sync_token is not None:
            space = None
        elif space is not None:
            sync_token = space.sync_token
        self._client = client
        self._sync_token = sync_token
        self._space = space

    @property
    def sync_token(self) -> Optional[str]:
        return self._sync_token

    @property
    def space(self) -> Optional[SynchronizedSpace]:
        return self._space

    @property
    def is_initial(self) -> bool:
        return self._sync_token is None

    @property
    def params(self) -> dict[str, str]:
        """Query parameters of the first request of the run."""
        if self._sync_token is None:
            return {PARAM_INITIAL: "true"}
        return {PARAM_SYNC_TOKEN: self._sync_token}

    def observe(self) -> Single[SynchronizedSpace]:
        """The sync run as a cold :class:`~cdaclient.single.Single`."""
        client = self._client
        base = self._space

        async def run() -> SynchronizedSpace:
            await client.orchestrator.resolve_all(False)
            raw_items, next_sync_url = await self._collect_pages()
            seeded = list(raw_items)
            if base is not None:
                seeded.extend(entry.raw for entry in base.entries.values())
            types = await client.orchestrator.resolve_referenced_types({"items": seeded})
            return merge_sync(client.factory, base, raw_items, types, next_sync_url)

        return Single(run, client.scheduler)

    def fetch(self, callback: Optional[C] = None) -> Union[SynchronizedSpace, C]:
        """Run the sync, blocking, or in the background when *callback* is given."""
        single = self.observe()
        if callback is None:
            return single.blocking()
        return subscribe_async(single, callback, self._client)

    async def _collect_pages(self) -> tuple[list[Payload], str]:
        client = self._client
        params = self.params
        items: list[Payload] = []
        while True:
            payload = await client.transport.fetch_collection(client.space_id, PATH_SYNC, params)
            if (payload.get("sys") or {}).get("type") != "Array":
                raise MalformedResourceError("Sync response is not an Array")
            page_items = payload.get("items") or []
            if not isinstance(page_items, list):
                raise MalformedResourceError("Sync response items is not a list")
            items.extend(page_items)

            next_page = payload.get("nextPageUrl")
            if next_page:
                token = token_from_url(next_page)
                if not token:
                    raise MalformedResourceError(f"No sync token in nextPageUrl {next_page!r}")
                params = {PARAM_SYNC_TOKEN: token}
                continue

            next_sync = payload.get("nextSyncUrl")
            if not next_sync:
                raise MalformedResourceError("Sync response has neither nextPageUrl nor nextSyncUrl")
            return items, next_sync


def merge_sync(
    factory: ResourceFactory,
    base: Optional[SynchronizedSpace],
    raw_items: list[Payload],
    content_types: Mapping[str, CDAContentType],
    next_sync_url: str,
) -> SynchronizedSpace:
    """Apply a sync delta to *base* and return the new snapshot.

    Entries and assets in the delta replace their previous versions;
    deletion markers remove them.  Entries carried over from *base* are
    decoded again from their raw payload so their links point at the new
    versions.  *base* itself is left unchanged.
    """
    entries: dict[str, CDAEntry] = {}
    assets: dict[str, CDAAsset] = {}
    if base is not None:
        for entry_id, entry in base.entries.items():
            entries[entry_id] = factory.decode_resource(entry.raw, content_types)
        assets.update(base.assets)

    items = [factory.decode_resource(raw, content_types) for raw in raw_items]
    for item in items:
        if isinstance(item, CDAEntry):
            entries[item.id] = item
        elif isinstance(item, CDAAsset):
            assets[item.id] = item
        elif isinstance(item, CDADeletedResource):
            target: dict[str, Any] = entries if item.deleted_type == "Entry" else assets
            target.pop(item.id, None)

    factory.resolve_links(entries.values(), entries, assets)
    return SynchronizedSpace(
        items=items,
        entries=entries,
        assets=assets,
        next_sync_url=next_sync_url,
    )
