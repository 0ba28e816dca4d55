"""Decoding of delivery API payloads into typed resources.

:class:`ResourceFactory` turns decoded JSON objects into the models of
:mod:`cdaclient.models`.  Entries need the content-type dictionary: their
content type says which fields hold links (or arrays of links) that must be
replaced by the linked entry or asset.

Link resolution draws from every resource in the payload, the top-level
``items`` and the ``includes`` block alike.  A link whose target is not in
the payload is left as the raw link object.  An entry whose content type is
absent from the dictionary is still returned, with
:attr:`~cdaclient.models.CDAEntry.missing_content_type` set, so one bad
item never fails a whole collection.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from cdaclient.exceptions import MalformedResourceError
from cdaclient.models import (
    CDAArray,
    CDAAsset,
    CDAContentType,
    CDADeletedResource,
    CDAEntry,
    CDAResource,
    CDASpace,
)
from cdaclient.transport.base import Payload

ContentTypes = Mapping[str, CDAContentType]

_MODELS: dict[str, type[CDAResource]] = {
    "Space": CDASpace,
    "ContentType": CDAContentType,
    "Entry": CDAEntry,
    "Asset": CDAAsset,
    "DeletedEntry": CDADeletedResource,
    "DeletedAsset": CDADeletedResource,
}


def _sys_type(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    sys = payload.get("sys")
    return sys.get("type") if isinstance(sys, dict) else None


def _entry_type_id(item: Payload) -> Optional[str]:
    """Content-type id linked from an entry's ``sys.contentType``."""
    link = item["sys"].get("contentType")
    if link is None:
        return None
    link_sys = link.get("sys") if isinstance(link, dict) else None
    if not isinstance(link_sys, dict) or not isinstance(link_sys.get("id", ""), str):
        raise MalformedResourceError(
            f"Entry {item['sys'].get('id')!r} has an invalid sys.contentType link"
        )
    return link_sys.get("id")


def _list(container: dict[str, Any], key: str) -> list[Any]:
    value = container.get(key) or []
    if not isinstance(value, list):
        raise MalformedResourceError(f"Expected {key} to be a list, got {type(value).__name__}")
    return value


def _includes(payload: Payload) -> dict[str, Any]:
    includes = payload.get("includes") or {}
    if not isinstance(includes, dict):
        raise MalformedResourceError(
            f"Expected includes to be an object, got {type(includes).__name__}"
        )
    return includes


class ResourceFactory:
    """Stateless payload decoder.  One instance is shared by a client."""

    # ------------------------------------------------------------------ #
    # Single resources
    # ------------------------------------------------------------------ #

    def decode_space(self, payload: Payload) -> CDASpace:
        """Decode a ``Space`` payload.

        Raises:
            MalformedResourceError: If ``sys.type`` is not ``Space`` or
                required fields are missing.
        """
        return self._decode(payload, "Space")

    def decode_content_type(self, payload: Payload) -> CDAContentType:
        """Decode a ``ContentType`` payload.

        Raises:
            MalformedResourceError: If ``sys.type`` is not ``ContentType``,
                ``sys.id`` is missing, or the field list is invalid.
        """
        content_type = self._decode(payload, "ContentType")
        if not content_type.id:
            raise MalformedResourceError("Content type payload has no sys.id")
        return content_type

    def decode_resource(self, item: Payload, content_types: ContentTypes) -> CDAResource:
        """Decode one item of a collection according to its ``sys.type``.

        Entries get their content type attached from *content_types*, or
        are flagged when it is missing.  Links are not resolved here; see
        :meth:`resolve_links`.
        """
        kind = _sys_type(item)
        if kind not in _MODELS or kind == "Space":
            raise MalformedResourceError(f"Unsupported resource type in collection: {kind!r}")
        type_id = _entry_type_id(item) if kind == "Entry" else None
        resource = self._decode(item, kind)
        if isinstance(resource, CDAEntry):
            content_type = content_types.get(type_id) if type_id else None
            resource.content_type = content_type
            resource.missing_content_type = content_type is None
        return resource

    # ------------------------------------------------------------------ #
    # Collections
    # ------------------------------------------------------------------ #

    def decode_collection(self, payload: Payload, content_types: ContentTypes) -> CDAArray:
        """Decode an ``Array`` payload and resolve the links between its resources.

        Args:
            payload: The decoded collection response.
            content_types: Dictionary used to type entries.

        Returns:
            The ordered items plus id-indexed entries and assets.

        Raises:
            MalformedResourceError: If the payload is not an ``Array`` or an
                item has an unknown ``sys.type``.
        """
        if _sys_type(payload) != "Array":
            raise MalformedResourceError(
                f"Expected an Array payload, got {_sys_type(payload)!r}"
            )
        raw_items = _list(payload, "items")
        items = [self.decode_resource(item, content_types) for item in raw_items]

        entries: dict[str, CDAEntry] = {}
        assets: dict[str, CDAAsset] = {}
        includes = _includes(payload)
        for raw in _list(includes, "Entry"):
            entry = self.decode_resource(raw, content_types)
            entries[entry.id] = entry
        for raw in _list(includes, "Asset"):
            asset = self.decode_resource(raw, content_types)
            assets[asset.id] = asset
        for item in items:
            if isinstance(item, CDAEntry):
                entries[item.id] = item
            elif isinstance(item, CDAAsset):
                assets[item.id] = item

        self.resolve_links(entries.values(), entries, assets)
        return CDAArray(
            total=payload.get("total", len(items)),
            skip=payload.get("skip", 0),
            limit=payload.get("limit", len(items)),
            items=items,
            entries=entries,
            assets=assets,
        )

    def content_type_map(self, payload: Payload) -> dict[str, CDAContentType]:
        """Decode a content-type collection into an id -> content type mapping.

        Raises:
            MalformedResourceError: If the payload is not an ``Array`` or
                holds anything but content types.
        """
        array = self.decode_collection(payload, {})
        result: dict[str, CDAContentType] = {}
        for item in array.items:
            if not isinstance(item, CDAContentType) or not item.id:
                raise MalformedResourceError(
                    f"Expected only content types, found {item.type!r}"
                )
            result[item.id] = item
        return result

    def referenced_content_type_ids(self, payload: Payload) -> set[str]:
        """Content-type ids of every entry in a collection payload, includes too."""
        candidates: list[Any] = list(_list(payload, "items"))
        candidates.extend(_list(_includes(payload), "Entry"))
        ids: set[str] = set()
        for item in candidates:
            if _sys_type(item) != "Entry":
                continue
            type_id = _entry_type_id(item)
            if type_id:
                ids.add(type_id)
        return ids

    # ------------------------------------------------------------------ #
    # Link resolution
    # ------------------------------------------------------------------ #

    def resolve_links(
        self,
        targets: Iterable[CDAEntry],
        entries: Mapping[str, CDAEntry],
        assets: Mapping[str, CDAAsset],
    ) -> None:
        """Replace link objects in the link fields of *targets*, in place.

        Only fields the entry's content type declares as ``Link`` or
        ``Array`` of ``Link`` are touched.  Entries without a known content
        type are skipped.
        """
        lookup = {"Entry": entries, "Asset": assets}
        for entry in list(targets):
            if entry.content_type is None:
                continue
            for field in entry.content_type.fields:
                if field.references_resources and field.id in entry.fields:
                    entry.fields[field.id] = self._resolve_value(entry.fields[field.id], lookup)

    def _resolve_value(self, value: Any, lookup: Mapping[str, Mapping[str, Any]]) -> Any:
        if isinstance(value, list):
            return [self._resolve_value(v, lookup) for v in value]
        if isinstance(value, dict):
            sys = value.get("sys")
            if isinstance(sys, dict) and sys.get("type") == "Link":
                target = lookup.get(sys.get("linkType", ""), {}).get(sys.get("id"))
                return target if target is not None else value
            if sys is None:
                # Localized value: {"en-US": <link>, "de-DE": <link>}
                return {k: self._resolve_value(v, lookup) for k, v in value.items()}
        return value

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _decode(self, payload: Payload, expected: str) -> Any:
        kind = _sys_type(payload)
        if kind != expected:
            raise MalformedResourceError(f"Expected a {expected} payload, got {kind!r}")
        model = _MODELS[expected]
        try:
            return model.model_validate({**payload, "raw": payload})
        except ValidationError as exc:
            raise MalformedResourceError(f"Invalid {expected} payload: {exc}") from exc
