"""Process-local cache for the metadata needed to interpret responses.

Holds exactly two slots: the space descriptor and the content-type
dictionary.  Entries and assets are never cached here; only the metadata
used to decode them is.

Every write replaces a slot under a lock.  The dictionary is stored as a
read-only :class:`types.MappingProxyType` snapshot, and
:meth:`ResourceCache.put_content_type` builds a new snapshot instead of
editing the current one, so a reader holding the mapping never sees it
change underneath it.

See Also:
    :class:`~cdaclient.orchestrator.FetchOrchestrator` -- the only writer.
"""

from __future__ import annotations

import enum
import threading
from types import MappingProxyType
from typing import Any, Mapping, Optional

from cdaclient.models import CDAContentType, CDASpace


class CacheSlot(str, enum.Enum):
    """The two independently invalidatable cache slots."""

    SPACE = "space"
    CONTENT_TYPES = "content_types"


class ResourceCache:
    """Thread-safe two-slot holder for the space and the content-type dictionary.

    Performs no I/O and raises no domain errors.  Safe to read from any
    thread while the client's loop thread writes to it.

    Example::

        cache = ResourceCache()
        cache.set(CacheSlot.SPACE, space)
        assert cache.get(CacheSlot.SPACE) is space
        cache.invalidate(CacheSlot.SPACE)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._slots: dict[CacheSlot, Any] = {
            CacheSlot.SPACE: None,
            CacheSlot.CONTENT_TYPES: None,
        }

    # ------------------------------------------------------------------ #
    # Generic slot access
    # ------------------------------------------------------------------ #

    def get(self, slot: CacheSlot) -> Any:
        """Return the slot's current value, or ``None`` when empty."""
        with self._lock:
            return self._slots[slot]

    def set(self, slot: CacheSlot, value: Any) -> None:
        """Replace the slot's value in one step.

        Args:
            slot: The slot to write.
            value: A :class:`~cdaclient.models.CDASpace` for ``SPACE``, or a
                mapping of content-type id to
                :class:`~cdaclient.models.CDAContentType` for
                ``CONTENT_TYPES`` (copied into a read-only snapshot).
        """
        if slot is CacheSlot.CONTENT_TYPES and value is not None:
            value = MappingProxyType(dict(value))
        with self._lock:
            self._slots[slot] = value

    def invalidate(self, slot: CacheSlot) -> None:
        """Clear one slot.  Clearing an empty slot is a no-op."""
        with self._lock:
            self._slots[slot] = None

    def clear(self) -> None:
        """Clear both slots."""
        with self._lock:
            for slot in self._slots:
                self._slots[slot] = None

    # ------------------------------------------------------------------ #
    # Typed accessors
    # ------------------------------------------------------------------ #

    @property
    def space(self) -> Optional[CDASpace]:
        return self.get(CacheSlot.SPACE)

    @property
    def content_types(self) -> Optional[Mapping[str, CDAContentType]]:
        """Read-only snapshot of the dictionary, or ``None`` before the first fetch."""
        return self.get(CacheSlot.CONTENT_TYPES)

    def content_type(self, content_type_id: str) -> Optional[CDAContentType]:
        types = self.content_types
        if types is None:
            return None
        return types.get(content_type_id)

    def put_content_type(self, content_type: CDAContentType) -> None:
        """Add or replace one content type, leaving every other entry as it was.

        The new dictionary is a copy of the current one plus *content_type*;
        when the slot is empty the result holds just that one type.
        """
        with self._lock:
            current = self._slots[CacheSlot.CONTENT_TYPES] or {}
            updated = dict(current)
            updated[content_type.id] = content_type
            self._slots[CacheSlot.CONTENT_TYPES] = MappingProxyType(updated)

    def stats(self) -> dict[str, Any]:
        """Return a summary of what is cached.

        Returns:
            A ``dict`` with ``space`` (cached space id or ``None``) and
            ``content_types`` (number of cached types, or ``None``).
        """
        with self._lock:
            space = self._slots[CacheSlot.SPACE]
            types = self._slots[CacheSlot.CONTENT_TYPES]
        return {
            "space": space.id if space is not None else None,
            "content_types": len(types) if types is not None else None,
        }
