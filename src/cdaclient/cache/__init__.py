"""In-memory metadata caching for cdaclient.

This package provides :class:`ResourceCache`, the two-slot store for the
space descriptor and the content-type dictionary, and :class:`SingleFlight`,
the pending-request registry that makes concurrent cache population issue a
single network call per slot.

Nothing here outlives the process; both are owned by one
:class:`~cdaclient.client.CDAClient`.
"""

from cdaclient.cache.cache import CacheSlot, ResourceCache
from cdaclient.cache.flight import SingleFlight

__all__ = ["CacheSlot", "ResourceCache", "SingleFlight"]
