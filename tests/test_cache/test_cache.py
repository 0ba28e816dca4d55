"""Tests for the two-slot ResourceCache."""

from __future__ import annotations

import threading

import pytest

from cdaclient.cache import CacheSlot, ResourceCache
from cdaclient.models import CDAContentType, CDASpace

from conftest import make_content_type, make_space


def _space(name: str = "Example") -> CDASpace:
    return CDASpace.model_validate(make_space(name=name))


def _type(type_id: str) -> CDAContentType:
    return CDAContentType.model_validate(make_content_type(type_id))


@pytest.fixture()
def cache() -> ResourceCache:
    return ResourceCache()


# ------------------------------------------------------------------ #
# Slot access
# ------------------------------------------------------------------ #


class TestSlots:
    def test_empty_by_default(self, cache: ResourceCache) -> None:
        assert cache.get(CacheSlot.SPACE) is None
        assert cache.get(CacheSlot.CONTENT_TYPES) is None
        assert cache.space is None
        assert cache.content_types is None

    def test_set_and_get_space(self, cache: ResourceCache) -> None:
        space = _space()
        cache.set(CacheSlot.SPACE, space)
        assert cache.get(CacheSlot.SPACE) is space
        assert cache.space is space

    def test_set_replaces_wholesale(self, cache: ResourceCache) -> None:
        cache.set(CacheSlot.CONTENT_TYPES, {"a": _type("a"), "b": _type("b")})
        cache.set(CacheSlot.CONTENT_TYPES, {"c": _type("c")})
        assert set(cache.content_types) == {"c"}

    def test_content_types_snapshot_is_read_only(self, cache: ResourceCache) -> None:
        cache.set(CacheSlot.CONTENT_TYPES, {"a": _type("a")})
        with pytest.raises(TypeError):
            cache.content_types["b"] = _type("b")  # type: ignore[index]

    def test_set_copies_the_mapping(self, cache: ResourceCache) -> None:
        source = {"a": _type("a")}
        cache.set(CacheSlot.CONTENT_TYPES, source)
        source["b"] = _type("b")
        assert set(cache.content_types) == {"a"}

    def test_invalidate_clears_one_slot(self, cache: ResourceCache) -> None:
        cache.set(CacheSlot.SPACE, _space())
        cache.set(CacheSlot.CONTENT_TYPES, {"a": _type("a")})
        cache.invalidate(CacheSlot.SPACE)
        assert cache.space is None
        assert cache.content_types is not None

    def test_invalidate_empty_slot_is_noop(self, cache: ResourceCache) -> None:
        cache.invalidate(CacheSlot.SPACE)
        assert cache.space is None

    def test_clear(self, cache: ResourceCache) -> None:
        cache.set(CacheSlot.SPACE, _space())
        cache.set(CacheSlot.CONTENT_TYPES, {"a": _type("a")})
        cache.clear()
        assert cache.space is None
        assert cache.content_types is None


# ------------------------------------------------------------------ #
# Content-type insertion
# ------------------------------------------------------------------ #


class TestPutContentType:
    def test_adds_one_entry_and_keeps_others(self, cache: ResourceCache) -> None:
        a, b = _type("a"), _type("b")
        cache.set(CacheSlot.CONTENT_TYPES, {"a": a, "b": b})
        cache.put_content_type(_type("c"))
        types = cache.content_types
        assert set(types) == {"a", "b", "c"}
        assert types["a"] is a
        assert types["b"] is b

    def test_old_snapshot_unchanged(self, cache: ResourceCache) -> None:
        cache.set(CacheSlot.CONTENT_TYPES, {"a": _type("a")})
        before = cache.content_types
        cache.put_content_type(_type("b"))
        assert set(before) == {"a"}
        assert set(cache.content_types) == {"a", "b"}

    def test_on_empty_slot(self, cache: ResourceCache) -> None:
        cache.put_content_type(_type("a"))
        assert set(cache.content_types) == {"a"}

    def test_content_type_lookup(self, cache: ResourceCache) -> None:
        assert cache.content_type("a") is None
        cache.put_content_type(_type("a"))
        assert cache.content_type("a").id == "a"
        assert cache.content_type("missing") is None

    def test_concurrent_inserts_lose_nothing(self, cache: ResourceCache) -> None:
        ids = [f"type{i}" for i in range(50)]
        types = [_type(type_id) for type_id in ids]
        threads = [threading.Thread(target=cache.put_content_type, args=(t,)) for t in types]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert set(cache.content_types) == set(ids)


class TestStats:
    def test_empty(self, cache: ResourceCache) -> None:
        assert cache.stats() == {"space": None, "content_types": None}

    def test_populated(self, cache: ResourceCache) -> None:
        cache.set(CacheSlot.SPACE, _space())
        cache.set(CacheSlot.CONTENT_TYPES, {"a": _type("a"), "b": _type("b")})
        assert cache.stats() == {"space": "cfexampleapi", "content_types": 2}
