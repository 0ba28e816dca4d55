"""Shared test fixtures for cdaclient.

Provides payload builders shaped like delivery API responses, an in-memory
:class:`FakeTransport` that records every call, client fixtures wired to
it, and the config/output isolation fixtures used by the CLI tests.
"""

from __future__ import annotations

import asyncio
import copy
from pathlib import Path
from typing import Any, Optional

import pytest

from cdaclient.client import CDAClient
from cdaclient.exceptions import NotFoundError
from cdaclient.output import OutputFormat, OutputManager, reset_output, set_output


SPACE_ID = "cfexampleapi"
TOKEN = "b4c0n73n7fu1"


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------


def make_space(space_id: str = SPACE_ID, name: str = "Contentful Example API") -> dict[str, Any]:
    return {
        "sys": {"type": "Space", "id": space_id},
        "name": name,
        "locales": [
            {"code": "en-US", "name": "English", "default": True},
            {"code": "tlh", "name": "Klingon", "default": False, "fallbackCode": "en-US"},
        ],
    }


def make_content_type(
    type_id: str,
    name: Optional[str] = None,
    fields: Optional[list[dict[str, Any]]] = None,
    display_field: Optional[str] = "name",
) -> dict[str, Any]:
    return {
        "sys": {"type": "ContentType", "id": type_id},
        "name": name or type_id.title(),
        "displayField": display_field,
        "fields": fields if fields is not None else [{"id": "name", "name": "Name", "type": "Symbol"}],
    }


def make_cat_type() -> dict[str, Any]:
    """``cat`` content type with an entry link, an array of entry links and an asset link."""
    return make_content_type(
        "cat",
        fields=[
            {"id": "name", "name": "Name", "type": "Text"},
            {"id": "bestFriend", "name": "Best Friend", "type": "Link", "linkType": "Entry"},
            {
                "id": "friends",
                "name": "Friends",
                "type": "Array",
                "items": {"type": "Link", "linkType": "Entry"},
            },
            {"id": "image", "name": "Image", "type": "Link", "linkType": "Asset"},
        ],
    )


def link(target_id: str, link_type: str = "Entry") -> dict[str, Any]:
    return {"sys": {"type": "Link", "linkType": link_type, "id": target_id}}


def make_entry(
    entry_id: str,
    type_id: str = "cat",
    fields: Optional[dict[str, Any]] = None,
    revision: int = 1,
) -> dict[str, Any]:
    return {
        "sys": {
            "type": "Entry",
            "id": entry_id,
            "revision": revision,
            "contentType": link(type_id, "ContentType"),
        },
        "fields": fields if fields is not None else {"name": entry_id.title()},
    }


def make_asset(asset_id: str, title: str = "Nyan Cat") -> dict[str, Any]:
    return {
        "sys": {"type": "Asset", "id": asset_id},
        "fields": {
            "title": title,
            "file": {"url": f"//images.example.com/{asset_id}.png", "contentType": "image/png"},
        },
    }


def make_deleted(resource_id: str, kind: str = "Entry") -> dict[str, Any]:
    return {"sys": {"type": f"Deleted{kind}", "id": resource_id}}


def make_array(
    items: list[dict[str, Any]],
    entries: Optional[list[dict[str, Any]]] = None,
    assets: Optional[list[dict[str, Any]]] = None,
    **extra: Any,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "sys": {"type": "Array"},
        "total": len(items),
        "skip": 0,
        "limit": 100,
        "items": items,
    }
    includes: dict[str, Any] = {}
    if entries:
        includes["Entry"] = entries
    if assets:
        includes["Asset"] = assets
    if includes:
        payload["includes"] = includes
    payload.update(extra)
    return payload


def sync_page(items: list[dict[str, Any]], next_page: Optional[str] = None, next_sync: Optional[str] = None) -> dict[str, Any]:
    base = f"https://cdn.contentful.com/spaces/{SPACE_ID}/sync?sync_token="
    extra: dict[str, Any] = {}
    if next_page:
        extra["nextPageUrl"] = base + next_page
    if next_sync:
        extra["nextSyncUrl"] = base + next_sync
    payload = {"sys": {"type": "Array"}, "items": items}
    payload.update(extra)
    return payload


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------


class FakeTransport:
    """In-memory :class:`~cdaclient.transport.base.Transport`.

    ``collections`` maps a path to one payload or a list of payloads served
    in order (the last one repeats).  ``singles`` maps ``"path/id"`` to a
    payload.  ``errors`` maps ``"space"``, a path or ``"path/id"`` to the
    exception raised for that request.  Every call is recorded in ``calls``
    as ``(key, params)``.
    """

    def __init__(
        self,
        space: Optional[dict[str, Any]] = None,
        content_types: Optional[list[dict[str, Any]]] = None,
        delay: float = 0.0,
    ) -> None:
        self.space = space if space is not None else make_space()
        self.content_types = content_types if content_types is not None else [make_cat_type()]
        self.collections: dict[str, Any] = {}
        self.singles: dict[str, dict[str, Any]] = {}
        self.errors: dict[str, BaseException] = {}
        self.delay = delay
        self.calls: list[tuple[str, Optional[dict[str, Any]]]] = []
        self.closed = False

    def count(self, key: str) -> int:
        return sum(1 for call_key, _ in self.calls if call_key == key)

    async def fetch_space(self, space_id: str) -> dict[str, Any]:
        return await self._serve("space", None, lambda: self.space)

    async def fetch_collection(
        self,
        space_id: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        return await self._serve(path, dict(params or {}), lambda: self._collection(path))

    async def fetch_single(self, space_id: str, path: str, resource_id: str) -> dict[str, Any]:
        key = f"{path}/{resource_id}"

        def lookup() -> dict[str, Any]:
            if key in self.singles:
                return self.singles[key]
            if path == "content_types":
                for payload in self.content_types:
                    if payload["sys"]["id"] == resource_id:
                        return payload
            raise NotFoundError(f"HTTP 404: {key}", 404)

        return await self._serve(key, None, lookup)

    async def aclose(self) -> None:
        self.closed = True

    def _collection(self, path: str) -> dict[str, Any]:
        if path == "content_types":
            return make_array(self.content_types)
        served = self.collections.get(path)
        if served is None:
            return make_array([])
        if isinstance(served, list):
            return served.pop(0) if len(served) > 1 else served[0]
        return served

    async def _serve(self, key: str, params: Optional[dict[str, Any]], produce: Any) -> dict[str, Any]:
        self.calls.append((key, params))
        if self.delay:
            await asyncio.sleep(self.delay)
        if key in self.errors:
            raise self.errors[key]
        return copy.deepcopy(produce())


# ---------------------------------------------------------------------------
# Client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def client(transport: FakeTransport) -> CDAClient:
    """Client wired to the ``transport`` fixture; closed after the test."""
    instance = CDAClient.builder().set_space(SPACE_ID).set_token(TOKEN).set_transport(transport).build()
    yield instance
    instance.close()


# ---------------------------------------------------------------------------
# Output and config isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager keeps references to sys.stdout/sys.stderr from its
    creation; CliRunner replaces those streams, so a manager created
    inside one test must not leak into the next.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at tmp_path and clear every CDA_* variable."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["CDA_PROFILE", "CDA_SPACE_ID", "CDA_ACCESS_TOKEN", "CDA_ENDPOINT", "CDA_PREVIEW"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
