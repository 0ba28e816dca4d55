"""Canonical Pydantic models shared across all cdaclient modules.

The models fall into two groups:

**Configuration models** -- the validated client configuration and the
profile files used by the command line tool:
    :class:`LogLevel`, :class:`RequestConfig`, :class:`ClientConfig`,
    :class:`OutputConfig`, :class:`GlobalConfig`, and :class:`Profile`.

**Resource models** -- produced by :class:`~cdaclient.factory.ResourceFactory`
from delivery API payloads:
    :class:`CDAResource`, :class:`CDALocale`, :class:`CDASpace`,
    :class:`CDAField`, :class:`CDAContentType`, :class:`CDAEntry`,
    :class:`CDAAsset`, :class:`CDADeletedResource`, :class:`CDAArray`, and
    :class:`SynchronizedSpace`.

Metadata models (spaces and content types) are frozen: once fetched they are
shared by every reader of the cache and replaced wholesale, never edited.
Resource models keep the original JSON object in ``raw`` so callers can
render or re-serialise exactly what the API returned.
"""

from __future__ import annotations

import enum
from typing import Any, Optional
from urllib.parse import parse_qs, urlsplit

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class LogLevel(str, enum.Enum):
    """How much of each HTTP exchange the transport writes to stderr."""

    NONE = "none"
    BASIC = "basic"
    HEADERS = "headers"
    FULL = "full"


class RequestConfig(BaseModel):
    """HTTP settings applied by :class:`~cdaclient.transport.HttpTransport`.

    Retry is a transport concern and is off by default; the fetch layer
    itself never retries.
    """

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    max_retries: int = Field(default=0, ge=0, description="Retries on 5xx and network errors")


class ClientConfig(BaseModel):
    """Immutable, validated configuration of a :class:`~cdaclient.client.CDAClient`.

    Built by :meth:`~cdaclient.client.ClientBuilder.build`, which checks for
    the space id and access token before this model is created.  ``endpoint``
    and ``preview`` are resolved into a base URL by
    :func:`~cdaclient.client.resolve_endpoint`.
    """

    model_config = ConfigDict(frozen=True)

    space_id: str = Field(min_length=1)
    access_token: str = Field(min_length=1, repr=False)
    endpoint: Optional[str] = None
    preview: bool = False
    log_level: LogLevel = LogLevel.NONE
    request: RequestConfig = Field(default_factory=RequestConfig)


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/cdaclient/config.json``."""

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    output: OutputConfig = Field(default_factory=OutputConfig)


class Profile(BaseModel):
    """Saved connection settings for one space, stored under ``profiles/``.

    The access token itself is never written to disk; ``token_source``
    names where to read it from (``env:VAR``, ``file:/path`` or ``prompt``).

    See Also:
        :func:`~cdaclient.config.resolve_client_config`: Turns a profile
        into a :class:`ClientConfig`.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    space_id: str
    token_source: str = Field(
        default="env:CDA_ACCESS_TOKEN",
        description="Credential source: env:VAR, file:/path, prompt",
    )
    endpoint: Optional[str] = None
    preview: bool = False
    log_level: LogLevel = LogLevel.NONE
    request: RequestConfig = Field(default_factory=RequestConfig)


# --- Resources ---


class CDAResource(BaseModel):
    """Base class of every resource returned by the delivery API.

    ``sys`` holds the system metadata block unchanged (``id``, ``type``,
    ``revision``, timestamps, links to space and content type).
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    sys: dict[str, Any] = Field(default_factory=dict)
    raw: dict[str, Any] = Field(default_factory=dict, repr=False, exclude=True)

    @property
    def id(self) -> Optional[str]:
        return self.sys.get("id")

    @property
    def type(self) -> Optional[str]:
        return self.sys.get("type")

    @property
    def revision(self) -> Optional[int]:
        return self.sys.get("revision")


class CDALocale(BaseModel):
    """A locale enabled in a space."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    code: str
    name: Optional[str] = None
    default: bool = False
    fallback_code: Optional[str] = Field(default=None, alias="fallbackCode")


class CDASpace(CDAResource):
    """Space descriptor: name and locales of the content-delivery space."""

    model_config = ConfigDict(frozen=True)

    name: str
    locales: list[CDALocale] = Field(default_factory=list)

    @property
    def default_locale(self) -> Optional[str]:
        """Code of the locale flagged as default, falling back to the first one."""
        for locale in self.locales:
            if locale.default:
                return locale.code
        return self.locales[0].code if self.locales else None


class CDAField(BaseModel):
    """One field of a content type's schema.

    ``link_type`` is set for ``Link`` fields (``Entry`` or ``Asset``);
    ``items`` describes the element type of ``Array`` fields.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: str
    name: Optional[str] = None
    type: str
    link_type: Optional[str] = Field(default=None, alias="linkType")
    items: Optional[dict[str, Any]] = None
    localized: bool = False
    required: bool = False
    disabled: bool = False

    @property
    def is_link(self) -> bool:
        return self.type == "Link"

    @property
    def is_array_of_links(self) -> bool:
        return self.type == "Array" and bool(self.items) and self.items.get("type") == "Link"

    @property
    def references_resources(self) -> bool:
        """Whether values of this field must go through link resolution."""
        return self.is_link or self.is_array_of_links


class CDAContentType(CDAResource):
    """Schema definition for a class of entries."""

    model_config = ConfigDict(frozen=True)

    name: str
    display_field: Optional[str] = Field(default=None, alias="displayField")
    description: Optional[str] = None
    fields: list[CDAField] = Field(default_factory=list)

    def field(self, field_id: str) -> Optional[CDAField]:
        for candidate in self.fields:
            if candidate.id == field_id:
                return candidate
        return None


class CDAEntry(CDAResource):
    """A piece of content whose fields follow its content type.

    When the entry's content type was not in the dictionary at resolution
    time, ``content_type`` stays ``None`` and ``missing_content_type`` is
    set; its link fields are then left as raw link objects.
    """

    fields: dict[str, Any] = Field(default_factory=dict)
    content_type: Optional[CDAContentType] = Field(default=None, exclude=True)
    missing_content_type: bool = False

    @property
    def content_type_id(self) -> Optional[str]:
        link = self.sys.get("contentType")
        link_sys = link.get("sys") if isinstance(link, dict) else None
        return link_sys.get("id") if isinstance(link_sys, dict) else None

    def get_field(self, field_id: str, default: Any = None) -> Any:
        return self.fields.get(field_id, default)

    @property
    def display_value(self) -> Any:
        """Value of the content type's display field, if known."""
        if self.content_type is None or self.content_type.display_field is None:
            return None
        return self.fields.get(self.content_type.display_field)


class CDAAsset(CDAResource):
    """A binary file (image, document, ...) with its metadata."""

    fields: dict[str, Any] = Field(default_factory=dict)

    @property
    def title(self) -> Optional[str]:
        return self.fields.get("title")

    @property
    def url(self) -> Optional[str]:
        return (self.fields.get("file") or {}).get("url")

    @property
    def mime_type(self) -> Optional[str]:
        return (self.fields.get("file") or {}).get("contentType")


class CDADeletedResource(CDAResource):
    """A ``DeletedEntry`` or ``DeletedAsset`` marker from the sync stream."""

    @property
    def deleted_type(self) -> Optional[str]:
        """``Entry`` or ``Asset``."""
        kind = self.type or ""
        return kind[len("Deleted"):] if kind.startswith("Deleted") else None


class CDAArray(BaseModel):
    """An ordered page of resources plus id-indexed lookups.

    ``entries`` and ``assets`` include both the top-level items and the
    resources from the payload's ``includes`` block, which is what link
    resolution draws from.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    total: int = 0
    skip: int = 0
    limit: int = 0
    items: list[CDAResource] = Field(default_factory=list)
    entries: dict[str, CDAEntry] = Field(default_factory=dict)
    assets: dict[str, CDAAsset] = Field(default_factory=dict)

    @property
    def unresolved_entries(self) -> list[CDAEntry]:
        """Top-level entries flagged with a missing content type."""
        return [
            item for item in self.items
            if isinstance(item, CDAEntry) and item.missing_content_type
        ]


class SynchronizedSpace(BaseModel):
    """Result of a sync run: the delta items and the merged resource state.

    ``items`` holds what the sync stream returned in this run (including
    deletion markers).  ``entries`` and ``assets`` hold the merged state:
    the seed snapshot with the delta applied.  Pass the instance back to
    :meth:`~cdaclient.client.CDAClient.sync` to continue from here.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: list[CDAResource] = Field(default_factory=list)
    entries: dict[str, CDAEntry] = Field(default_factory=dict)
    assets: dict[str, CDAAsset] = Field(default_factory=dict)
    next_sync_url: Optional[str] = None

    @property
    def sync_token(self) -> Optional[str]:
        """Token parsed from ``next_sync_url``, used to request the next delta."""
        if not self.next_sync_url:
            return None
        return token_from_url(self.next_sync_url)


def token_from_url(url: str) -> Optional[str]:
    """Extract the ``sync_token`` query parameter from a sync URL."""
    values = parse_qs(urlsplit(url).query).get("sync_token")
    return values[0] if values else None
