"""cdaclient -- a caching client for the Content Delivery API.

The package fetches spaces, content types, entries and assets from a
delivery API and keeps the metadata needed to interpret them (the space
descriptor and the content-type dictionary) in a process-local cache.  Every
fetch is a cold asynchronous value that can be awaited, run to completion on
the calling thread, or delivered to a callback.

Typical usage::

    from cdaclient import CDAClient, CDAEntry

    with CDAClient.builder().set_space("abc").set_token("xyz").build() as client:
        space = client.fetch_space()
        entries = client.fetch(CDAEntry).where("content_type", "cat").all()

Modules:
    client: Client facade and builder.
    orchestrator: Cache-or-fetch decisions and single-flight population.
    cache: Two-slot metadata cache and the pending-request registry.
    factory: Payload to resource decoding and link resolution.
    single: The cold asynchronous value type shared by every fetch.
    app: ``cda`` command line entry point.
"""

__version__ = "0.4.0"

from cdaclient.callbacks import CDACallback, InlineExecutor
from cdaclient.client import CDAClient, ClientBuilder, resolve_endpoint
from cdaclient.models import (
    CDAArray,
    CDAAsset,
    CDAContentType,
    CDADeletedResource,
    CDAEntry,
    CDAField,
    CDALocale,
    CDAResource,
    CDASpace,
    ClientConfig,
    LogLevel,
    RequestConfig,
    SynchronizedSpace,
)
from cdaclient.single import Single

__all__ = [
    "CDAArray",
    "CDAAsset",
    "CDACallback",
    "CDAClient",
    "CDAContentType",
    "CDADeletedResource",
    "CDAEntry",
    "CDAField",
    "CDALocale",
    "CDAResource",
    "CDASpace",
    "ClientBuilder",
    "ClientConfig",
    "InlineExecutor",
    "LogLevel",
    "RequestConfig",
    "Single",
    "SynchronizedSpace",
    "resolve_endpoint",
]
