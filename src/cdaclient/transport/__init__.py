"""Transport layer for cdaclient.

Provides the :class:`Transport` protocol the fetch layer depends on and
:class:`HttpTransport`, its :mod:`httpx` implementation with bearer-token
auth, request logging, optional retry and status-code error mapping.

Example::

    from cdaclient.transport import HttpTransport

    transport = HttpTransport(config, "https://cdn.contentful.com")
    payload = await transport.fetch_space("abc")
"""

from cdaclient.transport.base import Payload, Transport
from cdaclient.transport.http import HttpTransport

__all__ = ["HttpTransport", "Payload", "Transport"]
