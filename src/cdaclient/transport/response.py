"""Response body decoding -- maps :class:`httpx.Response` to a payload.

Sits between the HTTP exchange and the resource factory: the transport
hands every successful response to :func:`decode_payload`, and anything
that is not a JSON object is reported as a malformed resource rather than
passed on.
"""

from __future__ import annotations

from typing import Any

import httpx

from cdaclient.exceptions import MalformedResourceError
from cdaclient.transport.base import Payload


def decode_payload(response: httpx.Response) -> Payload:
    """Decode a successful response body into a JSON object.

    Args:
        response: The :class:`httpx.Response` to decode.

    Returns:
        The decoded object.

    Raises:
        MalformedResourceError: If the body is empty, not JSON, or a JSON
            value other than an object.
    """
    if not response.content:
        raise MalformedResourceError(f"Empty response body from {response.request.url}")
    try:
        data: Any = response.json()
    except ValueError as exc:
        raise MalformedResourceError(
            f"Response from {response.request.url} is not valid JSON: {exc}"
        ) from exc
    if not isinstance(data, dict):
        raise MalformedResourceError(
            f"Expected a JSON object from {response.request.url}, got {type(data).__name__}"
        )
    return data


def error_message(response: httpx.Response) -> str:
    """Build ``HTTP <status>: <message>`` from an error response.

    The delivery API reports errors as ``{"sys": {"id": "NotFound"},
    "message": "..."}``; other shapes fall back to the first 200 characters
    of the body.
    """
    try:
        detail = response.json()
        if isinstance(detail, dict):
            msg = detail.get("message") or (detail.get("sys") or {}).get("id") or ""
        else:
            msg = str(detail)
    except ValueError:
        msg = response.text[:200] if response.text else ""
    prefix = f"HTTP {response.status_code}"
    return f"{prefix}: {msg}" if msg else prefix
