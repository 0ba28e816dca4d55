"""Exception hierarchy for cdaclient.

All exceptions inherit from :class:`CDAError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`cdaclient.exit_codes`.
Library callers catch the specific subclasses; the ``cda`` entry point in
:func:`cdaclient.app.main` catches ``CDAError`` and exits with its code.

Subclass hierarchy::

    CDAError (exit 1)
    +-- ConfigurationError      (exit 2)
    +-- InvalidUsageError       (exit 2)
    +-- TransportError          (exit 6)
    |   +-- AuthError           (exit 3)
    |   +-- NotFoundError       (exit 4)
    |   +-- ServerError         (exit 5)
    |   +-- ConnectionError_    (exit 6)
    |   +-- RateLimitError      (exit 7)
    +-- MalformedResourceError  (exit 8)

Transport failures travel through the asynchronous pipeline unchanged; the
fetch layer never retries them and never converts them into another kind.
"""

from __future__ import annotations

from cdaclient.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_MALFORMED_RESOURCE,
    EXIT_NOT_FOUND,
    EXIT_RATE_LIMITED,
    EXIT_SERVER_ERROR,
)


class CDAError(Exception):
    """Base exception for all cdaclient errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(CDAError):
    """Raised when a client is built without a space id or access token, or a profile is unusable.

    Always raised at construction time, never lazily on the first request.
    """

    exit_code = EXIT_INVALID_USAGE


class InvalidUsageError(CDAError):
    """Raised for calls the client cannot serve (unsupported resource type, blocking on the loop thread)."""

    exit_code = EXIT_INVALID_USAGE


class TransportError(CDAError):
    """Base class for every failure reported by the transport.

    Args:
        message: Human-readable error description.
        status_code: HTTP status of the failed response, when there was one.
    """

    exit_code = EXIT_CONNECTION_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(TransportError):
    """Raised when the access token is rejected (HTTP 401 / 403)."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(TransportError):
    """Raised when the API returns HTTP 404 (unknown space or resource id)."""

    exit_code = EXIT_NOT_FOUND


class ServerError(TransportError):
    """Raised for 5xx responses and any other non-2xx status without a dedicated class."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(TransportError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class RateLimitError(TransportError):
    """Raised when the API throttles the request (HTTP 429)."""

    exit_code = EXIT_RATE_LIMITED


class MalformedResourceError(CDAError):
    """Raised when a payload cannot be decoded into the expected resource.

    Covers undecodable bodies, a ``sys.type`` that does not match the
    requested resource kind, and resources missing required fields.  Never
    retried; a cache slot is left untouched when its fetch ends this way.
    """

    exit_code = EXIT_MALFORMED_RESOURCE
