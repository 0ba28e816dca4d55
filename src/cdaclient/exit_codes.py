"""Numeric process exit codes used by the ``cda`` command line tool.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~cdaclient.exceptions.CDAError` subclass.  Shell
scripts can inspect the exit code to tell a rejected token from an
unreachable host without parsing stderr.

Example::

    $ cda --space abc --token bad space
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the access token was rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, or a client configured without space id or token."""

EXIT_AUTH_FAILURE = 3
"""The access token was rejected (HTTP 401 / 403)."""

EXIT_NOT_FOUND = 4
"""The requested space or resource does not exist (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The delivery API answered with an unexpected status (usually 5xx)."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_RATE_LIMITED = 7
"""The delivery API throttled the request (HTTP 429)."""

EXIT_MALFORMED_RESOURCE = 8
"""A response body could not be decoded into the expected resource."""
