"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~paymo.exceptions.PaymoError` subclass.
Shell wrappers can inspect the exit code to tell an expired API key from an
unreachable server without parsing stderr.

Example::

    $ paymo sync projects
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the API key was rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, or the API rejected the request as malformed (HTTP 400)."""

EXIT_AUTH_FAILURE = 3
"""Authentication or authorisation failed (HTTP 401 / 403)."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_RATE_LIMITED = 5
"""The API rate limit was exceeded (HTTP 429)."""

EXIT_API_ERROR = 6
"""The API answered with any other error status."""

EXIT_CONNECTION_ERROR = 7
"""The API could not be reached (timeout, DNS failure, connection refused)."""
