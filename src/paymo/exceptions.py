"""Exception hierarchy for paymo.

All exceptions inherit from :class:`PaymoError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`paymo.exit_codes`.
The top-level error handler in :func:`paymo.app.main` catches
``PaymoError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Remote failures are split into two families so that the cache layer can
tell them apart without looking at message text:

* :class:`APIError` and its subclasses -- the server was reached and
  answered with an error status. Never masked by cached data.
* :class:`ConnectionError_` -- the request never reached the server.
  Eligible for the stale-cache fallback.

Subclass hierarchy::

    PaymoError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- ConfigError         (exit 1)
    +-- CacheMiss           (exit 1, internal)
    +-- ConnectionError_    (exit 7)
    +-- APIError            (exit 6)
        +-- BadRequestError   (exit 2)
        +-- AuthError         (exit 3)
        +-- NotFoundError     (exit 4)
        +-- RateLimitedError  (exit 5)
        +-- ServerError       (exit 6)
"""

from __future__ import annotations

from typing import Any, Optional

from paymo.exit_codes import (
    EXIT_API_ERROR,
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_RATE_LIMITED,
)


class PaymoError(Exception):
    """Base exception for all paymo errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`paymo.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(PaymoError):
    """Raised for invalid CLI arguments (e.g. an unknown sync target)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(PaymoError):
    """Raised for configuration problems (invalid JSON, missing API key)."""

    exit_code = EXIT_GENERIC_FAILURE


class CacheMiss(PaymoError):
    """Raised by :class:`~paymo.cache.CacheStore` when a key is absent or expired.

    Always recovered from by fetching from the API; never shown to users.
    """


class ConnectionError_(PaymoError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class APIError(PaymoError):
    """Raised when the Paymo API answers with an error status.

    Args:
        message: The server-supplied message, if any.
        status_code: HTTP status of the response.
        details: Decoded JSON error body, when the server sent one.
    """

    exit_code = EXIT_API_ERROR
    code = "API_ERROR"

    def __init__(
        self,
        message: str = "",
        status_code: int = 0,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if message:
            text = f"Paymo API error ({status_code}): {message}"
        else:
            text = f"Paymo API error: HTTP {status_code}"
        super().__init__(text)


class BadRequestError(APIError):
    """Raised when the API returns HTTP 400."""

    exit_code = EXIT_INVALID_USAGE
    code = "USAGE_ERROR"


class AuthError(APIError):
    """Raised when the API rejects the credentials (HTTP 401 / 403)."""

    exit_code = EXIT_AUTH_FAILURE
    code = "AUTH_FAILED"


class NotFoundError(APIError):
    """Raised when the API returns HTTP 404, or an expected entity is missing."""

    exit_code = EXIT_NOT_FOUND
    code = "NOT_FOUND"


class RateLimitedError(APIError):
    """Raised when the API returns HTTP 429."""

    exit_code = EXIT_RATE_LIMITED
    code = "RATE_LIMITED"


class ServerError(APIError):
    """Raised for HTTP 5xx and any other unclassified error status."""


def api_error_for_status(
    status_code: int,
    message: str = "",
    details: Optional[dict[str, Any]] = None,
) -> APIError:
    """Build the :class:`APIError` subclass matching *status_code*."""
    if status_code in (401, 403):
        cls: type[APIError] = AuthError
    elif status_code == 404:
        cls = NotFoundError
    elif status_code == 429:
        cls = RateLimitedError
    elif status_code == 400:
        cls = BadRequestError
    else:
        cls = ServerError
    return cls(message, status_code=status_code, details=details)


def is_transport_error(exc: BaseException) -> bool:
    """Return True if *exc* means the request never reached the server.

    Only such failures may be answered from stale cache data; an
    :class:`APIError` is a real answer from the server and must surface.
    """
    return isinstance(exc, ConnectionError_)
