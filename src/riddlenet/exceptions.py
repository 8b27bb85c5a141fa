"""Exception hierarchy for riddlenet.

All exceptions inherit from :class:`RiddlenetError`, which carries an
``exit_code`` taken from :mod:`riddlenet.exit_codes`. Failures raised at the
HTTP boundary additionally carry an :class:`ErrorKind`, assigned exactly once
from the response status code or the transport exception type. Callers branch
on ``kind`` (or on the class), never on the message text.

Subclass hierarchy::

    RiddlenetError                 (exit 1)
    +-- ConfigError                (exit 1)
    +-- CacheUnavailableError      (exit 1)  kind CACHE_UNAVAILABLE
    +-- NetworkError
        +-- RequestTimeoutError    (exit 6)  kind TIMEOUT
        +-- TransientError         (exit 5)  kind TRANSIENT
        +-- RetriesExhaustedError  (exit 5)  kind RETRIES_EXHAUSTED
        +-- ClientError            (exit 3)  kind CLIENT_ERROR
            +-- NotFoundError      (exit 4)
            +-- ConflictError      (exit 9)
            +-- ValidationError    (exit 2)
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from riddlenet.exit_codes import (
    EXIT_CLIENT_ERROR,
    EXIT_CONFLICT,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class ErrorKind(str, Enum):
    """Structured classification of a failure.

    ``TIMEOUT``, ``TRANSIENT`` and ``RETRIES_EXHAUSTED`` are the kinds a read
    may recover from by falling back to the cache. ``CLIENT_ERROR`` is never
    recovered from. ``CACHE_UNAVAILABLE`` is degraded but non-fatal.
    """

    TIMEOUT = "timeout"
    CLIENT_ERROR = "client_error"
    TRANSIENT = "transient"
    RETRIES_EXHAUSTED = "retries_exhausted"
    CACHE_UNAVAILABLE = "cache_unavailable"


RECOVERABLE_KINDS = frozenset(
    {ErrorKind.TIMEOUT, ErrorKind.TRANSIENT, ErrorKind.RETRIES_EXHAUSTED}
)


class RiddlenetError(Exception):
    """Base exception for all riddlenet errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    kind: Optional[ErrorKind] = None

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(RiddlenetError):
    """Raised for configuration problems (invalid settings file, bad env values)."""

    exit_code = EXIT_GENERIC_FAILURE


class CacheUnavailableError(RiddlenetError):
    """Raised by a cache store whose backend cannot be read or written.

    The resource client treats this as a degraded condition and carries on
    in network-only mode.
    """

    kind = ErrorKind.CACHE_UNAVAILABLE


class NetworkError(RiddlenetError):
    """Base class for every failure observed at the HTTP boundary.

    Args:
        message: Human-readable description.
        status_code: The HTTP status that caused the failure, if any.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def recoverable(self) -> bool:
        """Whether a read may answer from the cache instead of raising this."""
        return self.kind in RECOVERABLE_KINDS


class RequestTimeoutError(NetworkError):
    """A single attempt exceeded its deadline. Never retried."""

    kind = ErrorKind.TIMEOUT
    exit_code = EXIT_CONNECTION_ERROR


class TransientError(NetworkError):
    """HTTP 5xx or a connection-level failure (refused, reset, DNS). Retried."""

    kind = ErrorKind.TRANSIENT
    exit_code = EXIT_SERVER_ERROR


class RetriesExhaustedError(NetworkError):
    """Terminal failure after the retry budget was spent on transient errors.

    Args:
        message: Human-readable description.
        last_error: The last :class:`TransientError` observed.
        attempts: Total number of attempts made (initial one included).
    """

    kind = ErrorKind.RETRIES_EXHAUSTED
    exit_code = EXIT_SERVER_ERROR

    def __init__(self, message: str, last_error: NetworkError, attempts: int):
        super().__init__(message, status_code=last_error.status_code)
        self.last_error = last_error
        self.attempts = attempts


class ClientError(NetworkError):
    """HTTP 4xx (or any other non-2xx, non-5xx status). Never retried or swallowed."""

    kind = ErrorKind.CLIENT_ERROR
    exit_code = EXIT_CLIENT_ERROR


class NotFoundError(ClientError):
    """Raised when the server returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ConflictError(ClientError):
    """Raised when the server returns HTTP 409 (e.g. username already taken)."""

    exit_code = EXIT_CONFLICT


class ValidationError(ClientError):
    """Raised for a rejected payload.

    Raised locally by the services before a write reaches the network, and
    at the HTTP boundary for status 400 and 422.

    Args:
        message: Human-readable description.
        errors: Mapping of field name to the reason it was rejected.
        status_code: The HTTP status, or ``None`` when raised locally.
    """

    exit_code = EXIT_INVALID_USAGE

    def __init__(
        self,
        message: str,
        errors: dict[str, str] | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, status_code=status_code)
        self.errors = errors or {}
