"""Response decoding and error classification at the HTTP boundary.

This is the single place where an :class:`httpx.Response` or an httpx
transport exception is turned into a typed
:class:`~riddlenet.exceptions.NetworkError`. The error kind is decided from
the numeric status code (or the exception type) and nothing else; the
message is for humans only.

=====================  ==========================================
Outcome                Raised as
=====================  ==========================================
2xx                    nothing (success)
404                    :class:`~riddlenet.exceptions.NotFoundError`
409                    :class:`~riddlenet.exceptions.ConflictError`
400, 422               :class:`~riddlenet.exceptions.ValidationError`
other non-2xx < 500    :class:`~riddlenet.exceptions.ClientError`
5xx                    :class:`~riddlenet.exceptions.TransientError`
timeout, deadline      :class:`~riddlenet.exceptions.RequestTimeoutError`
invalid URL            :class:`~riddlenet.exceptions.ClientError`
other request error    :class:`~riddlenet.exceptions.TransientError`
=====================  ==========================================
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from riddlenet.exceptions import (
    ClientError,
    ConflictError,
    NetworkError,
    NotFoundError,
    RequestTimeoutError,
    TransientError,
    ValidationError,
)


def extract_response_data(response: httpx.Response) -> Any:
    """Decode the body of *response*.

    Returns the parsed JSON value, the raw text when the body is not JSON,
    or ``None`` for an empty body.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def error_message(response: httpx.Response) -> str:
    """Return the server's explanation for a failed response.

    Uses the envelope's ``error`` field, then ``message``; falls back to a
    message built from the status code.
    """
    body = extract_response_data(response)
    if isinstance(body, dict):
        for field in ("error", "message"):
            value = body.get(field)
            if isinstance(value, str) and value:
                return value
    return f"Request failed with status {response.status_code}"


def classify_response(response: httpx.Response) -> Optional[NetworkError]:
    """Return the error *response* represents, or ``None`` if it is a 2xx success."""
    status = response.status_code
    if 200 <= status < 300:
        return None

    message = error_message(response)
    if status >= 500:
        return TransientError(message, status_code=status)
    if status == 404:
        return NotFoundError(message, status_code=status)
    if status == 409:
        return ConflictError(message, status_code=status)
    if status in (400, 422):
        body = extract_response_data(response)
        errors = body.get("errors") if isinstance(body, dict) else None
        return ValidationError(
            message,
            errors=errors if isinstance(errors, dict) else None,
            status_code=status,
        )
    return ClientError(message, status_code=status)


def timeout_error(timeout: float) -> RequestTimeoutError:
    return RequestTimeoutError(f"Request timed out after {timeout:g} seconds")


#: Exceptions an httpx call can raise for a bad exchange rather than a bug.
REQUEST_ERRORS = (httpx.RequestError, httpx.InvalidURL)


def classify_transport_error(exc: Exception, timeout: float) -> NetworkError:
    """Map an httpx request exception to a typed error.

    Timeouts become :class:`RequestTimeoutError`. A URL httpx cannot send
    to is the caller's mistake and becomes a :class:`ClientError`, so it is
    not retried. Connection failures, undecodable bodies and redirect loops
    are transient.
    """
    if isinstance(exc, httpx.TimeoutException):
        return timeout_error(timeout)
    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return ClientError(f"Invalid request URL: {exc}")
    if isinstance(exc, httpx.DecodingError):
        return TransientError(f"Undecodable response body: {exc}")
    if isinstance(exc, httpx.TooManyRedirects):
        return TransientError(f"Redirect loop: {exc}")
    return TransientError(f"Connection failed: {exc}")
