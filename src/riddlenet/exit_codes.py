"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to an error category and is referenced by the matching
:class:`~riddlenet.exceptions.RiddlenetError` subclass, so shell scripts
wrapping the ``riddlenet`` CLI can branch on the failure class without
parsing stderr.

Example::

    $ riddlenet players get nobody
    $ echo $?
    4   # EXIT_NOT_FOUND
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, or a payload rejected by validation (locally or HTTP 400/422)."""

EXIT_CLIENT_ERROR = 3
"""The server rejected the request with an HTTP 4xx status."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The server kept failing with 5xx or connection errors until retries ran out."""

EXIT_CONNECTION_ERROR = 6
"""A single attempt timed out or the connection failed outright."""

EXIT_CONFLICT = 9
"""The resource already exists (HTTP 409)."""
