"""Liveness probe for the riddles server.

:class:`LivenessProber` answers one question -- is the backend reachable
right now? -- with a single ``HEAD`` request under a hard deadline. It never
raises: a timeout, a connection failure, an invalid URL or a non-2xx status
all come back as ``False``. A server that rejects ``HEAD`` with 405 is asked
once more with ``GET``.

The answer is advisory. The resource client uses it to answer reads from
the cache when the backend is known to be down, and never to skip a write.
"""

from __future__ import annotations

import time
from typing import Optional

import httpx

from riddlenet.client.deadline import fetch, run_with_deadline
from riddlenet.client.response import REQUEST_ERRORS
from riddlenet.exceptions import RequestTimeoutError
from riddlenet.output import get_output


class LivenessProber:
    """Bounded reachability check against a health endpoint.

    Args:
        client: The :class:`httpx.Client` to send the probe with.
        health_url: Default URL to probe.
        timeout: Default probe timeout in seconds.
    """

    def __init__(
        self,
        client: httpx.Client,
        health_url: Optional[str] = None,
        timeout: float = 3.0,
    ) -> None:
        self._client = client
        self._health_url = health_url
        self._timeout = timeout

    def is_available(self, url: Optional[str] = None, timeout: Optional[float] = None) -> bool:
        """Return ``True`` if *url* (default: the configured health URL) answers 2xx."""
        target = url or self._health_url
        if not target:
            return False
        limit = self._timeout if timeout is None else timeout
        deadline = time.monotonic() + limit
        try:
            response = run_with_deadline(lambda: self._check(target, deadline, limit), limit)
        except RequestTimeoutError:
            get_output().debug(f"Health probe {target} timed out after {limit:g}s")
            return False
        except REQUEST_ERRORS as exc:
            get_output().debug(f"Health probe {target} failed: {exc}")
            return False
        return response.is_success

    def _check(self, target: str, deadline: float, limit: float) -> httpx.Response:
        response = fetch(self._client, "HEAD", target, deadline, limit)
        if response.status_code == 405:
            response = fetch(self._client, "GET", target, deadline, limit)
        return response
