"""HTTP access layer for riddlenet.

Classes:
    :class:`RetryingInvoker` -- one logical request with timeout, retries,
        exponential backoff and jitter, backed by :class:`httpx.Client`.
    :class:`LivenessProber` -- bounded ``HEAD /health`` reachability check.
    :class:`ResilientResourceClient` -- composes the two with a cache store
        and applies the read-fallback and write-invalidation policies.
    :class:`AsyncRetryingInvoker`, :class:`AsyncLivenessProber` -- the same
        invoker and probe for :class:`httpx.AsyncClient` and event loops.

Example::

    from riddlenet.client import ResilientResourceClient

    client = ResilientResourceClient(settings, invoker, prober, cache)
    page = client.get_all("riddles", {"level": "easy", "limit": 10})
"""

from riddlenet.client.async_invoker import AsyncLivenessProber, AsyncRetryingInvoker
from riddlenet.client.invoker import RetryingInvoker, backoff_delay, worst_case_duration
from riddlenet.client.prober import LivenessProber
from riddlenet.client.resource import ResilientResourceClient

__all__ = [
    "AsyncLivenessProber",
    "AsyncRetryingInvoker",
    "LivenessProber",
    "ResilientResourceClient",
    "RetryingInvoker",
    "backoff_delay",
    "worst_case_duration",
]
