"""Asynchronous invoker and prober -- mirror the synchronous API for event loops.

:class:`AsyncRetryingInvoker` applies exactly the retry policy of
:class:`~riddlenet.client.invoker.RetryingInvoker` but awaits
:class:`httpx.AsyncClient` and suspends in :func:`asyncio.sleep` between
attempts, so a hosting event loop keeps serving other tasks while a request
backs off. :class:`AsyncLivenessProber` is the matching non-blocking probe.

.. note::
   The resilient resource client and the services are synchronous. Event-loop
   hosts compose these two classes with a
   :class:`~riddlenet.cache.CacheStore` themselves.
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, Optional

import httpx

from riddlenet.client.invoker import exhausted
from riddlenet.client.response import (
    REQUEST_ERRORS,
    classify_response,
    classify_transport_error,
    timeout_error,
)
from riddlenet.exceptions import TransientError
from riddlenet.models import RequestConfig, RequestDescriptor, RetryState
from riddlenet.output import get_output


class AsyncRetryingInvoker:
    """Non-blocking counterpart of :class:`~riddlenet.client.invoker.RetryingInvoker`.

    Args:
        client: The :class:`httpx.AsyncClient` used for every attempt.
        config: Timing and retry policy.
        sleep: Awaitable sleep used between attempts.
        rng: Source of jitter.

    Example::

        async with httpx.AsyncClient() as http:
            invoker = AsyncRetryingInvoker(http)
            response = await invoker.invoke(descriptor)
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: Optional[RequestConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._client = client
        self._config = config or RequestConfig()
        self._sleep = sleep
        self._rng = rng or random.Random()

    async def invoke(
        self,
        descriptor: RequestDescriptor,
        max_retries: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Execute *descriptor*; same contract as the synchronous ``invoke``."""
        retries = self._config.max_retries if max_retries is None else max_retries
        per_attempt = self._config.timeout if timeout is None else timeout
        state = RetryState(attempt=0, next_delay=self._config.base_delay)

        while True:
            try:
                return await self._attempt(descriptor, per_attempt)
            except TransientError as exc:
                if state.attempt >= retries:
                    raise exhausted(descriptor, exc, state.attempt + 1) from exc
                delay = state.next_delay * self._rng.uniform(
                    self._config.jitter_min, self._config.jitter_max
                )
                get_output().debug(
                    f"{descriptor.method} {descriptor.url}: {exc}; retrying in {delay:.2f}s "
                    f"(retry {state.attempt + 1}/{retries})"
                )
                await self._sleep(delay)
                state = state.advance()

    async def _attempt(self, descriptor: RequestDescriptor, timeout: float) -> httpx.Response:
        try:
            response = await asyncio.wait_for(self._exchange(descriptor, timeout), timeout)
        except asyncio.TimeoutError:
            raise timeout_error(timeout) from None
        except REQUEST_ERRORS as exc:
            raise classify_transport_error(exc, timeout) from exc

        error = classify_response(response)
        if error is not None:
            raise error
        return response

    async def _exchange(self, descriptor: RequestDescriptor, timeout: float) -> httpx.Response:
        return await self._client.request(
            descriptor.method,
            descriptor.url,
            headers=dict(descriptor.headers),
            params=dict(descriptor.params) or None,
            json=descriptor.body,
            timeout=timeout,
        )


class AsyncLivenessProber:
    """Non-blocking counterpart of :class:`~riddlenet.client.prober.LivenessProber`."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        health_url: Optional[str] = None,
        timeout: float = 3.0,
    ) -> None:
        self._client = client
        self._health_url = health_url
        self._timeout = timeout

    async def is_available(
        self, url: Optional[str] = None, timeout: Optional[float] = None
    ) -> bool:
        target = url or self._health_url
        if not target:
            return False
        limit = self._timeout if timeout is None else timeout
        try:
            response = await asyncio.wait_for(self._check(target, limit), limit)
        except asyncio.TimeoutError:
            get_output().debug(f"Health probe {target} timed out after {limit:g}s")
            return False
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            get_output().debug(f"Health probe {target} failed: {exc}")
            return False
        return response.is_success

    async def _check(self, target: str, limit: float) -> httpx.Response:
        response = await self._client.head(target, timeout=limit)
        if response.status_code == 405:
            response = await self._client.get(target, timeout=limit)
        return response
