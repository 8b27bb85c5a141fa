"""Synchronous retrying HTTP invoker.

:class:`RetryingInvoker` executes one logical request described by a
:class:`~riddlenet.models.RequestDescriptor`:

- every attempt is bounded by a wall-clock deadline covering connect,
  headers and body; a timed-out attempt raises
  :class:`~riddlenet.exceptions.RequestTimeoutError` immediately, because a
  hung attempt says nothing about whether another one would succeed;
- 4xx responses raise a :class:`~riddlenet.exceptions.ClientError` subclass
  after exactly one attempt;
- 5xx responses and connection failures are retried up to ``max_retries``
  more times, sleeping ``base_delay * 2**(k-1) * jitter`` before retry *k*
  with ``jitter`` drawn uniformly from ``[jitter_min, jitter_max]``;
- when the budget runs out,
  :class:`~riddlenet.exceptions.RetriesExhaustedError` is raised with the
  last transient error attached.

Retry progress lives in a :class:`~riddlenet.models.RetryState` local to the
call, so one invoker can serve many threads at once. The sleep function and
the random source are injectable for tests.

With the default :class:`~riddlenet.models.RequestConfig` no call blocks
longer than :func:`worst_case_duration`: ``8 * 4 + (1 + 2 + 4) * 1.15``
seconds. Since a timeout ends the call, the longest realistic sequence is
three fast transient failures, the full backoff, and one slow final attempt:
about ``8 + 8.05`` seconds.

See Also:
    :class:`~riddlenet.client.async_invoker.AsyncRetryingInvoker` for the
    event-loop variant.
"""

from __future__ import annotations

import random
import time
from typing import Callable, Optional

import httpx

from riddlenet.client.deadline import fetch, run_with_deadline
from riddlenet.client.response import (
    REQUEST_ERRORS,
    classify_response,
    classify_transport_error,
)
from riddlenet.exceptions import NetworkError, RetriesExhaustedError, TransientError
from riddlenet.models import RequestConfig, RequestDescriptor, RetryState
from riddlenet.output import get_output


def backoff_delay(attempt: int, base_delay: float, jitter: float = 1.0) -> float:
    """Return the delay in seconds before retry number *attempt* (1-based)."""
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return base_delay * 2 ** (attempt - 1) * jitter


def worst_case_duration(
    config: RequestConfig,
    max_retries: Optional[int] = None,
    timeout: Optional[float] = None,
) -> float:
    """Upper bound, in seconds, on how long one invocation can block.

    ``timeout * (max_retries + 1)`` plus every backoff delay at maximum
    jitter.
    """
    retries = config.max_retries if max_retries is None else max_retries
    per_attempt = config.timeout if timeout is None else timeout
    backoff = sum(
        backoff_delay(k, config.base_delay, config.jitter_max) for k in range(1, retries + 1)
    )
    return per_attempt * (retries + 1) + backoff


class RetryingInvoker:
    """Executes requests with bounded retries, backoff and jitter.

    Args:
        client: The :class:`httpx.Client` used for every attempt. The
            invoker does not own it and never closes it.
        config: Timing and retry policy. Defaults to :class:`RequestConfig`.
        sleep: Blocking sleep used between attempts.
        rng: Source of jitter.

    Example::

        with httpx.Client() as http:
            invoker = RetryingInvoker(http)
            response = invoker.invoke(
                RequestDescriptor("GET", "http://localhost:3000/riddles")
            )
    """

    def __init__(
        self,
        client: httpx.Client,
        config: Optional[RequestConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._client = client
        self._config = config or RequestConfig()
        self._sleep = sleep
        self._rng = rng or random.Random()

    @property
    def config(self) -> RequestConfig:
        return self._config

    def invoke(
        self,
        descriptor: RequestDescriptor,
        max_retries: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Execute *descriptor*, retrying transient failures.

        Args:
            descriptor: The request to send.
            max_retries: Additional attempts allowed after the first one.
                Defaults to ``config.max_retries``.
            timeout: Per-attempt timeout in seconds. Defaults to
                ``config.timeout``.

        Returns:
            The successful (2xx) :class:`httpx.Response`.

        Raises:
            RequestTimeoutError: An attempt timed out.
            ClientError: The server answered 4xx.
            RetriesExhaustedError: Every attempt failed transiently.
        """
        retries = self._config.max_retries if max_retries is None else max_retries
        per_attempt = self._config.timeout if timeout is None else timeout
        state = RetryState(attempt=0, next_delay=self._config.base_delay)

        while True:
            try:
                return self._attempt(descriptor, per_attempt)
            except TransientError as exc:
                if state.attempt >= retries:
                    raise exhausted(descriptor, exc, state.attempt + 1) from exc
                delay = state.next_delay * self._jitter()
                get_output().debug(
                    f"{descriptor.method} {descriptor.url}: {exc}; retrying in {delay:.2f}s "
                    f"(retry {state.attempt + 1}/{retries})"
                )
                self._sleep(delay)
                state = state.advance()

    def _attempt(self, descriptor: RequestDescriptor, timeout: float) -> httpx.Response:
        deadline = time.monotonic() + timeout
        response = run_with_deadline(lambda: self._exchange(descriptor, deadline, timeout), timeout)
        error = classify_response(response)
        if error is not None:
            raise error
        return response

    def _exchange(
        self, descriptor: RequestDescriptor, deadline: float, timeout: float
    ) -> httpx.Response:
        try:
            return fetch(
                self._client,
                descriptor.method,
                descriptor.url,
                deadline,
                timeout,
                headers=dict(descriptor.headers),
                params=dict(descriptor.params) or None,
                json=descriptor.body,
            )
        except REQUEST_ERRORS as exc:
            raise classify_transport_error(exc, timeout) from exc

    def _jitter(self) -> float:
        return self._rng.uniform(self._config.jitter_min, self._config.jitter_max)


def exhausted(
    descriptor: RequestDescriptor, last_error: NetworkError, attempts: int
) -> RetriesExhaustedError:
    """Build the terminal error for a request that used up its retry budget."""
    return RetriesExhaustedError(
        f"{descriptor.method} {descriptor.url} failed after {attempts} attempt(s): {last_error}",
        last_error=last_error,
        attempts=attempts,
    )
