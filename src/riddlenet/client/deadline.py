"""Hard per-attempt deadlines for blocking httpx calls.

httpx timeouts apply per phase: the read timeout bounds the wait for each
chunk, not the whole response, so a server that trickles one byte at a time
can keep a request open indefinitely. The helpers here put one wall-clock
deadline over an entire exchange.

:func:`run_with_deadline` runs a call on a daemon worker thread and gives up
waiting once the deadline passes. :func:`fetch` is the exchange such a
worker runs: it streams the body and stops reading as soon as the deadline
is behind it, so an abandoned worker releases its connection promptly.
"""

from __future__ import annotations

import concurrent.futures
import threading
import time
from typing import Any, Callable, TypeVar

import httpx

from riddlenet.client.response import timeout_error

T = TypeVar("T")


def fetch(
    client: httpx.Client,
    method: str,
    url: str,
    deadline: float,
    timeout: float,
    **kwargs: Any,
) -> httpx.Response:
    """Send one request and read its body before *deadline* (``time.monotonic``).

    Returns a fully read :class:`httpx.Response`.

    Raises:
        RequestTimeoutError: The body was still arriving at *deadline*.
        httpx.RequestError: Any httpx failure, for the caller to classify.
    """
    with client.stream(method, url, timeout=timeout, **kwargs) as streamed:
        chunks = []
        for chunk in streamed.iter_raw():
            if time.monotonic() > deadline:
                raise timeout_error(timeout)
            chunks.append(chunk)
        # Rebuilding from the raw bytes decodes them per Content-Encoding.
        return httpx.Response(
            streamed.status_code,
            headers=streamed.headers,
            content=b"".join(chunks),
            request=streamed.request,
        )


def run_with_deadline(fn: Callable[[], T], timeout: float) -> T:
    """Return ``fn()``, or raise :class:`RequestTimeoutError` after *timeout* seconds.

    Exceptions raised by *fn* propagate unchanged. On timeout the worker is
    left to finish on its own; its result is discarded.
    """
    future: concurrent.futures.Future[T] = concurrent.futures.Future()

    def work() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(fn())
        except Exception as exc:
            future.set_exception(exc)

    threading.Thread(target=work, name="riddlenet-attempt", daemon=True).start()
    try:
        return future.result(timeout=timeout)
    except concurrent.futures.TimeoutError:
        raise timeout_error(timeout) from None
