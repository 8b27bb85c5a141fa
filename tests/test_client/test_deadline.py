"""Wall-clock bounds on single attempts, against a real socket.

The server here answers every request with a valid HTTP response sent one
byte at a time. Each byte arrives well inside the per-phase httpx timeout,
so only a deadline over the whole attempt can stop it.
"""

from __future__ import annotations

import asyncio
import socket
import threading
import time

import httpx
import pytest

from riddlenet.client import (
    AsyncLivenessProber,
    AsyncRetryingInvoker,
    LivenessProber,
    RetryingInvoker,
    worst_case_duration,
)
from riddlenet.client.deadline import run_with_deadline
from riddlenet.exceptions import RequestTimeoutError, RetriesExhaustedError
from riddlenet.models import RequestConfig, RequestDescriptor

BODY = b'{"success": true, "count": 0, "data": []}'
RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: application/json\r\n"
    + f"Content-Length: {len(BODY)}\r\n".encode()
    + b"Connection: close\r\n\r\n"
    + BODY
)

TIMEOUT = 0.5
# Thread start-up and scheduling on a loaded test machine.
SLACK = 0.75


class TrickleServer:
    """Accepts connections and drips :data:`RESPONSE` out byte by byte."""

    def __init__(self, interval: float) -> None:
        self.interval = interval
        self.stopped = threading.Event()
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(8)
        self._sock.settimeout(0.1)
        self.url = f"http://127.0.0.1:{self._sock.getsockname()[1]}"

    def serve(self) -> None:
        while not self.stopped.is_set():
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            threading.Thread(target=self._answer, args=(conn,), daemon=True).start()

    def close(self) -> None:
        self.stopped.set()
        self._sock.close()

    def _answer(self, conn: socket.socket) -> None:
        with conn:
            conn.settimeout(5.0)
            try:
                request = b""
                while b"\r\n\r\n" not in request:
                    chunk = conn.recv(1024)
                    if not chunk:
                        return
                    request += chunk
                for byte in RESPONSE:
                    if self.stopped.is_set():
                        return
                    conn.sendall(bytes([byte]))
                    time.sleep(self.interval)
            except OSError:
                return


@pytest.fixture
def trickle_server():
    # About 7 seconds for the whole response.
    server = TrickleServer(interval=0.05)
    threading.Thread(target=server.serve, daemon=True).start()
    yield server
    server.close()


def _config(**overrides) -> RequestConfig:
    return RequestConfig(timeout=TIMEOUT, max_retries=0, **overrides)


class TestSyncDeadline:
    def test_trickled_response_times_out(self, trickle_server: TrickleServer) -> None:
        config = _config()
        with httpx.Client(trust_env=False) as http:
            invoker = RetryingInvoker(http, config)
            start = time.monotonic()
            with pytest.raises(RequestTimeoutError):
                invoker.invoke(RequestDescriptor("GET", trickle_server.url + "/riddles"))
            elapsed = time.monotonic() - start
        assert elapsed <= worst_case_duration(config) + SLACK

    def test_timeout_is_not_retried_against_slow_server(
        self, trickle_server: TrickleServer
    ) -> None:
        config = RequestConfig(timeout=TIMEOUT, max_retries=3, base_delay=0.01)
        sleeps: list[float] = []
        with httpx.Client(trust_env=False) as http:
            invoker = RetryingInvoker(http, config, sleep=sleeps.append)
            with pytest.raises(RequestTimeoutError):
                invoker.invoke(RequestDescriptor("GET", trickle_server.url + "/riddles"))
        assert sleeps == []

    def test_probe_gives_up_on_trickle(self, trickle_server: TrickleServer) -> None:
        with httpx.Client(trust_env=False) as http:
            prober = LivenessProber(http, trickle_server.url + "/health", timeout=TIMEOUT)
            start = time.monotonic()
            assert prober.is_available() is False
            elapsed = time.monotonic() - start
        assert elapsed <= TIMEOUT + SLACK


class TestAsyncDeadline:
    def test_trickled_response_times_out(self, trickle_server: TrickleServer) -> None:
        config = _config()

        async def scenario() -> None:
            async with httpx.AsyncClient(trust_env=False) as http:
                invoker = AsyncRetryingInvoker(http, config)
                await invoker.invoke(RequestDescriptor("GET", trickle_server.url + "/riddles"))

        start = time.monotonic()
        with pytest.raises(RequestTimeoutError):
            asyncio.run(scenario())
        assert time.monotonic() - start <= worst_case_duration(config) + SLACK

    def test_probe_gives_up_on_trickle(self, trickle_server: TrickleServer) -> None:
        async def scenario() -> bool:
            async with httpx.AsyncClient(trust_env=False) as http:
                prober = AsyncLivenessProber(http, trickle_server.url + "/health", timeout=TIMEOUT)
                return await prober.is_available()

        start = time.monotonic()
        assert asyncio.run(scenario()) is False
        assert time.monotonic() - start <= TIMEOUT + SLACK


class TestRetryBound:
    def test_retries_finish_within_worst_case(self) -> None:
        config = RequestConfig(timeout=TIMEOUT, max_retries=2, base_delay=0.05)
        http = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(503)))
        invoker = RetryingInvoker(http, config)
        start = time.monotonic()
        with pytest.raises(RetriesExhaustedError):
            invoker.invoke(RequestDescriptor("GET", "http://riddles.test/riddles"))
        elapsed = time.monotonic() - start
        # Two real backoff sleeps, each at least base_delay * 2**(k-1) * jitter_min.
        assert elapsed >= 0.05 * 0.85 + 0.1 * 0.85
        assert elapsed <= worst_case_duration(config)


class TestRunWithDeadline:
    def test_returns_result(self) -> None:
        assert run_with_deadline(lambda: 42, 1.0) == 42

    def test_propagates_errors(self) -> None:
        def fail() -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            run_with_deadline(fail, 1.0)

    def test_gives_up_waiting(self) -> None:
        release = threading.Event()
        start = time.monotonic()
        with pytest.raises(RequestTimeoutError, match="0.2"):
            run_with_deadline(lambda: release.wait(5), 0.2)
        assert time.monotonic() - start < 1.0
        release.set()
