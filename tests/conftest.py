"""Shared test fixtures for riddlenet.

Provides isolated config environments, a controllable clock, recorded
sleeps, a resource-client factory wired to an ``httpx.MockTransport``, and a
CLI runner. These fixtures are automatically discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

import random
from pathlib import Path
from typing import Callable, Optional

import httpx
import pytest

from riddlenet.cache import MemoryCacheStore
from riddlenet.client import LivenessProber, ResilientResourceClient, RetryingInvoker
from riddlenet.models import RequestConfig, Settings
from riddlenet.output import OutputFormat, OutputManager, reset_output, set_output

BASE_URL = "http://riddles.test"

Handler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Install a quiet, colourless OutputManager and reset it afterwards.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams and the
    test finishes, the cached references become stale. Resetting forces a
    fresh manager on next use.
    """
    set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path, clears every riddlenet environment variable
    and changes the working directory to tmp_path.
    """
    monkeypatch.setattr("riddlenet.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "RIDDLENET_BASE_URL",
        "BASE_RIDDLES_SERVER_URL",
        "RIDDLENET_TIMEOUT",
        "RIDDLENET_MAX_RETRIES",
        "RIDDLENET_CACHE_ENABLED",
        "RIDDLENET_CACHE_DIR",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Time control
# ---------------------------------------------------------------------------


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> list[float]:
    """Delays passed to the invoker's sleep function, in call order."""
    return []


# ---------------------------------------------------------------------------
# Client stack
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(base_url=BASE_URL, request=RequestConfig(base_delay=1.0))


@pytest.fixture
def make_client(
    settings: Settings, clock: FakeClock, sleeps: list[float]
) -> Callable[..., ResilientResourceClient]:
    """Factory for a resource client whose HTTP traffic goes to *handler*.

    The returned client exposes the memory store as ``client.cache``. Pass
    *probe_up* to fix the liveness probe's answer; by default the probe
    request goes through *handler* like any other.
    """

    def _factory(
        handler: Handler,
        cache: Optional[MemoryCacheStore] = None,
        probe_up: Optional[bool] = None,
    ) -> ResilientResourceClient:
        http = httpx.Client(transport=httpx.MockTransport(handler))
        invoker = RetryingInvoker(
            http, settings.request, sleep=sleeps.append, rng=random.Random(7)
        )
        prober = LivenessProber(http, health_url=settings.health_url)
        if probe_up is not None:
            prober.is_available = lambda url=None, timeout=None: probe_up  # type: ignore[method-assign]
        return ResilientResourceClient(
            settings, invoker, prober, cache if cache is not None else MemoryCacheStore(clock)
        )

    return _factory


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
