"""RiddleApi -- one object that wires the whole client stack together.

Typical use::

    from riddlenet.api import RiddleApi

    with RiddleApi() as api:
        page = api.riddles.get_all_riddles(level="easy", limit=5)
        board = api.players.get_leaderboard()

The facade owns the :class:`httpx.Client` and the cache store and closes both
on exit. Tests inject an ``httpx.MockTransport`` through *transport* and an
in-memory store through *cache*.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

import httpx

from riddlenet.cache import CacheStore, open_cache_store
from riddlenet.client import LivenessProber, ResilientResourceClient, RetryingInvoker
from riddlenet.config import default_cache_store_dir, resolve_settings
from riddlenet.models import Settings
from riddlenet.services import PlayerService, RiddleService


class RiddleApi:
    """Facade over the riddle and player services.

    Args:
        settings: Effective settings. Resolved from the environment and the
            settings file when omitted.
        transport: Optional httpx transport (e.g. ``httpx.MockTransport``).
        cache: Cache store to use instead of the one described by
            ``settings.cache``.
        sleep: Sleep function used between retries.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
        cache: Optional[CacheStore] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or resolve_settings()
        self._http = httpx.Client(
            verify=self.settings.request.verify_ssl,
            follow_redirects=True,
            transport=transport,
        )
        if cache is None:
            cache = open_cache_store(self.settings.cache, default_cache_store_dir())
        self.cache = cache
        invoker = RetryingInvoker(self._http, self.settings.request, sleep=sleep)
        self.prober = LivenessProber(
            self._http,
            health_url=self.settings.health_url,
            timeout=self.settings.request.health_timeout,
        )
        self.client = ResilientResourceClient(self.settings, invoker, self.prober, cache)
        self.riddles = RiddleService(self.client)
        self.players = PlayerService(self.client)

    def is_server_available(self) -> bool:
        return self.prober.is_available()

    def close(self) -> None:
        self._http.close()
        self.cache.close()

    def __enter__(self) -> RiddleApi:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
