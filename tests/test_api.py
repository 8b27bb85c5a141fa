"""Tests for the RiddleApi facade."""

from __future__ import annotations

from pathlib import Path

import httpx

from riddlenet.api import RiddleApi
from riddlenet.cache import DiskCacheStore, MemoryCacheStore
from riddlenet.models import CacheConfig, ReadSource, RequestConfig, Settings

RIDDLE = {"_id": "r1", "question": "q", "answer": "a", "level": "easy"}


def _settings(tmp_path: Path, **cache) -> Settings:
    return Settings(
        base_url="http://riddles.test",
        request=RequestConfig(max_retries=1),
        cache=CacheConfig(directory=str(tmp_path / "store"), **cache),
    )


class TestRiddleApi:
    def test_end_to_end_offline_fallback(self, tmp_path: Path) -> None:
        state = {"up": True}

        def handler(request: httpx.Request) -> httpx.Response:
            if not state["up"]:
                raise httpx.ConnectError("refused")
            if request.url.path == "/riddles/r1":
                return httpx.Response(200, json={"success": True, "data": RIDDLE})
            return httpx.Response(200)

        with RiddleApi(
            _settings(tmp_path), transport=httpx.MockTransport(handler), sleep=lambda s: None
        ) as api:
            assert isinstance(api.cache, DiskCacheStore)
            assert api.riddles.get_riddle_by_id("r1").id == "r1"

        state["up"] = False
        with RiddleApi(
            _settings(tmp_path), transport=httpx.MockTransport(handler), sleep=lambda s: None
        ) as api:
            assert not api.is_server_available()
            result = api.client.get_by_id("riddles", "r1")
            assert result.source is ReadSource.CACHED
            assert api.riddles.get_riddle_by_id("r1").question == "q"

    def test_disabled_cache_is_memory(self, tmp_path: Path) -> None:
        with RiddleApi(
            _settings(tmp_path, enabled=False),
            transport=httpx.MockTransport(lambda r: httpx.Response(200)),
        ) as api:
            assert isinstance(api.cache, MemoryCacheStore)

    def test_injected_cache(self, tmp_path: Path) -> None:
        cache = MemoryCacheStore()
        with RiddleApi(
            _settings(tmp_path),
            transport=httpx.MockTransport(lambda r: httpx.Response(200)),
            cache=cache,
        ) as api:
            assert api.cache is cache
            assert api.players.get_leaderboard() == []
