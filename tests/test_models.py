"""Tests for the shared models."""

from __future__ import annotations

import dataclasses

import pytest
from pydantic import ValidationError as PydanticValidationError

from riddlenet.models import (
    CacheConfig,
    CacheEntry,
    PlayerRegistration,
    ReadResult,
    ReadSource,
    RequestDescriptor,
    RetryState,
    Riddle,
    ScoreSubmission,
    Settings,
    format_time,
)


class TestFormatTime:
    @pytest.mark.parametrize(
        "ms, expected",
        [
            (0, "No time recorded"),
            (None, "No time recorded"),
            (42_000, "42s"),
            (65_000, "1m 5s"),
            (599_999, "9m 59s"),
        ],
    )
    def test_format(self, ms, expected) -> None:
        assert format_time(ms) == expected


class TestSettings:
    def test_base_url_normalised(self) -> None:
        assert Settings(base_url=" http://x.test/ ").base_url == "http://x.test"

    def test_empty_base_url_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            Settings(base_url="  ")

    def test_url_join(self) -> None:
        s = Settings(base_url="http://x.test")
        assert s.url("riddles") == "http://x.test/riddles"
        assert s.url("/players/leaderboard") == "http://x.test/players/leaderboard"
        assert s.health_url == "http://x.test/health"

    def test_ttl_classes(self) -> None:
        cfg = CacheConfig()
        assert cfg.ttl_for("riddles", "get") == 3600
        assert cfg.ttl_for("riddles", "list") == 300
        assert cfg.ttl_for("players", "list") == 30
        assert cfg.ttl_for("players", "get") == 3600


class TestTransportValues:
    def test_descriptor_is_immutable(self) -> None:
        d = RequestDescriptor("get", "http://x.test", params={"a": 1, "b": None})
        assert d.method == "GET"
        assert dict(d.params) == {"a": 1}
        assert d.headers["Accept"] == "application/json"
        with pytest.raises(dataclasses.FrozenInstanceError):
            d.method = "POST"  # type: ignore[misc]
        with pytest.raises(TypeError):
            d.params["c"] = 3  # type: ignore[index]

    def test_retry_state_advance(self) -> None:
        s0 = RetryState(attempt=0, next_delay=1.0)
        s1 = s0.advance()
        assert (s1.attempt, s1.next_delay) == (1, 2.0)
        assert (s0.attempt, s0.next_delay) == (0, 1.0)

    def test_cache_entry_expiry_is_strict(self) -> None:
        entry = CacheEntry(payload=1, stored_at=100.0, ttl=10)
        assert not entry.is_expired(110.0)
        assert entry.is_expired(110.01)
        assert not CacheEntry(payload=1, stored_at=0.0).is_expired(1e12)

    def test_read_result_data(self) -> None:
        assert ReadResult({"data": [1]}).data == [1]
        assert ReadResult([1, 2]).data == [1, 2]
        assert ReadResult(None, ReadSource.STALE).degraded


class TestRiddle:
    def test_accepts_mongo_id(self) -> None:
        assert Riddle.model_validate({"_id": "abc", "question": "q", "answer": "a"}).id == "abc"

    def test_answer_comparison(self) -> None:
        riddle = Riddle(question="q", answer=" Echo ")
        assert riddle.is_correct_answer("echo")
        assert not riddle.is_correct_answer(None)

    def test_unknown_level_shown_as_is(self) -> None:
        assert Riddle(level="legendary").formatted_level == "legendary"


class TestScoreSubmission:
    def test_dumps_server_field_names(self) -> None:
        sub = ScoreSubmission(username="alice", riddle_id="r1", time_to_solve=10)
        assert sub.model_dump(by_alias=True) == {
            "username": "alice",
            "riddleId": "r1",
            "timeToSolve": 10,
        }


class TestPlayerRegistration:
    def test_accepts_word_characters(self) -> None:
        assert PlayerRegistration(username="ariel_42").username == "ariel_42"

    @pytest.mark.parametrize("username", ["abc\n", "abc\r\n", "ab c", "ab-c"])
    def test_rejects_other_characters(self, username) -> None:
        with pytest.raises(PydanticValidationError, match="letters, numbers"):
            PlayerRegistration(username=username)
