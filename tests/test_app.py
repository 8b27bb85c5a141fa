"""Tests for the riddlenet CLI."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import httpx
import pytest

from riddlenet import __version__
from riddlenet.api import RiddleApi
from riddlenet.app import app, main
from riddlenet.cache import MemoryCacheStore
from riddlenet.exceptions import ValidationError
from riddlenet.exit_codes import EXIT_CONNECTION_ERROR, EXIT_INVALID_USAGE, EXIT_NOT_FOUND

RIDDLE = {"_id": "r1", "question": "What has keys?", "answer": "Piano", "level": "easy"}


class FakeServer:
    def __init__(self, healthy: bool = True) -> None:
        self.healthy = healthy
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/health":
            return httpx.Response(200 if self.healthy else 503)
        if (request.method, path) == ("GET", "/riddles"):
            return httpx.Response(200, json={"success": True, "count": 1, "data": [RIDDLE]})
        if (request.method, path) == ("GET", "/riddles/r1"):
            return httpx.Response(200, json={"success": True, "data": RIDDLE})
        if (request.method, path) == ("POST", "/riddles/load-initial"):
            return httpx.Response(200, json={"success": True})
        if (request.method, path) == ("GET", "/players/leaderboard"):
            return httpx.Response(
                200, json={"data": [{"username": "alice", "best_time": 42000, "riddles_solved": 2}]}
            )
        return httpx.Response(404, json={"error": "Not found"})


@pytest.fixture
def server(isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> FakeServer:
    fake = FakeServer()
    seen: list = []

    def factory(settings):
        seen.append(settings)
        return RiddleApi(
            settings,
            transport=httpx.MockTransport(fake),
            cache=MemoryCacheStore(),
            sleep=lambda s: None,
        )

    monkeypatch.setattr("riddlenet.commands.api_factory", factory)
    fake.settings_seen = seen
    return fake


class TestRoot:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_no_args_shows_help(self, cli_runner) -> None:
        result = cli_runner.invoke(app, [])
        assert "riddles" in result.output

    def test_base_url_flag(self, cli_runner, server) -> None:
        cli_runner.invoke(app, ["--base-url", "http://cli.test/", "health"])
        assert server.settings_seen[0].base_url == "http://cli.test"


class TestRiddleCommands:
    def test_list_json(self, cli_runner, server) -> None:
        result = cli_runner.invoke(app, ["--json", "-q", "riddles", "list", "--level", "easy"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == [
            {"ID": "r1", "Level": "Easy", "Question": "What has keys?"}
        ]
        assert server.requests[0].url.params["level"] == "easy"

    def test_get_hides_answer(self, cli_runner, server) -> None:
        result = cli_runner.invoke(app, ["--json", "-q", "riddles", "get", "r1"])
        data = json.loads(result.stdout)
        assert data["id"] == "r1"
        assert "answer" not in data

    def test_get_show_answer(self, cli_runner, server) -> None:
        result = cli_runner.invoke(app, ["--json", "-q", "riddles", "get", "r1", "--show-answer"])
        assert json.loads(result.stdout)["answer"] == "Piano"

    def test_check_correct(self, cli_runner, server) -> None:
        result = cli_runner.invoke(app, ["--json", "-q", "riddles", "check", "r1", "piano"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["is_correct"] is True

    def test_check_wrong_exits_1(self, cli_runner, server) -> None:
        result = cli_runner.invoke(app, ["--json", "-q", "riddles", "check", "r1", "guitar"])
        assert result.exit_code == 1

    def test_load(self, cli_runner, server, isolated_config: Path) -> None:
        file = isolated_config / "riddles.json"
        file.write_text(json.dumps([{"question": "a", "answer": "b"}]))
        result = cli_runner.invoke(app, ["-q", "riddles", "load", str(file)])
        assert result.exit_code == 0, result.output
        body = json.loads(server.requests[-1].content)
        assert body == {"riddles": [{"question": "a", "answer": "b", "level": "medium"}]}

    def test_create_invalid_raises_before_network(self, cli_runner, server) -> None:
        result = cli_runner.invoke(
            app, ["riddles", "create", "--question", "q", "--answer", "a", "--level", "epic"]
        )
        assert isinstance(result.exception, ValidationError)
        assert server.requests == []


class TestPlayerCommands:
    def test_leaderboard_plain(self, cli_runner, server) -> None:
        result = cli_runner.invoke(app, ["--plain", "-q", "players", "leaderboard"])
        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["Rank\tUsername\tBest time\tSolved", "1\talice\t42s\t2"]

    def test_available(self, cli_runner, server) -> None:
        result = cli_runner.invoke(app, ["--json", "-q", "players", "available", "bob"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"username": "bob", "available": True}


class TestHealthAndCache:
    def test_health_up(self, cli_runner, server) -> None:
        result = cli_runner.invoke(app, ["--json", "-q", "health"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["available"] is True

    def test_health_down(self, cli_runner, server) -> None:
        server.healthy = False
        result = cli_runner.invoke(app, ["--json", "-q", "health"])
        assert result.exit_code == EXIT_CONNECTION_ERROR

    def test_cache_stats(self, cli_runner, server) -> None:
        result = cli_runner.invoke(app, ["--json", "-q", "cache", "stats"])
        assert json.loads(result.stdout) == {"backend": "MemoryCacheStore", "size": 0}

    def test_cache_clear(self, cli_runner, server) -> None:
        result = cli_runner.invoke(app, ["cache", "clear"])
        assert result.exit_code == 0


class TestMain:
    @pytest.fixture(autouse=True)
    def _keep_sigint(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("riddlenet.app._setup_signal_handlers", lambda: None)

    def test_riddlenet_error_maps_to_exit_code(
        self, server, monkeypatch: pytest.MonkeyPatch, capsys
    ) -> None:
        monkeypatch.setattr(sys, "argv", ["riddlenet", "--no-color", "players", "create", "ab"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == EXIT_INVALID_USAGE
        assert "at least 3 characters" in capsys.readouterr().err

    def test_not_found_exit_code(self, server, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "argv", ["riddlenet", "players", "get", "ghost"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == EXIT_NOT_FOUND

    def test_unexpected_error_writes_crash_log(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def boom(settings):
            raise RuntimeError("kaboom")

        monkeypatch.setattr("riddlenet.commands.api_factory", boom)
        monkeypatch.setattr(sys, "argv", ["riddlenet", "health"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
        logs = list((isolated_config / "data" / "riddlenet" / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "kaboom" in logs[0].read_text()
