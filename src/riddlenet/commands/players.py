"""Player commands -- registration, lookups, scores and the leaderboard."""

from __future__ import annotations

import typer

from riddlenet.commands import open_api
from riddlenet.output import format_response, info, print_table, success

players_app = typer.Typer(no_args_is_help=True)


@players_app.command("get")
def players_get(
    ctx: typer.Context,
    username: str = typer.Argument(help="Player username."),
) -> None:
    """Show a player with stats and solve history."""
    with open_api(ctx) as api:
        details = api.players.get_player_details(username)
    format_response(details.model_dump(mode="json"))


@players_app.command("create")
def players_create(
    ctx: typer.Context,
    username: str = typer.Argument(help="3-20 letters, digits or underscores."),
) -> None:
    """Register a new player."""
    with open_api(ctx) as api:
        player = api.players.create_player(username)
    success(f"Created player {player.username or username}")
    format_response(player.model_dump(mode="json"))


@players_app.command("find-or-create")
def players_find_or_create(
    ctx: typer.Context,
    username: str = typer.Argument(help="Player username."),
) -> None:
    """Show a player, registering them first if they do not exist."""
    with open_api(ctx) as api:
        details = api.players.find_or_create_player(username)
    format_response(details.model_dump(mode="json"))


@players_app.command("available")
def players_available(
    ctx: typer.Context,
    username: str = typer.Argument(help="Username to check."),
) -> None:
    """Report whether a username is free. Exits 1 when it is taken."""
    with open_api(ctx) as api:
        available = api.players.is_username_available(username)
    format_response({"username": username, "available": available})
    if not available:
        raise typer.Exit(code=1)


@players_app.command("submit-score")
def players_submit_score(
    ctx: typer.Context,
    username: str = typer.Argument(help="Player username."),
    riddle_id: str = typer.Argument(help="ID of the solved riddle."),
    time_ms: int = typer.Argument(help="Time to solve in milliseconds.", min=0),
) -> None:
    """Record a solved riddle."""
    with open_api(ctx) as api:
        result = api.players.submit_score(username, riddle_id, time_ms)
    if result.new_best:
        success("New best time!")
    elif result.message:
        info(result.message)
    format_response(result.model_dump(mode="json"))


@players_app.command("leaderboard")
def players_leaderboard(
    ctx: typer.Context,
    limit: int = typer.Option(10, "--limit", help="Number of players (1-100)."),
) -> None:
    """Show the fastest players."""
    with open_api(ctx) as api:
        entries = api.players.get_leaderboard(limit)
    rows = [
        [str(rank), e.username, e.formatted_time, str(e.riddles_solved)]
        for rank, e in enumerate(entries, start=1)
    ]
    print_table(["Rank", "Username", "Best time", "Solved"], rows, title="Leaderboard")


@players_app.command("stats")
def players_stats(
    ctx: typer.Context,
    username: str = typer.Argument(help="Player username."),
) -> None:
    """Show a summary of a player's statistics."""
    with open_api(ctx) as api:
        summary = api.players.get_player_stats(username)
    format_response(summary.model_dump(mode="json"))
