"""Cache commands -- inspect and clear the local response cache."""

from __future__ import annotations

import typer

from riddlenet.commands import open_api
from riddlenet.output import format_response, success

cache_app = typer.Typer(no_args_is_help=True)


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show the cache backend, location and entry count."""
    with open_api(ctx) as api:
        stats = api.cache.stats()
    format_response(stats)


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Remove every cached response."""
    with open_api(ctx) as api:
        count = len(api.cache)
        api.cache.invalidate_all()
    success(f"Cleared {count} cached response(s)")
