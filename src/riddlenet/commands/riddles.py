"""Riddle commands -- browse, author and answer riddles.

Provides the ``riddlenet riddles`` sub-command group. Listings and single
riddles are served from the local cache when the server is unreachable; a
warning on stderr says so.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from riddlenet.commands import open_api
from riddlenet.exceptions import ValidationError
from riddlenet.models import Riddle
from riddlenet.output import format_response, get_output, print_table, success

riddles_app = typer.Typer(no_args_is_help=True)


def _riddle_rows(riddles: list[Riddle]) -> list[list[str]]:
    return [[r.id or "", r.formatted_level, r.question] for r in riddles]


@riddles_app.command("list")
def riddles_list(
    ctx: typer.Context,
    level: Optional[str] = typer.Option(None, "--level", "-l", help="easy, medium or hard."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Maximum riddles to return."),
    skip: Optional[int] = typer.Option(None, "--skip", min=0, help="Riddles to skip."),
) -> None:
    """List riddles.

    Example::

        riddlenet riddles list --level easy --limit 5
    """
    with open_api(ctx) as api:
        page = api.riddles.get_all_riddles(level=level, limit=limit, skip=skip)
    print_table(["ID", "Level", "Question"], _riddle_rows(page.riddles), title="Riddles")


@riddles_app.command("random")
def riddles_random(ctx: typer.Context) -> None:
    """Show a random riddle (always fetched from the server)."""
    with open_api(ctx) as api:
        riddle = api.riddles.get_random_riddle()
    format_response(riddle.model_dump(mode="json", exclude={"answer"}))


@riddles_app.command("get")
def riddles_get(
    ctx: typer.Context,
    riddle_id: str = typer.Argument(help="Riddle ID."),
    show_answer: bool = typer.Option(False, "--show-answer", help="Include the answer."),
) -> None:
    """Show one riddle."""
    with open_api(ctx) as api:
        riddle = api.riddles.get_riddle_by_id(riddle_id)
    exclude = None if show_answer else {"answer"}
    format_response(riddle.model_dump(mode="json", exclude=exclude))


@riddles_app.command("create")
def riddles_create(
    ctx: typer.Context,
    question: str = typer.Option(..., "--question", help="Riddle text."),
    answer: str = typer.Option(..., "--answer", help="Expected answer."),
    level: str = typer.Option("medium", "--level", "-l", help="easy, medium or hard."),
) -> None:
    """Create a riddle."""
    with open_api(ctx) as api:
        riddle = api.riddles.create_riddle(
            {"question": question, "answer": answer, "level": level}
        )
    success(f"Created riddle {riddle.id}")
    format_response(riddle.model_dump(mode="json"))


@riddles_app.command("update")
def riddles_update(
    ctx: typer.Context,
    riddle_id: str = typer.Argument(help="Riddle ID."),
    question: Optional[str] = typer.Option(None, "--question"),
    answer: Optional[str] = typer.Option(None, "--answer"),
    level: Optional[str] = typer.Option(None, "--level", "-l"),
) -> None:
    """Change fields of a riddle. Only the options given are sent."""
    with open_api(ctx) as api:
        riddle = api.riddles.update_riddle(
            riddle_id, {"question": question, "answer": answer, "level": level}
        )
    success(f"Updated riddle {riddle.id or riddle_id}")
    format_response(riddle.model_dump(mode="json"))


@riddles_app.command("delete")
def riddles_delete(
    ctx: typer.Context,
    riddle_id: str = typer.Argument(help="Riddle ID."),
) -> None:
    """Delete a riddle."""
    with open_api(ctx) as api:
        result = api.riddles.delete_riddle(riddle_id)
    success(f"Deleted riddle {result.deleted_id}")


@riddles_app.command("load")
def riddles_load(
    ctx: typer.Context,
    file: Path = typer.Argument(
        help="JSON file holding a list of riddles, or an object with a riddles list.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Replace the server's riddles with the contents of FILE.

    Clears the local response cache.
    """
    try:
        data = json.loads(file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"{file} is not valid JSON: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("riddles", [])
    if not isinstance(data, list):
        raise ValidationError(f"{file} must contain a list of riddles")

    with open_api(ctx) as api:
        result = api.riddles.load_initial_riddles(data)
    success(f"Loaded {len(data)} riddle(s)")
    if get_output().is_verbose:
        format_response(result)


@riddles_app.command("check")
def riddles_check(
    ctx: typer.Context,
    riddle_id: str = typer.Argument(help="Riddle ID."),
    answer: str = typer.Argument(help="Your answer."),
) -> None:
    """Check an answer. Exits 1 when it is wrong."""
    with open_api(ctx) as api:
        check = api.riddles.check_answer(riddle_id, answer)
    format_response(check.model_dump(mode="json"))
    if not check.is_correct:
        raise typer.Exit(code=1)
