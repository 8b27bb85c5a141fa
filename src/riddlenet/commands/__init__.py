"""Built-in CLI command groups.

Every command builds its :class:`~riddlenet.api.RiddleApi` through
:func:`open_api`, which resolves settings from the root callback's options.
``api_factory`` is the hook used to construct the facade; tests replace it to
inject a mock transport.
"""

from __future__ import annotations

from typing import Callable

import typer

from riddlenet.api import RiddleApi
from riddlenet.config import resolve_settings
from riddlenet.models import Settings

api_factory: Callable[[Settings], RiddleApi] = RiddleApi


def open_api(ctx: typer.Context) -> RiddleApi:
    """Build the facade from the options stored in ``ctx.obj`` by the root callback."""
    obj = ctx.find_root().obj or {}
    settings = resolve_settings(
        cli_base_url=obj.get("base_url"),
        cli_timeout=obj.get("timeout"),
        cli_max_retries=obj.get("max_retries"),
        cli_no_cache=obj.get("no_cache", False),
    )
    return api_factory(settings)
