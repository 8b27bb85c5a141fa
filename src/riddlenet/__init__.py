"""riddlenet -- resilient client-side access to a riddles game server.

This package lets an application read and write the remote riddle, player,
score and leaderboard resources over HTTP while tolerating an unreliable or
slow backend. Every call ends in fresh data, acceptably stale cached data,
or a typed :class:`~riddlenet.exceptions.RiddlenetError`.

Typical usage::

    from riddlenet.api import RiddleApi

    with RiddleApi() as api:
        page = api.riddles.get_all_riddles(level="easy", limit=10)
        player = api.players.find_or_create_player("ariel")

Modules:
    api: :class:`~riddlenet.api.RiddleApi` facade wiring everything together.
    client: Retrying invoker, liveness prober and resilient resource client.
    cache: TTL-keyed cache store and the pure cache-key function.
    services: Riddle and player services mapping payloads to domain models.
    models: Pydantic models (settings, transport values, domain objects).
    config: XDG-aware settings loading with precedence resolution.
    exceptions: Exception hierarchy with error kinds and exit codes.
    output: stdout/stderr diagnostics with Rich support.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"
