"""Deterministic cache keys for resource reads.

A key is derived purely from ``(resource, operation, params)``. Each
cacheable pair has a fixed layout: a prefix plus an ordered list of
parameters, each with the token used when the parameter is omitted. Because
omitted and ``None``/empty parameters always collapse to the same token, and
parameter order in the caller's dict does not matter, identical logical
queries always produce identical keys::

    >>> cache_key("riddles", "list", {"limit": 10, "level": "Easy"})
    'riddles_easy_10_0'
    >>> cache_key("players", "list")
    'leaderboard_10'
    >>> cache_key("riddles", "get", {"id": "r1"})
    'riddle_r1'

Operations without a layout (for example ``("riddles", "random")``) are not
cacheable; :func:`is_cacheable` reports this.
"""

from __future__ import annotations

from typing import Any, NamedTuple, Optional

_REQUIRED = object()


class KeyLayout(NamedTuple):
    prefix: str
    params: tuple[tuple[str, Any], ...]
    lowercase: frozenset[str] = frozenset()


_LAYOUTS: dict[tuple[str, str], KeyLayout] = {
    ("riddles", "list"): KeyLayout(
        "riddles",
        (("level", "all"), ("limit", "all"), ("skip", 0)),
        lowercase=frozenset({"level"}),
    ),
    ("riddles", "get"): KeyLayout("riddle", (("id", _REQUIRED),)),
    ("players", "get"): KeyLayout("player", (("id", _REQUIRED),)),
    ("players", "list"): KeyLayout("leaderboard", (("limit", 10),)),
}


def is_cacheable(resource: str, operation: str) -> bool:
    """Return ``True`` when reads of *operation* on *resource* have a key layout."""
    return (resource, operation) in _LAYOUTS


def cache_key(
    resource: str,
    operation: str,
    params: Optional[dict[str, Any]] = None,
) -> str:
    """Build the cache key for a read.

    Args:
        resource: Resource type, e.g. ``"riddles"`` or ``"players"``.
        operation: ``"list"`` or ``"get"``.
        params: Query or path parameters of the read.

    Returns:
        The normalised key string.

    Raises:
        ValueError: If the pair has no layout, a required parameter is
            missing, or *params* contains a parameter the layout does not
            know about.
    """
    layout = _LAYOUTS.get((resource, operation))
    if layout is None:
        raise ValueError(f"No cache key layout for {resource}/{operation}")

    params = params or {}
    known = {name for name, _ in layout.params}
    unknown = set(params) - known
    if unknown:
        raise ValueError(
            f"Unknown parameters for {resource}/{operation}: {', '.join(sorted(unknown))}"
        )

    tokens = [layout.prefix]
    for name, default in layout.params:
        value = params.get(name)
        if value is None or value == "":
            if default is _REQUIRED:
                raise ValueError(f"Parameter '{name}' is required for {resource}/{operation}")
            value = default
        token = str(value).strip()
        if name in layout.lowercase:
            token = token.lower()
        tokens.append(token)
    return "_".join(tokens)


def normalize_query(
    resource: str,
    operation: str,
    query: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Fold string values of *query* the way :func:`cache_key` folds them.

    ``{"level": " Easy "}`` becomes ``{"level": "easy"}`` for riddle
    listings, so the server is asked exactly what the key describes. A value
    that folds to nothing is dropped, like an omitted parameter. Other
    values pass through unchanged.
    """
    query = dict(query or {})
    layout = _LAYOUTS.get((resource, operation))
    if layout is None:
        return query
    for name in layout.lowercase:
        value = query.get(name)
        if isinstance(value, str):
            folded = value.strip().lower()
            if folded:
                query[name] = folded
            else:
                del query[name]
    return query


def collection_prefix(resource: str) -> str:
    """Return the prefix shared by every listing key of *resource*.

    ``"riddles"`` gives ``"riddles_"``; ``"players"`` gives
    ``"leaderboard_"``. Used to drop every page of a collection at once.
    """
    layout = _LAYOUTS.get((resource, "list"))
    if layout is None:
        raise ValueError(f"Resource '{resource}' has no collection keys")
    return f"{layout.prefix}_"
