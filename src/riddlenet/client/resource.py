"""Resilient resource client -- read fallback and write invalidation policy.

:class:`ResilientResourceClient` composes a
:class:`~riddlenet.cache.CacheStore`, a
:class:`~riddlenet.client.prober.LivenessProber` and a
:class:`~riddlenet.client.invoker.RetryingInvoker` into
get-all / get-by-id / create / update / delete operations on a resource type.
It is the only component that builds cache keys and picks TTLs.

**Read path** (three tiers: fresh, then cached, then empty or failure):

1. Look up the cache key.
2. If something is cached and the health probe says the server is down,
   answer from the cache straight away (:attr:`ReadSource.CACHED`).
3. Otherwise read from the network. On success, cache the payload with the
   TTL for its resource class. On a timeout, transient or retries-exhausted
   failure, answer from the cache if possible (:attr:`ReadSource.STALE`);
   a collection read with nothing cached returns the explicit empty result
   (:attr:`ReadSource.EMPTY`); anything else re-raises.

Client errors (4xx) are never answered from the cache.

**Write path**: straight to the invoker, no probe, no cache. On success
the written entity's key and every listing key of the resource are
invalidated; a bulk load clears the whole store. Failures propagate
unchanged.

A failing cache backend degrades the client to network-only mode with a
warning; it never fails a request.
"""

from __future__ import annotations

from typing import Any, Callable, Optional
from urllib.parse import quote

from riddlenet.cache import (
    CacheStore,
    cache_key,
    collection_prefix,
    is_cacheable,
    normalize_query,
)
from riddlenet.client.invoker import RetryingInvoker
from riddlenet.client.prober import LivenessProber
from riddlenet.client.response import extract_response_data
from riddlenet.exceptions import CacheUnavailableError, NetworkError
from riddlenet.models import (
    EMPTY_COLLECTION,
    ReadResult,
    ReadSource,
    RequestDescriptor,
    Settings,
)
from riddlenet.output import get_output


class ResilientResourceClient:
    """Cache-aware, retrying access to the server's resources.

    Args:
        settings: Base URL, timing policy and cache TTLs.
        invoker: Executes every network call.
        prober: Consulted on reads when a cached answer is available.
        cache: Where read payloads are kept.

    Example::

        client = ResilientResourceClient(settings, invoker, prober, cache)
        result = client.get_by_id("riddles", "r1")
        riddle = result.data
    """

    def __init__(
        self,
        settings: Settings,
        invoker: RetryingInvoker,
        prober: LivenessProber,
        cache: CacheStore,
    ) -> None:
        self._settings = settings
        self._invoker = invoker
        self._prober = prober
        self._cache = cache

    @property
    def cache(self) -> CacheStore:
        return self._cache

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def read(
        self,
        resource: str,
        operation: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        query: Optional[dict[str, Any]] = None,
        *,
        collection: bool = False,
        max_retries: Optional[int] = None,
    ) -> ReadResult:
        """Read *path*, falling back to the cache when the network fails.

        Args:
            resource: Resource type, e.g. ``"riddles"``.
            operation: ``"list"``, ``"get"`` or an uncached operation such
                as ``"random"``.
            path: URL path relative to the base URL.
            params: Parameters identifying the read, used for the cache key.
            query: Query-string parameters sent to the server. Values the
                cache key folds (riddle ``level``) are folded the same way.
            collection: Whether the read returns a collection. Collections
                degrade to an empty result instead of raising.
            max_retries: Override of the configured retry budget.

        Returns:
            A :class:`~riddlenet.models.ReadResult` whose ``source`` tells
            fresh, cached, stale and empty answers apart.

        Raises:
            ClientError: The server rejected the request (never recovered).
            NetworkError: The network failed, nothing was cached, and the
                read is not a collection.
        """
        query = normalize_query(resource, operation, query)
        descriptor = RequestDescriptor("GET", self._settings.url(path), params=query)
        if not is_cacheable(resource, operation):
            return ReadResult(self._fetch(descriptor, max_retries))

        key = cache_key(resource, operation, params)
        cached = self._cache_get(key)

        if cached is not None and not self._prober.is_available(self._settings.health_url):
            get_output().warning(f"Server unavailable; serving cached '{key}'")
            return ReadResult(cached, ReadSource.CACHED)

        try:
            payload = self._fetch(descriptor, max_retries)
        except NetworkError as exc:
            if not exc.recoverable:
                raise
            if cached is not None:
                get_output().warning(f"{exc}; serving stale cached '{key}'")
                return ReadResult(cached, ReadSource.STALE)
            if collection:
                get_output().warning(f"{exc}; no cached '{key}', returning an empty result")
                return ReadResult(
                    {**EMPTY_COLLECTION, "data": []},
                    ReadSource.EMPTY,
                )
            raise

        if payload is not None:
            self._cache_put(key, payload, self._settings.cache.ttl_for(resource, operation))
        return ReadResult(payload)

    def get_all(
        self,
        resource: str,
        query: Optional[dict[str, Any]] = None,
        path: Optional[str] = None,
        max_retries: Optional[int] = None,
    ) -> ReadResult:
        """Read a collection of *resource* (``GET /<resource>`` unless *path* is given)."""
        return self.read(
            resource,
            "list",
            path or f"/{resource}",
            params=query,
            query=query,
            collection=True,
            max_retries=max_retries,
        )

    def get_by_id(
        self,
        resource: str,
        id: str,
        max_retries: Optional[int] = None,
    ) -> ReadResult:
        """Read one entity (``GET /<resource>/<id>``). Raises rather than fabricate."""
        return self.read(
            resource,
            "get",
            f"/{resource}/{_segment(id)}",
            params={"id": id},
            max_retries=max_retries,
        )

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def write(
        self,
        resource: str,
        method: str,
        path: str,
        body: Any = None,
        *,
        entity_id: Optional[str] = None,
        max_retries: Optional[int] = None,
    ) -> Any:
        """Send a write and invalidate what it may have made stale.

        Args:
            resource: Resource type the write affects.
            method: ``POST``, ``PUT`` or ``DELETE``.
            path: URL path relative to the base URL.
            body: JSON body.
            entity_id: Identifier of the affected entity; its cached copy
                is dropped along with every listing of *resource*.
            max_retries: Override of the configured retry budget.

        Returns:
            The decoded response body.
        """
        payload = self._send(method, path, body, max_retries)
        if is_cacheable(resource, "list"):
            self._cache_call(self._cache.invalidate_prefix, collection_prefix(resource))
        if entity_id is not None and is_cacheable(resource, "get"):
            self._cache_call(self._cache.invalidate, cache_key(resource, "get", {"id": entity_id}))
        return payload

    def create(
        self,
        resource: str,
        body: Any,
        entity_id: Optional[str] = None,
        max_retries: Optional[int] = None,
    ) -> Any:
        return self.write(
            resource, "POST", f"/{resource}", body, entity_id=entity_id, max_retries=max_retries
        )

    def update(
        self, resource: str, id: str, body: Any, max_retries: Optional[int] = None
    ) -> Any:
        return self.write(
            resource,
            "PUT",
            f"/{resource}/{_segment(id)}",
            body,
            entity_id=id,
            max_retries=max_retries,
        )

    def delete(self, resource: str, id: str, max_retries: Optional[int] = None) -> Any:
        return self.write(
            resource,
            "DELETE",
            f"/{resource}/{_segment(id)}",
            entity_id=id,
            max_retries=max_retries,
        )

    def bulk_load(
        self,
        resource: str,
        path: str,
        body: Any,
        max_retries: Optional[int] = None,
    ) -> Any:
        """Replace the server's dataset and clear the entire cache on success."""
        payload = self._send("POST", path, body, max_retries)
        get_output().debug(f"Bulk load of {resource} succeeded; clearing cache")
        self._cache_call(self._cache.invalidate_all)
        return payload

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _fetch(self, descriptor: RequestDescriptor, max_retries: Optional[int]) -> Any:
        response = self._invoker.invoke(descriptor, max_retries=max_retries)
        return extract_response_data(response)

    def _send(self, method: str, path: str, body: Any, max_retries: Optional[int]) -> Any:
        descriptor = RequestDescriptor(method, self._settings.url(path), body=body)
        return self._fetch(descriptor, max_retries)

    def _cache_get(self, key: str) -> Any:
        return self._cache_call(self._cache.get, key)

    def _cache_put(self, key: str, payload: Any, ttl: Optional[float]) -> None:
        self._cache_call(self._cache.put, key, payload, ttl)

    def _cache_call(self, operation: Callable[..., Any], *args: Any) -> Any:
        try:
            return operation(*args)
        except CacheUnavailableError as exc:
            get_output().warning(f"{exc}; continuing without cache")
            return None


def _segment(value: str) -> str:
    return quote(str(value), safe="")
