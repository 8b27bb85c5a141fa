"""TTL-keyed caching for riddlenet reads.

This package provides the :class:`CacheStore` contract with a persistent
:class:`DiskCacheStore` (backed by :mod:`diskcache`) and an in-process
:class:`MemoryCacheStore`, plus :func:`cache_key`, the pure function that
turns ``(resource, operation, params)`` into a normalised key.

The stores are consumed by
:class:`~riddlenet.client.resource.ResilientResourceClient`, which is the
only component that builds keys and chooses TTLs
(:meth:`~riddlenet.models.CacheConfig.ttl_for`).
"""

from riddlenet.cache.keys import (
    cache_key,
    collection_prefix,
    is_cacheable,
    normalize_query,
)
from riddlenet.cache.store import (
    CacheStore,
    DiskCacheStore,
    MemoryCacheStore,
    open_cache_store,
)

__all__ = [
    "CacheStore",
    "DiskCacheStore",
    "MemoryCacheStore",
    "cache_key",
    "collection_prefix",
    "is_cacheable",
    "normalize_query",
    "open_cache_store",
]
