"""Caching infrastructure for repositories.

This package provides:
- Cache key naming for entity types and instances
- Cache stores and per-type cache partitions
- Cache policies deciding how each repository operation uses the cache
- Factories creating one policy per operation
"""

from .factory import (
    CachePolicyFactory,
    DefaultCachePolicyFactory,
    FullDataSetCachePolicyFactory,
    NoCachePolicyFactory,
    SingleItemsOnlyCachePolicyFactory,
)
from .keys import cache_id_key, cache_type_key
from .policy import (
    CachePolicy,
    CachePolicyOptions,
    DefaultCachePolicy,
    FullDataSetCachePolicy,
    NoCachePolicy,
    SingleItemsOnlyCachePolicy,
)
from .store import (
    AppCaches,
    CacheStore,
    InMemoryCacheStore,
    IsolatedCaches,
    NullCacheStore,
)

__all__ = [
    # Keys
    "cache_id_key",
    "cache_type_key",
    # Stores
    "CacheStore",
    "InMemoryCacheStore",
    "NullCacheStore",
    "IsolatedCaches",
    "AppCaches",
    # Policies
    "CachePolicy",
    "CachePolicyOptions",
    "DefaultCachePolicy",
    "SingleItemsOnlyCachePolicy",
    "FullDataSetCachePolicy",
    "NoCachePolicy",
    # Factories
    "CachePolicyFactory",
    "DefaultCachePolicyFactory",
    "SingleItemsOnlyCachePolicyFactory",
    "FullDataSetCachePolicyFactory",
    "NoCachePolicyFactory",
]
