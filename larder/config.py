"""Repository configuration using pydantic-settings."""

from typing import Literal

from pydantic_settings import BaseSettings


class RepositorySettings(BaseSettings):
    """Settings shared by repositories.

    All settings can be configured via environment variables with the
    LARDER_ prefix. For example:
    - LARDER_MAX_IDS_PER_QUERY=1000
    - LARDER_CACHE_POLICY=single_items
    - LARDER_VALIDATE_COUNT=false

    Attributes:
        max_ids_per_query: Most distinct ids a bulk read may ask for. Larger
            requests are refused before touching storage.
        cache_policy: Which cache policy repositories use unless they are
            given their own factory. "default" caches each entity,
            "single_items" caches single reads only, "full_data_set" caches
            the whole set of a type as one collection, "none" disables
            caching.
        validate_count: Whether "get everything" reads check the cached
            entity count against storage before trusting the cache.
        allow_zero_count: Whether an empty "get everything" result is cached.

    Example:
        >>> settings = RepositorySettings(cache_policy="full_data_set")
        >>> repository = Repository(Widget, backend, unit_of_work, caches, settings=settings)
    """

    max_ids_per_query: int = 2000
    cache_policy: Literal["default", "single_items", "full_data_set", "none"] = "default"
    validate_count: bool = True
    allow_zero_count: bool = False

    model_config = {"env_prefix": "LARDER_"}
