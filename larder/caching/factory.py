from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from logging import Logger
from typing import Generic

from .policy import (
    CachePolicy,
    CachePolicyOptions,
    DefaultCachePolicy,
    E,
    FullDataSetCachePolicy,
    LOGGER,
    NoCachePolicy,
    SingleItemsOnlyCachePolicy,
    TId,
)
from .store import CacheStore


class CachePolicyFactory(ABC, Generic[E, TId]):
    """Creates the cache policy used for each repository operation.

    A repository holds one factory for its whole lifetime and asks it for a
    fresh policy per operation. The factory carries everything the policies
    need that outlives an operation: the cache store and the options.
    """

    @staticmethod
    def no_cache() -> "CachePolicyFactory":
        return NoCachePolicyFactory()

    @abstractmethod
    def create_policy(self) -> CachePolicy[E, TId]: ...


class DefaultCachePolicyFactory(CachePolicyFactory[E, TId]):
    __slots__ = ("cache", "entity_type", "options")

    def __init__(
        self,
        cache: CacheStore,
        entity_type: type[E],
        options: CachePolicyOptions | None = None,
    ):
        self.cache = cache
        self.entity_type = entity_type
        self.options = options if options is not None else CachePolicyOptions()

    def create_policy(self) -> CachePolicy[E, TId]:
        return DefaultCachePolicy(self.cache, self.entity_type, self.options)


class SingleItemsOnlyCachePolicyFactory(DefaultCachePolicyFactory[E, TId]):
    def create_policy(self) -> CachePolicy[E, TId]:
        return SingleItemsOnlyCachePolicy(self.cache, self.entity_type, self.options)


class FullDataSetCachePolicyFactory(CachePolicyFactory[E, TId]):
    """Creates policies that keep every entity of a type in one cached collection.

    Args:
        cache: Store holding the collection.
        entity_type: Type of the cached entities.
        entity_id: Extracts the id of an entity.
        load_all: Loads every entity of the type from storage.
        logger: Logger the created policies write to.
    """

    __slots__ = ("cache", "entity_type", "entity_id", "load_all", "logger")

    def __init__(
        self,
        cache: CacheStore,
        entity_type: type[E],
        entity_id: Callable[[E], TId],
        load_all: Callable[[], Iterable[E | None]],
        logger: Logger = LOGGER,
    ):
        self.cache = cache
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.load_all = load_all
        self.logger = logger

    def create_policy(self) -> CachePolicy[E, TId]:
        return FullDataSetCachePolicy(
            self.cache, self.entity_type, self.entity_id, self.load_all, self.logger
        )


class NoCachePolicyFactory(CachePolicyFactory[E, TId]):
    def create_policy(self) -> CachePolicy[E, TId]:
        return NoCachePolicy()
