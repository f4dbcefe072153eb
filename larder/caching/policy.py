from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from copy import deepcopy
from dataclasses import dataclass, field
from logging import Logger, getLogger
from types import TracebackType
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from typing_extensions import Self

from ..domain import HasIdentity, PolicyReleasedError
from .keys import cache_id_key, cache_type_key
from .store import CacheStore

LOGGER = getLogger(__name__)

E = TypeVar("E", bound=HasIdentity)
TId = TypeVar("TId")

GetFallback = Callable[[TId], E | None]
GetAllFallback = Callable[[Sequence[TId]], Iterable[E | None]]
ExistsFallback = Callable[[TId], bool]
PersistAction = Callable[[E], None]

# Cached under the type key when "get everything" found nothing and
# zero counts may be cached.
EMPTY_ENTITIES: tuple[()] = ()


def snapshot(entity: E) -> E:
    """Return a deep copy of `entity` that shares no state with the original."""
    if isinstance(entity, BaseModel):
        return entity.model_copy(deep=True)
    return deepcopy(entity)


@dataclass(frozen=True)
class CachePolicyOptions:
    """Settings shared by every policy a factory creates.

    Attributes:
        perform_count: Returns the true number of stored entities of the
            type. Used to check that a fully populated cache still matches
            storage before a "get everything" read trusts it.
        validate_count: Whether "get everything" reads call `perform_count`
            before trusting cached entries.
        allow_zero_count: Whether an empty "get everything" result may be
            cached, so repeated reads of an empty set stop hitting storage.
        logger: Logger for cache hits, misses and count mismatches.
    """

    perform_count: Callable[[], int] | None = None
    validate_count: bool = True
    allow_zero_count: bool = False
    logger: Logger = field(default=LOGGER)


class CachePolicy(ABC, Generic[E, TId]):
    """Strategy deciding how one repository operation uses the cache.

    A policy is created for a single read or write and released when that
    operation ends. Use it as a context manager so release happens on every
    exit path:

        >>> with factory.create_policy() as policy:
        ...     widget = policy.get(widget_id, backend.perform_get)

    A released policy refuses further work.
    """

    def __init__(self) -> None:
        self._released = False

    def __enter__(self) -> Self:
        self._ensure_active()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.release()

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        self._released = True

    def _ensure_active(self) -> None:
        if self._released:
            raise PolicyReleasedError(
                f"{type(self).__name__} was released and cannot be reused"
            )

    @abstractmethod
    def get(self, id: TId, fallback: GetFallback) -> E | None:
        """Return the entity with `id`, calling `fallback(id)` on a miss."""
        ...

    @abstractmethod
    def get_all(self, ids: Sequence[TId], fallback: GetAllFallback) -> list[E]:
        """Return the entities with `ids`, or every entity when `ids` is empty.

        `fallback` receives the ids that could not be served from cache, or
        an empty sequence when everything must be loaded.
        """
        ...

    @abstractmethod
    def exists(self, id: TId, fallback: ExistsFallback) -> bool: ...

    @abstractmethod
    def create_or_update(self, entity: E, persist: PersistAction) -> None:
        """Persist a new or changed entity and bring the cache in line."""
        ...

    @abstractmethod
    def remove(self, entity: E, persist: PersistAction) -> None:
        """Persist a deletion and drop the entity from the cache."""
        ...


class DefaultCachePolicy(CachePolicy[E, TId]):
    """Caches each entity individually under its own key.

    - Single reads are served from cache and populate it on a miss.
    - Bulk reads by id fetch only the ids missing from cache, in one call.
    - "Get everything" reads trust the cached entries only when their number
      matches the storage count (unless count validation is off).
    - Writes update or evict the entry after the backend call.
    - Absent entities are never cached, so repeated misses keep reaching the
      backend.
    - Entries are private snapshots: a copy goes in on insert and a copy
      comes out on every hit, so changing a returned or persisted entity
      never changes what later reads see.
    """

    __slots__ = ("cache", "entity_type", "options")

    def __init__(
        self,
        cache: CacheStore,
        entity_type: type[E],
        options: CachePolicyOptions | None = None,
    ):
        super().__init__()
        self.cache = cache
        self.entity_type = entity_type
        self.options = options if options is not None else CachePolicyOptions()

    def _id_key(self, id: Any) -> str:
        return cache_id_key(self.entity_type, id)

    def _type_key(self) -> str:
        return cache_type_key(self.entity_type)

    def _get_cached(self, id: TId) -> E | None:
        cached = self.cache.get(self._id_key(id))
        return snapshot(cached) if cached is not None else None

    def _insert(self, entity: E) -> None:
        if entity.has_identity:
            self.cache.put(self._id_key(entity.id), snapshot(entity))

    def get(self, id: TId, fallback: GetFallback) -> E | None:
        self._ensure_active()

        if (cached := self._get_cached(id)) is not None:
            self.options.logger.debug(
                "Cache hit", extra={"cache_key": self._id_key(id)}
            )
            return cached

        entity = fallback(id)
        if entity is not None:
            self._insert(entity)
        return entity

    def get_all(self, ids: Sequence[TId], fallback: GetAllFallback) -> list[E]:
        self._ensure_active()

        if ids:
            return self._get_many(ids, fallback)

        if (cached := self._get_all_cached()) is not None:
            return cached

        entities = [entity for entity in fallback(()) if entity is not None]
        self._insert_all(entities)
        return entities

    def _get_many(self, ids: Sequence[TId], fallback: GetAllFallback) -> list[E]:
        found: dict[Any, E] = {}
        missing: list[TId] = []
        for id in ids:
            if (cached := self._get_cached(id)) is not None:
                found[id] = cached
            else:
                missing.append(id)

        if missing:
            self.options.logger.debug(
                "Cache miss on bulk read",
                extra={
                    "entity_type": self.entity_type.__name__,
                    "requested": len(ids),
                    "missing": len(missing),
                },
            )
            for entity in fallback(tuple(missing)):
                if entity is None:
                    continue
                self._insert(entity)
                found[entity.id] = entity

        return [found[id] for id in ids if id in found]

    def _get_all_cached(self) -> list[E] | None:
        """Return the full cached set of entities, or None if it can't be trusted."""
        type_key = self._type_key()

        # The type key doubles as a prefix of every entity key, so the
        # zero-count marker shows up in prefix searches and is filtered here.
        entities = [
            value
            for value in self.cache.items_by_prefix(type_key)
            if isinstance(value, self.entity_type)
        ]

        if entities:
            if not self.options.validate_count:
                return [snapshot(entity) for entity in entities]
            if self.options.perform_count is None:
                return None
            total = self.options.perform_count()
            if len(entities) == total:
                return [snapshot(entity) for entity in entities]
            self.options.logger.warning(
                "Cached entity count does not match storage, reloading",
                extra={
                    "entity_type": self.entity_type.__name__,
                    "cached": len(entities),
                    "stored": total,
                },
            )
            return None

        if self.options.allow_zero_count and self.cache.get(type_key) is not None:
            return []

        return None

    def _insert_all(self, entities: list[E]) -> None:
        type_key = self._type_key()
        self.cache.clear_by_prefix(type_key)

        if not entities:
            if self.options.allow_zero_count:
                self.cache.put(type_key, EMPTY_ENTITIES)
            return

        for entity in entities:
            self._insert(entity)

    def exists(self, id: TId, fallback: ExistsFallback) -> bool:
        self._ensure_active()

        if self.cache.get(self._id_key(id)) is not None:
            return True
        return fallback(id)

    def create_or_update(self, entity: E, persist: PersistAction) -> None:
        self._ensure_active()

        try:
            persist(entity)
        except Exception:
            # Storage state is unknown after a failed write
            self.cache.remove(self._id_key(entity.id))
            self.cache.remove(self._type_key())
            self.options.logger.warning(
                "Persist failed, evicted cache entry",
                extra={"cache_key": self._id_key(entity.id)},
            )
            raise

        self._insert(entity)
        self.cache.remove(self._type_key())

    def remove(self, entity: E, persist: PersistAction) -> None:
        self._ensure_active()

        try:
            persist(entity)
        finally:
            self.cache.remove(self._id_key(entity.id))
            self.cache.remove(self._type_key())


class SingleItemsOnlyCachePolicy(DefaultCachePolicy[E, TId]):
    """Caches single-entity reads only; bulk reads always go to the backend.

    Suited to types with many entities, where keeping the full set around is
    too expensive and count checks would rarely succeed.
    """

    def get_all(self, ids: Sequence[TId], fallback: GetAllFallback) -> list[E]:
        self._ensure_active()
        return [entity for entity in fallback(tuple(ids)) if entity is not None]


class FullDataSetCachePolicy(CachePolicy[E, TId]):
    """Caches the whole set of entities of a type as one collection.

    Any read loads every entity on first use and then answers from that
    collection. Any write throws the collection away, so the next read
    reloads it. Suited to small, rarely written types.

    The collection holds snapshots, and reads hand out copies of them.
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
        super().__init__()
        self.cache = cache
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.load_all = load_all
        self.logger = logger

    def _type_key(self) -> str:
        return cache_type_key(self.entity_type)

    def _all(self) -> tuple[E, ...]:
        cached = self.cache.get(self._type_key())
        if cached is not None:
            return cached

        entities = tuple(
            snapshot(entity) for entity in self.load_all() if entity is not None
        )
        self.cache.put(self._type_key(), entities)
        self.logger.debug(
            "Loaded full data set",
            extra={"entity_type": self.entity_type.__name__, "loaded": len(entities)},
        )
        return entities

    def _clear(self) -> None:
        self.cache.remove(self._type_key())

    def _find(self, id: TId) -> E | None:
        return next(
            (entity for entity in self._all() if self.entity_id(entity) == id), None
        )

    def get(self, id: TId, fallback: GetFallback) -> E | None:
        self._ensure_active()
        entity = self._find(id)
        return snapshot(entity) if entity is not None else None

    def get_all(self, ids: Sequence[TId], fallback: GetAllFallback) -> list[E]:
        self._ensure_active()
        entities = self._all()
        if not ids:
            return [snapshot(entity) for entity in entities]

        by_id = {self.entity_id(entity): entity for entity in entities}
        return [snapshot(by_id[id]) for id in ids if id in by_id]

    def exists(self, id: TId, fallback: ExistsFallback) -> bool:
        self._ensure_active()
        return self._find(id) is not None

    def create_or_update(self, entity: E, persist: PersistAction) -> None:
        self._ensure_active()
        try:
            persist(entity)
        finally:
            self._clear()

    def remove(self, entity: E, persist: PersistAction) -> None:
        self._ensure_active()
        try:
            persist(entity)
        finally:
            self._clear()


class NoCachePolicy(CachePolicy[E, TId]):
    """Passes every operation straight to the backend."""

    def get(self, id: TId, fallback: GetFallback) -> E | None:
        self._ensure_active()
        return fallback(id)

    def get_all(self, ids: Sequence[TId], fallback: GetAllFallback) -> list[E]:
        self._ensure_active()
        return [entity for entity in fallback(tuple(ids)) if entity is not None]

    def exists(self, id: TId, fallback: ExistsFallback) -> bool:
        self._ensure_active()
        return fallback(id)

    def create_or_update(self, entity: E, persist: PersistAction) -> None:
        self._ensure_active()
        persist(entity)

    def remove(self, entity: E, persist: PersistAction) -> None:
        self._ensure_active()
        persist(entity)
