from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from copy import deepcopy
from threading import Lock
from typing import Generic, TypeVar

from ..domain import HasIdentity, Query

E = TypeVar("E", bound=HasIdentity)
TId = TypeVar("TId")


class RepositoryBackend(ABC, Generic[E, TId]):
    """Storage primitives for one entity type.

    A backend is where storage I/O actually happens: the repository calls it
    only on cache misses and on commit. Everything else (caching, bulk
    limits, unit of work registration) is the repository's job, so a backend
    only has to read and write.

    Backends should let their errors propagate. The repository passes them
    to the caller unchanged and never retries.
    """

    @abstractmethod
    def perform_get(self, id: TId) -> E | None:
        """Load one entity, or return None if there is no entity with `id`."""
        ...

    @abstractmethod
    def perform_get_all(self, ids: Sequence[TId]) -> Iterable[E | None]:
        """Load the entities with `ids`, or every entity when `ids` is empty.

        Ids with no entity may be skipped or yield None; the caller drops
        None values either way.
        """
        ...

    @abstractmethod
    def perform_get_by_query(self, query: Query[E]) -> Iterable[E | None]: ...

    @abstractmethod
    def perform_exists(self, id: TId) -> bool: ...

    @abstractmethod
    def perform_count(self, query: Query[E]) -> int: ...

    @abstractmethod
    def persist_new_item(self, entity: E) -> None:
        """Store a new entity and assign its id."""
        ...

    @abstractmethod
    def persist_updated_item(self, entity: E) -> None: ...

    @abstractmethod
    def persist_deleted_item(self, entity: E) -> None: ...


class InMemoryRepositoryBackend(RepositoryBackend[E, int]):
    """A backend that keeps entities in a dictionary.

    This is not intended for production use. It behaves like real storage in
    the ways that matter to callers: new entities get increasing integer
    ids, and every read returns a fresh copy, so changing a loaded entity
    does not change what is stored until it is persisted again.

    Args:
        entity_type: Type of the stored entities.
        id_generator: Produces ids for new entities. Defaults to a counter
            that starts above the highest seeded id and never hands out an
            id twice, even after the entity holding it was deleted.
    """

    def __init__(
        self,
        entity_type: type[E],
        id_generator: Callable[[], int] | None = None,
    ):
        self.entity_type = entity_type
        self.items: dict[int, E] = {}
        self._id_generator = id_generator
        self._last_id = 0
        self._lock = Lock()

    def _next_id(self) -> int:
        if self._id_generator is not None:
            return self._id_generator()
        self._last_id += 1
        return self._last_id

    def seed(self, *entities: E) -> None:
        """Store entities directly, keeping their ids, bypassing any cache."""
        with self._lock:
            for entity in entities:
                self.items[entity.id] = deepcopy(entity)
                self._last_id = max(self._last_id, entity.id)

    def perform_get(self, id: int) -> E | None:
        with self._lock:
            entity = self.items.get(id)
            return deepcopy(entity) if entity is not None else None

    def perform_get_all(self, ids: Sequence[int]) -> list[E]:
        with self._lock:
            if not ids:
                return [deepcopy(entity) for entity in self.items.values()]
            return [deepcopy(self.items[id]) for id in ids if id in self.items]

    def perform_get_by_query(self, query: Query[E]) -> list[E]:
        with self._lock:
            return [
                deepcopy(entity) for entity in self.items.values() if query.matches(entity)
            ]

    def perform_exists(self, id: int) -> bool:
        with self._lock:
            return id in self.items

    def perform_count(self, query: Query[E]) -> int:
        with self._lock:
            return sum(1 for entity in self.items.values() if query.matches(entity))

    def persist_new_item(self, entity: E) -> None:
        with self._lock:
            if not entity.has_identity:
                entity.id = self._next_id()  # type: ignore[misc]
            self._last_id = max(self._last_id, entity.id)
            self.items[entity.id] = deepcopy(entity)

    def persist_updated_item(self, entity: E) -> None:
        with self._lock:
            if entity.id not in self.items:
                raise KeyError(
                    f"No stored {self.entity_type.__name__} with id {entity.id!r}"
                )
            if callable(touch := getattr(entity, "touch", None)):
                touch()
            self.items[entity.id] = deepcopy(entity)

    def persist_deleted_item(self, entity: E) -> None:
        with self._lock:
            self.items.pop(entity.id, None)

    def __len__(self) -> int:
        return len(self.items)

    def __repr__(self) -> str:
        return f"InMemoryRepositoryBackend({self.entity_type.__name__}, items={len(self)})"
