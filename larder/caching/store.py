from abc import ABC, abstractmethod
from collections.abc import Callable
from threading import Lock, RLock
from typing import Any


class CacheStore(ABC):
    """Mechanism for keeping repository entries in a cache.

    A cache store maps string keys to values. Repositories only ever write
    entities and entity collections into it, keyed by the names produced in
    `larder.caching.keys`. Implementations must be safe to call from several
    threads at once; expiry and eviction are their own business.
    """

    @staticmethod
    def in_memory() -> "CacheStore":
        return InMemoryCacheStore()

    @staticmethod
    def null() -> "CacheStore":
        return NullCacheStore()

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the value stored under `key`, or None when there is none."""
        ...

    @abstractmethod
    def put(self, key: str, value: Any) -> None:
        """Store `value` under `key`, replacing any previous value."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove the value under `key`. Missing keys are ignored."""
        ...

    @abstractmethod
    def items_by_prefix(self, prefix: str) -> list[Any]:
        """Return every value whose key starts with `prefix`."""
        ...

    @abstractmethod
    def clear_by_prefix(self, prefix: str) -> None:
        """Remove every value whose key starts with `prefix`."""
        ...

    @abstractmethod
    def clear(self) -> None: ...


class NullCacheStore(CacheStore):
    """A cache store that never keeps anything."""

    def get(self, key: str) -> Any | None:
        return None

    def put(self, key: str, value: Any) -> None:
        pass

    def remove(self, key: str) -> None:
        pass

    def items_by_prefix(self, prefix: str) -> list[Any]:
        return []

    def clear_by_prefix(self, prefix: str) -> None:
        pass

    def clear(self) -> None:
        pass


class InMemoryCacheStore(CacheStore):
    """A cache store that keeps values in a process-local dictionary.

    Values never expire. Every operation holds a lock, so the store can be
    shared between threads. The store cannot fail: all operations are plain
    dictionary access.
    """

    __slots__ = ("_items", "_lock")

    def __init__(self) -> None:
        self._items: dict[str, Any] = {}
        self._lock = RLock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._items.get(key)

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._items[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def items_by_prefix(self, prefix: str) -> list[Any]:
        with self._lock:
            return [
                value for key, value in self._items.items() if key.startswith(prefix)
            ]

    def clear_by_prefix(self, prefix: str) -> None:
        with self._lock:
            for key in [key for key in self._items if key.startswith(prefix)]:
                del self._items[key]

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items


class IsolatedCaches:
    """One cache store per entity type.

    Each entity type gets its own partition, so clearing one type never
    touches the entries of another. Partitions are created on first use.

    Examples:
        >>> caches = IsolatedCaches()
        >>> widgets = caches.get_or_create(Widget)
        >>> widgets is caches.get_or_create(Widget)
        True
        >>> caches.clear(Widget)  # only Widget entries go
    """

    __slots__ = ("_store_factory", "_stores", "_lock")

    def __init__(
        self, store_factory: Callable[[], CacheStore] = InMemoryCacheStore
    ):
        self._store_factory = store_factory
        self._stores: dict[type, CacheStore] = {}
        self._lock = Lock()

    def get_or_create(self, entity_type: type) -> CacheStore:
        with self._lock:
            if (store := self._stores.get(entity_type)) is None:
                store = self._stores[entity_type] = self._store_factory()
            return store

    def get(self, entity_type: type) -> CacheStore | None:
        with self._lock:
            return self._stores.get(entity_type)

    def clear(self, entity_type: type | None = None) -> None:
        """Clear the partition of one entity type, or of every type."""
        with self._lock:
            stores = (
                list(self._stores.values())
                if entity_type is None
                else [s for t, s in self._stores.items() if t is entity_type]
            )
        for store in stores:
            store.clear()


class AppCaches:
    """The cache stores available to repositories.

    `runtime` is a single store shared by everything. `isolated` hands out
    one store per entity type; repositories use it by default.

    Attributes:
        runtime: Shared cache store.
        isolated: Per-entity-type cache partitions.
    """

    __slots__ = ("runtime", "isolated")

    def __init__(
        self,
        runtime: CacheStore | None = None,
        isolated: IsolatedCaches | None = None,
    ):
        self.runtime = runtime if runtime is not None else InMemoryCacheStore()
        self.isolated = isolated if isolated is not None else IsolatedCaches()

    @staticmethod
    def disabled() -> "AppCaches":
        """Caches that keep nothing, for repositories that must always hit storage."""
        return AppCaches(NullCacheStore(), IsolatedCaches(NullCacheStore))
