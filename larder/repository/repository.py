from collections.abc import Callable
from logging import Logger, getLogger
from threading import Lock
from typing import Any, Generic, TypeVar

from ..caching import (
    AppCaches,
    CachePolicyFactory,
    CachePolicyOptions,
    CacheStore,
    DefaultCachePolicyFactory,
    FullDataSetCachePolicyFactory,
    NoCachePolicyFactory,
    SingleItemsOnlyCachePolicyFactory,
)
from ..config import RepositorySettings
from ..domain import ConstructionError, HasIdentity, InvalidArgumentError, Query
from ..uow import UnitOfWork
from .backend import RepositoryBackend

LOGGER = getLogger(__name__)

E = TypeVar("E", bound=HasIdentity)
TId = TypeVar("TId")

PolicyFactoryBuilder = Callable[["Repository[Any, Any]"], CachePolicyFactory]


class Repository(Generic[E, TId]):
    """A cached CRUD surface for one entity type.

    The repository itself knows very little about either caching or storage.
    Reads are handed to a cache policy, which decides whether the cache can
    answer and otherwise calls the matching backend hook. Writes are only
    registered with the unit of work; at commit the unit of work calls back
    into `persist_new_item`, `persist_updated_item` or `persist_deleted_item`,
    and those run the backend write through a cache policy so the cache
    follows storage.

    By default the repository caches into a partition of its own, keyed by
    entity type, so clearing it never disturbs other entity types.

    Examples:
        >>> backend = InMemoryRepositoryBackend(Widget)
        >>> with InMemoryUnitOfWork() as uow:
        ...     widgets = Repository(Widget, backend, uow, AppCaches())
        ...     widgets.add_or_update(Widget(name="sprocket"))
        >>> widgets.get(1)
        Widget(id=1, name='sprocket', ...)

    Args:
        entity_type: Type of the entities this repository serves.
        backend: Storage hooks for the entity type.
        unit_of_work: Collects pending writes until commit.
        caches: Cache stores the repository may use.
        logger: Logger for repository activity, shared with its cache policies.
        settings: Bulk limits and cache policy selection.
        policy_factory_builder: Builds a custom cache policy factory for this
            repository, overriding `settings.cache_policy`.

    Raises:
        ConstructionError: If a required collaborator is None, or the backend
            lacks a storage hook.
    """

    # Identifier value reserved for "not persisted"; excluded from count checks.
    default_id: Any = 0

    __slots__ = (
        "entity_type",
        "backend",
        "unit_of_work",
        "caches",
        "logger",
        "settings",
        "_policy_factory_builder",
        "_cache_policy_factory",
        "_factory_lock",
    )

    def __init__(
        self,
        entity_type: type[E],
        backend: RepositoryBackend[E, TId],
        unit_of_work: UnitOfWork,
        caches: AppCaches,
        logger: Logger = LOGGER,
        settings: RepositorySettings | None = None,
        policy_factory_builder: PolicyFactoryBuilder | None = None,
    ):
        for name, value in (
            ("backend", backend),
            ("unit_of_work", unit_of_work),
            ("caches", caches),
            ("logger", logger),
        ):
            if value is None:
                raise ConstructionError(
                    f"Repository for {entity_type.__name__} requires a {name}"
                )

        if missing := sorted(
            name
            for name in RepositoryBackend.__abstractmethods__
            if not callable(getattr(backend, name, None))
        ):
            raise ConstructionError(
                f"{type(backend).__name__} is missing backend hooks: {', '.join(missing)}"
            )

        self.entity_type = entity_type
        self.backend = backend
        self.unit_of_work = unit_of_work
        self.caches = caches
        self.logger = logger
        self.settings = settings if settings is not None else RepositorySettings()
        self._policy_factory_builder = policy_factory_builder
        self._cache_policy_factory: CachePolicyFactory[E, TId] | None = None
        self._factory_lock = Lock()

    def __repr__(self) -> str:
        return f"Repository({self.entity_type.__name__}, backend={self.backend!r})"

    # Cache plumbing

    @property
    def runtime_cache(self) -> CacheStore:
        """The cache store this repository uses: its isolated per-type partition."""
        return self.caches.isolated.get_or_create(self.entity_type)

    @property
    def cache_policy_factory(self) -> CachePolicyFactory[E, TId]:
        """The factory creating a cache policy for each operation.

        Built on first access and reused for the lifetime of the repository.
        """
        if self._cache_policy_factory is None:
            with self._factory_lock:
                if self._cache_policy_factory is None:
                    self._cache_policy_factory = self._build_policy_factory()
        return self._cache_policy_factory

    def _build_policy_factory(self) -> CachePolicyFactory[E, TId]:
        if self._policy_factory_builder is not None:
            return self._policy_factory_builder(self)

        kind = self.settings.cache_policy
        if kind == "none":
            return NoCachePolicyFactory()
        if kind == "full_data_set":
            return FullDataSetCachePolicyFactory(
                self.runtime_cache,
                self.entity_type,
                self.get_entity_id,
                lambda: self.backend.perform_get_all(()),
                self.logger,
            )

        options = CachePolicyOptions(
            perform_count=self._count_persisted,
            validate_count=self.settings.validate_count,
            allow_zero_count=self.settings.allow_zero_count,
            logger=self.logger,
        )
        if kind == "single_items":
            return SingleItemsOnlyCachePolicyFactory(
                self.runtime_cache, self.entity_type, options
            )
        return DefaultCachePolicyFactory(self.runtime_cache, self.entity_type, options)

    def _count_persisted(self) -> int:
        # Number of persisted entities, compared against a fully cached set
        default_id = self.default_id
        return self.count(
            self.query().where(lambda entity: self.get_entity_id(entity) != default_id)
        )

    def get_entity_id(self, entity: E) -> TId:
        return entity.id

    def query(self) -> Query[E]:
        """Start a new query over this repository's entity type."""
        return Query(self.entity_type)

    # Reads

    def get(self, id: TId) -> E | None:
        """Get the entity with `id`, or None if there is none."""
        with self.cache_policy_factory.create_policy() as policy:
            return policy.get(id, self.backend.perform_get)

    def get_all(self, *ids: TId) -> list[E]:
        """Get the entities with the given ids, or every entity if none are given.

        Duplicate ids are only looked up once. Ids with no entity are left out
        of the result.

        Raises:
            InvalidArgumentError: If more than `settings.max_ids_per_query`
                distinct ids are given. Nothing is read in that case.
        """
        unique_ids = tuple(dict.fromkeys(ids))

        if len(unique_ids) > self.settings.max_ids_per_query:
            self.logger.warning(
                "Refused oversized bulk read",
                extra={
                    "entity_type": self.entity_type.__name__,
                    "requested": len(unique_ids),
                },
            )
            raise InvalidArgumentError(
                f"Cannot perform a query with more than "
                f"{self.settings.max_ids_per_query} parameters"
            )

        with self.cache_policy_factory.create_policy() as policy:
            return policy.get_all(unique_ids, self.backend.perform_get_all)

    def get_by_query(self, query: Query[E]) -> list[E]:
        """Get the entities matching `query`, straight from the backend."""
        return [
            entity
            for entity in self.backend.perform_get_by_query(query)
            if entity is not None
        ]

    def exists(self, id: TId) -> bool:
        with self.cache_policy_factory.create_policy() as policy:
            return policy.exists(id, self.backend.perform_exists)

    def count(self, query: Query[E]) -> int:
        return self.backend.perform_count(query)

    # Writes, deferred to the unit of work

    def add_or_update(self, entity: E) -> None:
        """Schedule `entity` to be added, or updated if it already has an id."""
        if not entity.has_identity:
            self.unit_of_work.register_added(entity, self)
        else:
            self.unit_of_work.register_changed(entity, self)
        self.logger.debug(
            "Scheduled %s", "change" if entity.has_identity else "add",
            extra={"entity_type": self.entity_type.__name__},
        )

    def delete(self, entity: E) -> None:
        """Schedule `entity` to be deleted."""
        if self.unit_of_work is not None:
            self.unit_of_work.register_removed(entity, self)

    # Unit of work callbacks

    def persist_new_item(self, entity: E) -> None:
        self._check_entity(entity)
        with self.cache_policy_factory.create_policy() as policy:
            policy.create_or_update(entity, self.backend.persist_new_item)

    def persist_updated_item(self, entity: E) -> None:
        self._check_entity(entity)
        with self.cache_policy_factory.create_policy() as policy:
            policy.create_or_update(entity, self.backend.persist_updated_item)

    def persist_deleted_item(self, entity: E) -> None:
        self._check_entity(entity)
        with self.cache_policy_factory.create_policy() as policy:
            policy.remove(entity, self.backend.persist_deleted_item)

    def _check_entity(self, entity: object) -> None:
        if not isinstance(entity, self.entity_type):
            raise TypeError(
                f"{type(self).__name__} for {self.entity_type.__name__} "
                f"cannot persist {type(entity).__name__}"
            )
