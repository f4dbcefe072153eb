from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from logging import Logger, getLogger
from types import TracebackType
from typing import Any, Protocol, runtime_checkable

from typing_extensions import Self

LOGGER = getLogger(__name__)


@runtime_checkable
class UnitOfWorkRepository(Protocol):
    """Protocol for repositories a unit of work can call back at commit.

    The repository registering a change must be the one whose persist
    methods are later called for that entity.
    """

    def persist_new_item(self, entity: Any) -> None: ...

    def persist_updated_item(self, entity: Any) -> None: ...

    def persist_deleted_item(self, entity: Any) -> None: ...


class ChangeKind(Enum):
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


@dataclass(frozen=True)
class PendingChange:
    """A change registered with a unit of work but not yet persisted.

    Attributes:
        entity: The entity to persist.
        repository: The repository that persists it.
        kind: Whether the entity is added, changed or removed.
    """

    entity: Any
    repository: UnitOfWorkRepository
    kind: ChangeKind

    def apply(self) -> None:
        if self.kind is ChangeKind.ADDED:
            self.repository.persist_new_item(self.entity)
        elif self.kind is ChangeKind.CHANGED:
            self.repository.persist_updated_item(self.entity)
        else:
            self.repository.persist_deleted_item(self.entity)


class UnitOfWork(ABC):
    """Collects pending changes and persists them together.

    Repositories never write on `add_or_update` or `delete`; they register
    the intent here. At commit, the unit of work calls back into each
    registering repository to do the actual write.
    """

    @staticmethod
    def in_memory() -> "UnitOfWork":
        return InMemoryUnitOfWork()

    @abstractmethod
    def register_added(self, entity: Any, repository: UnitOfWorkRepository) -> None: ...

    @abstractmethod
    def register_changed(self, entity: Any, repository: UnitOfWorkRepository) -> None: ...

    @abstractmethod
    def register_removed(self, entity: Any, repository: UnitOfWorkRepository) -> None: ...

    @abstractmethod
    def commit(self) -> None:
        """Persist every pending change through its repository."""
        ...

    @abstractmethod
    def discard(self) -> None:
        """Forget every pending change without persisting it."""
        ...

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        # On error, drop pending changes so nothing half-done is persisted
        if exc_type is not None:
            self.discard()
            return
        self.commit()


class InMemoryUnitOfWork(UnitOfWork):
    """A unit of work that keeps pending changes in a list.

    Changes are applied in registration order. Registering the same entity
    with the same repository and kind twice before a commit has no further
    effect, so each change is persisted at most once per commit. Pending
    changes are cleared when a commit ends, whether it succeeded or not.

    There is no transaction: if a persist call fails midway, the changes
    applied before it stay applied. Not meant to be shared between threads.

    Args:
        logger: Logger for registrations, commits and discards.

    Examples:
        >>> with InMemoryUnitOfWork() as uow:
        ...     repository = Repository(Widget, backend, uow, caches)
        ...     repository.add_or_update(Widget(name="sprocket"))
        >>> # committed on exit
    """

    __slots__ = ("_pending", "logger")

    def __init__(self, logger: Logger = LOGGER) -> None:
        self._pending: list[PendingChange] = []
        self.logger = logger

    @property
    def pending(self) -> list[PendingChange]:
        return list(self._pending)

    def _register(
        self, entity: Any, repository: UnitOfWorkRepository, kind: ChangeKind
    ) -> None:
        if any(
            change.entity is entity
            and change.repository is repository
            and change.kind is kind
            for change in self._pending
        ):
            return
        self._pending.append(PendingChange(entity, repository, kind))
        self.logger.debug(
            "Registered change",
            extra={"change_kind": kind.value, "entity_type": type(entity).__name__},
        )

    def register_added(self, entity: Any, repository: UnitOfWorkRepository) -> None:
        self._register(entity, repository, ChangeKind.ADDED)

    def register_changed(self, entity: Any, repository: UnitOfWorkRepository) -> None:
        self._register(entity, repository, ChangeKind.CHANGED)

    def register_removed(self, entity: Any, repository: UnitOfWorkRepository) -> None:
        self._register(entity, repository, ChangeKind.REMOVED)

    def commit(self) -> None:
        pending, self._pending = self._pending, []
        for change in pending:
            change.apply()
        self.logger.info(
            "Committed unit of work", extra={"change_count": len(pending)}
        )

    def discard(self) -> None:
        if self._pending:
            self.logger.debug(
                "Discarded unit of work", extra={"change_count": len(self._pending)}
            )
        self._pending.clear()
