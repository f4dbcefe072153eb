"""Unit of work: registration of pending changes and deferred persistence."""

from .unit_of_work import (
    ChangeKind,
    InMemoryUnitOfWork,
    PendingChange,
    UnitOfWork,
    UnitOfWorkRepository,
)

__all__ = [
    "UnitOfWork",
    "InMemoryUnitOfWork",
    "UnitOfWorkRepository",
    "PendingChange",
    "ChangeKind",
]
