from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field
from ulid import ULID


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


@runtime_checkable
class HasIdentity(Protocol):
    """Protocol for anything a repository can store.

    An object qualifies when it exposes an `id` and a `has_identity` flag.
    `has_identity` separates objects that were never persisted from objects
    that already carry a real id assigned by the backend.

    Examples:
        >>> class Tag:
        ...     def __init__(self, id: int = 0):
        ...         self.id = id
        ...
        ...     @property
        ...     def has_identity(self) -> bool:
        ...         return self.id != 0
    """

    @property
    def id(self) -> Any: ...

    @property
    def has_identity(self) -> bool: ...


class Entity(BaseModel):
    """Base class for aggregate root entities stored through a repository.

    The integer `id` is assigned by the backend when the entity is first
    persisted. Zero is reserved for "not persisted yet", which is what
    `has_identity` reports on.

    Examples:
        >>> class Widget(Entity):
        ...     name: str
        >>>
        >>> widget = Widget(name="sprocket")
        >>> widget.has_identity
        False
        >>> widget.id = 7
        >>> widget.has_identity
        True

    Attributes:
        id: Backend-assigned identifier. Zero until persisted.
        key: Stable unique key, generated on construction and never reused.
        create_date: When the entity was created.
        update_date: When the entity was last changed.
    """

    id: int = 0
    key: ULID = Field(default_factory=ULID)
    create_date: datetime = Field(default_factory=utc_now)
    update_date: datetime = Field(default_factory=utc_now)

    @property
    def has_identity(self) -> bool:
        return self.id != 0

    def reset_identity(self) -> None:
        """Forget the backend id so the entity is treated as new again."""
        self.id = 0

    def touch(self) -> None:
        self.update_date = utc_now()
