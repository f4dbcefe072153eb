"""Domain primitives for cached repositories.

- Entity: Base class for aggregate root entities
- HasIdentity: Protocol any storable object satisfies
- Query: Opaque predicate object passed through to backends
- Exceptions raised by the repository core
"""

from .entity import Entity, HasIdentity, utc_now
from .exceptions import (
    ConstructionError,
    InvalidArgumentError,
    LarderError,
    PolicyReleasedError,
)
from .query import Predicate, Query

__all__ = [
    "Entity",
    "HasIdentity",
    "utc_now",
    "Query",
    "Predicate",
    "LarderError",
    "InvalidArgumentError",
    "ConstructionError",
    "PolicyReleasedError",
]
