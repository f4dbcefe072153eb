"""Query objects handed to backend hooks.

The repository core never looks inside a query. It builds one for its own
count check and otherwise passes whatever the caller gives it straight
through to `perform_get_by_query` and `perform_count`.
"""

from collections.abc import Callable
from typing import Generic, TypeVar

E = TypeVar("E")

Predicate = Callable[[E], bool]


class Query(Generic[E]):
    """An immutable conjunction of predicates over one entity type.

    Backends that evaluate in process (such as the in-memory backend) can
    call `matches`. Backends that translate queries into another language
    inspect `entity_type` and `predicates` themselves.

    Examples:
        >>> query = Query(Widget).where(lambda w: w.id != 0)
        >>> query = query.where(lambda w: w.name.startswith("s"))
        >>> [w for w in widgets if query.matches(w)]
    """

    __slots__ = ("entity_type", "predicates")

    def __init__(
        self,
        entity_type: type[E],
        predicates: tuple[Predicate[E], ...] = (),
    ):
        self.entity_type = entity_type
        self.predicates = predicates

    def where(self, predicate: Predicate[E]) -> "Query[E]":
        return Query(self.entity_type, (*self.predicates, predicate))

    def matches(self, entity: E) -> bool:
        if not isinstance(entity, self.entity_type):
            return False
        return all(predicate(entity) for predicate in self.predicates)

    def __repr__(self) -> str:
        return (
            f"Query({self.entity_type.__name__}, "
            f"predicates={len(self.predicates)})"
        )
