"""Tests for query objects."""

from larder.domain import Query
from tests.fixtures.catalog import Gadget, Widget


def test_empty_query_matches_every_entity_of_type():
    """Verify a query without predicates matches its whole type."""
    query = Query(Widget)
    assert query.matches(Widget())
    assert not query.matches(Gadget())


def test_where_returns_new_query():
    """Verify where does not change the original query."""
    query = Query(Widget)
    narrowed = query.where(lambda w: w.id != 0)

    assert narrowed is not query
    assert query.predicates == ()
    assert len(narrowed.predicates) == 1


def test_predicates_are_combined_with_and():
    """Verify an entity must satisfy every predicate."""
    query = Query(Widget).where(lambda w: w.id > 1).where(lambda w: w.name == "b")

    assert query.matches(Widget(id=2, name="b"))
    assert not query.matches(Widget(id=2, name="a"))
    assert not query.matches(Widget(id=1, name="b"))


def test_query_repr():
    """Verify the repr names the type and predicate count."""
    assert repr(Query(Widget).where(bool)) == "Query(Widget, predicates=1)"
