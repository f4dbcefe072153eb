"""End-to-end scenarios for a widget catalog: repository, cache and unit of work."""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from larder.caching import AppCaches
from larder.repository import Repository
from larder.uow import ChangeKind, InMemoryUnitOfWork
from tests.fixtures.catalog import CountingBackend, Widget


def test_read_your_writes_through_cache(widget_repository, unit_of_work, widget_backend):
    """A committed add is readable without another backend read."""
    widget = Widget(name="sprocket", price=Decimal("9.99"))

    widget_repository.add_or_update(widget)
    unit_of_work.commit()

    loaded = widget_repository.get(widget.id)
    assert loaded == widget
    assert widget_backend.calls["persist_new_item"] == 1
    assert widget_backend.calls["perform_get"] == 0


def test_update_then_read(widget_repository, unit_of_work, widget_backend):
    """A committed change replaces what earlier reads cached."""
    assert widget_repository.get(2).name == "widget-2"

    widget_repository.add_or_update(Widget(id=2, name="renamed"))
    assert [c.kind for c in unit_of_work.pending] == [ChangeKind.CHANGED]
    assert widget_repository.get(2).name == "widget-2"

    unit_of_work.commit()

    assert widget_repository.get(2).name == "renamed"
    assert widget_backend.calls["perform_get"] == 1
    assert widget_repository.get_by_query(
        widget_repository.query().where(lambda w: w.id == 2)
    )[0].name == "renamed"


def test_get_all_with_duplicates(widget_repository, widget_backend):
    """get_all(1, 1, 2, 3) returns {1, 2, 3} through one deduplicated call."""
    result = widget_repository.get_all(1, 1, 2, 3)

    assert {w.id for w in result} == {1, 2, 3}
    assert widget_backend.calls["perform_get_all"] == 1
    assert set(widget_backend.get_all_args[0]) == {1, 2, 3}
    assert len(widget_backend.get_all_args[0]) == 3


def test_delete_then_exists(widget_repository, unit_of_work, widget_backend):
    """Deleting widget 3 and committing makes exists(3) false."""
    widget = widget_repository.get(3)
    assert widget_repository.exists(3) is True

    widget_repository.delete(widget)
    unit_of_work.commit()

    assert widget_repository.exists(3) is False
    assert widget_backend.calls["persist_deleted_item"] == 1


def test_unit_of_work_block_persists_across_repositories(widget_backend):
    """One commit persists the changes of every repository in the block."""
    caches = AppCaches()
    other_backend = CountingBackend(Widget)

    with InMemoryUnitOfWork() as uow:
        first = Repository(Widget, widget_backend, uow, caches)
        second = Repository(Widget, other_backend, uow, AppCaches())
        first.add_or_update(Widget(name="one"))
        second.add_or_update(Widget(name="two"))

    assert widget_backend.calls["persist_new_item"] == 1
    assert other_backend.calls["persist_new_item"] == 1


def test_full_listing_stays_consistent_with_writes(widget_repository, unit_of_work):
    """A cached full listing reflects adds and deletes after commit."""
    assert len(widget_repository.get_all()) == 5

    widget_repository.add_or_update(Widget(name="six"))
    widget_repository.delete(widget_repository.get(1))
    unit_of_work.commit()

    assert sorted(w.id for w in widget_repository.get_all()) == [2, 3, 4, 5, 6]


def test_concurrent_reads_share_cache(widget_repository, widget_backend):
    """Reads from many threads agree and never see a partial entity."""
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(widget_repository.get, [1, 2, 3, 4, 5] * 20))

    assert {w.id for w in results} == {1, 2, 3, 4, 5}
    # Concurrent misses may each reach storage, at most once per read
    assert widget_backend.calls["perform_get"] <= 100
