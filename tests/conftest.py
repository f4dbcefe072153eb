"""Central test fixtures - imports from the catalog test domain."""

from decimal import Decimal

import pytest

from larder.caching import AppCaches
from larder.repository import Repository
from larder.uow import InMemoryUnitOfWork
from tests.fixtures.catalog import CountingBackend, Widget


@pytest.fixture
def caches() -> AppCaches:
    """Create fresh in-memory caches."""
    return AppCaches()


@pytest.fixture
def unit_of_work() -> InMemoryUnitOfWork:
    """Create an in-memory unit of work."""
    return InMemoryUnitOfWork()


@pytest.fixture
def widgets() -> list[Widget]:
    """Five persisted widgets with ids 1 to 5."""
    return [
        Widget(id=i, name=f"widget-{i}", price=Decimal(i))
        for i in range(1, 6)
    ]


@pytest.fixture
def widget_backend(widgets: list[Widget]) -> CountingBackend:
    """Create a widget backend seeded with ids 1 to 5."""
    backend = CountingBackend(Widget)
    backend.seed(*widgets)
    return backend


@pytest.fixture
def widget_repository(
    widget_backend: CountingBackend,
    unit_of_work: InMemoryUnitOfWork,
    caches: AppCaches,
) -> Repository[Widget, int]:
    """Create a widget repository with the default cache policy."""
    return Repository(Widget, widget_backend, unit_of_work, caches)
