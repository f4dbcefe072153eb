"""Tests for cache policy factories."""

from larder.caching.factory import (
    CachePolicyFactory,
    DefaultCachePolicyFactory,
    FullDataSetCachePolicyFactory,
    NoCachePolicyFactory,
    SingleItemsOnlyCachePolicyFactory,
)
from larder.caching.policy import (
    CachePolicyOptions,
    DefaultCachePolicy,
    FullDataSetCachePolicy,
    NoCachePolicy,
    SingleItemsOnlyCachePolicy,
)
from larder.caching.store import InMemoryCacheStore
from tests.fixtures.catalog import Widget


def test_default_factory_creates_fresh_policy_each_time():
    """Verify each operation gets its own policy bound to the factory's store."""
    store = InMemoryCacheStore()
    options = CachePolicyOptions(perform_count=lambda: 0)
    factory = DefaultCachePolicyFactory(store, Widget, options)

    first = factory.create_policy()
    second = factory.create_policy()

    assert isinstance(first, DefaultCachePolicy)
    assert first is not second
    assert first.cache is store
    assert first.options is options


def test_default_factory_uses_default_options():
    """Verify options default when none are given."""
    factory = DefaultCachePolicyFactory(InMemoryCacheStore(), Widget)
    assert factory.options == CachePolicyOptions()


def test_single_items_factory_creates_single_items_policy():
    """Verify SingleItemsOnlyCachePolicyFactory creates the matching policy."""
    factory = SingleItemsOnlyCachePolicyFactory(InMemoryCacheStore(), Widget)
    assert isinstance(factory.create_policy(), SingleItemsOnlyCachePolicy)


def test_full_data_set_factory_passes_loader():
    """Verify the full data set policy receives the id getter and loader."""
    loader = list
    factory = FullDataSetCachePolicyFactory(
        InMemoryCacheStore(), Widget, lambda w: w.id, loader
    )
    policy = factory.create_policy()

    assert isinstance(policy, FullDataSetCachePolicy)
    assert policy.load_all is loader


def test_no_cache_factory_methods():
    """Verify the no-cache factory methods work correctly."""
    factory = CachePolicyFactory.no_cache()
    assert isinstance(factory, NoCachePolicyFactory)
    assert isinstance(factory.create_policy(), NoCachePolicy)
