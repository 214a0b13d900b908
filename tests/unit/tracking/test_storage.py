import pytest
from django.core.cache import cache

from modules.tracking.storage import CacheKeyValueStore, MemoryKeyValueStore

pytestmark = pytest.mark.unit


@pytest.mark.parametrize("factory", [CacheKeyValueStore, MemoryKeyValueStore])
def test_set_get_remove(factory):
    store = factory()

    store.set("activeTrackingDeliveryOrderId", 42)
    assert store.get("activeTrackingDeliveryOrderId") == "42"

    store.remove("activeTrackingDeliveryOrderId")
    assert store.get("activeTrackingDeliveryOrderId") is None


def test_remove_missing_key_is_fine():
    MemoryKeyValueStore().remove("nothing")
    CacheKeyValueStore().remove("nothing")


def test_cache_store_is_namespaced():
    CacheKeyValueStore(prefix="campusdash").set("k", "v")
    assert cache.get("campusdash:k") == "v"
    assert CacheKeyValueStore(prefix="other").get("k") is None


def test_cache_store_survives_new_instances():
    CacheKeyValueStore().set("k", "v")
    assert CacheKeyValueStore().get("k") == "v"
