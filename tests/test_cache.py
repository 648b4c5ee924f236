import pytest

from watchmarket.cache import CacheProvider, MemoryCache, generate_key
from watchmarket.models import NotFoundError


def test_generate_key_value():
    assert generate_key("A") == "bc1M4j2I4u6VaLpUbAB8Y9kTHBs="
    assert generate_key("a") != "bc1M4j2I4u6VaLpUbAB8Y9kTHBs="


def test_memory_generate_key_matches_function():
    assert MemoryCache().generate_key("testKEY0") == generate_key("testKEY0")


def test_memory_id():
    assert MemoryCache().id == "memory"


def test_memory_works_as_provider():
    cache = MemoryCache()
    assert isinstance(cache, CacheProvider)
    provider: CacheProvider = cache
    provider.set("key", b"stored")
    assert provider.get("key") == b"stored"
    assert provider.generate_key("A") == "bc1M4j2I4u6VaLpUbAB8Y9kTHBs="


def test_set_and_get():
    cache = MemoryCache()
    cache.set("k", b"value")
    assert cache.get("k") == b"value"


def test_set_overwrites():
    cache = MemoryCache()
    cache.set("k", b"one")
    cache.set("k", b"two")
    assert cache.get("k") == b"two"
    assert len(cache) == 1


def test_get_missing_raises():
    with pytest.raises(NotFoundError) as info:
        MemoryCache().get("missing")
    assert str(info.value) == "not found"


def test_len_counts_items():
    cache = MemoryCache()
    assert len(cache) == 0
    cache.set("a", b"1")
    cache.set("b", b"2")
    assert len(cache) == 2


def test_timed_entries_are_not_kept():
    cache = MemoryCache()
    cache.set_with_time("k", b"data", 10)
    assert len(cache) == 0
    assert cache.get_with_time("k", 10) is None