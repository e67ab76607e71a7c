"""Tests for cache key canonicalization and TTL behaviour."""

from portaljs_opendata.cache import DEFAULT_TTL_MS, TTLCache, make_cache_key

from .conftest import FakeClock


def test_cache_key_ignores_parameter_order():
    first = make_cache_key("package_search", {"q": "water", "rows": 5, "fq": "x"})
    second = make_cache_key("package_search", {"fq": "x", "rows": 5, "q": "water"})
    assert first == second
    assert first.startswith("package_search:")


def test_cache_key_sorts_nested_objects():
    first = make_cache_key("a", {"outer": {"b": 1, "a": 2}})
    second = make_cache_key("a", {"outer": {"a": 2, "b": 1}})
    assert first == second


def test_cache_key_distinguishes_endpoints_and_values():
    assert make_cache_key("package_show", {"id": "x"}) != make_cache_key(
        "group_show", {"id": "x"}
    )
    assert make_cache_key("package_show", {"id": "x"}) != make_cache_key(
        "package_show", {"id": "y"}
    )


def test_cache_key_empty_params():
    assert make_cache_key("status_show", None) == "status_show:{}"
    assert make_cache_key("status_show", {}) == "status_show:{}"


def test_entry_valid_until_ttl_elapses():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.put("k", {"value": 1})

    clock.advance(DEFAULT_TTL_MS - 1)
    entry = cache.get("k")
    assert entry is not None
    assert entry.payload == {"value": 1}

    clock.advance(1)
    assert cache.get("k") is None


def test_read_does_not_refresh_ttl():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    stored = cache.put("k", "v")

    clock.advance(200_000)
    assert cache.get("k").stored_at_ms == stored.stored_at_ms

    clock.advance(100_000)
    assert cache.get("k") is None


def test_expired_entries_are_not_swept():
    clock = FakeClock()
    cache = TTLCache(ttl_ms=10, clock=clock)
    cache.put("k", "v")
    clock.advance(50)

    assert cache.get("k") is None
    assert len(cache) == 1

    cache.put("k", "fresh")
    assert cache.get("k").payload == "fresh"


def test_disabled_cache_stores_nothing():
    cache = TTLCache(clock=FakeClock(), enabled=False)
    assert cache.put("k", "v") is None
    assert cache.get("k") is None
    assert len(cache) == 0


def test_stats_count_hits_and_misses():
    clock = FakeClock()
    cache = TTLCache(ttl_ms=100, clock=clock)
    cache.get("missing")
    cache.put("k", 1)
    cache.get("k")
    clock.advance(100)
    cache.get("k")

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 2
    assert stats["expired_reads"] == 1
    assert stats["sets"] == 1
    assert stats["size"] == 1
