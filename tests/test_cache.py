import pytest

from task_analytics.cache import AnalyticsCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def test_get_returns_stored_value_until_expiry(clock):
    cache = AnalyticsCache(ttl_seconds=10, max_size=5, clock=clock)
    cache.set("2024-01_all_empty", {"summary": {}})

    clock.advance(9)
    assert cache.get("2024-01_all_empty") == {"summary": {}}

    clock.advance(2)
    assert cache.get("2024-01_all_empty") is None
    assert len(cache) == 0


def test_full_cache_evicts_oldest_entry(clock):
    cache = AnalyticsCache(ttl_seconds=60, max_size=2, clock=clock)
    cache.set("a", 1)
    clock.advance(1)
    cache.set("b", 2)
    clock.advance(1)
    cache.set("c", 3)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_overwriting_a_key_refreshes_its_position(clock):
    cache = AnalyticsCache(ttl_seconds=60, max_size=2, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)
    cache.set("c", 3)

    assert cache.get("a") == 10
    assert cache.get("b") is None


def test_stats_track_hits_misses_and_expired_entries(clock):
    cache = AnalyticsCache(ttl_seconds=10, max_size=5, clock=clock)
    cache.set("old", 1)
    clock.advance(5)
    cache.set("new", 2)
    cache.get("new")
    cache.get("missing")
    clock.advance(6)

    assert cache.stats() == {"size": 2, "valid": 1, "expired": 1, "hits": 1, "misses": 1}


def test_invalidate_and_clear(clock):
    cache = AnalyticsCache(clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.invalidate("a") is True
    assert cache.invalidate("a") is False
    assert "b" in cache

    cache.clear()
    assert len(cache) == 0
    assert cache.stats()["hits"] == 0


def test_max_size_must_be_positive():
    with pytest.raises(ValueError):
        AnalyticsCache(max_size=0)


def test_membership_check_leaves_counters_and_entries_alone(clock):
    cache = AnalyticsCache(ttl_seconds=10, max_size=5, clock=clock)
    cache.set("live", 1)
    cache.set("stale", 2)
    clock.advance(5)
    cache.set("fresh", 3)
    clock.advance(6)

    assert "fresh" in cache
    assert "stale" not in cache
    assert "missing" not in cache
    assert cache.stats() == {"size": 3, "valid": 1, "expired": 2, "hits": 0, "misses": 0}
