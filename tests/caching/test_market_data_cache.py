"""Tests for MarketDataCache."""

import pytest

from paper_backtester.caching.market_data_cache import MarketDataCache
from tests.conftest import make_bars


class TestMarketDataCache:

    def test_put_get(self):
        cache = MarketDataCache()
        bars = make_bars([1.0, 2.0])
        cache.put("k", bars)
        assert cache.get("k") is bars
        assert "k" in cache
        assert len(cache) == 1

    def test_miss_returns_none(self):
        cache = MarketDataCache()
        assert cache.get("nope") is None
        assert cache.stats["misses"] == 1

    def test_get_or_load_calls_loader_once(self):
        cache = MarketDataCache()
        calls = []

        def load():
            calls.append(1)
            return make_bars([1.0])

        first = cache.get_or_load("k", load)
        second = cache.get_or_load("k", load)
        assert first is second
        assert len(calls) == 1
        assert cache.stats["hits"] == 1
        assert cache.stats["misses"] == 1
        assert cache.stats["hit_rate"] == pytest.approx(0.5)

    def test_eviction_removes_oldest(self):
        cache = MarketDataCache(max_size=3)
        for key in ["a", "b", "c"]:
            cache.put(key, [])
        cache.put("d", [])
        assert "a" not in cache
        assert len(cache) == 3
        assert all(k in cache for k in ["b", "c", "d"])

    def test_eviction_removes_ten_percent(self):
        cache = MarketDataCache(max_size=20)
        for i in range(20):
            cache.put(str(i), [])
        cache.put("new", [])
        assert len(cache) == 19
        assert "0" not in cache and "1" not in cache

    def test_overwrite_at_capacity_does_not_evict(self):
        cache = MarketDataCache(max_size=2)
        cache.put("a", [])
        cache.put("b", [])
        cache.put("a", make_bars([5.0]))
        assert len(cache) == 2
        assert cache.get("a")[0].close == 5.0

    def test_clear_resets_stats(self):
        cache = MarketDataCache()
        cache.put("k", [])
        cache.get("k")
        cache.clear()
        assert len(cache) == 0
        assert cache.stats == {"size": 0, "max_size": 32, "hits": 0, "misses": 0, "hit_rate": 0.0}

    def test_invalid_max_size(self):
        with pytest.raises(ValueError):
            MarketDataCache(max_size=0)

    def test_make_key(self):
        key = MarketDataCache.make_key(["BTCUSDT", "ETHUSDT"], "1h", "generated")
        assert key == "BTCUSDT,ETHUSDT_1h_generated"
