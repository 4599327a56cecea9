"""
MarketDataCache — Resolved bar series shared between runs of one engine.

Repeated backtests over the same symbols, interval and data source reuse
the bars resolved by the first run instead of regenerating them. The cache
is bounded; when full, the oldest 10% of entries are evicted.
"""

from collections.abc import Callable, Iterable
from typing import Any

from paper_backtester.logging import get_logger
from paper_backtester.market.models import MarketBar

logger = get_logger(__name__)

DEFAULT_MAX_DATASETS = 32


class MarketDataCache:
    """
    In-memory cache of bar series keyed by (symbols, interval, source).

    Owned by a single engine instance; not shared across processes.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_DATASETS) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._cache: dict[str, list[MarketBar]] = {}
        self._max_size = max_size
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def get(self, key: str) -> list[MarketBar] | None:
        """Get cached bars by key."""
        bars = self._cache.get(key)
        if bars is not None:
            self._hits += 1
        else:
            self._misses += 1
        return bars

    def put(self, key: str, bars: list[MarketBar]) -> None:
        """Cache a bar series. Evicts oldest entries if at capacity."""
        if key not in self._cache and len(self._cache) >= self._max_size:
            remove_count = max(1, self._max_size // 10)
            for k in list(self._cache.keys())[:remove_count]:
                del self._cache[k]
            logger.debug("Market data cache eviction", evicted=remove_count)

        self._cache[key] = bars

    def get_or_load(self, key: str, load_fn: Callable[[], list[MarketBar]]) -> list[MarketBar]:
        """Get cached bars or load and cache them."""
        bars = self.get(key)
        if bars is not None:
            return bars
        bars = load_fn()
        self.put(key, bars)
        return bars

    def clear(self) -> None:
        """Clear all cached datasets."""
        self._cache.clear()
        self._hits = 0
        self._misses = 0

    @property
    def stats(self) -> dict[str, Any]:
        """Cache statistics."""
        total = self._hits + self._misses
        return {
            "size": len(self._cache),
            "max_size": self._max_size,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 4) if total > 0 else 0.0,
        }

    @staticmethod
    def make_key(symbols: Iterable[str], interval: str, source: str) -> str:
        """Build a cache key from the symbol list, interval and data source."""
        return f"{','.join(symbols)}_{interval}_{source}"
