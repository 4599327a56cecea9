from paper_backtester.caching.market_data_cache import MarketDataCache

__all__ = ["MarketDataCache"]
