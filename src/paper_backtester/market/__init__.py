"""Market data — bar model and data source tags (the generator lives in market.generator)."""

from paper_backtester.market.models import DataSource, MarketBar

__all__ = ["DataSource", "MarketBar"]
