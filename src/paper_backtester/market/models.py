"""Market data structures — bars and data source tags."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class DataSource(str, Enum):
    """Where a backtest's bars come from."""

    GENERATED = "generated"
    REPLAY = "replay"
    HISTORICAL = "historical"


@dataclass(frozen=True)
class MarketBar:
    """One OHLCV record for a symbol at a timestamp."""

    timestamp: datetime
    symbol: str
    open: float
    high: float
    low: float
    close: float
    volume: float
    source: str = DataSource.GENERATED.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "symbol": self.symbol,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
            "source": self.source,
        }
