"""
MarketDataGenerator — Synthetic OHLCV series for backtests.

Produces a random-walk price path with:
- Trend drift (bullish, bearish, sideways, random)
- Volatility-scaled noise
- Optional discontinuous event jumps
- Optional hard price-range clamp

All symbols requested in one call share the same price path.
"""

from datetime import datetime, timedelta

import numpy as np
import pandas as pd

from paper_backtester.config import GeneratorConfig, Trend
from paper_backtester.errors import ValidationError
from paper_backtester.logging import get_logger
from paper_backtester.market.models import DataSource, MarketBar

logger = get_logger(__name__)

INTERVAL_MS: dict[str, int] = {
    "1m": 60_000,
    "5m": 5 * 60_000,
    "15m": 15 * 60_000,
    "1h": 60 * 60_000,
    "4h": 4 * 60 * 60_000,
    "1d": 24 * 60 * 60_000,
}

TREND_DRIFT = 0.0001
EVENT_MULTIPLIER = 5
WICK_FACTOR = 0.5
VOLUME_BASE = 1_000_000.0
VOLUME_SPREAD = 5_000_000.0

# Event jumps can exceed -100%; the walk never drops below this.
MIN_PRICE = 1e-8

BAR_COLUMNS = ["timestamp", "symbol", "open", "high", "low", "close", "volume", "source"]


def interval_to_ms(interval: str) -> int:
    """Resolve an interval name (``1m`` .. ``1d``) to milliseconds."""
    try:
        return INTERVAL_MS[interval]
    except KeyError:
        raise ValidationError(
            f"Unknown interval '{interval}', expected one of {', '.join(INTERVAL_MS)}"
        ) from None


class MarketDataGenerator:
    """
    Generates synthetic bars from a GeneratorConfig.

    Usage:
        generator = MarketDataGenerator(seed=42)
        bars = generator.generate(config, ["BTCUSDT"], start, end, INTERVAL_MS["1h"])

    With a seed, every ``generate`` call starts from a fresh RNG, so the
    same inputs always produce the same bars. An injected ``rng`` is used
    as-is and keeps its state between calls.
    """

    def __init__(
        self,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        if seed is not None and rng is not None:
            raise ValidationError("Pass either seed or rng, not both")
        self.seed = seed
        self._rng = rng

    def _make_rng(self) -> np.random.Generator:
        if self._rng is not None:
            return self._rng
        return np.random.default_rng(self.seed)

    def generate(
        self,
        config: GeneratorConfig,
        symbols: list[str],
        start: datetime,
        end: datetime,
        interval_ms: int,
    ) -> list[MarketBar]:
        """Generate bars from ``start`` to ``end`` inclusive, one per symbol per step."""
        if interval_ms <= 0:
            raise ValidationError("interval_ms must be greater than 0")
        if not symbols:
            raise ValidationError("At least one symbol is required")
        if end < start:
            raise ValidationError("end must not be before start")

        rng = self._make_rng()
        step = timedelta(milliseconds=interval_ms)
        steps = (end - start) // step + 1

        vol = config.volatility
        price = config.base_price
        bars: list[MarketBar] = []

        for i in range(steps):
            timestamp = start + step * i

            if config.trend == Trend.BULLISH:
                drift = TREND_DRIFT
            elif config.trend == Trend.BEARISH:
                drift = -TREND_DRIFT
            elif config.trend == Trend.RANDOM:
                drift = rng.uniform(-TREND_DRIFT, TREND_DRIFT)
            else:
                drift = 0.0

            if config.event_probability is not None and rng.random() < config.event_probability:
                price += price * (rng.random() - 0.5) * vol * EVENT_MULTIPLIER
            else:
                noise = (rng.random() - 0.5) * vol if config.include_noise else 0.0
                price += price * (drift + noise)

            price = max(price, MIN_PRICE)
            if config.price_range is not None:
                price = min(max(price, config.price_range[0]), config.price_range[1])

            open_ = price
            high = price * (1 + rng.random() * vol * WICK_FACTOR)
            low = price * (1 - rng.random() * vol * WICK_FACTOR)
            if config.price_range is not None:
                high = min(high, config.price_range[1])
                low = max(low, config.price_range[0])
            close = min(low + rng.random() * (high - low), high)
            volume = VOLUME_BASE + rng.random() * VOLUME_SPREAD

            for symbol in symbols:
                bars.append(
                    MarketBar(
                        timestamp=timestamp,
                        symbol=symbol,
                        open=open_,
                        high=high,
                        low=low,
                        close=close,
                        volume=volume,
                        source=DataSource.GENERATED.value,
                    )
                )

            price = close

        logger.debug(
            "Market data generated",
            symbols=symbols,
            steps=steps,
            bars=len(bars),
            trend=config.trend.value,
            volatility=vol,
        )

        return bars


def bars_to_frame(bars: list[MarketBar]) -> pd.DataFrame:
    """Convert bars to a DataFrame with one row per bar."""
    if not bars:
        return pd.DataFrame(columns=BAR_COLUMNS)
    return pd.DataFrame([bar.to_dict() for bar in bars], columns=BAR_COLUMNS).assign(
        timestamp=lambda df: pd.to_datetime(df["timestamp"], utc=True)
    )


def bars_from_frame(
    frame: pd.DataFrame,
    symbol: str | None = None,
    source: str = DataSource.REPLAY.value,
) -> list[MarketBar]:
    """Build bars from an OHLCV DataFrame (e.g. a CSV export) for replay.

    ``symbol`` is used for every row when the frame has no symbol column.
    """
    required_cols = {"timestamp", "open", "high", "low", "close"}
    missing = required_cols - set(frame.columns)
    if missing:
        raise ValidationError(f"Missing columns: {sorted(missing)}")
    if "symbol" not in frame.columns and not symbol:
        raise ValidationError("symbol is required when the frame has no symbol column")

    timestamps = pd.to_datetime(frame["timestamp"], utc=True)
    volumes = frame["volume"] if "volume" in frame.columns else pd.Series(0.0, index=frame.index)
    symbols = frame["symbol"] if "symbol" in frame.columns else pd.Series(symbol, index=frame.index)

    bars = [
        MarketBar(
            timestamp=ts.to_pydatetime(),
            symbol=str(sym),
            open=float(o),
            high=float(h),
            low=float(lo),
            close=float(c),
            volume=float(v),
            source=source,
        )
        for ts, sym, o, h, lo, c, v in zip(
            timestamps, symbols, frame["open"], frame["high"], frame["low"], frame["close"], volumes
        )
    ]
    bars.sort(key=lambda b: b.timestamp)
    return bars
