"""Shared test fixtures and helpers for paper backtester tests."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import numpy as np
import pytest

from paper_backtester.config import BacktestConfig, GeneratorConfig, GridStrategyConfig
from paper_backtester.core.models import Trade, TradeSide
from paper_backtester.core.portfolio import PortfolioLedger
from paper_backtester.market.models import DataSource, MarketBar

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_trade(
    profit_loss: float | None = None,
    side: TradeSide = TradeSide.SELL,
    symbol: str = "BTCUSDT",
    price: str = "100",
    quantity: str = "1",
    timestamp: datetime | None = None,
) -> Trade:
    """Build a trade with the given realized P&L (None for an unrealized buy)."""
    px = Decimal(price)
    qty = Decimal(quantity)
    return Trade(
        timestamp=timestamp or START,
        symbol=symbol,
        side=side,
        price=px,
        quantity=qty,
        notional=px * qty,
        fee=Decimal("0"),
        realized_pl=Decimal(str(profit_loss)) if profit_loss is not None else None,
    )


def make_trades(profits: list[float], step: timedelta = timedelta(hours=1)) -> list[Trade]:
    """One sell per P&L value, one ``step`` apart."""
    return [
        make_trade(pl, timestamp=START + step * i)
        for i, pl in enumerate(profits)
    ]


def make_bars(
    closes: list[float],
    symbol: str = "BTCUSDT",
    step: timedelta = timedelta(hours=1),
    source: str = DataSource.REPLAY.value,
) -> list[MarketBar]:
    """Bars with the given closes and a 0.5% wick on either side."""
    bars = []
    prev = closes[0]
    for i, close in enumerate(closes):
        bars.append(
            MarketBar(
                timestamp=START + step * i,
                symbol=symbol,
                open=prev,
                high=max(prev, close) * 1.005,
                low=min(prev, close) * 0.995,
                close=close,
                volume=1_000_000.0,
                source=source,
            )
        )
        prev = close
    return bars


def make_oscillating_closes(
    n: int = 200,
    center: float = 150.0,
    amplitude: float = 40.0,
    seed: int = 42,
) -> list[float]:
    """Closes swinging around ``center`` (ideal for a grid)."""
    rng = np.random.default_rng(seed)
    phase = np.linspace(0, 8 * np.pi, n)
    noise = rng.normal(0, amplitude * 0.05, n)
    return [float(c) for c in center + amplitude * np.sin(phase) + noise]


@pytest.fixture
def ledger() -> PortfolioLedger:
    return PortfolioLedger()


@pytest.fixture
def backtest_config() -> BacktestConfig:
    return BacktestConfig(
        start_date=START,
        end_date=START + timedelta(days=2),
        symbols=["BTCUSDT"],
        interval="1h",
        initial_balance=Decimal("10000"),
        generator=GeneratorConfig(volatility=0.02, base_price=150.0, price_range=(100.0, 200.0)),
    )


@pytest.fixture
def grid_strategy_config() -> GridStrategyConfig:
    return GridStrategyConfig(
        symbol="BTCUSDT",
        lower_bound=Decimal("100"),
        upper_bound=Decimal("200"),
        grid_count=10,
        investment_per_grid=Decimal("500"),
    )
