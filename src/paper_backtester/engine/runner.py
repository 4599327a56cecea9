"""
BacktestEngine — Strategy execution loop.

Resolves the bar sequence for a run (generated, replayed, or the
generated fallback for historical), hands it to the strategy once, then
folds the returned trades into a running balance and an equity curve
before computing the summary metrics.
"""

import dataclasses
import time
import uuid
from decimal import Decimal
from typing import Any

from paper_backtester.caching.market_data_cache import MarketDataCache
from paper_backtester.config import BacktestConfig
from paper_backtester.core.metrics import (
    calculate_metrics,
    calculate_sharpe_ratio,
    max_drawdown_pct,
    win_rate,
)
from paper_backtester.core.models import EquityPoint, Trade
from paper_backtester.engine.models import BacktestResult, Strategy
from paper_backtester.errors import UnknownDataSourceError
from paper_backtester.logging import LoggerMixin, log_context
from paper_backtester.market.generator import MarketDataGenerator, interval_to_ms
from paper_backtester.market.models import DataSource, MarketBar


class BacktestEngine(LoggerMixin):
    """
    Runs strategies against market data.

    Usage:
        engine = BacktestEngine(generator=MarketDataGenerator(seed=7))
        result = engine.run(config, strategy)

    Generated bars are cached per engine instance, keyed by symbols,
    interval and data source only. A later run with the same key gets the
    cached bars even if its period or generator config differ; call
    ``clear_cache()`` or use a fresh engine to regenerate.
    """

    def __init__(
        self,
        cache: MarketDataCache | None = None,
        generator: MarketDataGenerator | None = None,
    ) -> None:
        self.cache = cache if cache is not None else MarketDataCache()
        self.generator = generator or MarketDataGenerator()

    # -------------------------------------------------------------------------
    # Market Data
    # -------------------------------------------------------------------------

    def get_market_data(self, config: BacktestConfig) -> list[MarketBar]:
        """Resolve the bar sequence for a run."""
        source = config.data_source

        if source == DataSource.REPLAY.value:
            return list(config.replay_data or [])

        if source == DataSource.HISTORICAL.value:
            self.logger.warning(
                "Historical data loader not available, using generated data",
                symbols=config.symbols,
                interval=config.interval,
            )
        elif source != DataSource.GENERATED.value:
            raise UnknownDataSourceError(f"Unknown data source: {source}")

        key = MarketDataCache.make_key(config.symbols, config.interval, source)
        if key in self.cache:
            self.logger.debug(
                "Market data cache hit, period and generator config ignored",
                key=key,
                start_date=config.start_date.isoformat(),
                end_date=config.end_date.isoformat(),
            )
        return self.cache.get_or_load(key, lambda: self._generate(config))

    def _generate(self, config: BacktestConfig) -> list[MarketBar]:
        bars = self.generator.generate(
            config.generator,
            config.symbols,
            config.start_date,
            config.end_date,
            interval_to_ms(config.interval),
        )
        self.logger.info(
            "Market data generated",
            symbols=config.symbols,
            interval=config.interval,
            bars=len(bars),
        )
        return bars

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self, config: BacktestConfig, strategy: Strategy) -> BacktestResult:
        """Run a backtest. Strategy errors propagate to the caller."""
        with log_context(run_id=uuid.uuid4().hex[:8]):
            return self._run(config, strategy)

    def _run(self, config: BacktestConfig, strategy: Strategy) -> BacktestResult:
        start_time = time.perf_counter()

        self.logger.info(
            "Starting backtest",
            start_date=config.start_date.isoformat(),
            end_date=config.end_date.isoformat(),
            symbols=config.symbols,
            interval=config.interval,
            data_source=config.data_source,
        )

        bars = self.get_market_data(config)
        self.logger.info("Market data loaded", bars=len(bars))

        strategy_trades = strategy(bars)

        initial_balance: Decimal = config.initial_balance
        balance = initial_balance
        peak = balance
        trades: list[Trade] = []
        equity_curve: list[EquityPoint] = []

        for trade in strategy_trades:
            balance += trade.realized_pl or Decimal("0")
            if balance > peak:
                peak = balance
            drawdown = float((peak - balance) / peak * 100) if peak > 0 else 0.0

            equity_curve.append(
                EquityPoint(
                    timestamp=trade.timestamp,
                    balance=float(balance),
                    portfolio_value=float(balance),
                    drawdown_pct=drawdown,
                )
            )
            trades.append(dataclasses.replace(trade, balance_after=balance))

        metrics = calculate_metrics(trades, initial_balance, balance)
        total_return_pct = float((balance - initial_balance) / initial_balance * 100)
        elapsed = time.perf_counter() - start_time

        result = BacktestResult(
            start_date=config.start_date,
            end_date=config.end_date,
            initial_balance=float(initial_balance),
            final_balance=float(balance),
            duration_seconds=elapsed,
            total_return_pct=total_return_pct,
            total_trades=len(trades),
            winning_trades=sum(1 for t in trades if t.is_win),
            losing_trades=sum(1 for t in trades if t.is_loss),
            win_rate=win_rate(trades),
            max_drawdown_pct=max_drawdown_pct(equity_curve),
            sharpe_ratio=calculate_sharpe_ratio(equity_curve),
            bars_processed=len(bars),
            trades=trades,
            equity_curve=equity_curve,
            metrics=metrics,
        )

        self.logger.info(
            "Backtest completed",
            trades=result.total_trades,
            return_pct=round(total_return_pct, 2),
            win_rate=round(result.win_rate, 2),
            max_drawdown=round(result.max_drawdown_pct, 2),
            duration_s=round(elapsed, 4),
        )

        return result

    # -------------------------------------------------------------------------
    # Cache
    # -------------------------------------------------------------------------

    def clear_cache(self) -> None:
        self.cache.clear()
        self.logger.info("Cleared market data cache")

    def statistics(self) -> dict[str, Any]:
        return {
            "cached_datasets": len(self.cache),
            "cache": self.cache.stats,
        }
