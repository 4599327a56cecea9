"""
GridTradingStrategy — Grid trading pipeline for backtests.

Per bar of the configured symbol:
1. GridCalculator computes levels and the signal for the bar's close
2. Signals with an action are executed through the PaperTradingSession
   (skipped while the price is outside the grid unless configured)
3. Ledger rejections (insufficient funds/position) are logged and the
   run continues with the next bar

run_grid_backtest() wires the strategy, a fresh ledger and an engine
together for one request.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from paper_backtester.config import GridBacktestRequest, GridStrategyConfig
from paper_backtester.core.calculator import GridAction, GridCalculator, GridConfig
from paper_backtester.core.models import Trade
from paper_backtester.core.portfolio import PortfolioLedger, VirtualPortfolio
from paper_backtester.engine.models import BacktestResult
from paper_backtester.engine.paper_trading import PaperTradingSession
from paper_backtester.engine.runner import BacktestEngine
from paper_backtester.errors import InsufficientFundsError, InsufficientPositionError
from paper_backtester.logging import LoggerMixin
from paper_backtester.market.generator import MarketDataGenerator
from paper_backtester.market.models import MarketBar

DEFAULT_OWNER_ID = "grid-backtest"


class GridTradingStrategy(LoggerMixin):
    """
    Strategy callable for BacktestEngine.run().

    Usage:
        strategy = GridTradingStrategy(strategy_config, session)
        result = engine.run(backtest_config, strategy)
    """

    def __init__(self, config: GridStrategyConfig, session: PaperTradingSession) -> None:
        self.config = config
        self.session = session
        self.signals_seen = 0
        self.skipped_out_of_range = 0
        self.rejected_trades = 0

    def __call__(self, bars: list[MarketBar]) -> list[Trade]:
        trades: list[Trade] = []
        symbol_bars = 0

        for bar in bars:
            if bar.symbol != self.config.symbol:
                continue
            symbol_bars += 1
            trade = self.on_bar(bar)
            if trade is not None:
                trades.append(trade)

        if symbol_bars == 0 and bars:
            self.logger.warning(
                "No bars for strategy symbol",
                symbol=self.config.symbol,
                bars=len(bars),
            )

        self.logger.info(
            "Grid strategy finished",
            symbol=self.config.symbol,
            bars=symbol_bars,
            signals=self.signals_seen,
            trades=len(trades),
            skipped_out_of_range=self.skipped_out_of_range,
            rejected=self.rejected_trades,
        )
        return trades

    def on_bar(self, bar: MarketBar) -> Trade | None:
        """Evaluate one bar; returns the executed trade, if any."""
        current_price = Decimal(str(bar.close))
        result = GridCalculator.compute_signal(
            GridConfig(
                lower_bound=self.config.lower_bound,
                upper_bound=self.config.upper_bound,
                grid_count=self.config.grid_count,
                investment_per_grid=self.config.investment_per_grid,
                current_price=current_price,
                symbol=self.config.symbol,
            )
        )
        self.session.mark_to_market({bar.symbol: current_price})

        signal = result.signal
        if signal.action == GridAction.NONE:
            return None
        self.signals_seen += 1

        if result.out_of_range.is_out_of_range and not self.config.trade_out_of_range:
            self.skipped_out_of_range += 1
            return None

        try:
            return self.session.execute(
                bar.symbol,
                signal.action.value,
                signal.quantity,
                signal.price,
                reason=signal.reason,
                timestamp=bar.timestamp,
            )
        except (InsufficientFundsError, InsufficientPositionError):
            self.rejected_trades += 1
            return None


@dataclass
class GridBacktestRun:
    """A finished grid backtest with the portfolio it traded on."""

    request: GridBacktestRequest
    result: BacktestResult
    portfolio: VirtualPortfolio
    signals_seen: int = 0
    skipped_out_of_range: int = 0
    rejected_trades: int = 0

    def to_dict(self, include_series: bool = False) -> dict[str, Any]:
        return {
            "strategy": self.request.strategy.model_dump(mode="json"),
            "result": self.result.to_dict(include_series=include_series),
            "portfolio": self.portfolio.to_dict(),
            "signals_seen": self.signals_seen,
            "skipped_out_of_range": self.skipped_out_of_range,
            "rejected_trades": self.rejected_trades,
        }


def run_grid_backtest(
    request: GridBacktestRequest,
    engine: BacktestEngine | None = None,
    owner_id: str = DEFAULT_OWNER_ID,
) -> GridBacktestRun:
    """Run one grid backtest on a fresh virtual portfolio."""
    if engine is None:
        engine = BacktestEngine(generator=MarketDataGenerator(seed=request.seed))

    session = PaperTradingSession(PortfolioLedger(), owner_id, fee_rate=request.strategy.fee_rate)
    portfolio = session.initialize(request.backtest.initial_balance, request.backtest.currency)

    strategy = GridTradingStrategy(request.strategy, session)
    result = engine.run(request.backtest, strategy)

    return GridBacktestRun(
        request=request,
        result=result,
        portfolio=portfolio,
        signals_seen=strategy.signals_seen,
        skipped_out_of_range=strategy.skipped_out_of_range,
        rejected_trades=strategy.rejected_trades,
    )
