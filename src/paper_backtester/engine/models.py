"""
Backtest run models — strategy signature and the aggregate result.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from paper_backtester.core.metrics import PerformanceMetrics
from paper_backtester.core.models import EquityPoint, Trade
from paper_backtester.market.models import MarketBar

# A strategy receives the full bar sequence once and returns the trades it
# executed, in chronological order.
Strategy = Callable[[list[MarketBar]], list[Trade]]


@dataclass
class BacktestResult:
    """Result of a single backtest run. Read-only once produced."""

    start_date: datetime
    end_date: datetime
    initial_balance: float
    final_balance: float

    duration_seconds: float = 0.0
    total_return_pct: float = 0.0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    max_drawdown_pct: float = 0.0
    sharpe_ratio: float = 0.0
    bars_processed: int = 0

    trades: list[Trade] = field(default_factory=list)
    equity_curve: list[EquityPoint] = field(default_factory=list)
    metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)

    def to_dict(self, include_series: bool = False) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary (trades and equity curve on request)."""
        data: dict[str, Any] = {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "duration_seconds": round(self.duration_seconds, 4),
            "initial_balance": round(self.initial_balance, 8),
            "final_balance": round(self.final_balance, 8),
            "total_return_pct": round(self.total_return_pct, 4),
            "total_trades": self.total_trades,
            "winning_trades": self.winning_trades,
            "losing_trades": self.losing_trades,
            "win_rate": round(self.win_rate, 4),
            "max_drawdown_pct": round(self.max_drawdown_pct, 4),
            "sharpe_ratio": round(self.sharpe_ratio, 4),
            "bars_processed": self.bars_processed,
            "metrics": self.metrics.to_dict(),
        }
        if include_series:
            data["trades"] = [t.to_dict() for t in self.trades]
            data["equity_curve"] = [p.to_dict() for p in self.equity_curve]
        return data
