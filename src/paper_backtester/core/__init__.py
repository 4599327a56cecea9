"""Core simulation components — trade models, ledger, grid calculator, metrics."""

from paper_backtester.core.calculator import (
    GridAction,
    GridCalculator,
    GridConfig,
    GridLevel,
    GridSignal,
    GridSignalResult,
    OutOfRange,
    RangePosition,
)
from paper_backtester.core.metrics import (
    PerformanceMetrics,
    calculate_metrics,
    calculate_sharpe_ratio,
)
from paper_backtester.core.models import EquityPoint, Trade, TradeSide
from paper_backtester.core.portfolio import (
    PortfolioLedger,
    VirtualPortfolio,
    VirtualPosition,
)

__all__ = [
    "GridAction",
    "GridCalculator",
    "GridConfig",
    "GridLevel",
    "GridSignal",
    "GridSignalResult",
    "OutOfRange",
    "RangePosition",
    "PerformanceMetrics",
    "calculate_metrics",
    "calculate_sharpe_ratio",
    "EquityPoint",
    "Trade",
    "TradeSide",
    "PortfolioLedger",
    "VirtualPortfolio",
    "VirtualPosition",
]
