"""Backtest engine — execution loop, paper trading, grid pipeline, reporter."""

from paper_backtester.engine.grid_strategy import (
    GridBacktestRun,
    GridTradingStrategy,
    run_grid_backtest,
)
from paper_backtester.engine.models import BacktestResult, Strategy
from paper_backtester.engine.paper_trading import PaperTradingSession
from paper_backtester.engine.reporter import BacktestReporter
from paper_backtester.engine.runner import BacktestEngine

__all__ = [
    "BacktestEngine",
    "BacktestReporter",
    "BacktestResult",
    "GridBacktestRun",
    "GridTradingStrategy",
    "PaperTradingSession",
    "Strategy",
    "run_grid_backtest",
]
