"""
Performance metrics over a finished backtest.

Pure functions of the trade list and the equity curve:
- P&L aggregates (average win/loss, largest win/loss, gross profit/loss)
- Win/loss streaks, profit factor, expectancy
- Win rate, max drawdown, annualized Sharpe ratio
- Average holding time between a buy and the sell that closes it

Every ratio is 0 when it is undefined (no trades, no losses, flat curve).
"""

import math
from collections import defaultdict, deque
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from paper_backtester.core.models import EquityPoint, Trade, TradeSide

TRADING_DAYS_PER_YEAR = 252


@dataclass
class PerformanceMetrics:
    """Trade statistics of one backtest run."""

    total_profit_loss: float = 0.0
    average_profit_per_trade: float = 0.0
    average_loss_per_trade: float = 0.0  # magnitude
    largest_win: float = 0.0
    largest_loss: float = 0.0  # most negative P&L
    consecutive_wins: int = 0
    consecutive_losses: int = 0
    profit_factor: float = 0.0
    expectancy: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    average_holding_time_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_profit_loss": round(self.total_profit_loss, 8),
            "average_profit_per_trade": round(self.average_profit_per_trade, 8),
            "average_loss_per_trade": round(self.average_loss_per_trade, 8),
            "largest_win": round(self.largest_win, 8),
            "largest_loss": round(self.largest_loss, 8),
            "consecutive_wins": self.consecutive_wins,
            "consecutive_losses": self.consecutive_losses,
            "profit_factor": round(self.profit_factor, 4),
            "expectancy": round(self.expectancy, 8),
            "gross_profit": round(self.gross_profit, 8),
            "gross_loss": round(self.gross_loss, 8),
            "average_holding_time_seconds": round(self.average_holding_time_seconds, 2),
        }


def max_consecutive(trades: Sequence[Trade], wins: bool) -> int:
    """Longest run of winning (``wins=True``) or losing trades.

    A zero-P&L trade breaks both kinds of streak.
    """
    longest = 0
    current = 0
    for trade in trades:
        matches = trade.is_win if wins else trade.is_loss
        if matches:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return longest


def win_rate(trades: Sequence[Trade]) -> float:
    """Percentage of trades with positive P&L, 0 when there are no trades."""
    if not trades:
        return 0.0
    return sum(1 for t in trades if t.is_win) / len(trades) * 100


def max_drawdown_pct(equity_curve: Sequence[EquityPoint]) -> float:
    """Largest drawdown on the curve, 0 for an empty curve."""
    if not equity_curve:
        return 0.0
    return max(point.drawdown_pct for point in equity_curve)


def calculate_sharpe_ratio(
    equity_curve: Sequence[EquityPoint],
    periods_per_year: int = TRADING_DAYS_PER_YEAR,
) -> float:
    """Annualized Sharpe ratio of simple returns between consecutive balances.

    Uses the population standard deviation and a zero risk-free rate. Each
    step is treated as one period regardless of the bar interval. Returns
    whose previous balance is 0 are skipped.
    """
    if len(equity_curve) < 2:
        return 0.0

    returns: list[float] = []
    for prev, curr in zip(equity_curve, equity_curve[1:]):
        if prev.balance == 0:
            continue
        returns.append((curr.balance - prev.balance) / prev.balance)

    if not returns:
        return 0.0

    mean_ret = sum(returns) / len(returns)
    variance = sum((r - mean_ret) ** 2 for r in returns) / len(returns)
    std_ret = math.sqrt(variance)
    if std_ret == 0:
        return 0.0
    return (mean_ret / std_ret) * math.sqrt(periods_per_year)


def average_holding_time(trades: Sequence[Trade]) -> float:
    """Mean seconds between a buy and the sell that closes it (FIFO per symbol)."""
    open_buys: dict[str, deque[datetime]] = defaultdict(deque)
    durations: list[float] = []

    for trade in trades:
        if trade.side == TradeSide.BUY:
            open_buys[trade.symbol].append(trade.timestamp)
        elif open_buys[trade.symbol]:
            opened_at = open_buys[trade.symbol].popleft()
            durations.append((trade.timestamp - opened_at).total_seconds())

    if not durations:
        return 0.0
    return sum(durations) / len(durations)


def calculate_metrics(
    trades: Sequence[Trade],
    initial_balance: Decimal | float,
    final_balance: Decimal | float,
) -> PerformanceMetrics:
    """Aggregate trade statistics for a finished run."""
    winners = [t.profit_loss for t in trades if t.is_win]
    losers = [t.profit_loss for t in trades if t.is_loss]

    gross_profit = sum(winners)
    gross_loss = abs(sum(losers))
    total_pl = float(final_balance) - float(initial_balance)

    return PerformanceMetrics(
        total_profit_loss=total_pl,
        average_profit_per_trade=gross_profit / len(winners) if winners else 0.0,
        average_loss_per_trade=gross_loss / len(losers) if losers else 0.0,
        largest_win=max(winners) if winners else 0.0,
        largest_loss=min(losers) if losers else 0.0,
        consecutive_wins=max_consecutive(trades, wins=True),
        consecutive_losses=max_consecutive(trades, wins=False),
        profit_factor=gross_profit / gross_loss if gross_loss > 0 else 0.0,
        expectancy=total_pl / len(trades) if trades else 0.0,
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        average_holding_time_seconds=average_holding_time(trades),
    )
