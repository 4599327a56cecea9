"""Tests for performance metrics."""

import math
from datetime import timedelta

import pytest

from paper_backtester.core.metrics import (
    average_holding_time,
    calculate_metrics,
    calculate_sharpe_ratio,
    max_consecutive,
    max_drawdown_pct,
    win_rate,
)
from paper_backtester.core.models import EquityPoint, TradeSide
from tests.conftest import START, make_trade, make_trades


def curve(balances: list[float], drawdowns: list[float] | None = None) -> list[EquityPoint]:
    drawdowns = drawdowns or [0.0] * len(balances)
    return [
        EquityPoint(
            timestamp=START + timedelta(hours=i),
            balance=b,
            portfolio_value=b,
            drawdown_pct=dd,
        )
        for i, (b, dd) in enumerate(zip(balances, drawdowns))
    ]


class TestCalculateMetrics:

    def test_mixed_sequence(self):
        trades = make_trades([10, 5, -3, 2, -1, -1])
        metrics = calculate_metrics(trades, 1000, 1012)

        assert metrics.total_profit_loss == pytest.approx(12)
        assert metrics.gross_profit == pytest.approx(17)
        assert metrics.gross_loss == pytest.approx(5)
        assert metrics.profit_factor == pytest.approx(3.4)
        assert metrics.average_profit_per_trade == pytest.approx(17 / 3)
        assert metrics.average_loss_per_trade == pytest.approx(5 / 3)
        assert metrics.largest_win == pytest.approx(10)
        assert metrics.largest_loss == pytest.approx(-3)
        assert metrics.consecutive_wins == 2
        assert metrics.consecutive_losses == 2
        assert metrics.expectancy == pytest.approx(2)

    def test_no_trades(self):
        metrics = calculate_metrics([], 1000, 1000)
        assert metrics.total_profit_loss == 0
        assert metrics.profit_factor == 0
        assert metrics.expectancy == 0
        assert metrics.largest_win == 0
        assert metrics.largest_loss == 0
        assert metrics.average_holding_time_seconds == 0

    def test_no_losses_gives_zero_profit_factor(self):
        metrics = calculate_metrics(make_trades([1, 2, 3]), 100, 106)
        assert metrics.profit_factor == 0
        assert metrics.consecutive_wins == 3
        assert metrics.consecutive_losses == 0

    def test_to_dict_is_rounded(self):
        data = calculate_metrics(make_trades([1, -3]), 100, 98).to_dict()
        assert data["profit_factor"] == pytest.approx(0.3333)
        assert data["largest_loss"] == -3
        assert set(data) >= {"gross_profit", "gross_loss", "average_holding_time_seconds"}


class TestStreaks:

    def test_zero_breaks_both_streaks(self):
        trades = make_trades([1, 1, 0, 1, -1, 0, -1])
        assert max_consecutive(trades, wins=True) == 2
        assert max_consecutive(trades, wins=False) == 1

    def test_buys_without_pl_break_streaks(self):
        trades = [make_trade(5), make_trade(None, side=TradeSide.BUY), make_trade(5)]
        assert max_consecutive(trades, wins=True) == 1


class TestWinRate:

    def test_percentage(self):
        assert win_rate(make_trades([10, 5, -3, 2, -1, -1])) == pytest.approx(50)

    def test_empty(self):
        assert win_rate([]) == 0

    def test_between_zero_and_hundred(self):
        trades = make_trades([0, 0, 1])
        assert 0 <= win_rate(trades) <= 100


class TestDrawdown:

    def test_max_of_curve(self):
        assert max_drawdown_pct(curve([100, 90, 95], [0, 10, 5])) == pytest.approx(10)

    def test_empty_curve(self):
        assert max_drawdown_pct([]) == 0


class TestSharpeRatio:

    def test_too_short(self):
        assert calculate_sharpe_ratio(curve([100])) == 0
        assert calculate_sharpe_ratio([]) == 0

    def test_flat_curve(self):
        assert calculate_sharpe_ratio(curve([100, 100, 100])) == 0

    def test_constant_growth_has_zero_std(self):
        # Returns 0.1 then 0.1 exactly: zero variance
        assert calculate_sharpe_ratio(curve([100, 110, 121])) == 0

    def test_annualized_population_std(self):
        balances = [100.0, 110.0, 104.5]
        returns = [(110.0 - 100.0) / 100.0, (104.5 - 110.0) / 110.0]
        mean = sum(returns) / 2
        std = math.sqrt(sum((r - mean) ** 2 for r in returns) / 2)
        expected = mean / std * math.sqrt(252)

        assert calculate_sharpe_ratio(curve(balances)) == pytest.approx(expected, abs=1e-9)

    def test_positive_returns(self):
        assert calculate_sharpe_ratio(curve([100, 102, 103, 106])) > 0

    def test_skips_zero_previous_balance(self):
        with_zero = curve([0, 100, 110, 99])
        without = curve([100, 110, 99])
        assert calculate_sharpe_ratio(with_zero) == pytest.approx(calculate_sharpe_ratio(without))


class TestHoldingTime:

    def test_fifo_pairs_per_symbol(self):
        trades = [
            make_trade(None, side=TradeSide.BUY, timestamp=START),
            make_trade(None, side=TradeSide.BUY, symbol="ETH", timestamp=START + timedelta(hours=1)),
            make_trade(None, side=TradeSide.BUY, timestamp=START + timedelta(hours=2)),
            make_trade(5, timestamp=START + timedelta(hours=4)),
            make_trade(5, symbol="ETH", timestamp=START + timedelta(hours=2)),
        ]
        # BTC: 4h, ETH: 1h
        assert average_holding_time(trades) == pytest.approx(2.5 * 3600)

    def test_unmatched_sell_ignored(self):
        assert average_holding_time([make_trade(5)]) == 0
