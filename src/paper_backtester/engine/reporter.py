"""
BacktestReporter — Summaries and exports for finished backtests.

Generates:
- Summary dict of headline numbers
- Plain-text summary block for terminals
- JSON export of the full result
- YAML preset of a grid strategy config with its backtest metrics
"""

import json
from typing import Any

import yaml

from paper_backtester.engine.grid_strategy import GridBacktestRun
from paper_backtester.engine.models import BacktestResult
from paper_backtester.logging import get_logger

logger = get_logger(__name__)

SEPARATOR = "=" * 60


class BacktestReporter:
    """Generates reports and exports presets from backtest results."""

    def generate_summary(self, result: BacktestResult) -> dict[str, Any]:
        """Headline numbers of one backtest result."""
        metrics = result.metrics
        summary = {
            "period": {
                "start": result.start_date.isoformat(),
                "end": result.end_date.isoformat(),
            },
            "initial_balance": round(result.initial_balance, 2),
            "final_balance": round(result.final_balance, 2),
            "total_return_pct": round(result.total_return_pct, 4),
            "total_trades": result.total_trades,
            "winning_trades": result.winning_trades,
            "losing_trades": result.losing_trades,
            "win_rate": round(result.win_rate, 2),
            "max_drawdown_pct": round(result.max_drawdown_pct, 4),
            "sharpe_ratio": round(result.sharpe_ratio, 4),
            "profit_factor": round(metrics.profit_factor, 4),
            "expectancy": round(metrics.expectancy, 4),
            "largest_win": round(metrics.largest_win, 4),
            "largest_loss": round(metrics.largest_loss, 4),
            "consecutive_wins": metrics.consecutive_wins,
            "consecutive_losses": metrics.consecutive_losses,
        }

        logger.info("Summary report generated", trades=result.total_trades)
        return summary

    def format_summary(self, result: BacktestResult, title: str = "BACKTEST RESULTS") -> str:
        """Render a result as a fixed-width text block."""
        metrics = result.metrics
        lines = [
            SEPARATOR,
            title,
            SEPARATOR,
            f"Period:            {result.start_date:%Y-%m-%d %H:%M} -> {result.end_date:%Y-%m-%d %H:%M}",
            f"Bars processed:    {result.bars_processed}",
            f"Initial balance:   {result.initial_balance:,.2f}",
            f"Final balance:     {result.final_balance:,.2f}",
            f"Total return:      {result.total_return_pct:.2f}%",
            f"Total trades:      {result.total_trades}",
            f"Winning trades:    {result.winning_trades}",
            f"Losing trades:     {result.losing_trades}",
            f"Win rate:          {result.win_rate:.2f}%",
            f"Max drawdown:      {result.max_drawdown_pct:.2f}%",
            f"Sharpe ratio:      {result.sharpe_ratio:.4f}",
            "",
            f"Profit factor:     {metrics.profit_factor:.4f}",
            f"Expectancy:        {metrics.expectancy:.4f}",
            f"Avg profit:        {metrics.average_profit_per_trade:.4f}",
            f"Avg loss:          {metrics.average_loss_per_trade:.4f}",
            f"Largest win:       {metrics.largest_win:.4f}",
            f"Largest loss:      {metrics.largest_loss:.4f}",
            f"Win streak:        {metrics.consecutive_wins}",
            f"Loss streak:       {metrics.consecutive_losses}",
            f"Avg holding time:  {metrics.average_holding_time_seconds / 3600:.2f}h",
            SEPARATOR,
        ]
        return "\n".join(lines)

    def export_json(self, result: BacktestResult, include_series: bool = True) -> str:
        """Export a result (optionally with trades and equity curve) as JSON."""
        return json.dumps(result.to_dict(include_series=include_series), indent=2)

    def export_preset_yaml(self, run: GridBacktestRun) -> str:
        """Export the grid strategy config of a run as a YAML preset."""
        preset = self._build_preset_dict(run)
        return yaml.safe_dump(preset, default_flow_style=False, sort_keys=False)

    def _build_preset_dict(self, run: GridBacktestRun) -> dict[str, Any]:
        config = run.request.strategy
        result = run.result
        preset: dict[str, Any] = {
            "symbol": config.symbol,
            "lower_bound": str(config.lower_bound),
            "upper_bound": str(config.upper_bound),
            "grid_count": config.grid_count,
            "investment_per_grid": str(config.investment_per_grid),
            "fee_rate": str(config.fee_rate),
            "trade_out_of_range": config.trade_out_of_range,
        }

        preset["_backtest_metrics"] = {
            "total_return_pct": round(result.total_return_pct, 4),
            "sharpe_ratio": round(result.sharpe_ratio, 4),
            "max_drawdown_pct": round(result.max_drawdown_pct, 4),
            "total_trades": result.total_trades,
            "win_rate": round(result.win_rate, 4),
            "profit_factor": round(result.metrics.profit_factor, 4),
        }

        return preset
