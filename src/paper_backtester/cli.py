"""
Command-line entry point.

Usage:
    paper-backtester run --lower 28000 --upper 32000 --grid-count 10 \\
        --base-price 30000 --price-range 28000 32000 --seed 42
    paper-backtester run --config grid.yaml --json-out result.json --html-out report.html
    paper-backtester signal --lower 100 --upper 200 --grid-count 10 --price 109.4
"""

import argparse
import json
import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from paper_backtester.config import (
    BacktestConfig,
    GeneratorConfig,
    GridBacktestRequest,
    GridStrategyConfig,
    Trend,
    default_period,
    load_config,
)
from paper_backtester.core.calculator import GridCalculator, GridConfig
from paper_backtester.engine.grid_strategy import run_grid_backtest
from paper_backtester.engine.reporter import BacktestReporter
from paper_backtester.errors import BacktesterError
from paper_backtester.logging import get_logger, setup_logging
from paper_backtester.market.generator import INTERVAL_MS, bars_from_frame
from paper_backtester.market.models import DataSource

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paper-backtester",
        description="Grid backtesting and paper trading on synthetic market data",
    )
    parser.add_argument("--log-level", type=str, default="WARNING",
                        help="Logging level (default: WARNING)")
    parser.add_argument("--json-logs", action="store_true", help="Render logs as JSON")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run a grid backtest")
    run.add_argument("--config", type=Path, help="YAML file with backtest/strategy/seed sections")
    run.add_argument("--symbol", type=str, default="BTCUSDT")
    run.add_argument("--lower", type=Decimal, help="Grid lower bound")
    run.add_argument("--upper", type=Decimal, help="Grid upper bound")
    run.add_argument("--grid-count", type=int, default=10)
    run.add_argument("--investment", type=Decimal, default=Decimal("100"),
                     help="Quote currency per grid level")
    run.add_argument("--fee-rate", type=Decimal, default=Decimal("0.001"))
    run.add_argument("--trade-out-of-range", action="store_true")
    run.add_argument("--start", type=datetime.fromisoformat, help="ISO start date")
    run.add_argument("--end", type=datetime.fromisoformat, help="ISO end date")
    run.add_argument("--interval", type=str, default="1h", choices=sorted(INTERVAL_MS))
    run.add_argument("--initial-balance", type=Decimal, default=Decimal("10000"))
    run.add_argument("--currency", type=str, default="USDT")
    run.add_argument("--volatility", type=float, default=0.02)
    run.add_argument("--trend", type=str, default=Trend.SIDEWAYS.value,
                     choices=[t.value for t in Trend])
    run.add_argument("--base-price", type=float, default=100.0)
    run.add_argument("--price-range", type=float, nargs=2, metavar=("MIN", "MAX"))
    run.add_argument("--no-noise", action="store_true", help="Disable the random volatility term")
    run.add_argument("--event-probability", type=float)
    run.add_argument("--seed", type=int)
    run.add_argument("--replay-csv", type=Path,
                     help="Replay OHLCV bars from a CSV instead of generating them")
    run.add_argument("--json-out", type=Path, help="Write the full result as JSON")
    run.add_argument("--html-out", type=Path, help="Write a plotly HTML report")
    run.add_argument("--preset-out", type=Path, help="Write the strategy as a YAML preset")

    signal = subparsers.add_parser("signal", help="Compute the grid signal for one price")
    signal.add_argument("--lower", type=Decimal, required=True)
    signal.add_argument("--upper", type=Decimal, required=True)
    signal.add_argument("--grid-count", type=int, default=10)
    signal.add_argument("--investment", type=Decimal, default=Decimal("100"))
    signal.add_argument("--price", type=Decimal, required=True)

    return parser


def request_from_args(args: argparse.Namespace, parser: argparse.ArgumentParser) -> GridBacktestRequest:
    """Build a grid backtest request from a YAML file or from flags."""
    if args.config:
        request = load_config(args.config)
        if args.seed is not None:
            request = request.model_copy(update={"seed": args.seed})
        return request

    if args.lower is None or args.upper is None:
        parser.error("--lower and --upper are required without --config")

    backtest_kwargs = {
        "symbols": [args.symbol],
        "interval": args.interval,
        "initial_balance": args.initial_balance,
        "currency": args.currency,
        "generator": GeneratorConfig(
            volatility=args.volatility,
            trend=Trend(args.trend),
            base_price=args.base_price,
            price_range=tuple(args.price_range) if args.price_range else None,
            include_noise=not args.no_noise,
            event_probability=args.event_probability,
        ),
    }

    if args.replay_csv:
        bars = bars_from_frame(pd.read_csv(args.replay_csv), symbol=args.symbol)
        if not bars:
            parser.error(f"No bars in {args.replay_csv}")
        backtest_kwargs.update(
            data_source=DataSource.REPLAY.value,
            replay_data=bars,
            start_date=args.start or bars[0].timestamp,
            end_date=args.end or bars[-1].timestamp,
        )
    else:
        default_start, default_end = default_period()
        backtest_kwargs.update(
            start_date=args.start or default_start,
            end_date=args.end or default_end,
        )

    return GridBacktestRequest(
        backtest=BacktestConfig(**backtest_kwargs),
        strategy=GridStrategyConfig(
            symbol=args.symbol,
            lower_bound=args.lower,
            upper_bound=args.upper,
            grid_count=args.grid_count,
            investment_per_grid=args.investment,
            fee_rate=args.fee_rate,
            trade_out_of_range=args.trade_out_of_range,
        ),
        seed=args.seed,
    )


def cmd_run(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    request = request_from_args(args, parser)
    run = run_grid_backtest(request)
    reporter = BacktestReporter()

    print(reporter.format_summary(run.result, title=f"GRID BACKTEST — {request.strategy.symbol}"))
    print(
        f"Signals: {run.signals_seen}  "
        f"skipped out of range: {run.skipped_out_of_range}  "
        f"rejected: {run.rejected_trades}"
    )

    if args.json_out:
        args.json_out.write_text(json.dumps(run.to_dict(include_series=True), indent=2), encoding="utf-8")
        print(f"JSON result written to {args.json_out}")

    if args.html_out:
        from paper_backtester.visualization.charts import BacktestChartGenerator

        html = BacktestChartGenerator().full_report_html(run.result, title=request.strategy.symbol)
        args.html_out.write_text(html, encoding="utf-8")
        print(f"HTML report written to {args.html_out}")

    if args.preset_out:
        args.preset_out.write_text(reporter.export_preset_yaml(run), encoding="utf-8")
        print(f"Preset written to {args.preset_out}")

    return 0


def cmd_signal(args: argparse.Namespace) -> int:
    result = GridCalculator.compute_signal(
        GridConfig(
            lower_bound=args.lower,
            upper_bound=args.upper,
            grid_count=args.grid_count,
            investment_per_grid=args.investment,
            current_price=args.price,
        )
    )
    print(json.dumps(result.to_dict(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(log_level=args.log_level, json_logs=args.json_logs)

    try:
        if args.command == "run":
            return cmd_run(args, parser)
        return cmd_signal(args)
    except (BacktesterError, PydanticValidationError, FileNotFoundError) as e:
        logger.error("Command failed", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
