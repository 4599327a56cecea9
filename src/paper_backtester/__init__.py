"""
Paper Backtester — Backtesting and paper-trading simulation engine.

Provides:
- Synthetic OHLCV market data generation (trend, volatility, event spikes)
- Virtual portfolio ledger with fee and average-cost accounting
- Strategy execution loop with equity curve and drawdown tracking
- Performance metrics (win rate, Sharpe, profit factor, streaks, expectancy)
- Grid signal calculator and a grid trading paper pipeline
- Plotly visualization, FastAPI REST surface and a CLI
"""

__version__ = "1.0.0"
