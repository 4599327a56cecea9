"""
BacktestChartGenerator — Plotly charts for backtest results.

Generates:
- Equity curve (balance after each trade)
- Drawdown area chart
- Trade price histogram (buy vs sell fills)
- Full HTML report combining the metrics table and all charts
"""

import html

import plotly.graph_objects as go

from paper_backtester.core.models import TradeSide
from paper_backtester.engine.models import BacktestResult
from paper_backtester.logging import get_logger

logger = get_logger(__name__)

HISTOGRAM_BINS = 20


class BacktestChartGenerator:
    """Generates interactive plotly charts from backtest results."""

    def equity_curve_chart(self, result: BacktestResult, title: str = "Backtest") -> str:
        """Generate equity curve as HTML."""
        if not result.equity_curve:
            return "<p>No equity curve data to display.</p>"

        timestamps = [ep.timestamp for ep in result.equity_curve]
        balances = [ep.balance for ep in result.equity_curve]

        fig = go.Figure()
        fig.add_trace(go.Scatter(
            x=timestamps, y=balances,
            name="Balance",
            line=dict(color="blue", width=2),
        ))
        fig.add_hline(
            y=result.initial_balance,
            line=dict(color="gray", width=1, dash="dot"),
            annotation_text="Initial balance",
        )

        fig.update_layout(
            title=f"Equity Curve — {title}",
            xaxis_title="Time",
            yaxis_title="Balance",
            height=500,
            template="plotly_white",
        )

        return fig.to_html(full_html=False, include_plotlyjs="cdn")

    def drawdown_chart(self, result: BacktestResult, title: str = "Backtest") -> str:
        """Generate drawdown area chart as HTML."""
        if not result.equity_curve:
            return "<p>No equity curve data to display.</p>"

        timestamps = [ep.timestamp for ep in result.equity_curve]
        drawdowns = [-ep.drawdown_pct for ep in result.equity_curve]

        fig = go.Figure()
        fig.add_trace(go.Scatter(
            x=timestamps, y=drawdowns,
            fill="tozeroy",
            name="Drawdown",
            line=dict(color="red", width=1),
            fillcolor="rgba(255, 0, 0, 0.2)",
        ))

        fig.update_layout(
            title=f"Drawdown — {title}",
            xaxis_title="Time",
            yaxis_title="Drawdown (%)",
            height=300,
            template="plotly_white",
        )

        return fig.to_html(full_html=False, include_plotlyjs="cdn")

    def trade_histogram(self, result: BacktestResult, title: str = "Backtest") -> str:
        """Generate buy/sell fill price histogram as HTML."""
        if not result.trades:
            return "<p>No trade data to display.</p>"

        buy_prices = [float(t.price) for t in result.trades if t.side == TradeSide.BUY]
        sell_prices = [float(t.price) for t in result.trades if t.side == TradeSide.SELL]

        fig = go.Figure()

        if buy_prices:
            fig.add_trace(go.Histogram(
                x=buy_prices,
                name="Buy Fills",
                marker_color="green",
                opacity=0.7,
                nbinsx=HISTOGRAM_BINS,
            ))

        if sell_prices:
            fig.add_trace(go.Histogram(
                x=sell_prices,
                name="Sell Fills",
                marker_color="red",
                opacity=0.7,
                nbinsx=HISTOGRAM_BINS,
            ))

        fig.update_layout(
            title=f"Fill Prices — {title}",
            xaxis_title="Price",
            yaxis_title="Fill Count",
            barmode="overlay",
            height=400,
            template="plotly_white",
        )

        return fig.to_html(full_html=False, include_plotlyjs="cdn")

    def full_report_html(self, result: BacktestResult, title: str = "Backtest") -> str:
        """Generate full HTML report with all charts."""
        metrics = result.to_dict()
        metrics.update(metrics.pop("metrics"))
        safe_title = html.escape(title)

        rows = "".join(
            f"<tr><td style='padding:4px 8px;border-bottom:1px solid #eee;'>{key}</td>"
            f"<td style='padding:4px 8px;border-bottom:1px solid #eee;text-align:right;'>{value}</td></tr>"
            for key, value in metrics.items()
        )
        metrics_html = (
            "<table style='border-collapse:collapse;width:100%;max-width:800px;margin:20px auto;'>"
            "<tr><th colspan='2' style='text-align:left;padding:8px;border-bottom:2px solid #ddd;'>"
            f"Backtest Metrics</th></tr>{rows}</table>"
        )

        equity_html = self.equity_curve_chart(result, title)
        drawdown_html = self.drawdown_chart(result, title)
        histogram_html = self.trade_histogram(result, title)

        logger.debug("Full report rendered", title=title, trades=result.total_trades)

        return f"""<!DOCTYPE html>
<html>
<head>
    <title>Backtest Report — {safe_title}</title>
    <style>
        body {{ font-family: -apple-system, sans-serif; margin: 20px; background: #fafafa; }}
        h1 {{ color: #333; }}
        .chart {{ margin: 20px 0; background: white; padding: 20px; border-radius: 8px; box-shadow: 0 1px 3px rgba(0,0,0,0.1); }}
    </style>
</head>
<body>
    <h1>Backtest Report: {safe_title}</h1>
    {metrics_html}
    <div class="chart">{equity_html}</div>
    <div class="chart">{drawdown_html}</div>
    <div class="chart">{histogram_html}</div>
</body>
</html>"""
