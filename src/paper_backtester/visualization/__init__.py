from paper_backtester.visualization.charts import BacktestChartGenerator

__all__ = ["BacktestChartGenerator"]
