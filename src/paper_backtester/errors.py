"""Custom exceptions for backtest and paper-trading operations"""


class BacktesterError(Exception):
    """Base exception for all backtester errors"""

    pass


class ValidationError(BacktesterError, ValueError):
    """Raised when configuration or trade input is invalid. Not retryable."""

    pass


class InsufficientFundsError(BacktesterError):
    """Raised when a buy costs more than the portfolio's cash balance"""

    def __init__(self, required: object, available: object) -> None:
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient balance for simulated trade: required {required}, available {available}"
        )


class InsufficientPositionError(BacktesterError):
    """Raised when a sell exceeds the held quantity, or nothing is held"""

    def __init__(self, symbol: str, requested: object, held: object) -> None:
        self.symbol = symbol
        self.requested = requested
        self.held = held
        super().__init__(
            f"Insufficient position for simulated trade: {symbol} requested {requested}, held {held}"
        )


class UnknownDataSourceError(BacktesterError):
    """Raised when a backtest names a data source the engine cannot resolve"""

    pass


class PortfolioNotFoundError(BacktesterError, KeyError):
    """Raised when no virtual portfolio is registered for an owner"""

    def __init__(self, owner_id: str) -> None:
        self.owner_id = owner_id
        super().__init__(f"Virtual portfolio not found for owner {owner_id}")

    def __str__(self) -> str:
        return self.args[0]
