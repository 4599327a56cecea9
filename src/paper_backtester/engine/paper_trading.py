"""
PaperTradingSession — Simulated execution for one owner.

Routes trades that a strategy decided on to the owner's virtual
portfolio instead of an exchange, with a fixed fee rate.
"""

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from paper_backtester.core.models import Trade, TradeSide
from paper_backtester.core.portfolio import (
    DEFAULT_FEE_RATE,
    PortfolioLedger,
    VirtualPortfolio,
    to_decimal,
)
from paper_backtester.errors import InsufficientFundsError, InsufficientPositionError
from paper_backtester.logging import LoggerMixin

RECENT_TRADES = 10


class PaperTradingSession(LoggerMixin):
    """
    Paper trading for a single owner on top of a PortfolioLedger.

    Usage:
        session = PaperTradingSession(PortfolioLedger(), owner_id="user-1")
        session.initialize(initial_balance=10000)
        trade = session.execute("BTCUSDT", "buy", Decimal("0.01"), Decimal("30000"))
    """

    def __init__(
        self,
        ledger: PortfolioLedger,
        owner_id: str,
        fee_rate: Decimal | float | str = DEFAULT_FEE_RATE,
    ) -> None:
        self.ledger = ledger
        self.owner_id = owner_id
        self.fee_rate = to_decimal(fee_rate)

    def initialize(
        self,
        initial_balance: Decimal | float | int | str = Decimal("10000"),
        currency: str = "USDT",
    ) -> VirtualPortfolio:
        """Open the owner's portfolio unless one already exists."""
        portfolio = self.ledger.find(self.owner_id)
        if portfolio is None:
            portfolio = self.ledger.open(self.owner_id, initial_balance, currency)
            self.logger.info(
                "Paper trading initialized",
                owner_id=self.owner_id,
                initial_balance=float(portfolio.cash_balance),
                currency=currency,
            )
        return portfolio

    @property
    def portfolio(self) -> VirtualPortfolio:
        return self.ledger.get(self.owner_id)

    def execute(
        self,
        symbol: str,
        side: TradeSide | str,
        quantity: Decimal | float | int | str,
        price: Decimal | float | int | str,
        reason: str = "paper",
        timestamp: datetime | None = None,
    ) -> Trade:
        """Apply a simulated trade to the owner's portfolio.

        Raises:
            PortfolioNotFoundError: initialize() was not called
            InsufficientFundsError / InsufficientPositionError: trade rejected
        """
        portfolio = self.portfolio
        try:
            trade = self.ledger.apply_trade(
                portfolio,
                symbol,
                side,
                quantity,
                price,
                fee_rate=self.fee_rate,
                reason=reason,
                timestamp=timestamp,
            )
        except (InsufficientFundsError, InsufficientPositionError) as e:
            self.logger.warning(
                "Simulated trade rejected",
                owner_id=self.owner_id,
                symbol=symbol,
                side=str(side),
                error=str(e),
            )
            raise

        self.logger.info(
            "Simulated trade executed",
            owner_id=self.owner_id,
            side=trade.side.value,
            symbol=symbol,
            quantity=float(trade.quantity),
            price=float(trade.price),
            realized_pl=trade.profit_loss,
        )
        return trade

    def mark_to_market(self, prices: Mapping[str, Decimal | float | int | str]) -> Decimal:
        return self.ledger.mark_to_market(self.portfolio, prices)

    def portfolio_metrics(self) -> dict[str, Any] | None:
        """Snapshot of balance, positions and the most recent trades, or None."""
        portfolio = self.ledger.find(self.owner_id)
        if portfolio is None:
            return None
        return portfolio.to_dict(recent_trades=RECENT_TRADES)
