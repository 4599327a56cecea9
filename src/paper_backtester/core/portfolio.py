"""
PortfolioLedger — Virtual portfolio accounting for paper trading.

Responsibilities:
- Open virtual portfolios (one per owner) with an initial cash balance
- Apply simulated buy/sell trades with fee deduction
- Weighted-average cost basis and realized P&L on sells
- Mark open positions to market
- Notify registered observers after every applied trade
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from paper_backtester.core.models import Trade, TradeSide
from paper_backtester.errors import (
    InsufficientFundsError,
    InsufficientPositionError,
    PortfolioNotFoundError,
    ValidationError,
)
from paper_backtester.logging import get_logger

logger = get_logger(__name__)

# Remaining quantity at or below this is treated as a closed position.
QUANTITY_EPSILON = Decimal("1e-12")

DEFAULT_FEE_RATE = Decimal("0.001")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    """Convert a numeric value to Decimal without float repr noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# =============================================================================
# Data Structures
# =============================================================================


@dataclass
class VirtualPosition:
    """Open holding of one symbol inside a virtual portfolio."""

    symbol: str
    quantity: Decimal
    average_price: Decimal
    current_price: Decimal
    unrealized_pl: Decimal = Decimal("0")
    unrealized_pl_pct: Decimal = Decimal("0")
    opened_at: datetime = field(default_factory=_utcnow)

    @property
    def value(self) -> Decimal:
        return self.quantity * self.current_price

    def reprice(self, price: Decimal) -> None:
        self.current_price = price
        self.unrealized_pl = (price - self.average_price) * self.quantity
        if self.average_price > 0:
            self.unrealized_pl_pct = (price - self.average_price) / self.average_price * 100
        else:
            self.unrealized_pl_pct = Decimal("0")

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "quantity": float(self.quantity),
            "average_price": float(self.average_price),
            "current_price": float(self.current_price),
            "value": float(self.value),
            "unrealized_pl": float(self.unrealized_pl),
            "unrealized_pl_pct": float(self.unrealized_pl_pct),
            "opened_at": self.opened_at.isoformat(),
        }


@dataclass
class VirtualPortfolio:
    """Cash, positions and trade log of one simulated account."""

    owner_id: str
    cash_balance: Decimal
    currency: str = "USDT"
    positions: dict[str, VirtualPosition] = field(default_factory=dict)
    total_value: Decimal = Decimal("0")
    trade_log: list[Trade] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def recalculate_total(self) -> Decimal:
        self.total_value = self.cash_balance + sum(
            (p.value for p in self.positions.values()), Decimal("0")
        )
        return self.total_value

    def to_dict(self, recent_trades: int = 10) -> dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "cash_balance": float(self.cash_balance),
            "total_value": float(self.total_value),
            "currency": self.currency,
            "position_count": len(self.positions),
            "trade_count": len(self.trade_log),
            "positions": [p.to_dict() for p in self.positions.values()],
            "recent_trades": [t.to_dict() for t in self.trade_log[-recent_trades:]],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


TradeObserver = Callable[[VirtualPortfolio, Trade], None]


# =============================================================================
# Portfolio Ledger
# =============================================================================


class PortfolioLedger:
    """Opens virtual portfolios and applies simulated trades to them.

    The ledger keeps a registry of portfolios keyed by owner, but
    ``apply_trade`` works on any portfolio object handed to it. Mutation is
    single-threaded: callers sharing a portfolio across threads serialize.
    """

    def __init__(self) -> None:
        self._portfolios: dict[str, VirtualPortfolio] = {}
        self._observers: list[TradeObserver] = []

    # -------------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------------

    def open(
        self,
        owner_id: str,
        initial_balance: Decimal | float | int | str,
        currency: str = "USDT",
    ) -> VirtualPortfolio:
        """Create and register a portfolio, replacing any existing one for the owner."""
        if not owner_id:
            raise ValidationError("owner_id is required")
        balance = to_decimal(initial_balance)
        if balance < 0:
            raise ValidationError("initial_balance must be non-negative")

        portfolio = VirtualPortfolio(
            owner_id=owner_id,
            cash_balance=balance,
            currency=currency,
            total_value=balance,
        )
        self._portfolios[owner_id] = portfolio

        logger.info(
            "Virtual portfolio created",
            owner_id=owner_id,
            initial_balance=float(balance),
            currency=currency,
        )
        return portfolio

    def get(self, owner_id: str) -> VirtualPortfolio:
        portfolio = self._portfolios.get(owner_id)
        if portfolio is None:
            raise PortfolioNotFoundError(owner_id)
        return portfolio

    def find(self, owner_id: str) -> VirtualPortfolio | None:
        return self._portfolios.get(owner_id)

    def subscribe(self, observer: TradeObserver) -> None:
        """Register a callback invoked as ``observer(portfolio, trade)`` after each trade."""
        self._observers.append(observer)

    def unsubscribe(self, observer: TradeObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    # -------------------------------------------------------------------------
    # Trading
    # -------------------------------------------------------------------------

    def apply_trade(
        self,
        portfolio: VirtualPortfolio,
        symbol: str,
        side: TradeSide | str,
        quantity: Decimal | float | int | str,
        price: Decimal | float | int | str,
        fee_rate: Decimal | float | str = DEFAULT_FEE_RATE,
        reason: str = "simulated",
        timestamp: datetime | None = None,
    ) -> Trade:
        """Apply a buy or sell to the portfolio and record it.

        Raises:
            ValidationError: non-positive quantity/price, negative fee, bad side
            InsufficientFundsError: buy cost (notional + fee) exceeds cash
            InsufficientPositionError: sell without enough held quantity
        """
        trade_side = self._parse_side(side)
        qty = to_decimal(quantity)
        px = to_decimal(price)
        rate = to_decimal(fee_rate)

        if not symbol:
            raise ValidationError("symbol is required")
        if qty <= 0:
            raise ValidationError("quantity must be greater than 0")
        if px <= 0:
            raise ValidationError("price must be greater than 0")
        if rate < 0:
            raise ValidationError("fee_rate must be non-negative")

        now = _utcnow()
        ts = timestamp or now
        notional = qty * px
        fee = notional * rate

        if trade_side == TradeSide.BUY:
            realized_pl, realized_pl_pct = self._apply_buy(portfolio, symbol, qty, px, notional, fee, ts)
        else:
            realized_pl, realized_pl_pct = self._apply_sell(portfolio, symbol, qty, px, notional, fee)

        portfolio.recalculate_total()
        portfolio.updated_at = now

        trade = Trade(
            timestamp=ts,
            symbol=symbol,
            side=trade_side,
            price=px,
            quantity=qty,
            notional=notional,
            fee=fee,
            realized_pl=realized_pl,
            realized_pl_pct=realized_pl_pct,
            balance_after=portfolio.cash_balance,
            reason=reason,
        )
        portfolio.trade_log.append(trade)

        logger.debug(
            "Simulated trade applied",
            owner_id=portfolio.owner_id,
            side=trade_side.value,
            symbol=symbol,
            quantity=float(qty),
            price=float(px),
            realized_pl=trade.profit_loss,
        )

        self._notify(portfolio, trade)
        return trade

    def mark_to_market(
        self,
        portfolio: VirtualPortfolio,
        prices: Mapping[str, Decimal | float | int | str],
    ) -> Decimal:
        """Reprice open positions from a symbol->price mapping; returns the new total value."""
        for symbol, position in portfolio.positions.items():
            price = prices.get(symbol)
            if price is None:
                continue
            px = to_decimal(price)
            if px > 0:
                position.reprice(px)

        portfolio.updated_at = _utcnow()
        return portfolio.recalculate_total()

    def statistics(self) -> dict[str, int]:
        return {
            "total_portfolios": len(self._portfolios),
            "total_trades": sum(len(p.trade_log) for p in self._portfolios.values()),
        }

    # -------------------------------------------------------------------------
    # Private Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _parse_side(side: TradeSide | str) -> TradeSide:
        try:
            return TradeSide(side.lower() if isinstance(side, str) else side)
        except ValueError as e:
            raise ValidationError(f"side must be 'buy' or 'sell', got {side!r}") from e

    @staticmethod
    def _apply_buy(
        portfolio: VirtualPortfolio,
        symbol: str,
        qty: Decimal,
        px: Decimal,
        notional: Decimal,
        fee: Decimal,
        ts: datetime,
    ) -> tuple[None, None]:
        cost = notional + fee
        if portfolio.cash_balance < cost:
            raise InsufficientFundsError(required=cost, available=portfolio.cash_balance)

        portfolio.cash_balance -= cost

        position = portfolio.positions.get(symbol)
        if position is None:
            position = VirtualPosition(
                symbol=symbol,
                quantity=qty,
                average_price=px,
                current_price=px,
                opened_at=ts,
            )
            portfolio.positions[symbol] = position
        else:
            total_qty = position.quantity + qty
            position.average_price = (position.average_price * position.quantity + notional) / total_qty
            position.quantity = total_qty
            position.reprice(px)

        return None, None

    @staticmethod
    def _apply_sell(
        portfolio: VirtualPortfolio,
        symbol: str,
        qty: Decimal,
        px: Decimal,
        notional: Decimal,
        fee: Decimal,
    ) -> tuple[Decimal, Decimal]:
        position = portfolio.positions.get(symbol)
        held = position.quantity if position is not None else Decimal("0")
        if position is None or position.quantity < qty:
            raise InsufficientPositionError(symbol=symbol, requested=qty, held=held)

        avg = position.average_price
        realized_pl = (px - avg) * qty - fee
        realized_pl_pct = (px - avg) / avg * 100

        portfolio.cash_balance += notional - fee

        position.quantity -= qty
        if position.quantity <= QUANTITY_EPSILON:
            del portfolio.positions[symbol]
        else:
            position.reprice(px)

        return realized_pl, realized_pl_pct

    def _notify(self, portfolio: VirtualPortfolio, trade: Trade) -> None:
        for observer in list(self._observers):
            try:
                observer(portfolio, trade)
            except Exception as e:
                logger.error(
                    "Error in trade observer",
                    observer=getattr(observer, "__name__", repr(observer)),
                    error=str(e),
                )
