"""
Trade and equity records shared by the ledger, the runner and the metrics.

Monetary values are Decimal on the ledger side (exact cash accounting);
equity points carry floats because they only feed statistics and charts.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class TradeSide(str, Enum):
    """Trade direction."""

    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class Trade:
    """A single executed (simulated) trade. Immutable once recorded."""

    timestamp: datetime
    symbol: str
    side: TradeSide
    price: Decimal
    quantity: Decimal
    notional: Decimal
    fee: Decimal
    realized_pl: Decimal | None = None  # sells only
    realized_pl_pct: Decimal | None = None
    balance_after: Decimal = Decimal("0")
    reason: str = "simulated"

    @property
    def profit_loss(self) -> float:
        """Realized P&L as float, 0.0 when the trade realized nothing."""
        return float(self.realized_pl) if self.realized_pl is not None else 0.0

    @property
    def is_win(self) -> bool:
        return self.profit_loss > 0

    @property
    def is_loss(self) -> bool:
        return self.profit_loss < 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "symbol": self.symbol,
            "side": self.side.value,
            "price": float(self.price),
            "quantity": float(self.quantity),
            "notional": float(self.notional),
            "fee": float(self.fee),
            "realized_pl": float(self.realized_pl) if self.realized_pl is not None else None,
            "realized_pl_pct": (
                float(self.realized_pl_pct) if self.realized_pl_pct is not None else None
            ),
            "balance_after": float(self.balance_after),
            "reason": self.reason,
        }


@dataclass(frozen=True)
class EquityPoint:
    """Single point in the equity curve."""

    timestamp: datetime
    balance: float
    portfolio_value: float
    drawdown_pct: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "balance": self.balance,
            "portfolio_value": self.portfolio_value,
            "drawdown_pct": self.drawdown_pct,
        }
