"""
GridCalculator — Grid levels and trade signals for grid trading.

Given a price range, a grid count and the current price:
- Lays out evenly spaced levels (grid_count + 1 of them)
- Classifies each level as buy/sell/none relative to the current price
- Emits a signal when the price sits close enough to a level
- Reports whether the price has left the grid

The calculator is stateless: identical input always yields equal output.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from paper_backtester.core.portfolio import to_decimal
from paper_backtester.errors import ValidationError
from paper_backtester.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Enums & Data Structures
# =============================================================================


class GridAction(str, Enum):
    """Action attached to a grid level or signal."""

    BUY = "buy"
    SELL = "sell"
    NONE = "none"


class RangePosition(str, Enum):
    """Where the current price sits relative to the grid bounds."""

    BELOW = "below"
    WITHIN = "within"
    ABOVE = "above"


@dataclass
class GridLevel:
    """A single grid level. Recomputed on every call, never persisted."""

    index: int
    price: Decimal
    action: GridAction
    filled: bool = False
    order_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "price": str(self.price),
            "action": self.action.value,
            "filled": self.filled,
            "order_id": self.order_id,
        }


@dataclass
class GridSignal:
    """Trade decision for the current price."""

    action: GridAction
    price: Decimal
    quantity: Decimal
    grid_level: int  # -1 when no level is close enough
    reason: str

    @property
    def recommendation(self) -> str:
        if self.action == GridAction.NONE:
            return "HOLD - No action needed"
        return f"{self.action.value.upper()} at {self.price:.2f}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "price": str(self.price),
            "quantity": str(self.quantity),
            "grid_level": self.grid_level,
            "reason": self.reason,
            "recommendation": self.recommendation,
        }


@dataclass
class OutOfRange:
    """Range check result. Informational only."""

    is_out_of_range: bool
    position: RangePosition
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_out_of_range": self.is_out_of_range,
            "position": self.position.value,
            "message": self.message,
        }


@dataclass
class GridSignalResult:
    """Levels, signal and range check for one current price."""

    levels: list[GridLevel]
    signal: GridSignal
    out_of_range: OutOfRange
    grid_spacing: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "levels": [level.to_dict() for level in self.levels],
            "signal": self.signal.to_dict(),
            "out_of_range": self.out_of_range.to_dict(),
            "grid_spacing": str(self.grid_spacing),
        }


@dataclass
class GridConfig:
    """Input to a single signal computation."""

    lower_bound: Decimal
    upper_bound: Decimal
    grid_count: int
    investment_per_grid: Decimal
    current_price: Decimal
    symbol: str = field(default="")

    def validate(self) -> None:
        """Validate config values. Raises ValidationError on invalid config."""
        for name in ("lower_bound", "upper_bound", "investment_per_grid", "current_price"):
            try:
                setattr(self, name, to_decimal(getattr(self, name)))
            except (InvalidOperation, TypeError) as e:
                raise ValidationError(f"{name} must be numeric") from e
        if self.lower_bound <= 0:
            raise ValidationError("lower_bound must be greater than 0")
        if self.upper_bound <= self.lower_bound:
            raise ValidationError("upper_bound must be greater than lower_bound")
        if self.grid_count < 2:
            raise ValidationError("grid_count must be at least 2")
        if self.investment_per_grid <= 0:
            raise ValidationError("investment_per_grid must be greater than 0")
        if self.current_price <= 0:
            raise ValidationError("current_price must be greater than 0")


# =============================================================================
# Grid Calculator
# =============================================================================


class GridCalculator:
    """
    Computes arithmetic grid levels and the signal for the current price.

    A level triggers when the current price is within
    ``TRIGGER_FRACTION * grid_spacing`` of it.
    """

    TRIGGER_FRACTION = Decimal("0.1")

    @staticmethod
    def calculate_levels(
        lower_bound: Decimal,
        upper_bound: Decimal,
        grid_count: int,
        current_price: Decimal,
    ) -> tuple[list[GridLevel], Decimal]:
        """Lay out ``grid_count + 1`` evenly spaced levels; returns (levels, spacing)."""
        spacing = (upper_bound - lower_bound) / grid_count

        levels: list[GridLevel] = []
        for i in range(grid_count + 1):
            price = lower_bound + spacing * i
            if price < current_price:
                action = GridAction.BUY
            elif price > current_price:
                action = GridAction.SELL
            else:
                action = GridAction.NONE
            levels.append(GridLevel(index=i, price=price, action=action))

        return levels, spacing

    @staticmethod
    def find_signal(
        levels: list[GridLevel],
        current_price: Decimal,
        grid_spacing: Decimal,
        investment_per_grid: Decimal,
    ) -> GridSignal:
        """Pick the nearest level (first wins ties) and decide whether it triggers."""
        nearest = levels[0]
        min_distance = abs(nearest.price - current_price)
        for level in levels[1:]:
            distance = abs(level.price - current_price)
            if distance < min_distance:
                nearest = level
                min_distance = distance

        threshold = grid_spacing * GridCalculator.TRIGGER_FRACTION
        if min_distance <= threshold:
            return GridSignal(
                action=nearest.action,
                price=nearest.price,
                quantity=investment_per_grid / nearest.price,
                grid_level=nearest.index,
                reason=(
                    f"Price {current_price:.2f} is near grid level {nearest.index} "
                    f"at {nearest.price:.2f}"
                ),
            )

        return GridSignal(
            action=GridAction.NONE,
            price=current_price,
            quantity=Decimal("0"),
            grid_level=-1,
            reason=f"Price {current_price:.2f} is between grid levels, no action needed",
        )

    @staticmethod
    def check_out_of_range(
        current_price: Decimal,
        lower_bound: Decimal,
        upper_bound: Decimal,
    ) -> OutOfRange:
        """Report whether the price is below, within or above the grid."""
        if current_price < lower_bound:
            return OutOfRange(
                is_out_of_range=True,
                position=RangePosition.BELOW,
                message=f"Price {current_price:.2f} is below lower bound {lower_bound:.2f}",
            )
        if current_price > upper_bound:
            return OutOfRange(
                is_out_of_range=True,
                position=RangePosition.ABOVE,
                message=f"Price {current_price:.2f} is above upper bound {upper_bound:.2f}",
            )
        return OutOfRange(
            is_out_of_range=False,
            position=RangePosition.WITHIN,
            message=f"Price {current_price:.2f} is within range [{lower_bound:.2f}, {upper_bound:.2f}]",
        )

    @staticmethod
    def compute_signal(config: GridConfig) -> GridSignalResult:
        """Validate the config, then compute levels, signal and range check."""
        config.validate()

        levels, spacing = GridCalculator.calculate_levels(
            config.lower_bound,
            config.upper_bound,
            config.grid_count,
            config.current_price,
        )
        signal = GridCalculator.find_signal(
            levels,
            config.current_price,
            spacing,
            config.investment_per_grid,
        )
        out_of_range = GridCalculator.check_out_of_range(
            config.current_price,
            config.lower_bound,
            config.upper_bound,
        )

        logger.debug(
            "Grid signal computed",
            symbol=config.symbol,
            current_price=float(config.current_price),
            action=signal.action.value,
            grid_level=signal.grid_level,
            out_of_range=out_of_range.is_out_of_range,
        )

        return GridSignalResult(
            levels=levels,
            signal=signal,
            out_of_range=out_of_range,
            grid_spacing=spacing,
        )
