"""
Pydantic schemas for backtest and paper-trading configuration.

Every config object is validated once at the boundary; malformed input
is rejected instead of being coerced to fallback values.
"""

import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from paper_backtester.logging import get_logger
from paper_backtester.market.models import DataSource, MarketBar

logger = get_logger(__name__)


class Trend(str, Enum):
    """Drift bias of the synthetic random walk"""

    BULLISH = "bullish"
    BEARISH = "bearish"
    SIDEWAYS = "sideways"
    RANDOM = "random"


class GeneratorConfig(BaseModel):
    """Synthetic market data generator configuration"""

    volatility: float = Field(default=0.02, ge=0, le=1, description="Per-step volatility")
    trend: Trend = Field(default=Trend.SIDEWAYS, description="Drift bias")
    base_price: float = Field(default=100.0, gt=0, description="Starting price of the walk")
    price_range: tuple[float, float] | None = Field(
        default=None,
        description="Hard clamp (min, max) applied to every step",
    )
    include_noise: bool = Field(default=True, description="Apply the random volatility term")
    event_probability: float | None = Field(
        default=None,
        ge=0,
        le=1,
        description="Probability of a discontinuous price jump per step",
    )

    @model_validator(mode="after")
    def validate_price_range(self) -> "GeneratorConfig":
        """Ensure 0 < min < max when a price range is set"""
        if self.price_range is not None:
            low, high = self.price_range
            if low <= 0:
                raise ValueError("price_range minimum must be greater than 0")
            if high <= low:
                raise ValueError("price_range maximum must be greater than minimum")
        return self


class BacktestConfig(BaseModel):
    """Parameters of a single backtest run"""

    start_date: datetime
    end_date: datetime
    symbols: list[str] = Field(default_factory=lambda: ["BTCUSDT"], min_length=1)
    interval: str = Field(default="1h", description="Bar interval (1m, 5m, 15m, 1h, 4h, 1d)")
    initial_balance: Decimal = Field(default=Decimal("10000"), gt=0)
    currency: str = Field(default="USDT")
    data_source: str = Field(
        default=DataSource.GENERATED.value,
        description="generated, replay or historical",
    )
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    replay_data: list[MarketBar] | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        """Naive datetimes are interpreted as UTC"""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @model_validator(mode="after")
    def validate_period(self) -> "BacktestConfig":
        """Ensure the period is not reversed"""
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class GridStrategyConfig(BaseModel):
    """Grid trading strategy configuration"""

    symbol: str = Field(default="BTCUSDT")
    lower_bound: Decimal = Field(..., gt=0, description="Lower price boundary for grid")
    upper_bound: Decimal = Field(..., gt=0, description="Upper price boundary for grid")
    grid_count: int = Field(default=10, ge=2, le=500, description="Number of grid intervals")
    investment_per_grid: Decimal = Field(
        default=Decimal("100"),
        gt=0,
        description="Quote currency spent per grid level",
    )
    fee_rate: Decimal = Field(default=Decimal("0.001"), ge=0, lt=1)
    trade_out_of_range: bool = Field(
        default=False,
        description="Act on signals while the price is outside the grid",
    )

    @model_validator(mode="after")
    def validate_price_range(self) -> "GridStrategyConfig":
        """Ensure upper bound is greater than lower bound"""
        if self.upper_bound <= self.lower_bound:
            raise ValueError("upper_bound must be greater than lower_bound")
        return self


def default_period(days: int = 7) -> tuple[datetime, datetime]:
    """The last ``days`` days up to the current hour, in UTC."""
    end = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
    return end - timedelta(days=days), end


def _default_backtest() -> BacktestConfig:
    start, end = default_period()
    return BacktestConfig(start_date=start, end_date=end)


class GridBacktestRequest(BaseModel):
    """A grid backtest: market/run parameters plus strategy parameters"""

    backtest: BacktestConfig = Field(default_factory=_default_backtest)
    strategy: GridStrategyConfig
    seed: int | None = Field(default=None, description="Seed for the synthetic market data")

    @model_validator(mode="after")
    def validate_symbol(self) -> "GridBacktestRequest":
        """Ensure the strategy trades one of the backtest symbols"""
        if self.strategy.symbol not in self.backtest.symbols:
            raise ValueError(
                f"strategy symbol {self.strategy.symbol} is not in backtest symbols {self.backtest.symbols}"
            )
        return self


class Settings(BaseModel):
    """Process-level settings read from environment variables"""

    log_level: str = "INFO"
    json_logs: bool = False
    log_dir: Path = Path("logs")
    log_to_file: bool = False
    api_key: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            json_logs=os.environ.get("JSON_LOGS", "false").lower() == "true",
            log_dir=Path(os.environ.get("LOG_DIR", "logs")),
            log_to_file=os.environ.get("LOG_TO_FILE", "false").lower() == "true",
            api_key=os.environ.get("BACKTESTER_API_KEY") or None,
        )


def load_config(path: Path | str) -> GridBacktestRequest:
    """
    Load and validate a grid backtest request from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        pydantic.ValidationError: If validation fails
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f) or {}

        request = GridBacktestRequest(**raw_config)

    except yaml.YAMLError as e:
        logger.error("Failed to parse YAML", path=str(config_path), error=str(e))
        raise
    except ValidationError as e:
        logger.error("Configuration validation failed", path=str(config_path), error=str(e))
        raise

    logger.info(
        "Configuration loaded successfully",
        path=str(config_path),
        symbols=request.backtest.symbols,
        grid_count=request.strategy.grid_count,
    )
    return request
