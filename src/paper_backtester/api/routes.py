"""
API routes for the paper backtester service.

Endpoints:
- GET  /health — health check
- POST /api/v1/backtest/grid — run a grid backtest and return the result
- POST /api/v1/grid/signal — compute grid levels and the signal for a price
- POST /api/v1/paper/portfolios — open a virtual portfolio (201)
- GET  /api/v1/paper/portfolios/{owner_id} — portfolio snapshot
- POST /api/v1/paper/portfolios/{owner_id}/trades — apply a simulated trade
"""

from decimal import Decimal
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from paper_backtester import __version__
from paper_backtester.api.auth import verify_api_key
from paper_backtester.config import GridBacktestRequest
from paper_backtester.core.calculator import GridCalculator, GridConfig
from paper_backtester.core.models import TradeSide
from paper_backtester.core.portfolio import DEFAULT_FEE_RATE
from paper_backtester.engine.grid_strategy import run_grid_backtest
from paper_backtester.engine.paper_trading import RECENT_TRADES
from paper_backtester.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Request Models
# =============================================================================


class GridSignalRequest(BaseModel):
    symbol: str = ""
    lower_bound: Decimal = Field(gt=0)
    upper_bound: Decimal = Field(gt=0)
    grid_count: int = Field(ge=2, le=500)
    investment_per_grid: Decimal = Field(gt=0)
    current_price: Decimal = Field(gt=0)


class PortfolioCreate(BaseModel):
    owner_id: str = Field(min_length=1, max_length=128)
    initial_balance: Decimal = Field(default=Decimal("10000"), ge=0)
    currency: str = Field(default="USDT", min_length=1, max_length=16)


class TradeCreate(BaseModel):
    symbol: str = Field(min_length=1)
    side: TradeSide
    quantity: Decimal = Field(gt=0)
    price: Decimal = Field(gt=0)
    fee_rate: Decimal = Field(default=DEFAULT_FEE_RATE, ge=0, lt=1)
    reason: str = "api"


# =============================================================================
# Health
# =============================================================================


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "paper-backtester",
        "version": __version__,
    }


# =============================================================================
# Backtest
# =============================================================================


@router.post("/api/v1/backtest/grid")
async def run_grid_backtest_endpoint(
    req: GridBacktestRequest,
    api_key: Annotated[str, Depends(verify_api_key)],
    include_series: bool = False,
) -> dict[str, Any]:
    """Run a grid backtest synchronously and return its result."""
    run = await run_in_threadpool(run_grid_backtest, req)
    return run.to_dict(include_series=include_series)


@router.post("/api/v1/grid/signal")
async def grid_signal(
    req: GridSignalRequest,
    api_key: Annotated[str, Depends(verify_api_key)],
) -> dict[str, Any]:
    """Compute grid levels, the signal and the range check for a price."""
    result = GridCalculator.compute_signal(
        GridConfig(
            lower_bound=req.lower_bound,
            upper_bound=req.upper_bound,
            grid_count=req.grid_count,
            investment_per_grid=req.investment_per_grid,
            current_price=req.current_price,
            symbol=req.symbol,
        )
    )
    return result.to_dict()


# =============================================================================
# Paper Trading
# =============================================================================


@router.post("/api/v1/paper/portfolios", status_code=201)
def create_portfolio(
    req: PortfolioCreate,
    request: Request,
    api_key: Annotated[str, Depends(verify_api_key)],
) -> dict[str, Any]:
    """Open a virtual portfolio for an owner, replacing any existing one."""
    ledger = request.app.state.ledger
    with request.app.state.ledger_lock:
        portfolio = ledger.open(req.owner_id, req.initial_balance, req.currency)
        return portfolio.to_dict(recent_trades=RECENT_TRADES)


@router.get("/api/v1/paper/portfolios/{owner_id}")
def get_portfolio(
    owner_id: str,
    request: Request,
    api_key: Annotated[str, Depends(verify_api_key)],
) -> dict[str, Any]:
    """Get a portfolio snapshot with its most recent trades."""
    ledger = request.app.state.ledger
    with request.app.state.ledger_lock:
        return ledger.get(owner_id).to_dict(recent_trades=RECENT_TRADES)


@router.post("/api/v1/paper/portfolios/{owner_id}/trades", status_code=201)
def create_trade(
    owner_id: str,
    req: TradeCreate,
    request: Request,
    api_key: Annotated[str, Depends(verify_api_key)],
) -> dict[str, Any]:
    """Apply a simulated trade to an owner's portfolio."""
    ledger = request.app.state.ledger
    with request.app.state.ledger_lock:
        portfolio = ledger.get(owner_id)
        trade = ledger.apply_trade(
            portfolio,
            req.symbol,
            req.side,
            req.quantity,
            req.price,
            fee_rate=req.fee_rate,
            reason=req.reason,
        )
        logger.info(
            "Paper trade applied via API",
            owner_id=owner_id,
            side=trade.side.value,
            symbol=trade.symbol,
        )
        return {
            "trade": trade.to_dict(),
            "portfolio": portfolio.to_dict(recent_trades=RECENT_TRADES),
        }
