"""
FastAPI application factory for the paper backtester service.

Provides REST API for:
- Running grid backtests
- Grid signal computation
- Paper trading on in-memory virtual portfolios
- Health checks
"""

import threading
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from paper_backtester import __version__
from paper_backtester.config import Settings
from paper_backtester.core.portfolio import PortfolioLedger
from paper_backtester.errors import (
    BacktesterError,
    InsufficientFundsError,
    InsufficientPositionError,
    PortfolioNotFoundError,
    UnknownDataSourceError,
    ValidationError,
)
from paper_backtester.logging import get_logger, setup_logging

logger = get_logger(__name__)

ERROR_STATUS: dict[type[BacktesterError], int] = {
    ValidationError: 422,
    InsufficientFundsError: 409,
    InsufficientPositionError: 409,
    PortfolioNotFoundError: 404,
    UnknownDataSourceError: 400,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan — initialize and cleanup resources."""
    settings = Settings.from_env()
    setup_logging(
        log_level=settings.log_level,
        json_logs=settings.json_logs,
        log_to_file=settings.log_to_file,
        log_dir=settings.log_dir,
    )

    app.state.ledger = PortfolioLedger()
    app.state.ledger_lock = threading.Lock()

    logger.info(
        "Paper backtester service started",
        auth_enabled=settings.api_key is not None,
    )

    yield

    logger.info("Paper backtester service stopped", **app.state.ledger.statistics())


async def backtester_error_handler(request: Request, exc: BacktesterError) -> JSONResponse:
    status_code = 400
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            status_code = code
            break

    logger.warning(
        "Request rejected",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Paper Backtester Service",
        description="Grid backtesting and paper trading on synthetic market data",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_exception_handler(BacktesterError, backtester_error_handler)

    from paper_backtester.api.routes import router
    app.include_router(router)

    return app
