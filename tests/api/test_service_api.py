"""Tests for FastAPI endpoints."""

import os
from concurrent.futures import ThreadPoolExecutor

import pytest

from paper_backtester.api.app import create_app


@pytest.fixture
def client():
    # Ensure no auth required for tests
    os.environ.pop("BACKTESTER_API_KEY", None)
    app = create_app()
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c


GRID_REQUEST = {
    "backtest": {
        "start_date": "2024-01-01T00:00:00Z",
        "end_date": "2024-01-03T00:00:00Z",
        "symbols": ["BTCUSDT"],
        "generator": {"base_price": 150, "price_range": [100, 200], "volatility": 0.05},
    },
    "strategy": {
        "symbol": "BTCUSDT",
        "lower_bound": "100",
        "upper_bound": "200",
        "grid_count": 10,
        "investment_per_grid": "500",
    },
    "seed": 42,
}


class TestHealthEndpoint:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["service"] == "paper-backtester"
        assert "version" in data


class TestBacktestEndpoints:

    def test_run_grid_backtest(self, client):
        resp = client.post("/api/v1/backtest/grid", json=GRID_REQUEST)
        assert resp.status_code == 200
        data = resp.json()
        assert data["result"]["bars_processed"] == 49
        assert "trades" not in data["result"]
        assert data["strategy"]["grid_count"] == 10
        assert data["portfolio"]["owner_id"] == "grid-backtest"

    def test_seeded_backtest_is_repeatable(self, client):
        first = client.post("/api/v1/backtest/grid", json=GRID_REQUEST).json()
        second = client.post("/api/v1/backtest/grid", json=GRID_REQUEST).json()
        assert first["result"]["final_balance"] == second["result"]["final_balance"]

    def test_include_series(self, client):
        resp = client.post("/api/v1/backtest/grid?include_series=true", json=GRID_REQUEST)
        assert resp.status_code == 200
        result = resp.json()["result"]
        assert len(result["trades"]) == result["total_trades"]
        assert len(result["equity_curve"]) == result["total_trades"]

    def test_invalid_strategy(self, client):
        body = {**GRID_REQUEST, "strategy": {"lower_bound": "200", "upper_bound": "100"}}
        resp = client.post("/api/v1/backtest/grid", json=body)
        assert resp.status_code == 422

    def test_unknown_data_source(self, client):
        body = {**GRID_REQUEST, "backtest": {**GRID_REQUEST["backtest"], "data_source": "exchange"}}
        resp = client.post("/api/v1/backtest/grid", json=body)
        assert resp.status_code == 400
        assert "exchange" in resp.json()["detail"]


class TestGridSignalEndpoint:

    def test_signal(self, client):
        resp = client.post("/api/v1/grid/signal", json={
            "lower_bound": "100",
            "upper_bound": "200",
            "grid_count": 10,
            "investment_per_grid": "1000",
            "current_price": "109.4",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["levels"]) == 11
        assert data["signal"]["action"] == "sell"
        assert data["signal"]["grid_level"] == 1
        assert data["signal"]["recommendation"] == "SELL at 110.00"
        assert data["out_of_range"]["is_out_of_range"] is False

    def test_out_of_range(self, client):
        resp = client.post("/api/v1/grid/signal", json={
            "lower_bound": "100",
            "upper_bound": "200",
            "grid_count": 10,
            "investment_per_grid": "1000",
            "current_price": "250",
        })
        assert resp.json()["out_of_range"]["position"] == "above"

    def test_invalid_bounds(self, client):
        resp = client.post("/api/v1/grid/signal", json={
            "lower_bound": "200",
            "upper_bound": "100",
            "grid_count": 10,
            "investment_per_grid": "1000",
            "current_price": "150",
        })
        assert resp.status_code == 422
        assert "upper_bound" in resp.json()["detail"]


class TestPaperTradingEndpoints:

    def test_create_and_get_portfolio(self, client):
        resp = client.post("/api/v1/paper/portfolios", json={"owner_id": "alice", "initial_balance": "5000"})
        assert resp.status_code == 201
        assert resp.json()["cash_balance"] == 5000

        resp = client.get("/api/v1/paper/portfolios/alice")
        assert resp.status_code == 200
        assert resp.json()["total_value"] == 5000

    def test_get_missing_portfolio(self, client):
        resp = client.get("/api/v1/paper/portfolios/nobody")
        assert resp.status_code == 404

    def test_trade_flow(self, client):
        client.post("/api/v1/paper/portfolios", json={"owner_id": "bob", "initial_balance": "1000"})

        resp = client.post("/api/v1/paper/portfolios/bob/trades", json={
            "symbol": "BTCUSDT", "side": "buy", "quantity": "2", "price": "100", "fee_rate": "0",
        })
        assert resp.status_code == 201
        data = resp.json()
        assert data["trade"]["side"] == "buy"
        assert data["portfolio"]["cash_balance"] == 800
        assert data["portfolio"]["position_count"] == 1

        resp = client.post("/api/v1/paper/portfolios/bob/trades", json={
            "symbol": "BTCUSDT", "side": "sell", "quantity": "2", "price": "110", "fee_rate": "0",
        })
        data = resp.json()
        assert data["trade"]["realized_pl"] == 20
        assert data["portfolio"]["cash_balance"] == 1020
        assert data["portfolio"]["position_count"] == 0

    def test_insufficient_funds(self, client):
        client.post("/api/v1/paper/portfolios", json={"owner_id": "carol", "initial_balance": "100"})
        resp = client.post("/api/v1/paper/portfolios/carol/trades", json={
            "symbol": "BTCUSDT", "side": "buy", "quantity": "10", "price": "20",
        })
        assert resp.status_code == 409
        assert client.get("/api/v1/paper/portfolios/carol").json()["cash_balance"] == 100

    def test_insufficient_position(self, client):
        client.post("/api/v1/paper/portfolios", json={"owner_id": "dave"})
        resp = client.post("/api/v1/paper/portfolios/dave/trades", json={
            "symbol": "BTCUSDT", "side": "sell", "quantity": "1", "price": "20",
        })
        assert resp.status_code == 409

    def test_invalid_side(self, client):
        client.post("/api/v1/paper/portfolios", json={"owner_id": "erin"})
        resp = client.post("/api/v1/paper/portfolios/erin/trades", json={
            "symbol": "BTCUSDT", "side": "hold", "quantity": "1", "price": "20",
        })
        assert resp.status_code == 422

    def test_trade_on_missing_portfolio(self, client):
        resp = client.post("/api/v1/paper/portfolios/ghost/trades", json={
            "symbol": "BTCUSDT", "side": "buy", "quantity": "1", "price": "20",
        })
        assert resp.status_code == 404

    def test_concurrent_trades_are_serialized(self, client):
        client.post("/api/v1/paper/portfolios", json={"owner_id": "frank", "initial_balance": "2000"})
        trade = {"symbol": "BTCUSDT", "side": "buy", "quantity": "1", "price": "100", "fee_rate": "0"}

        with ThreadPoolExecutor(max_workers=8) as pool:
            codes = list(pool.map(
                lambda _: client.post("/api/v1/paper/portfolios/frank/trades", json=trade).status_code,
                range(25),
            ))

        assert codes.count(201) == 20
        assert codes.count(409) == 5
        data = client.get("/api/v1/paper/portfolios/frank").json()
        assert data["cash_balance"] == 0
        assert data["trade_count"] == 20


class TestAuth:

    def test_key_required_when_configured(self, client, monkeypatch):
        monkeypatch.setenv("BACKTESTER_API_KEY", "secret")
        resp = client.post("/api/v1/paper/portfolios", json={"owner_id": "x"})
        assert resp.status_code == 401

        resp = client.post(
            "/api/v1/paper/portfolios",
            json={"owner_id": "x"},
            headers={"X-API-Key": "secret"},
        )
        assert resp.status_code == 201

    def test_health_is_public(self, client, monkeypatch):
        monkeypatch.setenv("BACKTESTER_API_KEY", "secret")
        assert client.get("/health").status_code == 200
