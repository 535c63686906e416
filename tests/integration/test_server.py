"""
Integration tests for the dashboard server.

Drives the FastAPI app through its HTTP routes and WebSocket with a
controller backed by a mocked quote source.
"""

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from discopic.config.settings import Settings
from discopic.config.store import ConfigStore
from discopic.core.engine import DashboardController
from discopic.dashboard.server import build_controller, build_source, create_app
from discopic.exchange.client import CoinAPIClient
from discopic.simulation.market import MarketSimulator
from tests.mocks import MockQuoteSource


@pytest.fixture
def controller(configured_store: ConfigStore, mock_source: MockQuoteSource) -> DashboardController:
    return DashboardController(configured_store, mock_source)


@pytest.fixture
def client(controller: DashboardController) -> Iterator[TestClient]:
    """Test client with the app lifespan running."""
    with TestClient(create_app(controller)) as test_client:
        yield test_client


class TestPages:
    """Tests for the page and status routes."""

    def test_dashboard_page(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]

    def test_status(self, client: TestClient) -> None:
        data = client.get("/api/status").json()

        assert data["status"] == "Ready"
        assert data["hasApiKey"] is True
        assert data["pairs"] == ["BTC/USDT", "ETH/USDT"]


class TestOpportunities:
    """Tests for refresh, demo and the table routes."""

    def test_refresh(self, client: TestClient) -> None:
        data = client.post("/api/refresh").json()

        assert data["refreshed"] is True
        assert data["status"] == "Found 4 opportunities"
        assert len(data["opportunities"]) == 4
        assert data["summary"]["count"] == 4
        first = data["opportunities"][0]
        assert first["pair"] == "ETH/USDT"
        assert first["display"]["netProfit"] == "1.87%"
        assert first["display"]["netClass"] == "profit-positive"

    def test_filters(self, client: TestClient) -> None:
        client.post("/api/refresh")

        data = client.get(
            "/api/opportunities", params={"pair": "BTC/USDT", "sort": "spread"}
        ).json()

        assert data["count"] == 2
        assert data["filters"] == {"pair": "BTC/USDT", "minProfit": 0.0, "sort": "spread"}
        assert [o["spread"] for o in data["opportunities"]] == pytest.approx([580.0, 290.0])

    def test_demo(self, client: TestClient) -> None:
        data = client.post("/api/demo").json()

        assert data["demoMode"] is True
        assert data["status"].startswith("Demo Mode - Found ")

    def test_details(self, client: TestClient) -> None:
        client.post("/api/refresh")

        response = client.get(
            "/api/opportunities/details",
            params={"pair": "ETH/USDT", "buy": "BINANCE", "sell": "KRAKEN", "investment": 500},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["projection"]["investment_amount"] == 500.0
        assert "Example with $500 investment:" in data["text"]

    def test_details_not_found(self, client: TestClient) -> None:
        response = client.get(
            "/api/opportunities/details",
            params={"pair": "BNB/USDT", "buy": "BINANCE", "sell": "KRAKEN"},
        )

        assert response.status_code == 404

    def test_details_invalid_investment(self, client: TestClient) -> None:
        client.post("/api/refresh")

        response = client.get(
            "/api/opportunities/details",
            params={"pair": "ETH/USDT", "buy": "BINANCE", "sell": "KRAKEN", "investment": -5},
        )

        assert response.status_code == 422

    def test_stats(self, client: TestClient) -> None:
        client.post("/api/refresh")

        data = client.get("/api/stats").json()

        assert data["summary"]["count"] == 4
        assert data["metrics"]["refresh"]["refreshes"] == 1
        assert data["detection"]["total_scans"] == 1
        assert "remainingRequests" not in data

    def test_rows_marked_fresh(self, client: TestClient) -> None:
        data = client.post("/api/refresh").json()

        assert data["staleCount"] == 0
        assert all(row["fresh"] for row in data["opportunities"])

    def test_old_rows_marked_stale(
        self, client: TestClient, controller: DashboardController, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test rows past the staleness window stay listed but are flagged."""
        client.post("/api/refresh")
        detected = controller.filtered[0].detected_at_ms
        monkeypatch.setattr(
            "discopic.dashboard.server.get_timestamp_ms", lambda: detected + 120_000
        )

        rows = client.get("/api/opportunities").json()["opportunities"]

        assert len(rows) == 4
        assert not any(row["fresh"] for row in rows)

    def test_auto_refresh(self, client: TestClient, mock_source: MockQuoteSource) -> None:
        data = client.post("/api/auto-refresh", params={"enabled": True}).json()
        assert data["autoRefresh"] is True

        data = client.post("/api/auto-refresh", params={"enabled": False}).json()
        assert data["autoRefresh"] is False


class TestSettingsRoutes:
    """Tests for reading and writing settings."""

    def test_get_hides_key(self, client: TestClient) -> None:
        data = client.get("/api/settings").json()

        assert "apiKey" not in data
        assert data["hasApiKey"] is True
        assert data["defaultMinProfit"] == 0.0

    def test_put_keeps_key(self, client: TestClient, configured_store: ConfigStore) -> None:
        response = client.put("/api/settings", json={"apiKey": "", "defaultMinProfit": 1.5})

        assert response.status_code == 200
        assert response.json()["defaultMinProfit"] == 1.5
        saved = configured_store.load()
        assert saved.api_key.get_secret_value() == "test-key"
        assert saved.default_min_profit_pct == 1.5

    def test_put_replaces_key(self, client: TestClient, configured_store: ConfigStore) -> None:
        client.put("/api/settings", json={"apiKey": "new-key"})

        assert configured_store.load().api_key.get_secret_value() == "new-key"

    def test_put_rejects_empty_pairs(self, client: TestClient) -> None:
        response = client.put("/api/settings", json={"pairs": []})

        assert response.status_code == 422
        assert response.json()["detail"] == "Please select at least one trading pair."


class TestWebSocket:
    """Tests for the push channel."""

    def test_init_and_actions(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as websocket:
            init = websocket.receive_json()
            assert init["type"] == "init"
            assert init["data"]["status"] == "Ready"

            websocket.send_json({"action": "demo"})
            state = websocket.receive_json()
            assert state["type"] == "state"
            assert state["data"]["demoMode"] is True

            websocket.send_json({"action": "filter", "pair": "BNB/USDT", "minProfit": -5})
            state = websocket.receive_json()
            assert state["data"]["filters"]["pair"] == "BNB/USDT"
            assert {o["pair"] for o in state["data"]["opportunities"]} == {"BNB/USDT"}

        assert client.app.state.controller.metrics.get_counter("ws_messages") == 2

    def test_refresh_pushes_state(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()

            websocket.send_json({"action": "refresh"})
            fetching = websocket.receive_json()
            done = websocket.receive_json()

            assert fetching["data"]["status"] == "Fetching market data..."
            assert done["data"]["status"] == "Found 4 opportunities"

    def test_bad_messages_keep_connection(self, client: TestClient) -> None:
        """Test malformed or mistyped messages are rejected without side effects."""
        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()

            websocket.send_text("not json")
            assert websocket.receive_json()["type"] == "error"

            websocket.send_json(["filter"])
            assert websocket.receive_json()["type"] == "error"

            websocket.send_json({"action": "filter", "minProfit": "abc"})
            error = websocket.receive_json()
            assert error["type"] == "error"
            assert error["data"]["message"]

            websocket.send_json({"action": "filter", "minProfit": "1"})
            state = websocket.receive_json()
            assert state["data"]["filters"]["minProfit"] == 1.0

        response = client.post("/api/refresh")

        assert response.status_code == 200
        assert response.json()["status"] == "Found 1 opportunities"


class TestWiring:
    """Tests for building the served controller from process settings."""

    def test_simulated_source(self, tmp_path: Path) -> None:
        settings = Settings(simulate=True, config_path=tmp_path / "config.json")

        controller = build_controller(settings)

        assert isinstance(controller.source, MarketSimulator)
        assert controller.config.has_api_key is False

    def test_live_source(self) -> None:
        settings = Settings(simulate=False, cache_ttl_ms=0, daily_request_quota=50)

        source = build_source(settings)

        assert isinstance(source, CoinAPIClient)
        assert source.remaining_requests == 50
