"""
FastAPI server for the spread monitor dashboard.

Serves a single-page dashboard, a small JSON API over the
DashboardController and a WebSocket that pushes state after every refresh.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

import orjson
from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from discopic.config.constants import DEFAULT_PROJECTION_AMOUNT
from discopic.config.settings import DashboardConfig, Settings, get_settings
from discopic.config.store import ConfigStore
from discopic.core.engine import DashboardController
from discopic.core.types import Opportunity, QuoteSource
from discopic.exchange.cache import ResponseCache
from discopic.exchange.client import CoinAPIClient
from discopic.exchange.rate_limiter import RateLimiter
from discopic.simulation.market import MarketSimulator
from discopic.strategy.analytics import InvalidInvestmentError, is_fresh
from discopic.telemetry.reporter import CLIReporter
from discopic.utils.formatting import format_percent, format_price, profit_class
from discopic.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


# =============================================================================
# Serialization
# =============================================================================


def opportunity_to_dict(opportunity: Opportunity, now_ms: int) -> dict[str, Any]:
    """
    Opportunity fields plus display strings for the table.

    ``fresh`` is False once the row is older than the staleness window or
    no longer nets a profit; the page dims such rows.
    """
    data = asdict(opportunity)
    data["fresh"] = is_fresh(opportunity, now_ms)
    data["display"] = {
        "buyPrice": format_price(opportunity.buy_price),
        "sellPrice": format_price(opportunity.sell_price),
        "spread": format_price(opportunity.spread),
        "grossProfit": format_percent(opportunity.gross_profit_pct),
        "netProfit": format_percent(opportunity.net_profit_pct),
        "grossClass": profit_class(opportunity.gross_profit_pct).value,
        "netClass": profit_class(opportunity.net_profit_pct).value,
    }
    return data


def state_payload(controller: DashboardController) -> dict[str, Any]:
    """Everything the page needs to redraw."""
    now_ms = get_timestamp_ms()
    rows = [opportunity_to_dict(opp, now_ms) for opp in controller.filtered]
    return {
        **controller.snapshot(),
        "pairs": controller.pair_options(),
        "summary": asdict(controller.summary()),
        "staleCount": sum(1 for row in rows if not row["fresh"]),
        "opportunities": rows,
    }


def _validation_message(error: ValidationError) -> str:
    message = error.errors()[0]["msg"]
    return message.removeprefix("Value error, ")


class ClientMessage(BaseModel):
    """Action sent by the page over the WebSocket."""

    model_config = ConfigDict(populate_by_name=True)

    action: str
    enabled: bool = False
    pair: str | None = None
    min_profit: float | None = Field(default=None, alias="minProfit", allow_inf_nan=False)
    sort: str | None = None


# =============================================================================
# WebSocket Clients
# =============================================================================


class ConnectionHub:
    """Connected dashboard sockets."""

    def __init__(self) -> None:
        self._clients: list[WebSocket] = []

    def add(self, websocket: WebSocket) -> None:
        self._clients.append(websocket)

    def remove(self, websocket: WebSocket) -> None:
        if websocket in self._clients:
            self._clients.remove(websocket)

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def broadcast(self, event_type: str, data: dict[str, Any]) -> None:
        """Send an event to every client, dropping the ones that fail."""
        if not self._clients:
            return

        message = orjson.dumps({"type": event_type, "data": data}).decode()
        disconnected = []
        for client in self._clients:
            try:
                await client.send_text(message)
            except Exception as e:
                logger.debug(f"Dropping websocket client: {e}")
                disconnected.append(client)
        for client in disconnected:
            self.remove(client)


# =============================================================================
# Application
# =============================================================================


def build_source(settings: Settings) -> QuoteSource:
    """Quote source for the configured mode."""
    if settings.simulate:
        return MarketSimulator()

    return CoinAPIClient(
        base_url=settings.coinapi_url,
        rate_limiter=RateLimiter(
            requests_per_second=settings.requests_per_second,
            daily_quota=settings.daily_request_quota,
        ),
        cache=ResponseCache(ttl_ms=settings.cache_ttl_ms),
        pair_delay_seconds=settings.pair_delay_seconds,
        timeout_seconds=settings.request_timeout_seconds,
    )


def build_controller(settings: Settings) -> DashboardController:
    """Controller wired to the settings store and the configured source."""
    return DashboardController(
        store=ConfigStore(settings.config_path),
        source=build_source(settings),
        requires_api_key=not settings.simulate,
    )


def create_app(controller: DashboardController | None = None) -> FastAPI:
    """
    Build the dashboard app.

    Args:
        controller: Controller to serve. Built from ``get_settings()`` at
            startup when omitted.
    """
    hub = ConnectionHub()

    async def push_state(ctrl: DashboardController) -> None:
        await hub.broadcast("state", state_payload(ctrl))

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
        ctrl = app.state.controller
        if ctrl is None:
            ctrl = build_controller(get_settings())
            app.state.controller = ctrl
        ctrl.add_listener(push_state)

        if ctrl.config.auto_refresh:
            ctrl.start_auto_refresh()

        yield

        ctrl.remove_listener(push_state)
        await ctrl.shutdown()
        source = ctrl.source
        if isinstance(source, CoinAPIClient):
            await source.close()

    app = FastAPI(title="DiscoPic", version="1.0.0", lifespan=lifespan)
    app.state.controller = controller
    app.state.hub = hub

    app.get("/", response_class=HTMLResponse)(get_dashboard)
    app.get("/api/status")(get_status)
    app.get("/api/opportunities")(get_opportunities)
    app.get("/api/opportunities/details")(get_opportunity_details)
    app.get("/api/stats")(get_stats)
    app.post("/api/refresh")(refresh)
    app.post("/api/demo")(load_demo)
    app.post("/api/auto-refresh")(set_auto_refresh)
    app.get("/api/settings")(get_dashboard_settings)
    app.put("/api/settings")(put_dashboard_settings)
    app.websocket("/ws")(websocket_endpoint)
    return app


def _controller(request: Request) -> DashboardController:
    return request.app.state.controller


# =============================================================================
# Routes
# =============================================================================


async def get_dashboard() -> HTMLResponse:
    return HTMLResponse(content=DASHBOARD_HTML)


async def get_status(request: Request) -> dict[str, Any]:
    controller = _controller(request)
    return {**controller.snapshot(), "pairs": controller.pair_options()}


async def get_opportunities(
    request: Request,
    pair: str | None = None,
    min_profit: float | None = None,
    sort: str | None = None,
) -> dict[str, Any]:
    controller = _controller(request)
    rows = controller.apply_filters(pair=pair, min_profit=min_profit, sort=sort)
    return {
        "count": len(rows),
        "filters": controller.snapshot()["filters"],
        "summary": asdict(controller.summary()),
        "opportunities": [opportunity_to_dict(opp, get_timestamp_ms()) for opp in rows],
    }


async def get_opportunity_details(
    request: Request,
    pair: str,
    buy: str,
    sell: str,
    investment: float = DEFAULT_PROJECTION_AMOUNT,
) -> dict[str, Any]:
    controller = _controller(request)
    try:
        result = controller.view_details(pair, buy, sell, investment)
    except InvalidInvestmentError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    if result is None:
        raise HTTPException(status_code=404, detail="Opportunity not found")

    opportunity, projection = result
    return {
        "opportunity": opportunity_to_dict(opportunity, get_timestamp_ms()),
        "projection": asdict(projection),
        "text": CLIReporter.render_details(opportunity, projection),
    }


async def get_stats(request: Request) -> dict[str, Any]:
    controller = _controller(request)
    stats: dict[str, Any] = {
        "summary": asdict(controller.summary()),
        "metrics": controller.metrics.to_dict(),
        "detection": asdict(controller.detection_stats),
        "clients": request.app.state.hub.client_count,
    }
    source = controller.source
    if isinstance(source, CoinAPIClient):
        stats["remainingRequests"] = source.remaining_requests
    return stats


async def refresh(request: Request) -> dict[str, Any]:
    controller = _controller(request)
    refreshed = await controller.refresh()
    return {"refreshed": refreshed, **state_payload(controller)}


async def load_demo(request: Request) -> dict[str, Any]:
    controller = _controller(request)
    controller.load_demo_data()
    payload = state_payload(controller)
    await request.app.state.hub.broadcast("state", payload)
    return payload


async def set_auto_refresh(request: Request, enabled: bool) -> dict[str, Any]:
    controller = _controller(request)
    controller.toggle_auto_refresh(enabled)
    return controller.snapshot()


async def get_dashboard_settings(request: Request) -> dict[str, Any]:
    return _controller(request).config.to_public_document()


async def put_dashboard_settings(request: Request, payload: dict[str, Any]) -> dict[str, Any]:
    controller = _controller(request)

    document = controller.config.to_document()
    document.update(payload)
    # The page never sees the stored key; an empty field keeps it
    if not str(payload.get("apiKey") or "").strip():
        document["apiKey"] = controller.config.api_key.get_secret_value()

    try:
        config = DashboardConfig.model_validate(document)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_validation_message(e)) from e

    if not controller.save_settings(config):
        raise HTTPException(status_code=500, detail=controller.error)

    return config.to_public_document()


async def _send(websocket: WebSocket, event_type: str, data: dict[str, Any]) -> None:
    await websocket.send_text(orjson.dumps({"type": event_type, "data": data}).decode())


async def websocket_endpoint(websocket: WebSocket) -> None:
    controller: DashboardController = websocket.app.state.controller
    hub: ConnectionHub = websocket.app.state.hub

    await websocket.accept()
    hub.add(websocket)

    await _send(websocket, "init", state_payload(controller))

    try:
        while True:
            text = await websocket.receive_text()
            controller.metrics.increment_counter("ws_messages")

            try:
                msg = ClientMessage.model_validate(orjson.loads(text))
            except orjson.JSONDecodeError as e:
                logger.warning(f"Ignoring malformed websocket message: {e}")
                await _send(websocket, "error", {"message": "Malformed message"})
                continue
            except ValidationError as e:
                logger.warning(f"Ignoring invalid websocket message: {e.error_count()} errors")
                await _send(websocket, "error", {"message": _validation_message(e)})
                continue

            if msg.action == "refresh":
                await controller.refresh()
            elif msg.action == "demo":
                controller.load_demo_data()
                await hub.broadcast("state", state_payload(controller))
            elif msg.action == "autoRefresh":
                controller.toggle_auto_refresh(msg.enabled)
                await hub.broadcast("state", state_payload(controller))
            elif msg.action == "filter":
                controller.apply_filters(
                    pair=msg.pair,
                    min_profit=msg.min_profit,
                    sort=msg.sort,
                )
                await _send(websocket, "state", state_payload(controller))
            else:
                logger.debug(f"Ignoring websocket action {msg.action!r}")
    except WebSocketDisconnect:
        pass
    finally:
        hub.remove(websocket)


DASHBOARD_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>DiscoPic - Crypto Arbitrage Monitor</title>
    <style>
        :root {
            --bg: #09090b; --bg2: #18181b; --bg3: #27272a;
            --border: #3f3f46; --text: #fafafa; --text2: #a1a1aa; --text3: #71717a;
            --accent: #3b82f6; --green: #22c55e; --red: #ef4444; --yellow: #eab308;
        }
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body { font-family: -apple-system, BlinkMacSystemFont, "Inter", sans-serif; background: var(--bg); color: var(--text); min-height: 100vh; }
        .app { max-width: 1200px; margin: 0 auto; padding: 32px 24px; }

        .header { display: flex; justify-content: space-between; align-items: center; margin-bottom: 20px; flex-wrap: wrap; gap: 16px; }
        .logo { display: flex; align-items: center; gap: 12px; }
        .logo-icon { width: 36px; height: 36px; background: linear-gradient(135deg, var(--accent), #8b5cf6); border-radius: 10px; }
        .logo-text { font-size: 20px; font-weight: 600; }
        .status { font-size: 13px; color: var(--text2); }
        .status b { color: var(--text); }

        .controls { display: flex; gap: 12px; margin-bottom: 20px; flex-wrap: wrap; align-items: center; }
        .controls label { font-size: 12px; color: var(--text2); display: flex; gap: 6px; align-items: center; }
        .controls select, .controls input, .settings input { background: var(--bg2); color: var(--text); border: 1px solid var(--border); border-radius: 6px; padding: 6px 8px; font-size: 13px; }
        .btn { padding: 8px 16px; border: none; border-radius: 8px; font-size: 13px; font-weight: 500; cursor: pointer; background: var(--bg3); color: var(--text); border: 1px solid var(--border); }
        .btn-primary { background: var(--accent); border-color: var(--accent); color: white; }
        .btn:disabled { color: var(--text3); cursor: not-allowed; }

        .error { background: rgba(239,68,68,0.1); color: var(--red); border-radius: 8px; padding: 10px 14px; margin-bottom: 16px; font-size: 13px; }
        .hidden { display: none; }

        .stats { display: grid; grid-template-columns: repeat(4, 1fr); gap: 12px; margin-bottom: 20px; }
        .stat { background: var(--bg2); border: 1px solid var(--border); border-radius: 10px; padding: 16px; }
        .stat-label { font-size: 11px; color: var(--text3); text-transform: uppercase; letter-spacing: 0.05em; margin-bottom: 6px; }
        .stat-value { font-size: 22px; font-weight: 600; font-variant-numeric: tabular-nums; }

        .card { background: var(--bg2); border: 1px solid var(--border); border-radius: 12px; overflow: hidden; margin-bottom: 20px; }
        table { width: 100%; border-collapse: collapse; font-size: 13px; font-variant-numeric: tabular-nums; }
        th { text-align: left; padding: 10px 14px; font-size: 11px; color: var(--text3); text-transform: uppercase; border-bottom: 1px solid var(--border); }
        td { padding: 10px 14px; border-bottom: 1px solid var(--border); }
        tr:last-child td { border-bottom: none; }
        .empty { text-align: center; color: var(--text3); padding: 32px; }
        .profit-positive { color: var(--green); }
        .profit-neutral { color: var(--yellow); }
        .profit-negative { color: var(--red); }
        tr.stale td { opacity: 0.45; }

        .settings { padding: 18px; display: grid; grid-template-columns: repeat(2, 1fr); gap: 12px; font-size: 13px; }
        .settings label { display: flex; flex-direction: column; gap: 4px; color: var(--text2); }
        pre.details { white-space: pre-wrap; padding: 18px; font-size: 12px; color: var(--text2); }
    </style>
</head>
<body>
<div class="app">
    <div class="header">
        <div class="logo"><div class="logo-icon"></div><div class="logo-text">DiscoPic</div></div>
        <div class="status">Status: <b id="status">Ready</b> &middot; Last update: <b id="lastUpdate">--</b></div>
    </div>

    <div id="error" class="error hidden"></div>

    <div class="controls">
        <button class="btn btn-primary" id="refreshBtn">Refresh</button>
        <button class="btn" id="demoBtn">Demo Data</button>
        <label><input type="checkbox" id="autoRefresh"> Auto-refresh</label>
        <label>Pair <select id="pairFilter"><option value="all">All pairs</option></select></label>
        <label>Min profit % <input type="number" id="minProfit" step="0.1" style="width: 80px"></label>
        <label>Sort <select id="sortBy">
            <option value="profit">Net profit</option>
            <option value="spread">Spread</option>
            <option value="pair">Pair</option>
        </select></label>
    </div>

    <div class="stats">
        <div class="stat"><div class="stat-label">Opportunities</div><div class="stat-value" id="count">0</div></div>
        <div class="stat"><div class="stat-label">Avg net profit</div><div class="stat-value" id="avgProfit">0.00%</div></div>
        <div class="stat"><div class="stat-label">Best net profit</div><div class="stat-value" id="maxProfit">0.00%</div></div>
        <div class="stat"><div class="stat-label">Tradeable volume</div><div class="stat-value" id="volume">0</div></div>
    </div>

    <div class="card">
        <table>
            <thead><tr>
                <th>Pair</th><th>Buy on</th><th>Buy price</th><th>Sell on</th><th>Sell price</th>
                <th>Spread</th><th>Gross</th><th>Net</th><th></th>
            </tr></thead>
            <tbody id="rows"><tr><td colspan="9" class="empty">No arbitrage opportunities found</td></tr></tbody>
        </table>
    </div>

    <div class="card hidden" id="detailsCard"><pre class="details" id="details"></pre></div>

    <div class="card">
        <form class="settings" id="settingsForm">
            <label>CoinAPI key <input type="password" name="apiKey" placeholder="unchanged"></label>
            <label>Refresh interval (s) <input type="number" name="refreshInterval" min="5"></label>
            <label>Default min profit % <input type="number" name="defaultMinProfit" step="0.1"></label>
            <label>Pairs (comma separated) <input type="text" name="pairs"></label>
            <label>Fees % (EXCHANGE=fee, comma separated) <input type="text" name="fees"></label>
            <label>&nbsp;<button class="btn btn-primary" type="submit">Save settings</button></label>
        </form>
    </div>
</div>
<script>
    const $ = (id) => document.getElementById(id);
    let state = null;

    function showError(message) {
        $("error").textContent = message || "";
        $("error").classList.toggle("hidden", !message);
    }

    function render(data) {
        state = data;
        $("status").textContent = data.status;
        $("lastUpdate").textContent = data.lastUpdate || "--";
        showError(data.error);
        $("refreshBtn").disabled = data.isLoading;
        $("autoRefresh").checked = data.autoRefresh;

        const pairSelect = $("pairFilter");
        const current = data.filters.pair;
        pairSelect.innerHTML = '<option value="all">All pairs</option>' +
            data.pairs.map((p) => `<option value="${p}">${p}</option>`).join("");
        pairSelect.value = current;
        if (document.activeElement !== $("minProfit")) $("minProfit").value = data.filters.minProfit;
        $("sortBy").value = data.filters.sort;

        $("count").textContent = data.summary.count;
        $("avgProfit").textContent = data.summary.avg_net_profit_pct.toFixed(2) + "%";
        $("maxProfit").textContent = data.summary.max_net_profit_pct.toFixed(2) + "%";
        $("volume").textContent = data.summary.total_tradeable_volume.toFixed(4);

        const rows = data.opportunities;
        $("rows").innerHTML = rows.length === 0
            ? '<tr><td colspan="9" class="empty">No arbitrage opportunities found<br>Try adjusting your filters or refresh the data</td></tr>'
            : rows.map((o) => `<tr class="${o.fresh ? "" : "stale"}">
                <td>${o.pair}</td><td>${o.buy_exchange}</td><td>$${o.display.buyPrice}</td>
                <td>${o.sell_exchange}</td><td>$${o.display.sellPrice}</td><td>$${o.display.spread}</td>
                <td class="${o.display.grossClass}">${o.display.grossProfit}</td>
                <td class="${o.display.netClass}">${o.display.netProfit}</td>
                <td><button class="btn" onclick="viewDetails('${o.pair}','${o.buy_exchange}','${o.sell_exchange}')">View</button></td>
            </tr>`).join("");
    }

    async function api(method, url, body) {
        const response = await fetch(url, {
            method,
            headers: body ? {"Content-Type": "application/json"} : {},
            body: body ? JSON.stringify(body) : undefined,
        });
        const data = await response.json();
        if (!response.ok) throw new Error(data.detail || response.statusText);
        return data;
    }

    async function applyFilters() {
        const params = new URLSearchParams({
            pair: $("pairFilter").value,
            min_profit: $("minProfit").value || 0,
            sort: $("sortBy").value,
        });
        const result = await api("GET", "/api/opportunities?" + params);
        render({...state, ...result, filters: result.filters, opportunityCount: result.count});
    }

    async function viewDetails(pair, buy, sell) {
        const params = new URLSearchParams({pair, buy, sell});
        try {
            const result = await api("GET", "/api/opportunities/details?" + params);
            $("details").textContent = result.text;
            $("detailsCard").classList.remove("hidden");
        } catch (e) { showError(e.message); }
    }

    async function loadSettings() {
        const s = await api("GET", "/api/settings");
        const form = $("settingsForm");
        form.refreshInterval.value = s.refreshInterval;
        form.defaultMinProfit.value = s.defaultMinProfit;
        form.pairs.value = s.pairs.join(", ");
        form.fees.value = Object.entries(s.fees).map(([k, v]) => `${k}=${v}`).join(", ");
        form.apiKey.placeholder = s.hasApiKey ? "unchanged" : "not configured";
    }

    $("settingsForm").addEventListener("submit", async (event) => {
        event.preventDefault();
        const form = event.target;
        const fees = {};
        form.fees.value.split(",").map((x) => x.trim()).filter(Boolean).forEach((entry) => {
            const [k, v] = entry.split("=");
            fees[k.trim()] = parseFloat(v);
        });
        try {
            const saved = await api("PUT", "/api/settings", {
                apiKey: form.apiKey.value.trim(),
                refreshInterval: parseInt(form.refreshInterval.value),
                defaultMinProfit: parseFloat(form.defaultMinProfit.value),
                autoRefresh: $("autoRefresh").checked,
                pairs: form.pairs.value.split(",").map((x) => x.trim()).filter(Boolean),
                fees,
            });
            form.apiKey.value = "";
            await loadSettings();
            $("minProfit").value = saved.defaultMinProfit;
            await applyFilters();
        } catch (e) { showError(e.message); }
    });

    $("refreshBtn").onclick = async () => render(await api("POST", "/api/refresh"));
    $("demoBtn").onclick = async () => render(await api("POST", "/api/demo"));
    $("autoRefresh").onchange = (e) => api("POST", "/api/auto-refresh?enabled=" + e.target.checked);
    $("pairFilter").onchange = applyFilters;
    $("minProfit").onchange = applyFilters;
    $("sortBy").onchange = applyFilters;

    function connect() {
        const ws = new WebSocket(`${location.protocol === "https:" ? "wss" : "ws"}://${location.host}/ws`);
        ws.onmessage = (event) => {
            const msg = JSON.parse(event.data);
            if (msg.type === "init" || msg.type === "state") render(msg.data);
            else if (msg.type === "error") showError(msg.data.message);
        };
        ws.onclose = () => setTimeout(connect, 2000);
    }

    loadSettings();
    connect();
</script>
</body>
</html>"""


app = create_app()


def main() -> None:
    import uvicorn

    from discopic.telemetry.logger import setup_logging

    settings = get_settings()
    queue_logging = setup_logging(level=settings.log_level, log_file=settings.log_file)
    mode = "SIMULATED" if settings.simulate else "CoinAPI"

    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║           DISCOPIC - CRYPTO ARBITRAGE MONITOR                 ║
╚═══════════════════════════════════════════════════════════════╝

Dashboard: http://{settings.host}:{settings.port}  ({mode} quotes)
Settings:  {settings.config_path}
Press Ctrl+C to stop.
    """
    )
    try:
        uvicorn.run(
            "discopic.dashboard.server:app",
            host=settings.host,
            port=settings.port,
            reload=False,
            log_level="warning",
        )
    finally:
        queue_logging.stop()


if __name__ == "__main__":
    main()
