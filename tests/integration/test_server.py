"""
Integration tests for the FastAPI server.

Drives the full stack (admission, dispatch, handlers, gateway,
executor) through TestClient, with upstream replaced by MockSession.
"""

import base64
from collections.abc import Iterator
from typing import Any

import orjson
import pytest
from fastapi.testclient import TestClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from binance_proxy.admission.gate import AdmissionGate
from binance_proxy.api.server import create_app, http_exception_handler
from binance_proxy.config.settings import Settings
from binance_proxy.exchange.executor import RequestExecutor
from binance_proxy.exchange.rate_limiter import RateLimiter
from binance_proxy.exchange.retry import RetryPolicy
from tests.mocks.http import MockSession, SleepRecorder, make_response


KEYS = {"api_key": "req_key", "secret_key": "req_secret"}


@pytest.fixture
def app_executor(mock_session: MockSession, sleep_recorder: SleepRecorder) -> RequestExecutor:
    return RequestExecutor(
        retry_policy=RetryPolicy(max_retries=2, base_delay_ms=0),
        session=mock_session,  # type: ignore[arg-type]
        sleep=sleep_recorder,
    )


@pytest.fixture
def client(settings: Settings, app_executor: RequestExecutor) -> Iterator[TestClient]:
    app = create_app(settings, executor=app_executor)
    with TestClient(app) as test_client:
        yield test_client


def make_client(settings: Settings, executor: RequestExecutor, gate: AdmissionGate) -> TestClient:
    return TestClient(create_app(settings, executor=executor, gate=gate))


class TestServiceRoutes:
    def test_index(self, client: TestClient) -> None:
        """Test the banner on / and /api."""
        for path in ("/", "/api"):
            response = client.get(path)
            assert response.status_code == 200
            assert response.json() == {"success": True, "message": "Binance API REST - Python"}

    def test_health(self, client: TestClient) -> None:
        """Test that /health reports the upstream."""
        response = client.get("/health")

        assert response.json() == {
            "success": True,
            "status": "ok",
            "upstream": "https://api.binance.test",
        }


class TestRouting:
    """Tests for unknown routes and method mismatches."""

    @pytest.mark.parametrize("path", ["/api/nothing/ping", "/nothing/ping", "/api/nothing"])
    def test_unknown_class(self, client: TestClient, path: str) -> None:
        """Test that an unknown route class is a 404."""
        response = client.get(path)

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Endpoint não encontrado"}

    @pytest.mark.parametrize("path", ["/api/general/nothing", "/api/general", "/market"])
    def test_unknown_action(self, client: TestClient, path: str) -> None:
        """Test that an unknown or missing action is a 404."""
        response = client.get(path)

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Ação não encontrada"}

    def test_wrong_method(self, client: TestClient, mock_session: MockSession) -> None:
        """Test that a known action with the wrong method is a 404."""
        response = client.post("/api/general/ping")

        assert response.status_code == 404
        assert response.json()["error"] == "Ação não encontrada"
        assert mock_session.call_count == 0

    @pytest.mark.parametrize("path", ["/api/market/ticker/extra", "/market/ticker/a/b"])
    def test_extra_segments_ignored(
        self, client: TestClient, mock_session: MockSession, path: str
    ) -> None:
        """Trailing segments after the action still reach the handler."""
        mock_session.queue(make_response(200, {"symbol": "BTCUSDT", "price": "1.0"}))

        response = client.get(path, params={"symbol": "BTCUSDT"})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert mock_session.last_request.path == "/api/v3/ticker/price"

    @pytest.mark.parametrize(
        "method,path",
        [("PUT", "/api/market/ticker"), ("PATCH", "/account/info"), ("PUT", "/")],
    )
    def test_unsupported_method(
        self, client: TestClient, mock_session: MockSession, method: str, path: str
    ) -> None:
        """HTTP methods outside GET/POST/DELETE get a JSON error body."""
        response = client.request(method, path)

        assert response.status_code == 405
        assert response.json() == {"success": False, "error": "Método não permitido"}
        assert mock_session.call_count == 0

    @pytest.mark.asyncio
    async def test_router_not_found_rendered_as_proxy_error(self) -> None:
        """Router-level 404s carry the success flag and the proxy message."""
        response = await http_exception_handler(
            None,  # type: ignore[arg-type]
            StarletteHTTPException(status_code=404),
        )

        assert response.status_code == 404
        assert orjson.loads(response.body) == {
            "success": False,
            "error": "Endpoint não encontrado",
        }

    def test_unprefixed_route(self, client: TestClient, mock_session: MockSession) -> None:
        """Test that routes work without the /api prefix."""
        mock_session.queue(make_response(200, {}))

        response = client.get("/general/ping")

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {}}


class TestGeneral:
    def test_server_time(self, client: TestClient, mock_session: MockSession) -> None:
        """Test that general/time proxies /api/v3/time."""
        mock_session.queue(make_response(200, {"serverTime": 1499827319559}))

        response = client.get("/api/general/time")

        assert response.json() == {"success": True, "data": {"serverTime": 1499827319559}}
        assert mock_session.last_request.url == "https://api.binance.test/api/v3/time"

    def test_exchange_info_single_symbol(
        self, client: TestClient, mock_session: MockSession
    ) -> None:
        """Test that a single symbol is forwarded as is."""
        mock_session.queue(make_response(200, {"symbols": []}))

        client.get("/api/general/exchange-info", params={"symbol": "BTCUSDT"})

        assert mock_session.last_request.query == "symbol=BTCUSDT"

    @pytest.mark.parametrize(
        "query",
        ["symbols=BTCUSDT&symbols=ETHUSDT", "symbols=BTCUSDT,ETHUSDT"],
    )
    def test_exchange_info_symbol_list(
        self, client: TestClient, mock_session: MockSession, query: str
    ) -> None:
        """Test that repeated or comma-separated symbols become a JSON array."""
        mock_session.queue(make_response(200, {"symbols": []}))

        client.get(f"/api/general/exchange-info?{query}")

        assert mock_session.last_request.query_params == [
            ("symbols", '["BTCUSDT","ETHUSDT"]')
        ]


class TestMarket:
    def test_ticker_requires_symbol(self, client: TestClient, mock_session: MockSession) -> None:
        """Test that ticker without symbol is a 400 with no upstream call."""
        response = client.get("/api/market/ticker")

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": 'Parâmetro "symbol" é obrigatório'}
        assert mock_session.call_count == 0

    def test_ticker(self, client: TestClient, mock_session: MockSession) -> None:
        """Test that ticker returns the upstream price unsigned."""
        mock_session.queue(make_response(200, {"symbol": "BTCUSDT", "price": "42000.00"}))

        response = client.get("/api/market/ticker", params={"symbol": "BTCUSDT"})

        assert response.status_code == 200
        assert response.json()["data"]["price"] == "42000.00"
        assert "signature" not in mock_session.last_request.url

    def test_order_book_default_limit(
        self, client: TestClient, mock_session: MockSession
    ) -> None:
        """Test that order-book defaults limit to 100."""
        mock_session.queue(make_response(200, {"bids": [], "asks": []}))

        client.get("/api/market/order-book", params={"symbol": "ETHUSDT"})

        assert mock_session.last_request.query == "symbol=ETHUSDT&limit=100"

    def test_trades_custom_limit(self, client: TestClient, mock_session: MockSession) -> None:
        """Test that a caller limit is forwarded."""
        mock_session.queue(make_response(200, []))

        client.get("/api/market/trades", params={"symbol": "ETHUSDT", "limit": "10"})

        assert mock_session.last_request.query == "symbol=ETHUSDT&limit=10"

    def test_upstream_error_passthrough(
        self, client: TestClient, mock_session: MockSession
    ) -> None:
        """Test that upstream status and msg reach the caller."""
        mock_session.queue(make_response(400, {"code": -1121, "msg": "Invalid symbol."}))

        response = client.get("/api/market/ticker", params={"symbol": "NOPE"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid symbol.", "code": 400}

    def test_upstream_unavailable(self, client: TestClient, mock_session: MockSession) -> None:
        """Test that persistent 503s end in the generic error after 3 attempts."""
        mock_session.queue(503, 503, 503)

        response = client.get("/api/market/ticker", params={"symbol": "BTCUSDT"})

        assert response.status_code == 400
        assert response.json()["error"] == (
            "Erro de conexão: Erro desconhecido ao processar requisição"
        )
        assert mock_session.call_count == 3


class TestAccount:
    def test_keys_required(self, client: TestClient, mock_session: MockSession) -> None:
        """Test that account routes need keys."""
        response = client.get("/api/account/info")

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert mock_session.call_count == 0

    def test_info_signed_with_request_keys(
        self,
        client: TestClient,
        mock_session: MockSession,
        account_payload: dict[str, Any],
    ) -> None:
        """Test that request keys sign the account call."""
        mock_session.queue(make_response(200, account_payload))

        response = client.get("/api/account/info", params=KEYS)

        request = mock_session.last_request
        assert response.json()["data"]["accountType"] == "SPOT"
        assert request.headers["X-MBX-APIKEY"] == "req_key"
        assert [key for key, _ in request.query_params] == ["timestamp", "signature"]

    def test_default_keys_from_settings(
        self,
        app_executor: RequestExecutor,
        mock_session: MockSession,
        account_payload: dict[str, Any],
    ) -> None:
        """Test that configured keys are used when the request has none."""
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            binance_base_url="https://api.binance.test",
            binance_api_key="env_key",
            binance_secret_key="env_secret",
        )
        mock_session.queue(make_response(200, account_payload))

        with TestClient(create_app(settings, executor=app_executor)) as client:
            response = client.get("/api/account/info")

        assert response.status_code == 200
        assert mock_session.last_request.headers["X-MBX-APIKEY"] == "env_key"

    def test_blank_request_key_does_not_fall_back(
        self, app_executor: RequestExecutor, mock_session: MockSession
    ) -> None:
        """An explicitly blank api_key is rejected rather than replaced by the default."""
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            binance_base_url="https://api.binance.test",
            binance_api_key="env_key",
            binance_secret_key="env_secret",
        )

        with TestClient(create_app(settings, executor=app_executor)) as client:
            response = client.get("/api/account/info", params={"api_key": "", "secret_key": "s"})

        assert response.status_code == 400
        assert response.json()["error"].startswith("Chaves de API não fornecidas")
        assert mock_session.call_count == 0

    def test_balance(
        self,
        client: TestClient,
        mock_session: MockSession,
        account_payload: dict[str, Any],
    ) -> None:
        """Test that balance projects one asset with a total."""
        mock_session.queue(make_response(200, account_payload))

        response = client.get("/api/account/balance", params={**KEYS, "asset": "usdt"})

        assert response.json() == {
            "success": True,
            "data": {
                "asset": "USDT",
                "free": "1000.00000000",
                "locked": "250.00000000",
                "total": 1250.0,
            },
        }

    def test_balance_unknown_asset(
        self,
        client: TestClient,
        mock_session: MockSession,
        account_payload: dict[str, Any],
    ) -> None:
        """Test that a missing asset is reported."""
        mock_session.queue(make_response(200, account_payload))

        response = client.get("/api/account/balance", params={**KEYS, "asset": "DOGE"})

        assert response.status_code == 400
        assert response.json()["error"] == 'Ativo "DOGE" não encontrado'

    def test_order_history(self, client: TestClient, mock_session: MockSession) -> None:
        """Test that order-history signs allOrders with limit 500."""
        mock_session.queue(make_response(200, []))

        response = client.get("/api/account/order-history", params={**KEYS, "symbol": "BTCUSDT"})

        keys = [key for key, _ in mock_session.last_request.query_params]
        assert response.json() == {"success": True, "data": []}
        assert mock_session.last_request.path == "/api/v3/allOrders"
        assert keys == ["symbol", "limit", "timestamp", "signature"]
        assert dict(mock_session.last_request.query_params)["limit"] == "500"


class TestTrading:
    def test_create_order(
        self,
        client: TestClient,
        mock_session: MockSession,
        order_payload: dict[str, Any],
    ) -> None:
        """Test that create-order posts a signed form body without the keys."""
        mock_session.queue(make_response(200, order_payload))

        response = client.post(
            "/api/trading/create-order",
            json={
                **KEYS,
                "symbol": "BTCUSDT",
                "side": "BUY",
                "type": "LIMIT",
                "quantity": "1",
                "price": "42000",
                "timeInForce": "GTC",
            },
        )

        request = mock_session.last_request
        assert response.status_code == 200
        assert response.json()["data"]["orderId"] == 28
        assert request.method == "POST"
        assert request.query == ""
        assert [key for key, _ in request.body_params] == [
            "symbol",
            "side",
            "type",
            "quantity",
            "price",
            "timeInForce",
            "timestamp",
            "signature",
        ]
        assert "api_key" not in dict(request.body_params)

    def test_create_order_requires_keys(
        self, client: TestClient, mock_session: MockSession
    ) -> None:
        """Test that create-order needs both keys."""
        response = client.post("/api/trading/create-order", json={"symbol": "BTCUSDT"})

        assert response.status_code == 400
        assert response.json()["error"] == 'Parâmetros "api_key" e "secret_key" são obrigatórios'
        assert mock_session.call_count == 0

    def test_create_order_requires_quantity(
        self, client: TestClient, mock_session: MockSession
    ) -> None:
        """Test that create-order names the first missing field."""
        response = client.post(
            "/api/trading/create-order",
            json={**KEYS, "symbol": "BTCUSDT", "side": "BUY", "type": "MARKET"},
        )

        assert response.json()["error"] == 'Parâmetro "quantity" é obrigatório'
        assert mock_session.call_count == 0

    def test_cancel_order(self, client: TestClient, mock_session: MockSession) -> None:
        """Test that cancel-order sends a signed DELETE."""
        mock_session.queue(make_response(200, {"status": "CANCELED"}))

        response = client.request(
            "DELETE",
            "/api/trading/cancel-order",
            json={**KEYS, "symbol": "BTCUSDT", "orderId": 28},
        )

        request = mock_session.last_request
        assert response.json() == {"success": True, "data": {"status": "CANCELED"}}
        assert request.method == "DELETE"
        assert dict(request.body_params)["orderId"] == "28"

    def test_cancel_order_requires_order_id(
        self, client: TestClient, mock_session: MockSession
    ) -> None:
        """Test that cancel-order needs symbol and orderId."""
        response = client.request(
            "DELETE", "/api/trading/cancel-order", json={**KEYS, "symbol": "BTCUSDT"}
        )

        assert response.json()["error"] == 'Parâmetros "symbol" e "orderId" são obrigatórios'
        assert mock_session.call_count == 0


class TestAdmission:
    """Tests for Basic auth and rate limiting at the HTTP surface."""

    def test_basic_auth_required(
        self, settings: Settings, app_executor: RequestExecutor, mock_session: MockSession
    ) -> None:
        """Test that Basic auth gates every route."""
        gate = AdmissionGate(username="admin", password="s3cret")
        token = base64.b64encode(b"admin:s3cret").decode()
        mock_session.queue(make_response(200, {}))

        with make_client(settings, app_executor, gate) as client:
            denied = client.get("/api/general/ping")
            allowed = client.get("/api/general/ping", headers={"Authorization": f"Basic {token}"})

        assert denied.status_code == 401
        assert denied.headers["WWW-Authenticate"] == 'Basic realm="Binance API"'
        assert denied.json() == {"success": False, "error": "Não autorizado"}
        assert allowed.status_code == 200
        assert mock_session.call_count == 1

    def test_rate_limited_account_route(
        self, settings: Settings, app_executor: RequestExecutor, mock_session: MockSession
    ) -> None:
        """Test that the third account call gets 429 with Retry-After."""
        gate = AdmissionGate(rate_limiter=RateLimiter(max_requests=2, window_seconds=60))
        mock_session.queue(make_response(200, []), make_response(200, []))

        with make_client(settings, app_executor, gate) as client:
            responses = [client.get("/api/account/open-orders", params=KEYS) for _ in range(3)]

        assert [r.status_code for r in responses] == [200, 200, 429]
        limited = responses[-1]
        retry_after = int(limited.headers["Retry-After"])
        assert 1 <= retry_after <= 60
        assert limited.json()["retry_after"] == retry_after
        assert mock_session.call_count == 2

    def test_market_routes_not_rate_limited(
        self, settings: Settings, app_executor: RequestExecutor, mock_session: MockSession
    ) -> None:
        """Test that market calls ignore the limit."""
        gate = AdmissionGate(rate_limiter=RateLimiter(max_requests=1, window_seconds=60))
        mock_session.queue(*[make_response(200, {}) for _ in range(3)])

        with make_client(settings, app_executor, gate) as client:
            statuses = [
                client.get("/api/market/ticker", params={"symbol": "BTCUSDT"}).status_code
                for _ in range(3)
            ]

        assert statuses == [200, 200, 200]
