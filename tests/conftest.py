"""
Pytest configuration and shared fixtures.

Provides reusable test fixtures for all test modules.
"""

from collections.abc import Callable
from typing import Any

import pytest

from binance_proxy.config.settings import Settings
from binance_proxy.core.types import Credentials
from binance_proxy.exchange.client import BinanceGateway
from binance_proxy.exchange.executor import RequestExecutor
from binance_proxy.exchange.retry import RetryPolicy
from tests.mocks.http import MockSession, SleepRecorder


TEST_BASE_URL = "https://api.binance.test"
TEST_API_KEY = "test_api_key"
TEST_SECRET_KEY = "test_secret_key"


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        binance_base_url=TEST_BASE_URL,
        retry_base_delay_ms=0,
        rate_limit_max_requests=5,
        rate_limit_window_seconds=60,
    )


# =============================================================================
# Credential Fixtures
# =============================================================================


@pytest.fixture
def credentials() -> Credentials:
    """Complete API key/secret pair."""
    return Credentials(api_key=TEST_API_KEY, secret_key=TEST_SECRET_KEY)


# =============================================================================
# Executor Fixtures
# =============================================================================


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def mock_session() -> MockSession:
    """Session with an empty script; queue responses per test."""
    return MockSession()


@pytest.fixture
def executor(mock_session: MockSession, sleep_recorder: SleepRecorder) -> RequestExecutor:
    """Executor with default retry policy over the mock session."""
    return RequestExecutor(
        retry_policy=RetryPolicy(max_retries=2, base_delay_ms=200),
        session=mock_session,  # type: ignore[arg-type]
        sleep=sleep_recorder,
    )


@pytest.fixture
def make_gateway(executor: RequestExecutor) -> Callable[..., BinanceGateway]:
    """Factory for gateways sharing the mock-backed executor."""

    def _make(credentials: Credentials | None = None, **kwargs: Any) -> BinanceGateway:
        return BinanceGateway(executor, credentials=credentials, base_url=TEST_BASE_URL, **kwargs)

    return _make


# =============================================================================
# Upstream Payloads
# =============================================================================


@pytest.fixture
def account_payload() -> dict[str, Any]:
    """Trimmed /api/v3/account response."""
    return {
        "makerCommission": 10,
        "takerCommission": 10,
        "canTrade": True,
        "accountType": "SPOT",
        "balances": [
            {"asset": "BTC", "free": "0.50000000", "locked": "0.10000000"},
            {"asset": "ETH", "free": "2.00000000", "locked": "0.00000000"},
            {"asset": "USDT", "free": "1000.00000000", "locked": "250.00000000"},
        ],
    }


@pytest.fixture
def order_payload() -> dict[str, Any]:
    """POST /api/v3/order response."""
    return {
        "symbol": "BTCUSDT",
        "orderId": 28,
        "clientOrderId": "6gCrw2kRUAF9CvJDGP16IP",
        "transactTime": 1507725176595,
        "price": "42000.00000000",
        "origQty": "1.00000000",
        "executedQty": "0.00000000",
        "status": "NEW",
        "timeInForce": "GTC",
        "type": "LIMIT",
        "side": "BUY",
    }
