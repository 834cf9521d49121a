"""
Proxy constants and default configuration values.

This module contains the hardcoded values used throughout the proxy.
Values are organized by category for easy maintenance and auditing.
"""

from typing import Final


# =============================================================================
# Binance API Endpoints
# =============================================================================

BINANCE_REST_URL: Final[str] = "https://api.binance.com"
BINANCE_REST_TESTNET_URL: Final[str] = "https://testnet.binance.vision"

# General
ENDPOINT_PING: Final[str] = "/api/v3/ping"
ENDPOINT_SERVER_TIME: Final[str] = "/api/v3/time"
ENDPOINT_EXCHANGE_INFO: Final[str] = "/api/v3/exchangeInfo"

# Market data
ENDPOINT_TICKER_PRICE: Final[str] = "/api/v3/ticker/price"
ENDPOINT_DEPTH: Final[str] = "/api/v3/depth"
ENDPOINT_TRADES: Final[str] = "/api/v3/trades"

# Account (signed)
ENDPOINT_ACCOUNT: Final[str] = "/api/v3/account"
ENDPOINT_OPEN_ORDERS: Final[str] = "/api/v3/openOrders"
ENDPOINT_ALL_ORDERS: Final[str] = "/api/v3/allOrders"

# Trading (signed)
ENDPOINT_ORDER: Final[str] = "/api/v3/order"


# =============================================================================
# Request Execution
# =============================================================================

DEFAULT_TIMEOUT_SECONDS: Final[float] = 10.0
DEFAULT_MAX_RETRIES: Final[int] = 2
DEFAULT_RETRY_BASE_DELAY_MS: Final[int] = 200

HEADER_API_KEY: Final[str] = "X-MBX-APIKEY"
CONTENT_TYPE_FORM: Final[str] = "application/x-www-form-urlencoded"
CONTENT_TYPE_JSON: Final[str] = "application/json"

# Statuses retried by the executor besides the 5xx range
RETRYABLE_STATUS_CODES: Final[frozenset[int]] = frozenset({429})


# =============================================================================
# Error Messages
# =============================================================================

MSG_CREDENTIALS_REQUIRED: Final[str] = "API Key e Secret Key são obrigatórios"
MSG_CONNECTION_ERROR: Final[str] = "Erro de conexão: "
MSG_HTTP_ERROR: Final[str] = "Erro HTTP "
MSG_INVALID_RESPONSE: Final[str] = "Resposta inválida: "
MSG_UNKNOWN_ERROR: Final[str] = "Erro desconhecido ao processar requisição"
MSG_UNAUTHORIZED: Final[str] = "Não autorizado"
MSG_RATE_LIMITED: Final[str] = "Limite de requisições excedido. Tente novamente em {seconds} segundos."
MSG_ENDPOINT_NOT_FOUND: Final[str] = "Endpoint não encontrado"
MSG_ACTION_NOT_FOUND: Final[str] = "Ação não encontrada"
MSG_INTERNAL_ERROR: Final[str] = "Erro interno do servidor"
MSG_METHOD_NOT_ALLOWED: Final[str] = "Método não permitido"
MSG_KEYS_NOT_PROVIDED: Final[str] = (
    "Chaves de API não fornecidas. Configure no .env ou passe como parâmetros."
)


# =============================================================================
# Admission (Basic Auth + Rate Limiting)
# =============================================================================

BASIC_AUTH_REALM: Final[str] = "Binance API"

# Route classes
ROUTE_GENERAL: Final[str] = "general"
ROUTE_MARKET: Final[str] = "market"
ROUTE_ACCOUNT: Final[str] = "account"
ROUTE_TRADING: Final[str] = "trading"

# Only account and trading traffic is counted by the rate limiter
RATE_LIMITED_ROUTE_CLASSES: Final[frozenset[str]] = frozenset({ROUTE_ACCOUNT, ROUTE_TRADING})

# Client identifier used when no network address is available
FALLBACK_CLIENT_ID: Final[str] = "cli"

DEFAULT_RATE_LIMIT_WINDOW_SECONDS: Final[int] = 60
DEFAULT_RATE_LIMIT_MAX_REQUESTS: Final[int] = 30


# =============================================================================
# Handler Defaults
# =============================================================================

DEFAULT_ORDER_BOOK_LIMIT: Final[int] = 100
DEFAULT_TRADES_LIMIT: Final[int] = 500
DEFAULT_ORDER_HISTORY_LIMIT: Final[int] = 500


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Maximum log queue size
MAX_LOG_QUEUE_SIZE: Final[int] = 10_000
