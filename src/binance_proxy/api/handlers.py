"""
Endpoint handlers.

Each handler validates its inputs, picks the Binance endpoint and
parameters, and returns the gateway's GatewayResult. Handlers are
registered in ROUTES, keyed by (route class, action).
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from binance_proxy.config.constants import (
    DEFAULT_ORDER_BOOK_LIMIT,
    DEFAULT_ORDER_HISTORY_LIMIT,
    DEFAULT_TRADES_LIMIT,
    ENDPOINT_ACCOUNT,
    ENDPOINT_ALL_ORDERS,
    ENDPOINT_DEPTH,
    ENDPOINT_EXCHANGE_INFO,
    ENDPOINT_OPEN_ORDERS,
    ENDPOINT_ORDER,
    ENDPOINT_PING,
    ENDPOINT_SERVER_TIME,
    ENDPOINT_TICKER_PRICE,
    ENDPOINT_TRADES,
    MSG_KEYS_NOT_PROVIDED,
    ROUTE_ACCOUNT,
    ROUTE_GENERAL,
    ROUTE_MARKET,
    ROUTE_TRADING,
)
from binance_proxy.config.settings import Settings
from binance_proxy.core.types import Credentials, GatewayResult, HttpMethod, ParamValue
from binance_proxy.exceptions import ValidationError
from binance_proxy.exchange.client import BinanceGateway
from binance_proxy.exchange.executor import RequestExecutor


RequestParams = Mapping[str, Any]


@dataclass(slots=True, frozen=True)
class HandlerContext:
    """Shared collaborators handed to every handler."""

    settings: Settings
    executor: RequestExecutor

    def gateway(self, credentials: Credentials | None = None) -> BinanceGateway:
        """Build a gateway for this request's credentials."""
        return BinanceGateway(
            self.executor,
            credentials=credentials,
            base_url=self.settings.rest_base_url,
        )


Handler = Callable[[RequestParams, HandlerContext], Awaitable[GatewayResult]]


@dataclass(slots=True, frozen=True)
class Route:
    """A dispatch table entry."""

    method: HttpMethod
    handler: Handler


# =============================================================================
# Validation Helpers
# =============================================================================


def is_blank(value: Any) -> bool:
    """Check for a missing or empty parameter (None, "", "0", 0, [], False)."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value.strip() in ("", "0")
    if isinstance(value, (list, dict)):
        return not value
    if isinstance(value, (int, float)):
        return value == 0
    return False


def require_fields(params: RequestParams, *fields: str) -> None:
    """
    Ensure every field is present and non-empty.

    Raises:
        ValidationError: Naming the first missing field.
    """
    for name in fields:
        if is_blank(params.get(name)):
            raise ValidationError(f'Parâmetro "{name}" é obrigatório')


def to_param(value: Any) -> ParamValue:
    """Coerce an inbound value into a Binance parameter value."""
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    if isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def pick(params: RequestParams, *fields: str) -> dict[str, ParamValue]:
    """Copy the non-empty fields, in order."""
    return {name: to_param(params[name]) for name in fields if not is_blank(params.get(name))}


def account_credentials(params: RequestParams, settings: Settings) -> Credentials:
    """
    Resolve credentials for account endpoints.

    Keys passed with the request win over the configured defaults, even
    when blank.

    Raises:
        ValidationError: If no complete pair is available.
    """
    defaults = settings.default_credentials
    api_key = params["api_key"] if "api_key" in params else defaults.api_key
    secret_key = params["secret_key"] if "secret_key" in params else defaults.secret_key

    credentials = Credentials(
        api_key=str(api_key) if api_key else None,
        secret_key=str(secret_key) if secret_key else None,
    )
    if not credentials.is_complete:
        raise ValidationError(MSG_KEYS_NOT_PROVIDED)
    return credentials


def trading_credentials(params: RequestParams) -> Credentials:
    """Trading endpoints take keys from the request only."""
    if is_blank(params.get("api_key")) or is_blank(params.get("secret_key")):
        raise ValidationError('Parâmetros "api_key" e "secret_key" são obrigatórios')
    return Credentials(api_key=str(params["api_key"]), secret_key=str(params["secret_key"]))


# =============================================================================
# General
# =============================================================================


async def ping(params: RequestParams, ctx: HandlerContext) -> GatewayResult:
    return await ctx.gateway().get(ENDPOINT_PING)


async def server_time(params: RequestParams, ctx: HandlerContext) -> GatewayResult:
    return await ctx.gateway().get(ENDPOINT_SERVER_TIME)


async def exchange_info(params: RequestParams, ctx: HandlerContext) -> GatewayResult:
    """Exchange rules, optionally for one `symbol` or a list of `symbols`."""
    options: dict[str, ParamValue] = {}
    if not is_blank(params.get("symbol")):
        options["symbol"] = to_param(params["symbol"])
    elif not is_blank(params.get("symbols")):
        symbols = params["symbols"]
        if isinstance(symbols, str):
            symbols = [s.strip() for s in symbols.split(",") if s.strip()]
        options["symbols"] = to_param(symbols)

    return await ctx.gateway().get(ENDPOINT_EXCHANGE_INFO, options)


# =============================================================================
# Market Data
# =============================================================================


async def ticker(params: RequestParams, ctx: HandlerContext) -> GatewayResult:
    require_fields(params, "symbol")
    return await ctx.gateway().get(ENDPOINT_TICKER_PRICE, pick(params, "symbol"))


async def order_book(params: RequestParams, ctx: HandlerContext) -> GatewayResult:
    require_fields(params, "symbol")
    return await ctx.gateway().get(
        ENDPOINT_DEPTH,
        {
            "symbol": to_param(params["symbol"]),
            "limit": to_param(params.get("limit") or DEFAULT_ORDER_BOOK_LIMIT),
        },
    )


async def trades(params: RequestParams, ctx: HandlerContext) -> GatewayResult:
    require_fields(params, "symbol")
    return await ctx.gateway().get(
        ENDPOINT_TRADES,
        {
            "symbol": to_param(params["symbol"]),
            "limit": to_param(params.get("limit") or DEFAULT_TRADES_LIMIT),
        },
    )


# =============================================================================
# Account (signed)
# =============================================================================


async def account_info(params: RequestParams, ctx: HandlerContext) -> GatewayResult:
    credentials = account_credentials(params, ctx.settings)
    return await ctx.gateway(credentials).get(ENDPOINT_ACCOUNT)


async def open_orders(params: RequestParams, ctx: HandlerContext) -> GatewayResult:
    credentials = account_credentials(params, ctx.settings)
    return await ctx.gateway(credentials).get(ENDPOINT_OPEN_ORDERS, pick(params, "symbol"))


async def order_history(params: RequestParams, ctx: HandlerContext) -> GatewayResult:
    credentials = account_credentials(params, ctx.settings)
    require_fields(params, "symbol")
    return await ctx.gateway(credentials).get(
        ENDPOINT_ALL_ORDERS,
        {
            "symbol": to_param(params["symbol"]),
            "limit": to_param(params.get("limit") or DEFAULT_ORDER_HISTORY_LIMIT),
        },
    )


async def asset_balance(params: RequestParams, ctx: HandlerContext) -> GatewayResult:
    """
    Balance of a single asset.

    Fetches the full account and returns ``{asset, free, locked, total}``
    for the requested asset.
    """
    credentials = account_credentials(params, ctx.settings)
    if is_blank(params.get("asset")):
        raise ValidationError('Parâmetro "asset" é obrigatório (ex: ETH, BTC, USDT)')

    result = await ctx.gateway(credentials).get(ENDPOINT_ACCOUNT)
    if not result.success:
        return result

    asset = str(params["asset"]).upper()
    balances = result.data.get("balances", []) if isinstance(result.data, dict) else []
    for balance in balances:
        if balance.get("asset") == asset:
            free = balance.get("free", "0")
            locked = balance.get("locked", "0")
            return GatewayResult.ok(
                {
                    "asset": asset,
                    "free": free,
                    "locked": locked,
                    "total": float(free) + float(locked),
                }
            )

    return GatewayResult.fail(f'Ativo "{asset}" não encontrado')


# =============================================================================
# Trading (signed)
# =============================================================================


async def create_order(params: RequestParams, ctx: HandlerContext) -> GatewayResult:
    credentials = trading_credentials(params)
    require_fields(params, "symbol", "side", "type", "quantity")

    order = pick(params, "symbol", "side", "type", "quantity", "price", "timeInForce")
    return await ctx.gateway(credentials).post(ENDPOINT_ORDER, order)


async def cancel_order(params: RequestParams, ctx: HandlerContext) -> GatewayResult:
    credentials = trading_credentials(params)
    if is_blank(params.get("symbol")) or is_blank(params.get("orderId")):
        raise ValidationError('Parâmetros "symbol" e "orderId" são obrigatórios')

    return await ctx.gateway(credentials).delete(ENDPOINT_ORDER, pick(params, "symbol", "orderId"))


# =============================================================================
# Dispatch Table
# =============================================================================

ROUTES: dict[str, dict[str, Route]] = {
    ROUTE_GENERAL: {
        "ping": Route(HttpMethod.GET, ping),
        "time": Route(HttpMethod.GET, server_time),
        "exchange-info": Route(HttpMethod.GET, exchange_info),
    },
    ROUTE_MARKET: {
        "ticker": Route(HttpMethod.GET, ticker),
        "order-book": Route(HttpMethod.GET, order_book),
        "trades": Route(HttpMethod.GET, trades),
    },
    ROUTE_ACCOUNT: {
        "info": Route(HttpMethod.GET, account_info),
        "open-orders": Route(HttpMethod.GET, open_orders),
        "order-history": Route(HttpMethod.GET, order_history),
        "balance": Route(HttpMethod.GET, asset_balance),
    },
    ROUTE_TRADING: {
        "create-order": Route(HttpMethod.POST, create_order),
        "cancel-order": Route(HttpMethod.DELETE, cancel_order),
    },
}
