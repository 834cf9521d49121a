"""Exchange integration module for Binance."""

from binance_proxy.exchange.client import BinanceGateway
from binance_proxy.exchange.executor import RequestExecutor
from binance_proxy.exchange.rate_limiter import RateLimiter, build_route_key
from binance_proxy.exchange.retry import RetryPolicy


__all__ = [
    "BinanceGateway",
    "RateLimiter",
    "RequestExecutor",
    "RetryPolicy",
    "build_route_key",
]
