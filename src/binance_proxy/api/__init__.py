"""HTTP surface of the proxy."""

from binance_proxy.api.server import create_app


__all__ = ["create_app"]
