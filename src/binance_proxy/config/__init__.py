"""Configuration module for the Binance proxy."""

from binance_proxy.config.constants import (
    BINANCE_REST_TESTNET_URL,
    BINANCE_REST_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BASE_DELAY_MS,
    DEFAULT_TIMEOUT_SECONDS,
)
from binance_proxy.config.settings import Settings, get_settings


__all__ = [
    "Settings",
    "get_settings",
    "BINANCE_REST_URL",
    "BINANCE_REST_TESTNET_URL",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_BASE_DELAY_MS",
    "DEFAULT_TIMEOUT_SECONDS",
]
