"""Utility functions for the Binance proxy."""

from binance_proxy.utils.time import LatencyTimer, format_duration_us, get_timestamp_ms


__all__ = [
    "LatencyTimer",
    "format_duration_us",
    "get_timestamp_ms",
]
