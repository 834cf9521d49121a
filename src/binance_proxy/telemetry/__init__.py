"""Telemetry module for logging."""

from binance_proxy.telemetry.logger import (
    AsyncLogger,
    SecretRedactingFilter,
    redact,
    setup_logging,
)


__all__ = [
    "AsyncLogger",
    "SecretRedactingFilter",
    "redact",
    "setup_logging",
]
