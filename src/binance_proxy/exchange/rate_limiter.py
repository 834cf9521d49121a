"""
Fixed-window rate limiter for inbound requests.

Counts hits per route key in fixed windows. Bursts straddling a window
boundary can briefly reach twice the configured rate.
"""

import asyncio
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from binance_proxy.config.constants import (
    DEFAULT_RATE_LIMIT_MAX_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    FALLBACK_CLIENT_ID,
)
from binance_proxy.core.types import RateLimitDecision


def build_route_key(route_class: str, method: str, client_id: str | None) -> str:
    """
    Compose the limiter key for a request.

    Args:
        route_class: Endpoint class (account, trading, ...).
        method: HTTP method.
        client_id: Caller's network address, if known.

    Returns:
        ``<route_class>:<METHOD>:<client_id>``
    """
    return f"{route_class}:{method.upper()}:{client_id or FALLBACK_CLIENT_ID}"


@dataclass(slots=True)
class RateWindow:
    """Counter for one key's current window."""

    window_start: float
    count: int = 0


@dataclass
class RateLimiter:
    """
    Per-key fixed-window rate limiter.

    Windows are created lazily per key and never evicted; the key space
    is bounded by route classes x methods x client addresses.
    """

    max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS
    window_seconds: int = DEFAULT_RATE_LIMIT_WINDOW_SECONDS
    clock: Callable[[], float] = field(default=time.time, repr=False)
    _windows: dict[str, RateWindow] = field(default_factory=dict, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")

    async def hit(self, route_key: str) -> RateLimitDecision:
        """
        Record a request and decide admission.

        Args:
            route_key: Key from build_route_key.

        Returns:
            Decision with a retry hint in whole seconds when denied.
        """
        async with self._lock:
            now = self.clock()
            window = self._windows.get(route_key)

            if window is None or now >= window.window_start + self.window_seconds:
                self._windows[route_key] = RateWindow(window_start=now, count=1)
                return RateLimitDecision(allowed=True)

            window.count += 1
            if window.count <= self.max_requests:
                return RateLimitDecision(allowed=True)

            remaining = window.window_start + self.window_seconds - now
            return RateLimitDecision(
                allowed=False,
                retry_after_seconds=max(1, math.ceil(remaining)),
            )

    def count(self, route_key: str) -> int:
        """Get hits recorded in a key's current window."""
        window = self._windows.get(route_key)
        return window.count if window else 0

    @property
    def tracked_keys(self) -> int:
        """Get number of keys with a window."""
        return len(self._windows)
