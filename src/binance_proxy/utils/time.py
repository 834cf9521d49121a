"""
Time utilities.

Wall-clock milliseconds for Binance request timestamps, and a monotonic
timer for logging upstream call durations.
"""

import time


def get_timestamp_ms() -> int:
    """
    Get current Unix timestamp in milliseconds.

    Binance rejects signed requests whose timestamp drifts outside
    recvWindow, so this is read fresh for every attempt.
    """
    return time.time_ns() // 1_000_000


class LatencyTimer:
    """
    Context manager measuring elapsed time on the monotonic clock.

    Example:
        >>> with LatencyTimer() as timer:
        ...     await session.get(url)
        >>> format_duration_us(timer.latency_us)
        '84.12ms'
    """

    __slots__ = ("_start_ns", "latency_us")

    def __init__(self) -> None:
        self._start_ns = 0
        self.latency_us = 0

    def __enter__(self) -> "LatencyTimer":
        self._start_ns = time.perf_counter_ns()
        return self

    def __exit__(self, *args: object) -> None:
        self.latency_us = (time.perf_counter_ns() - self._start_ns) // 1000


def format_duration_us(duration_us: int) -> str:
    """Render a duration as μs, ms or s depending on magnitude."""
    if duration_us >= 1_000_000:
        return f"{duration_us / 1_000_000:.2f}s"
    if duration_us >= 1000:
        return f"{duration_us / 1000:.2f}ms"
    return f"{duration_us}μs"
