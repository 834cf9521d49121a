"""
Retry policy for upstream requests.

Rate-limited (429) and server-error (5xx) responses are retried with a
linear backoff. Everything else, including transport failures, is final.
"""

from dataclasses import dataclass

from binance_proxy.config.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BASE_DELAY_MS,
    RETRYABLE_STATUS_CODES,
)


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """
    Linear backoff retry policy.

    Attempts are numbered 0..max_retries, so max_retries=2 allows
    three attempts in total.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_ms: int = DEFAULT_RETRY_BASE_DELAY_MS

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.base_delay_ms < 0:
            raise ValueError("base_delay_ms cannot be negative")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @staticmethod
    def is_retryable_status(status: int) -> bool:
        """Check if a status signals a transient upstream condition."""
        return status in RETRYABLE_STATUS_CODES or 500 <= status < 600

    def should_retry(self, status: int, attempt: int) -> bool:
        """
        Decide whether to retry after a response.

        Args:
            status: HTTP status of the response.
            attempt: Zero-based number of the attempt that produced it.

        Returns:
            True if the status is transient and attempts remain.
        """
        return self.is_retryable_status(status) and attempt < self.max_retries

    def delay_ms(self, attempt: int) -> int:
        """
        Backoff before a given attempt.

        Args:
            attempt: Zero-based attempt about to be made.

        Returns:
            Delay in milliseconds (0 for the first attempt).
        """
        if attempt <= 0:
            return 0
        return self.base_delay_ms * attempt

    def delay_seconds(self, attempt: int) -> float:
        return self.delay_ms(attempt) / 1000.0
