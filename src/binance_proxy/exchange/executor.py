"""
Async HTTP request executor.

Issues outbound calls to Binance with:
- A shared aiohttp session with connection pooling and keep-alive
- Configurable TLS verification
- Retry of 429/5xx responses under a RetryPolicy
- Classification of every attempt into an HttpOutcome

Failures are returned as values, never raised.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp
import orjson
from yarl import URL

from binance_proxy.config.constants import (
    CONTENT_TYPE_FORM,
    CONTENT_TYPE_JSON,
    DEFAULT_TIMEOUT_SECONDS,
    HEADER_API_KEY,
    MSG_UNKNOWN_ERROR,
)
from binance_proxy.core.types import (
    HttpError,
    HttpMethod,
    HttpOutcome,
    PreparedRequest,
    Success,
    TransportError,
)
from binance_proxy.exchange.retry import RetryPolicy
from binance_proxy.utils.time import LatencyTimer, format_duration_us


logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


def build_headers(api_key: str | None, has_body: bool) -> dict[str, str]:
    """
    Build request headers.

    Args:
        api_key: Binance API key, if one is configured.
        has_body: Whether the request carries a form body.

    Returns:
        Header mapping.
    """
    headers = {"Accept": CONTENT_TYPE_JSON}
    if has_body:
        headers["Content-Type"] = CONTENT_TYPE_FORM
    if api_key:
        headers[HEADER_API_KEY] = api_key
    return headers


def extract_error_message(body: bytes) -> str | None:
    """Pull Binance's ``msg`` field out of an error body, if there is one."""
    if not body:
        return None
    try:
        decoded = orjson.loads(body)
    except orjson.JSONDecodeError:
        return None
    if isinstance(decoded, dict):
        msg = decoded.get("msg")
        if isinstance(msg, str) and msg:
            return msg
    return None


class RequestExecutor:
    """
    Executes HTTP requests against the Binance REST API.

    One executor (and its session) is shared by all in-flight requests.
    Attempts for a single call are strictly sequential; the backoff
    sleep only suspends the calling task.
    """

    def __init__(
        self,
        retry_policy: RetryPolicy | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        verify_ssl: bool = True,
        session: aiohttp.ClientSession | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """
        Initialize the executor.

        Args:
            retry_policy: Retry policy (defaults to 2 retries, 200ms step).
            timeout_seconds: Per-attempt timeout.
            verify_ssl: Verify certificate chain and hostname. Disabling
                this skips both checks and is meant for non-production use.
            session: Optional pre-built session (mainly for tests).
            sleep: Awaitable sleep used for backoff.
        """
        self._retry_policy = retry_policy or RetryPolicy()
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._verify_ssl = verify_ssl
        self._session = session
        self._owns_session = session is None
        self._sleep = sleep

        if not verify_ssl:
            logger.warning("TLS verification disabled for upstream requests")

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    @property
    def verify_ssl(self) -> bool:
        return self._verify_ssl

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=100,
                limit_per_host=50,
                keepalive_timeout=30,
                enable_cleanup_closed=True,
                force_close=False,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self._timeout,
            )
            self._owns_session = True

        return self._session

    async def close(self) -> None:
        """Close the session if this executor created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def execute(
        self,
        method: HttpMethod,
        url: str,
        headers: dict[str, str],
        body: str | None = None,
    ) -> HttpOutcome:
        """
        Execute a request, retrying transient upstream failures.

        Args:
            method: HTTP method.
            url: Full URL, query string already encoded.
            headers: Request headers.
            body: Optional form-encoded body.

        Returns:
            Outcome of the final attempt.
        """
        request = PreparedRequest(method=method, url=url, headers=headers, body=body)
        return await self.execute_prepared(lambda: request)

    async def execute_prepared(self, prepare: Callable[[], PreparedRequest]) -> HttpOutcome:
        """
        Execute a request built fresh for every attempt.

        Signed requests use this so each retry carries a new timestamp
        and signature.

        Args:
            prepare: Builds the request for the next attempt.

        Returns:
            Outcome of the final attempt.
        """
        policy = self._retry_policy

        for attempt in range(policy.max_attempts):
            if attempt > 0:
                delay = policy.delay_seconds(attempt)
                logger.debug(f"Backing off {delay:.3f}s before attempt {attempt}")
                await self._sleep(delay)

            request = prepare()
            outcome = await self._attempt(request, attempt)

            if isinstance(outcome, TransportError):
                return outcome

            if policy.should_retry(outcome.status, attempt):
                logger.warning(
                    f"Upstream returned {outcome.status} for {request.method.value} "
                    f"{_path_of(request.url)}, retrying "
                    f"({attempt + 1}/{policy.max_retries})"
                )
                continue

            if policy.is_retryable_status(outcome.status):
                logger.error(
                    f"Upstream still returning {outcome.status} for {request.method.value} "
                    f"{_path_of(request.url)} after {policy.max_attempts} attempts"
                )
                break

            return outcome

        return TransportError(MSG_UNKNOWN_ERROR)

    async def _attempt(self, request: PreparedRequest, attempt: int) -> HttpOutcome:
        """Perform one HTTP exchange and classify it."""
        session = await self._get_session()

        try:
            with LatencyTimer() as timer:
                async with session.request(
                    request.method.value,
                    URL(request.url, encoded=True),
                    headers=request.headers,
                    data=request.body,
                    ssl=self._verify_ssl,
                    timeout=self._timeout,
                ) as response:
                    status = response.status
                    body = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            message = str(e) or type(e).__name__
            logger.error(
                f"Transport error on {request.method.value} {_path_of(request.url)}: {message}"
            )
            return TransportError(message)

        logger.debug(
            f"{request.method.value} {_path_of(request.url)} -> {status} "
            f"in {format_duration_us(timer.latency_us)} (attempt {attempt})"
        )

        if status >= 400:
            return HttpError(status=status, message=extract_error_message(body))
        return Success(status=status, body=body)

    async def __aenter__(self) -> "RequestExecutor":
        """Async context manager entry."""
        await self._get_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()


def _path_of(url: str) -> str:
    """URL without its query string, which may carry a signature."""
    return url.split("?", 1)[0]
