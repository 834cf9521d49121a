"""
Binance REST gateway.

Turns "call endpoint E with params P" into a signed or public HTTP
exchange and normalizes whatever happens into a GatewayResult:
- Automatic timestamp injection and HMAC signing when credentials exist
- Signed GET travels in the URL, signed POST/DELETE in a form body
- Fast JSON parsing with orjson
"""

import logging
from typing import Any

import orjson

from binance_proxy.config.constants import (
    BINANCE_REST_URL,
    MSG_CONNECTION_ERROR,
    MSG_CREDENTIALS_REQUIRED,
    MSG_HTTP_ERROR,
    MSG_INVALID_RESPONSE,
)
from binance_proxy.core.types import (
    Credentials,
    GatewayResult,
    HttpError,
    HttpMethod,
    HttpOutcome,
    Params,
    PreparedRequest,
    RequestSpec,
    TransportError,
)
from binance_proxy.exchange.executor import RequestExecutor, build_headers
from binance_proxy.execution.signer import RequestSigner, encode_params


logger = logging.getLogger(__name__)


class BinanceGateway:
    """
    Authenticated-vs-public request builder for Binance.

    A gateway is cheap to build: create one per inbound request with that
    request's credentials, sharing a single RequestExecutor.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        credentials: Credentials | None = None,
        base_url: str = BINANCE_REST_URL,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            executor: Shared request executor.
            credentials: Optional API/secret key pair.
            base_url: Binance REST base URL.
        """
        self._executor = executor
        self._credentials = credentials or Credentials()
        self._base_url = base_url.rstrip("/")
        self._signer = (
            RequestSigner(self._credentials.secret_key)  # type: ignore[arg-type]
            if self._credentials.is_complete
            else None
        )

    @property
    def is_authenticated(self) -> bool:
        return self._signer is not None

    # =========================================================================
    # Public API
    # =========================================================================

    async def get(self, endpoint: str, params: Params | None = None) -> GatewayResult:
        """GET, signed when credentials are present."""
        return await self.request(RequestSpec(HttpMethod.GET, endpoint, dict(params or {})))

    async def post(self, endpoint: str, params: Params | None = None) -> GatewayResult:
        """Signed POST. Requires credentials."""
        return await self.request(RequestSpec(HttpMethod.POST, endpoint, dict(params or {})))

    async def delete(self, endpoint: str, params: Params | None = None) -> GatewayResult:
        """Signed DELETE. Requires credentials."""
        return await self.request(RequestSpec(HttpMethod.DELETE, endpoint, dict(params or {})))

    async def request(self, spec: RequestSpec) -> GatewayResult:
        """
        Execute a request spec.

        Args:
            spec: Method, endpoint path and parameters.

        Returns:
            Normalized result; never raises for upstream failures.
        """
        if spec.method != HttpMethod.GET and self._signer is None:
            logger.info(f"Rejected {spec.method.value} {spec.endpoint}: missing credentials")
            return GatewayResult.fail(MSG_CREDENTIALS_REQUIRED)

        outcome = await self._executor.execute_prepared(lambda: self._prepare(spec))
        return self._normalize(outcome)

    # =========================================================================
    # Request Building
    # =========================================================================

    def _prepare(self, spec: RequestSpec) -> PreparedRequest:
        """Build the outbound request for one attempt."""
        url = f"{self._base_url}{spec.endpoint}"

        if self._signer is None:
            query = encode_params(spec.params)
            if query:
                url = f"{url}?{query}"
            return PreparedRequest(
                method=spec.method,
                url=url,
                headers=build_headers(self._credentials.api_key, has_body=False),
            )

        signed_query = self._signer.signed_query(spec.params)

        if spec.method == HttpMethod.GET:
            return PreparedRequest(
                method=spec.method,
                url=f"{url}?{signed_query}",
                headers=build_headers(self._credentials.api_key, has_body=False),
            )

        return PreparedRequest(
            method=spec.method,
            url=url,
            headers=build_headers(self._credentials.api_key, has_body=True),
            body=signed_query,
        )

    # =========================================================================
    # Response Normalization
    # =========================================================================

    @staticmethod
    def _normalize(outcome: HttpOutcome) -> GatewayResult:
        """Map an executor outcome to the uniform result shape."""
        if isinstance(outcome, TransportError):
            return GatewayResult.fail(f"{MSG_CONNECTION_ERROR}{outcome.message}")

        if isinstance(outcome, HttpError):
            return GatewayResult.fail(
                outcome.message or f"{MSG_HTTP_ERROR}{outcome.status}",
                http_status=outcome.status,
            )

        if not outcome.body:
            return GatewayResult.ok({})

        try:
            data: Any = orjson.loads(outcome.body)
        except orjson.JSONDecodeError:
            text = outcome.body.decode("utf-8", errors="replace")
            logger.error(f"Undecodable upstream response ({len(outcome.body)} bytes)")
            return GatewayResult.fail(f"{MSG_INVALID_RESPONSE}{text}")

        return GatewayResult.ok(data if data is not None else {})
