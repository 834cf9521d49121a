"""
Type definitions for the Binance proxy.

This module contains the dataclasses and enums that flow through the
signed-request pipeline: credentials, request specs, per-attempt HTTP
outcomes, the uniform gateway result, and admission decisions. Using
slots=True for memory efficiency and faster attribute access.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# Scalar-or-list value accepted in a Binance parameter bag
ParamValue = str | int | float | bool | list[str]
Params = Mapping[str, ParamValue]


# =============================================================================
# Enums
# =============================================================================


class HttpMethod(str, Enum):
    """HTTP methods supported by the gateway."""

    GET = "GET"
    POST = "POST"
    DELETE = "DELETE"


# =============================================================================
# Request Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class Credentials:
    """
    Binance API credentials.

    Both keys present means authenticated mode. A lone API key is still
    sent as X-MBX-APIKEY but never enables signing.
    """

    api_key: str | None = None
    secret_key: str | None = None

    @property
    def is_complete(self) -> bool:
        """Check if both keys are present and non-empty."""
        return bool(self.api_key) and bool(self.secret_key)

    def __repr__(self) -> str:
        # Keys never show up in logs or tracebacks
        return (
            f"Credentials(api_key={'***' if self.api_key else None}, "
            f"secret_key={'***' if self.secret_key else None})"
        )


@dataclass(slots=True)
class RequestSpec:
    """An abstract call to a Binance endpoint."""

    method: HttpMethod
    endpoint: str
    params: dict[str, ParamValue] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class PreparedRequest:
    """A fully built outbound HTTP request for a single attempt."""

    method: HttpMethod
    url: str
    headers: dict[str, str]
    body: str | None = None


# =============================================================================
# Outcome Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class TransportError:
    """Connection, TLS, timeout or empty-response failure."""

    message: str


@dataclass(slots=True, frozen=True)
class HttpError:
    """HTTP response with status >= 400."""

    status: int
    message: str | None = None


@dataclass(slots=True, frozen=True)
class Success:
    """HTTP response with a non-error status."""

    status: int
    body: bytes = b""


HttpOutcome = TransportError | HttpError | Success


@dataclass(slots=True, frozen=True)
class GatewayResult:
    """
    Uniform result returned by the gateway for every endpoint.

    Serializes to ``{"success": true, "data": ...}`` on success and
    ``{"success": false, "error": ..., "code": ...}`` on failure.
    """

    success: bool
    data: Any = None
    error: str | None = None
    http_status: int | None = None

    @classmethod
    def ok(cls, data: Any) -> "GatewayResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, http_status: int | None = None) -> "GatewayResult":
        return cls(success=False, error=error, http_status=http_status)

    @property
    def status_code(self) -> int:
        """HTTP status the formatting layer should emit."""
        if self.success:
            return 200
        return self.http_status or 400

    def to_dict(self) -> dict[str, Any]:
        """Convert to response body."""
        if self.success:
            return {"success": True, "data": self.data}
        body: dict[str, Any] = {"success": False, "error": self.error}
        if self.http_status is not None:
            body["code"] = self.http_status
        return body


# =============================================================================
# Admission Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class RateLimitDecision:
    """Result of a rate limiter hit."""

    allowed: bool
    retry_after_seconds: int = 0


@dataclass(slots=True, frozen=True)
class AdmissionDecision:
    """Whether a request may reach the gateway, and how to reject it if not."""

    allowed: bool
    status_code: int = 200
    error: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    retry_after_seconds: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert a rejection to response body."""
        body: dict[str, Any] = {"success": False, "error": self.error}
        if self.retry_after_seconds is not None:
            body["retry_after"] = self.retry_after_seconds
        return body
