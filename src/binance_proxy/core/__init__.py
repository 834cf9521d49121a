"""Core types shared across the proxy."""

from binance_proxy.core.types import (
    AdmissionDecision,
    Credentials,
    GatewayResult,
    HttpError,
    HttpMethod,
    HttpOutcome,
    Params,
    ParamValue,
    PreparedRequest,
    RateLimitDecision,
    RequestSpec,
    Success,
    TransportError,
)


__all__ = [
    "AdmissionDecision",
    "Credentials",
    "GatewayResult",
    "HttpError",
    "HttpMethod",
    "HttpOutcome",
    "ParamValue",
    "Params",
    "PreparedRequest",
    "RateLimitDecision",
    "RequestSpec",
    "Success",
    "TransportError",
]
