"""Request admission (Basic auth and rate limiting)."""

from binance_proxy.admission.gate import AdmissionGate, parse_basic_auth


__all__ = [
    "AdmissionGate",
    "parse_basic_auth",
]
