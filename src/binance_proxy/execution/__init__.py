"""Request signing for authenticated Binance calls."""

from binance_proxy.execution.signer import RequestSigner, encode_params, sign


__all__ = [
    "RequestSigner",
    "encode_params",
    "sign",
]
