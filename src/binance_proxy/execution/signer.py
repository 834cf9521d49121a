"""
HMAC-SHA256 request signing for Binance API.

Builds the canonical query string for a parameter bag and signs it.
The same string is sent on the wire, so the signature always verifies
against exactly what Binance receives.
"""

import hashlib
import hmac
from decimal import Decimal
from urllib.parse import urlencode

import orjson

from binance_proxy.core.types import Params, ParamValue
from binance_proxy.utils.time import get_timestamp_ms


def _encode_value(value: ParamValue) -> str:
    """Render a parameter value the way Binance expects it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        # Array parameters such as `symbols` travel as compact JSON
        return orjson.dumps(value).decode()
    if isinstance(value, float):
        # Plain decimal digits, never 1e-05
        return format(Decimal(repr(value)), "f")
    return str(value)


def encode_params(params: Params) -> str:
    """
    Build the canonical query string for a parameter mapping.

    Keys keep their insertion order; values are form-urlencoded.

    Args:
        params: Request parameters.

    Returns:
        URL-encoded query string (empty if no params).
    """
    return urlencode([(key, _encode_value(value)) for key, value in params.items()])


def sign(query_string: str, secret_key: str) -> str:
    """
    Generate HMAC-SHA256 signature for a query string.

    Args:
        query_string: URL-encoded query parameters.
        secret_key: Binance secret key.

    Returns:
        Lower-case hexadecimal signature string.
    """
    return hmac.new(
        secret_key.encode("utf-8"),
        query_string.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


class RequestSigner:
    """
    Signs requests for Binance API authentication.

    Uses HMAC-SHA256 as required by Binance.
    """

    __slots__ = ("_secret_bytes",)

    def __init__(self, secret_key: str) -> None:
        """
        Initialize signer with API secret.

        Args:
            secret_key: Binance API secret key.
        """
        if not secret_key:
            raise ValueError("Secret key cannot be empty")
        # Pre-encode secret for faster HMAC computation
        self._secret_bytes = secret_key.encode("utf-8")

    def sign(self, query_string: str) -> str:
        """Sign a canonical query string."""
        return hmac.new(
            self._secret_bytes,
            query_string.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def signed_query(self, params: Params) -> str:
        """
        Sign request parameters and return complete query string.

        A fresh timestamp replaces any caller-supplied one so the request
        carries exactly one. The input mapping is not modified.

        Args:
            params: Request parameters.

        Returns:
            ``<query>&signature=<hex>``
        """
        signed_params: dict[str, ParamValue] = {
            key: value for key, value in params.items() if key not in ("timestamp", "signature")
        }
        signed_params["timestamp"] = get_timestamp_ms()

        query_string = encode_params(signed_params)
        return f"{query_string}&signature={self.sign(query_string)}"
