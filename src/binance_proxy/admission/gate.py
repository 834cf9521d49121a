"""
Request admission: HTTP Basic auth followed by rate limiting.

Runs before any handler so rejected requests never reach Binance.
"""

import base64
import binascii
import hmac
import logging

from binance_proxy.config.constants import (
    BASIC_AUTH_REALM,
    MSG_RATE_LIMITED,
    MSG_UNAUTHORIZED,
    RATE_LIMITED_ROUTE_CLASSES,
)
from binance_proxy.config.settings import Settings
from binance_proxy.core.types import AdmissionDecision
from binance_proxy.exchange.rate_limiter import RateLimiter, build_route_key


logger = logging.getLogger(__name__)

ADMITTED = AdmissionDecision(allowed=True)


def parse_basic_auth(header: str | None) -> tuple[str, str] | None:
    """
    Decode an ``Authorization: Basic ...`` header.

    Returns:
        (username, password), or None if absent or malformed.
    """
    if not header:
        return None

    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None

    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


class AdmissionGate:
    """
    Decides whether an inbound request may reach the gateway.

    Basic auth is enforced only when both a username and password are
    configured. Rate limiting applies to account and trading routes only.
    """

    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        """
        Initialize the gate.

        Args:
            username: Required Basic auth username.
            password: Required Basic auth password.
            rate_limiter: Limiter for gated routes; None disables limiting.
        """
        self._username = username
        self._password = password
        self._rate_limiter = rate_limiter

    @classmethod
    def from_settings(cls, settings: Settings) -> "AdmissionGate":
        """Build a gate from application settings."""
        limiter = (
            RateLimiter(
                max_requests=settings.rate_limit_max_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
            if settings.rate_limit_enabled
            else None
        )
        password = (
            settings.basic_auth_password.get_secret_value()
            if settings.basic_auth_password
            else None
        )
        return cls(
            username=settings.basic_auth_username,
            password=password,
            rate_limiter=limiter,
        )

    @property
    def auth_enabled(self) -> bool:
        return bool(self._username) and bool(self._password)

    @property
    def rate_limiter(self) -> RateLimiter | None:
        return self._rate_limiter

    def check_auth(self, authorization: str | None) -> bool:
        """Check presented credentials against the configured pair."""
        if not self.auth_enabled:
            return True

        presented = parse_basic_auth(authorization)
        if presented is None:
            return False

        username, password = presented
        # Both comparisons always run
        user_ok = hmac.compare_digest(username.encode(), self._username.encode())  # type: ignore[union-attr]
        pass_ok = hmac.compare_digest(password.encode(), self._password.encode())  # type: ignore[union-attr]
        return user_ok and pass_ok

    async def admit(
        self,
        route_class: str,
        method: str,
        client_id: str | None,
        authorization: str | None = None,
    ) -> AdmissionDecision:
        """
        Run auth and rate limiting for a request.

        Args:
            route_class: Endpoint class of the request.
            method: HTTP method.
            client_id: Caller's network address, if known.
            authorization: Raw Authorization header.

        Returns:
            ADMITTED, or a 401/429 rejection.
        """
        if not self.check_auth(authorization):
            logger.info(f"Rejected {method} /{route_class} from {client_id}: bad credentials")
            return AdmissionDecision(
                allowed=False,
                status_code=401,
                error=MSG_UNAUTHORIZED,
                headers={"WWW-Authenticate": f'Basic realm="{BASIC_AUTH_REALM}"'},
            )

        if self._rate_limiter is None or route_class not in RATE_LIMITED_ROUTE_CLASSES:
            return ADMITTED

        key = build_route_key(route_class, method, client_id)
        decision = await self._rate_limiter.hit(key)
        if decision.allowed:
            return ADMITTED

        logger.info(f"Rate limited {key}, retry after {decision.retry_after_seconds}s")
        return AdmissionDecision(
            allowed=False,
            status_code=429,
            error=MSG_RATE_LIMITED.format(seconds=decision.retry_after_seconds),
            headers={"Retry-After": str(decision.retry_after_seconds)},
            retry_after_seconds=decision.retry_after_seconds,
        )
