"""Exceptions raised by the handler layer and converted to JSON responses."""


class ProxyError(Exception):
    """Base exception for errors reported to the proxy's callers."""

    status_code: int = 400

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ProxyError):
    """A required request parameter is missing or empty."""

    pass


class RouteNotFoundError(ProxyError):
    """Unknown route class or action."""

    status_code = 404
