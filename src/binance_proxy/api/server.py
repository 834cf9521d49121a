"""
FastAPI server for the Binance proxy.

Routes ``/[api/]<route class>/<action>`` through admission and the
dispatch table, and serializes every result as JSON with a boolean
``success`` field.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import orjson
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from binance_proxy import __version__
from binance_proxy.admission.gate import AdmissionGate
from binance_proxy.api.handlers import ROUTES, HandlerContext, RequestParams
from binance_proxy.config.constants import (
    MSG_ACTION_NOT_FOUND,
    MSG_ENDPOINT_NOT_FOUND,
    MSG_INTERNAL_ERROR,
    MSG_METHOD_NOT_ALLOWED,
)
from binance_proxy.config.settings import Settings, get_settings
from binance_proxy.exceptions import ProxyError, RouteNotFoundError
from binance_proxy.exchange.executor import RequestExecutor
from binance_proxy.exchange.retry import RetryPolicy


logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ["GET", "POST", "DELETE"]


class OrjsonResponse(JSONResponse):
    """JSON response rendered with orjson."""

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, option=orjson.OPT_NON_STR_KEYS)


def error_response(
    message: str,
    status_code: int,
    headers: dict[str, str] | None = None,
) -> OrjsonResponse:
    return OrjsonResponse(
        {"success": False, "error": message},
        status_code=status_code,
        headers=headers,
    )


def build_executor(settings: Settings) -> RequestExecutor:
    """Create the shared executor from settings."""
    return RequestExecutor(
        retry_policy=RetryPolicy(
            max_retries=settings.max_retries,
            base_delay_ms=settings.retry_base_delay_ms,
        ),
        timeout_seconds=settings.request_timeout_seconds,
        verify_ssl=settings.verify_ssl,
    )


def create_app(
    settings: Settings | None = None,
    executor: RequestExecutor | None = None,
    gate: AdmissionGate | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings (defaults to get_settings()).
        executor: Shared executor (built from settings if omitted).
        gate: Admission gate (built from settings if omitted).

    Returns:
        FastAPI app.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.settings = settings
        app.state.executor = executor or build_executor(settings)
        app.state.gate = gate or AdmissionGate.from_settings(settings)
        logger.info(
            f"Proxy ready: upstream={settings.rest_base_url} "
            f"basic_auth={'on' if settings.basic_auth_enabled else 'off'} "
            f"rate_limit={'on' if settings.rate_limit_enabled else 'off'}"
        )
        yield
        await app.state.executor.close()

    app = FastAPI(
        title="Binance Proxy",
        version=__version__,
        lifespan=lifespan,
        default_response_class=OrjsonResponse,
        docs_url=None,
        redoc_url=None,
    )
    app.get("/")(get_index)
    app.get("/api")(get_index)
    app.get("/health")(get_health)
    # Prefixed routes first so "/api/<class>" is not read as class "api"
    for prefix in ("/api", ""):
        app.api_route(f"{prefix}/{{route_class}}/{{action}}", methods=SUPPORTED_METHODS)(dispatch)
        # Extra path segments are ignored
        app.api_route(
            f"{prefix}/{{route_class}}/{{action}}/{{rest:path}}", methods=SUPPORTED_METHODS
        )(dispatch_extra)
        app.api_route(f"{prefix}/{{route_class}}", methods=SUPPORTED_METHODS)(dispatch_class)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    return app


async def get_index(request: Request) -> OrjsonResponse:
    return OrjsonResponse({"success": True, "message": "Binance API REST - Python"})


async def get_health(request: Request) -> OrjsonResponse:
    settings: Settings = request.app.state.settings
    return OrjsonResponse({"success": True, "status": "ok", "upstream": settings.rest_base_url})


async def read_params(request: Request) -> RequestParams:
    """
    Extract request parameters.

    GET reads the query string (repeated keys become lists); POST and
    DELETE read a JSON object body, anything else counts as empty.
    """
    if request.method == "GET":
        params: dict[str, Any] = {}
        for key, value in request.query_params.multi_items():
            if key in params:
                existing = params[key]
                params[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
            else:
                params[key] = value
        return params

    raw = await request.body()
    if not raw:
        return {}
    try:
        decoded = orjson.loads(raw)
    except orjson.JSONDecodeError:
        return {}
    return decoded if isinstance(decoded, dict) else {}


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> OrjsonResponse:
    """Render router-level errors (unmatched path, method) in the proxy's shape."""
    if exc.status_code == 404:
        message = MSG_ENDPOINT_NOT_FOUND
    elif exc.status_code == 405:
        message = MSG_METHOD_NOT_ALLOWED
    else:
        message = str(exc.detail)
    return error_response(message, exc.status_code, headers=exc.headers)


async def dispatch_extra(
    request: Request, route_class: str, action: str, rest: str
) -> OrjsonResponse:
    """Route with trailing segments after the action."""
    return await dispatch(request, route_class, action)


async def dispatch_class(request: Request, route_class: str) -> OrjsonResponse:
    """Route class without an action."""
    return await dispatch(request, route_class, "")


async def dispatch(request: Request, route_class: str, action: str) -> OrjsonResponse:
    """Admit, route and execute a proxied request."""
    gate: AdmissionGate = request.app.state.gate
    client_id = request.client.host if request.client else None

    decision = await gate.admit(
        route_class,
        request.method,
        client_id,
        request.headers.get("authorization"),
    )
    if not decision.allowed:
        return OrjsonResponse(
            decision.to_dict(),
            status_code=decision.status_code,
            headers=decision.headers,
        )

    ctx = HandlerContext(settings=request.app.state.settings, executor=request.app.state.executor)

    try:
        routes = ROUTES.get(route_class)
        if routes is None:
            raise RouteNotFoundError(MSG_ENDPOINT_NOT_FOUND)
        route = routes.get(action)
        if route is None or route.method.value != request.method:
            raise RouteNotFoundError(MSG_ACTION_NOT_FOUND)

        params = await read_params(request)
        result = await route.handler(params, ctx)
    except ProxyError as e:
        return error_response(e.message, e.status_code)
    except Exception as e:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        message = str(e) if ctx.settings.app_debug else MSG_INTERNAL_ERROR
        return error_response(message, 500)

    return OrjsonResponse(result.to_dict(), status_code=result.status_code)
