"""
Entry point for the Binance proxy.

Usage:
    python -m binance_proxy
    binance-proxy  # if installed via pip
"""

import sys


# Try to use uvloop for better performance
try:
    import uvloop  # noqa: F401

    UVLOOP_AVAILABLE = True
except ImportError:
    UVLOOP_AVAILABLE = False


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    import uvicorn
    from pydantic import ValidationError

    from binance_proxy import __version__
    from binance_proxy.api.server import create_app
    from binance_proxy.config.settings import get_settings
    from binance_proxy.telemetry.logger import setup_logging

    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║     BINANCE REST PROXY v{__version__:<32}      ║
║                                                               ║
║     Signed, retried and rate-limited access to Binance spot   ║
╚═══════════════════════════════════════════════════════════════╝
    """
    )

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Configuration error: {e}")
        print("\nCheck your .env file, for example:")
        print("  BINANCE_API_KEY=your_api_key")
        print("  BINANCE_SECRET_KEY=your_secret_key")
        print("  RATE_LIMIT_MAX_REQUESTS=30")
        return 1

    use_uvloop = settings.use_uvloop and UVLOOP_AVAILABLE

    print("Configuration:")
    print(f"  Environment:    {settings.app_env}")
    print(f"  Upstream:       {settings.rest_base_url}")
    print(f"  TLS verify:     {'Enabled' if settings.verify_ssl else 'DISABLED'}")
    print(f"  Retries:        {settings.max_retries} (step {settings.retry_base_delay_ms}ms)")
    print(f"  Basic auth:     {'Enabled' if settings.basic_auth_enabled else 'Disabled'}")
    if settings.rate_limit_enabled:
        print(
            f"  Rate limit:     {settings.rate_limit_max_requests} req / "
            f"{settings.rate_limit_window_seconds}s"
        )
    else:
        print("  Rate limit:     Disabled")
    print(f"  uvloop:         {'Enabled' if use_uvloop else 'Disabled'}")
    print(f"  Listening on:   http://{settings.host}:{settings.port}")
    print()

    if not settings.verify_ssl:
        print("⚠️  WARNING: upstream TLS verification is disabled!")
        print("    Use this only against non-production endpoints.")
        print()

    async_logger = setup_logging(settings.log_level, settings.log_file)

    try:
        uvicorn.run(
            create_app(settings),
            host=settings.host,
            port=settings.port,
            loop="uvloop" if use_uvloop else "asyncio",
            log_level=settings.log_level.lower(),
        )
        return 0
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 0
    finally:
        async_logger.stop()


if __name__ == "__main__":
    sys.exit(main())
