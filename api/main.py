"""
API main entry point.

Starts the HTTP API on top of the SQL record store.
"""

import asyncio
import signal

from aiohttp import web
from cryptography.fernet import Fernet
from loguru import logger

from api.app import create_app
from downline.config.database import dispose_engine, get_session_maker
from downline.config.logging import setup_logging
from downline.config.settings import settings
from downline.repositories.sql_record_store import SqlRecordStore
from downline.services.downline_service import DownlineService
from downline.services.identity import TokenIdentityResolver


def build_resolver() -> TokenIdentityResolver:
    """Create identity resolver from settings."""
    secret = settings.token_secret
    if not secret:
        # Only reachable outside production (settings validation)
        logger.warning("TOKEN_SECRET not set, using an ephemeral key (DEV ONLY)")
        secret = Fernet.generate_key().decode()
    return TokenIdentityResolver(secret, settings.token_ttl_seconds)


async def start_api_server(
    app: web.Application,
    host: str,
    port: int,
) -> tuple[web.AppRunner, web.TCPSite]:
    """
    Start API server.

    Args:
        app: Application to serve
        host: Host to bind to
        port: Port to bind to

    Returns:
        Tuple of (AppRunner, TCPSite) for cleanup
    """
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"API server started on {host}:{port}")
    return runner, site


async def stop_api_server(runner: web.AppRunner, timeout: int = 5) -> None:
    """
    Stop API server gracefully.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    logger.info("Stopping API server...")
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
        logger.info("API server stopped successfully")
    except TimeoutError:
        logger.warning(f"API server cleanup timed out after {timeout}s")


async def main() -> None:
    """Initialize and run the API."""
    setup_logging()

    store = SqlRecordStore(get_session_maker(), settings.store_max_concurrency)
    service = DownlineService.from_settings(store, settings)
    app = create_app(service, build_resolver())

    runner, _ = await start_api_server(app, settings.api_host, settings.api_port)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await stop_event.wait()
    finally:
        await stop_api_server(runner)
        await dispose_engine()


def run() -> None:
    """Console entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
