#!/usr/bin/env python3
"""PortalJS OpenData MCP server entrypoint with graceful startup/shutdown."""

import asyncio
import signal
import sys
import time
from typing import Optional

from mcp.server import NotificationOptions
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server

from . import __version__
from .config import settings
from .server import app, get_server_status, perform_health_check, portal_client
from .utils.logger import get_logger, setup_logging

SERVER_NAME = "portaljs-opendata-server"

# Global shutdown event
_shutdown_event: Optional[asyncio.Event] = None
_startup_time = None


async def startup() -> None:
    """Perform startup tasks."""
    global _startup_time
    _startup_time = time.time()

    logger = get_logger("main")
    logger.info(
        "Starting PortalJS OpenData MCP Server",
        extra={
            "version": __version__,
            "environment": settings.environment,
            "portal_base_url": settings.portal_base_url,
            "debug": settings.debug,
        },
    )

    # An unreachable portal at startup is logged, not fatal
    logger.info("Performing initial health check...")
    health_status = await perform_health_check()
    if health_status["status"] == "healthy":
        logger.info("Initial health check passed")

    logger.info("Server startup completed successfully")


async def shutdown() -> None:
    """Perform graceful shutdown tasks."""
    logger = get_logger("main")
    logger.info("Starting graceful shutdown...")

    try:
        await portal_client.aclose()

        status = await get_server_status()
        if _startup_time:
            uptime = time.time() - _startup_time
            logger.info(
                f"Server shutdown completed. Uptime: {uptime:.2f} seconds",
                extra={"cache": status["details"].get("cache")},
            )
        else:
            logger.info("Server shutdown completed")

    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


def signal_handler(signum: int, frame: Optional[object]) -> None:
    """Handle shutdown signals."""
    logger = get_logger("main")
    signal_name = signal.Signals(signum).name
    logger.info(f"Received {signal_name} signal, initiating shutdown...")
    if _shutdown_event is not None:
        _shutdown_event.set()


async def main() -> None:
    """Start the PortalJS OpenData MCP server on stdio."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    logger = setup_logging(
        level=settings.log_level,
        format_type=settings.log_format,
        include_extra=settings.log_include_extra,
    )

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await startup()

        async with stdio_server() as (read_stream, write_stream):
            logger.info("MCP server started, waiting for requests...")

            server_task = asyncio.create_task(
                app.run(
                    read_stream,
                    write_stream,
                    InitializationOptions(
                        server_name=SERVER_NAME,
                        server_version=__version__,
                        capabilities=app.get_capabilities(
                            notification_options=NotificationOptions(),
                            experimental_capabilities={},
                        ),
                    ),
                )
            )

            # Wait for either shutdown signal or server completion
            done, pending = await asyncio.wait(
                [server_task, asyncio.create_task(_shutdown_event.wait())],
                return_when=asyncio.FIRST_COMPLETED,
            )

            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            if server_task in done:
                try:
                    await server_task
                except Exception as e:
                    logger.error(f"Server task failed: {e}", exc_info=True)
                    raise

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Server crashed: {e}", exc_info=True)
        raise
    finally:
        await shutdown()


def run() -> None:
    """Console script entrypoint."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n[INFO] Server stopped by user", file=sys.stderr)
        sys.exit(0)
    except Exception as e:
        print(f"[ERROR] Server crashed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
