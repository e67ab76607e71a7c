#!/usr/bin/env python3
"""PortalJS OpenData MCP server wiring for the stdio transport."""

import time
from typing import Any, Dict, List

from mcp.server import Server
from mcp.types import TextContent, Tool

from . import __version__
from .client import PortalAPIClient
from .config import settings
from .dispatcher import ToolDispatcher
from .session import SessionContext
from .utils.logger import get_logger

# ============================================================================
# Server Setup
# ============================================================================

logger = get_logger("server")

app = Server("portaljs-opendata-server")

portal_client = PortalAPIClient(settings)
dispatcher = ToolDispatcher(portal_client, settings)

# A stdio process serves exactly one client connection
stdio_session = SessionContext()

# Health check state
_health_status: Dict[str, Any] = {
    "status": "starting",
    "last_check": None,
    "start_time": time.time(),
    "details": {},
}


# ============================================================================
# MCP Tool Definitions and Handlers
# ============================================================================


@app.list_tools()
async def handle_list_tools() -> List[Tool]:
    """Describe the PortalJS tools."""
    return dispatcher.list_tools()


@app.call_tool()
async def handle_call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """Run a tool; failures come back as one ``Error:`` text item."""
    result = await dispatcher.invoke(name, arguments, stdio_session)
    return result.to_content()


# ============================================================================
# Health Check and Monitoring
# ============================================================================


async def perform_health_check() -> Dict[str, Any]:
    """Check the portal API and record the outcome."""
    global _health_status

    portal_health = await portal_client.health_check()
    _health_status = {
        "status": portal_health["status"],
        "last_check": time.time(),
        "start_time": _health_status.get("start_time", time.time()),
        "details": {
            "portal_api": portal_health,
            "cache": portal_client.cache.stats(),
            "environment": settings.environment,
            "version": __version__,
        },
    }
    if portal_health["status"] != "healthy":
        logger.warning("Portal API health check failed", extra={"health_status": portal_health})
    return _health_status


async def get_server_status() -> Dict[str, Any]:
    """Get current server status."""
    return {
        "status": _health_status["status"],
        "uptime": time.time() - _health_status.get("start_time", time.time()),
        "last_health_check": _health_status.get("last_check"),
        "authenticated_session": stdio_session.is_authenticated,
        "details": _health_status.get("details", {}),
    }
