"""PortalJS OpenData MCP server.

Transports call into the package through ``ToolDispatcher.invoke`` (one
rendered text item per tool call) or, for JSON-RPC framed transports,
through ``JsonRpcHandler.handle``, which supplies the protocol error codes.
"""

__version__ = "1.0.0"

from .dispatcher import ToolDispatcher, ToolResult  # noqa: E402
from .jsonrpc import JsonRpcHandler  # noqa: E402
from .session import SessionContext  # noqa: E402

__all__ = [
    "JsonRpcHandler",
    "SessionContext",
    "ToolDispatcher",
    "ToolResult",
    "__version__",
]
