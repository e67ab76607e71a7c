#!/usr/bin/env python3
"""Minimal JSON-RPC 2.0 message handling on top of the tool dispatcher.

Only the calls a client needs to discover and invoke tools are handled;
session negotiation beyond ``initialize`` belongs to the transport.
"""

from typing import Any, Dict, Optional

from . import __version__
from .dispatcher import ToolDispatcher
from .session import SessionContext
from .utils.exceptions import InvalidProtocolVersionError, UnknownToolError
from .utils.logger import get_logger

JSONRPC_VERSION = "2.0"
MCP_PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "portaljs-opendata-server"

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


def error_response(request_id: Any, code: int, message: str, data: Any = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def result_response(request_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


class JsonRpcHandler:
    """Turns JSON-RPC request objects into response objects."""

    def __init__(self, dispatcher: ToolDispatcher) -> None:
        self.dispatcher = dispatcher
        self.logger = get_logger("jsonrpc")

    async def handle(
        self, message: Any, session: Optional[SessionContext] = None
    ) -> Optional[Dict[str, Any]]:
        """Handle one message.

        Args:
            message: Decoded JSON-RPC object
            session: Session of the connection the message arrived on

        Returns:
            Response object, or None for notifications
        """
        request_id = message.get("id") if isinstance(message, dict) else None

        try:
            if not isinstance(message, dict) or message.get("jsonrpc") != JSONRPC_VERSION:
                raise InvalidProtocolVersionError(
                    message.get("jsonrpc") if isinstance(message, dict) else None
                )

            method = message.get("method")
            if not isinstance(method, str):
                raise InvalidProtocolVersionError(JSONRPC_VERSION)

            if "id" not in message:
                self.logger.debug(f"Notification received: {method}")
                return None

            params = message.get("params")
            if params is None:
                params = {}
            elif not isinstance(params, dict):
                raise _InvalidParams(f"params must be an object, got {type(params).__name__}")
            return result_response(request_id, await self._dispatch(method, params, session))

        except InvalidProtocolVersionError as e:
            self.logger.warning(e.message)
            return error_response(request_id, e.rpc_code, "Invalid Request")

        except UnknownToolError as e:
            return error_response(request_id, e.rpc_code, e.message)

        except _MethodNotFound as e:
            return error_response(request_id, METHOD_NOT_FOUND, f"Method not found: {e}")

        except _InvalidParams as e:
            return error_response(request_id, INVALID_PARAMS, f"Invalid params: {e}")

        except Exception as e:
            self.logger.error(f"Internal error handling JSON-RPC message: {e}", exc_info=True)
            return error_response(request_id, INTERNAL_ERROR, "Internal error", str(e))

    async def _dispatch(
        self, method: str, params: Dict[str, Any], session: Optional[SessionContext]
    ) -> Any:
        if method == "initialize":
            return {
                "protocolVersion": params.get("protocolVersion", MCP_PROTOCOL_VERSION),
                "capabilities": {"tools": {}},
                "serverInfo": {"name": SERVER_NAME, "version": __version__},
            }

        if method == "ping":
            return {}

        if method == "tools/list":
            return {
                "tools": [
                    tool.model_dump(by_alias=True, exclude_none=True)
                    for tool in self.dispatcher.list_tools()
                ]
            }

        if method == "tools/call":
            if not isinstance(params.get("name"), str):
                raise _InvalidParams("tools/call requires a tool name")
            arguments = params.get("arguments")
            if arguments is not None and not isinstance(arguments, dict):
                raise _InvalidParams("tools/call arguments must be an object")
            name = params["name"]
            if not self.dispatcher.has_tool(name):
                raise UnknownToolError(name)
            result = await self.dispatcher.invoke(name, arguments, session)
            return result.to_dict()

        raise _MethodNotFound(method)


class _MethodNotFound(Exception):
    pass


class _InvalidParams(Exception):
    pass
