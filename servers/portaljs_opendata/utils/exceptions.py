#!/usr/bin/env python3
"""Custom exception classes for the PortalJS OpenData MCP server."""

from typing import Any, Dict, Optional


class PortalMCPError(Exception):
    """Base exception for all PortalJS MCP errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ValidationError(PortalMCPError):
    """Raised when tool arguments fail validation."""

    def __init__(
        self, message: str, field: Optional[str] = None, value: Optional[Any] = None
    ):
        super().__init__(message, "VALIDATION_ERROR", {"field": field, "value": value})
        self.field = field
        self.value = value


class UpstreamHttpError(PortalMCPError):
    """Raised when the portal answers with a non-2xx HTTP status."""

    def __init__(
        self,
        status: int,
        status_text: str,
        url: Optional[str] = None,
        error_body: Any = None,
    ):
        message = f"API returned {status} {status_text}".rstrip()
        if error_body is not None:
            message = f"{message}: {_describe_error_body(error_body)}"
        super().__init__(
            message,
            "UPSTREAM_HTTP_ERROR",
            {
                "status": status,
                "status_text": status_text,
                "url": url,
                "error_body": error_body,
            },
        )
        self.status = status
        self.status_text = status_text
        self.url = url
        self.error_body = error_body


class UpstreamConnectionError(UpstreamHttpError):
    """Raised when the portal cannot be reached at all."""

    def __init__(self, reason: str, url: Optional[str] = None):
        PortalMCPError.__init__(
            self,
            f"Could not reach the portal API: {reason}",
            "UPSTREAM_CONNECTION_ERROR",
            {"status": 0, "status_text": reason, "url": url},
        )
        self.status = 0
        self.status_text = reason
        self.url = url
        self.error_body = None


class UpstreamApiError(PortalMCPError):
    """Raised when the portal envelope reports ``success: false``."""

    def __init__(self, error_body: Any, action: Optional[str] = None):
        super().__init__(
            f"Portal API error: {_describe_error_body(error_body)}",
            "UPSTREAM_API_ERROR",
            {"error_body": error_body, "action": action},
        )
        self.error_body = error_body
        self.action = action


class NotFoundError(PortalMCPError):
    """Raised when a resolved entity carries no ``id``."""

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ):
        super().__init__(
            message,
            "NOT_FOUND",
            {"entity_type": entity_type, "entity_id": entity_id},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class MalformedEntityError(PortalMCPError):
    """Raised when a resolved entity carries no ``name``."""

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ):
        super().__init__(
            message,
            "MALFORMED_ENTITY",
            {"entity_type": entity_type, "entity_id": entity_id},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class UnsupportedFormatError(PortalMCPError):
    """Raised when a resource cannot be previewed as a table."""

    def __init__(self, message: str, resource_format: Optional[str] = None):
        super().__init__(
            message, "UNSUPPORTED_FORMAT", {"resource_format": resource_format}
        )
        self.resource_format = resource_format


class PayloadTooLargeError(PortalMCPError):
    """Raised when an upstream payload exceeds the configured size."""

    def __init__(self, message: str, size: Optional[int] = None):
        super().__init__(message, "PAYLOAD_TOO_LARGE", {"size": size})
        self.size = size


class AuthenticationRequiredError(PortalMCPError):
    """Raised when a write tool runs before a credential is set."""

    def __init__(self, message: str, tool: Optional[str] = None):
        super().__init__(message, "AUTHENTICATION_REQUIRED", {"tool": tool})
        self.tool = tool


class UnknownToolError(PortalMCPError):
    """Raised when a tool name is not registered."""

    rpc_code = -32601

    def __init__(self, tool: str):
        super().__init__(f"Unknown tool: {tool}", "UNKNOWN_TOOL", {"tool": tool})
        self.tool = tool


class InvalidProtocolVersionError(PortalMCPError):
    """Raised when a JSON-RPC envelope is not version 2.0."""

    rpc_code = -32600

    def __init__(self, version: Any):
        super().__init__(
            f"Unsupported JSON-RPC version: {version!r}",
            "INVALID_PROTOCOL_VERSION",
            {"version": version},
        )
        self.version = version


class ConfigurationError(PortalMCPError):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, "CONFIGURATION_ERROR", {"config_key": config_key})
        self.config_key = config_key


def _describe_error_body(error_body: Any) -> str:
    if isinstance(error_body, dict):
        message = error_body.get("message")
        parts = [str(message)] if message else []
        for key, value in error_body.items():
            if key in ("message", "__type"):
                continue
            if isinstance(value, list):
                value = "; ".join(str(v) for v in value)
            parts.append(f"{key}: {value}")
        if parts:
            return " | ".join(parts)
        if error_body.get("__type"):
            return str(error_body["__type"])
    if error_body is None:
        return "unknown error"
    return str(error_body)
