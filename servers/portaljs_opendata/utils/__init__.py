"""Utility modules for the PortalJS OpenData MCP server."""

from .exceptions import (
    AuthenticationRequiredError,
    ConfigurationError,
    InvalidProtocolVersionError,
    MalformedEntityError,
    NotFoundError,
    PayloadTooLargeError,
    PortalMCPError,
    UnknownToolError,
    UnsupportedFormatError,
    UpstreamApiError,
    UpstreamConnectionError,
    UpstreamHttpError,
    ValidationError,
)
from .formatters import build_response, format_error_message, format_size
from .logger import (
    get_logger,
    request_scope,
    setup_logging,
    log_api_call,
    log_tool_execution,
    redact_arguments,
)
from .tables import NO_DATA_MESSAGE, TableSource, clamp_rows, parse_csv_line, render_table

__all__ = [
    "AuthenticationRequiredError",
    "ConfigurationError",
    "InvalidProtocolVersionError",
    "MalformedEntityError",
    "NotFoundError",
    "PayloadTooLargeError",
    "PortalMCPError",
    "UnknownToolError",
    "UnsupportedFormatError",
    "UpstreamApiError",
    "UpstreamConnectionError",
    "UpstreamHttpError",
    "ValidationError",
    "build_response",
    "format_error_message",
    "format_size",
    "get_logger",
    "request_scope",
    "setup_logging",
    "log_api_call",
    "log_tool_execution",
    "redact_arguments",
    "NO_DATA_MESSAGE",
    "TableSource",
    "clamp_rows",
    "parse_csv_line",
    "render_table",
]
