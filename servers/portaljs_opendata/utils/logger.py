#!/usr/bin/env python3
"""Structured logging setup for the PortalJS OpenData MCP server.

Every tool invocation runs under one request id, so the upstream calls it
makes can be correlated with its outcome in the logs.
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Mapping, Optional

from pythonjsonlogger import jsonlogger

ROOT_LOGGER_NAME = "portaljs_opendata"

# Argument names whose values never reach a log record
SENSITIVE_KEYS = frozenset({"api_key", "apikey", "authorization", "token"})
REDACTED = "***"

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a request id to every record logged inside the block."""
    request_id = request_id or uuid.uuid4().hex[:8]
    token = _request_id.set(request_id)
    try:
        yield request_id
    finally:
        _request_id.reset(token)


class RequestContextFilter(logging.Filter):
    """Stamp records with the current request id and an ISO timestamp."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = _request_id.get() or "-"
        record.timestamp = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat(timespec="milliseconds")
        return True


class CoreFieldsJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that drops ``extra`` fields from the output."""

    core_fields = ("timestamp", "levelname", "name", "request_id", "message")

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        for key in list(log_record.keys()):
            if key not in self.core_fields:
                del log_record[key]


def setup_logging(
    level: str = "INFO", format_type: str = "json", include_extra: bool = True
) -> logging.Logger:
    """Configure the package logger.

    Records go to stderr; stdout carries the MCP stdio stream.

    Args:
        level: Logging level name
        format_type: "json" or "text"
        include_extra: Keep ``extra`` fields in JSON records

    Returns:
        The package root logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper())
    for existing in logger.handlers[:]:
        logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    if format_type == "json":
        formatter_class = (
            jsonlogger.JsonFormatter if include_extra else CoreFieldsJsonFormatter
        )
        handler.setFormatter(
            formatter_class(fmt="%(timestamp)s %(levelname)s %(name)s %(request_id)s %(message)s")
        )
    else:
        handler.setFormatter(
            logging.Formatter("%(timestamp)s %(levelname)s [%(request_id)s] %(name)s: %(message)s")
        )
    handler.addFilter(RequestContextFilter())

    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logging.getLogger(ROOT_LOGGER_NAME)


def redact_arguments(arguments: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Return a copy of tool arguments that is safe to log."""
    if not arguments:
        return {}
    return {
        key: (REDACTED if str(key).lower() in SENSITIVE_KEYS else value)
        for key, value in arguments.items()
    }


def log_api_call(
    logger: logging.Logger,
    action: str,
    url: str,
    duration_ms: float,
    status_code: Optional[int] = None,
    error_code: Optional[str] = None,
    **fields,
) -> None:
    """Log one call to the portal (an action or a resource download).

    ``fields`` carries call details such as the HTTP method, whether the
    response came from the cache, or the downloaded size.
    """
    record = {
        "component": "portal_client",
        "action": action,
        "url": url,
        "duration_ms": round(duration_ms, 2),
        "status_code": status_code,
        **fields,
    }
    if error_code:
        record["error_code"] = error_code
        logger.error(f"Portal call failed: {action}", extra=record)
    else:
        logger.info(f"Portal call completed: {action}", extra=record)


def log_tool_execution(
    logger: logging.Logger,
    tool_name: str,
    duration_ms: float,
    success: bool,
    error_code: Optional[str] = None,
    **fields,
) -> None:
    """Log the outcome of a tool invocation."""
    record = {
        "component": "dispatcher",
        "tool": tool_name,
        "duration_ms": round(duration_ms, 2),
        "success": success,
        **fields,
    }
    if success:
        logger.info(f"Tool completed: {tool_name}", extra=record)
    else:
        record["error_code"] = error_code
        logger.error(f"Tool failed: {tool_name}", extra=record)
