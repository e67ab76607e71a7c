#!/usr/bin/env python3
"""Formatters for tool results of the PortalJS OpenData MCP server."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

ENVELOPE_VERSION = "2.0.0"

ERROR_PREFIX = "Error:"


def build_response(
    data: Any,
    execution_time_ms: float,
    api_version: str = ENVELOPE_VERSION,
) -> Dict[str, Any]:
    """Wrap a successful tool result in the outbound envelope.

    Args:
        data: Tool payload
        execution_time_ms: Time spent in the tool
        api_version: Envelope version string

    Returns:
        ``{success, data, metadata{timestamp, execution_time_ms, api_version}}``
    """
    return {
        "success": True,
        "data": data,
        "metadata": {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "execution_time_ms": round(execution_time_ms, 2),
            "api_version": api_version,
        },
    }


def to_json_text(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def format_error_message(message: str, hints: Optional[Iterable[str]] = None) -> str:
    """Render a failure as a single ``Error:`` text payload.

    Args:
        message: Error description
        hints: Optional follow-up suggestions appended on their own lines

    Returns:
        Error text beginning with ``Error:``
    """
    message = " ".join(str(message).split()) or "Unknown error"
    if not message.startswith(ERROR_PREFIX):
        message = f"{ERROR_PREFIX} {message}"

    hints = [h for h in (hints or []) if h]
    if hints:
        message += "\n\n" + "\n".join(f"Hint: {h}" for h in hints)
    return message


def format_size(size_bytes: int) -> str:
    """Human readable size in MB with two decimals, or ``Unknown`` for non-positive sums."""
    if not size_bytes or size_bytes <= 0:
        return "Unknown"
    return f"{size_bytes / (1024 * 1024):.2f} MB"
