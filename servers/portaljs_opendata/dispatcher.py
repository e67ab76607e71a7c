#!/usr/bin/env python3
"""Tool dispatch: argument validation, write gate, envelopes and error text."""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from mcp.types import TextContent, Tool
from pydantic import ValidationError as PydanticValidationError

from .client import PortalAPIClient
from .config import Settings, settings as default_settings
from .session import SessionContext
from .tools import TOOL_REGISTRY, ToolSpec
from .utils.exceptions import (
    AuthenticationRequiredError,
    PortalMCPError,
    UnknownToolError,
    ValidationError,
)
from .utils.formatters import build_response, format_error_message, to_json_text
from .utils.logger import get_logger, log_tool_execution, redact_arguments, request_scope

# (substring of the lowercased error, hint) pairs for write-tool failures
WRITE_ERROR_HINTS = (
    (
        "owner_org",
        "Specify `owner_org` with an organization you can publish to. "
        "Use `list_my_organizations` to find one.",
    ),
    ("already in use", "Choose a different `name`; that URL name is already taken."),
    ("already exists", "Choose a different `name`; that URL name is already taken."),
    (
        "not authorized",
        "Your API key lacks permission for this action. Check your role in the organization.",
    ),
    (
        "permission",
        "Your API key lacks permission for this action. Check your role in the organization.",
    ),
    ("not found", "Check the ID or name. Use `search` or `fetch` to look it up."),
)


@dataclass
class ToolResult:
    """Rendered result of one tool call: always exactly one text item."""

    text: str
    is_error: bool = False

    def to_content(self) -> List[TextContent]:
        return [TextContent(type="text", text=self.text)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }


def write_error_hints(message: str) -> List[str]:
    lowered = message.lower()
    hints: List[str] = []
    for needle, hint in WRITE_ERROR_HINTS:
        if needle in lowered and hint not in hints:
            hints.append(hint)
    return hints


def _describe_validation_error(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "arguments"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


class ToolDispatcher:
    """Maps tool names to handlers and renders every outcome as text."""

    def __init__(
        self,
        client: PortalAPIClient,
        settings: Optional[Settings] = None,
        registry: Optional[Mapping[str, ToolSpec]] = None,
    ) -> None:
        self.client = client
        self.settings = settings or default_settings
        self.registry = dict(registry if registry is not None else TOOL_REGISTRY)
        self.logger = get_logger("dispatcher")

    def has_tool(self, name: str) -> bool:
        return name in self.registry

    def list_tools(self) -> List[Tool]:
        """MCP tool descriptors in registry order."""
        return [
            Tool(name=spec.name, description=spec.description, inputSchema=spec.input_schema())
            for spec in self.registry.values()
        ]

    async def invoke(
        self,
        name: str,
        arguments: Optional[Mapping[str, Any]],
        session: Optional[SessionContext] = None,
    ) -> ToolResult:
        """Run a tool and render its result or failure.

        The write gate is checked before the arguments are validated, so an
        unauthenticated write call always gets the authentication message.

        Args:
            name: Registered tool name
            arguments: Raw tool arguments, a JSON object or None
            session: Connection session holding the write credential

        Returns:
            ToolResult with a JSON envelope, Markdown text, or ``Error:`` text
        """
        with request_scope():
            return await self._invoke(
                name, arguments, session if session is not None else SessionContext()
            )

    async def _invoke(
        self, name: str, arguments: Optional[Mapping[str, Any]], session: SessionContext
    ) -> ToolResult:
        start_time = time.time()
        spec = self.registry.get(name)
        logged_arguments: Dict[str, Any] = (
            dict(arguments) if isinstance(arguments, Mapping) else {}
        )

        try:
            if spec is None:
                raise UnknownToolError(name)

            if spec.requires_auth:
                session.require_credential(name)

            if arguments is None:
                arguments = {}
            elif not isinstance(arguments, Mapping):
                raise ValidationError(
                    f"Invalid arguments for {name}: expected an object, "
                    f"got {type(arguments).__name__}"
                )

            try:
                args = spec.request_model.model_validate(dict(arguments))
            except PydanticValidationError as e:
                raise ValidationError(
                    f"Invalid arguments for {name}: {_describe_validation_error(e)}"
                )

            output = await spec.handler(self.client, args, session)

        except AuthenticationRequiredError as e:
            self._log_failure(name, start_time, e.error_code, logged_arguments)
            return ToolResult(e.message, is_error=True)

        except PortalMCPError as e:
            self._log_failure(name, start_time, e.error_code, logged_arguments)
            hints = write_error_hints(e.message) if spec is not None and spec.is_write else None
            return ToolResult(format_error_message(e.message, hints), is_error=True)

        except Exception as e:
            self.logger.error(
                f"Unexpected error in tool {name}: {e}",
                exc_info=True,
                extra={"arguments": redact_arguments(logged_arguments)},
            )
            self._log_failure(name, start_time, "INTERNAL_ERROR", logged_arguments)
            return ToolResult(
                format_error_message(f"Internal error while running {name}: {e}"),
                is_error=True,
            )

        duration_ms = (time.time() - start_time) * 1000
        log_tool_execution(self.logger, name, duration_ms, True)

        if isinstance(output, str):
            return ToolResult(output)
        return ToolResult(
            to_json_text(build_response(output, duration_ms, self.settings.api_version))
        )

    def _log_failure(
        self, name: str, start_time: float, error_code: Optional[str], arguments: Dict[str, Any]
    ) -> None:
        log_tool_execution(
            self.logger,
            name,
            (time.time() - start_time) * 1000,
            False,
            error_code,
            arguments=redact_arguments(arguments),
        )
