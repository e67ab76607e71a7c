#!/usr/bin/env python3
"""Tool registration types shared by the tool modules."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Type, Union

from pydantic import BaseModel

from ..client import PortalAPIClient
from ..session import SessionContext, SessionCredential

ToolOutput = Union[Dict[str, Any], str]
ToolHandler = Callable[[PortalAPIClient, BaseModel, SessionContext], Awaitable[ToolOutput]]


@dataclass(frozen=True)
class ToolSpec:
    """One entry of the tool registry.

    Handlers return a dict (wrapped in the JSON envelope) or a Markdown
    string (returned verbatim).
    """

    name: str
    description: str
    request_model: Type[BaseModel]
    handler: ToolHandler
    requires_auth: bool = False
    is_write: bool = False

    def input_schema(self) -> Dict[str, Any]:
        schema = self.request_model.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema


def portal_url(client: PortalAPIClient, credential: Optional[SessionCredential] = None) -> str:
    """Base URL used for derived entity links."""
    if credential is not None and credential.api_url:
        return credential.api_url
    return client.base_url
