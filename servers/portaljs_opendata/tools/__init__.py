"""Tool catalog of the PortalJS OpenData MCP server."""

from typing import Dict

from . import analysis, entities, preview, search, write
from .base import ToolSpec

# Registry order is the order reported by tools/list
TOOL_REGISTRY: Dict[str, ToolSpec] = {
    spec.name: spec
    for module in (search, entities, analysis, preview, write)
    for spec in module.TOOLS
}

__all__ = ["TOOL_REGISTRY", "ToolSpec"]
