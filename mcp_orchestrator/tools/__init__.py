"""
MCP Orchestrator Tools Package

- host: MCP stdio connection to the tool host subprocess
- catalog: discovery and normalization of the host's tools
- bridge: invocation of tools requested by the model
"""

from .bridge import ToolInvocationBridge, ToolResult
from .catalog import ToolCatalog, ToolDescriptor, load_catalog, normalize_tool
from .host import ToolHostClient, build_server_parameters

__all__ = [
    "ToolInvocationBridge",
    "ToolResult",
    "ToolCatalog",
    "ToolDescriptor",
    "load_catalog",
    "normalize_tool",
    "ToolHostClient",
    "build_server_parameters",
]
