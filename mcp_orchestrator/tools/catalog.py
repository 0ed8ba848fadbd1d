"""
Tool Catalog - the tools the tool host advertises.

The catalog is discovered once per tool host connection, normalized into
immutable descriptors, and shared read-only by every orchestration round.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional, Protocol

from ..errors import ToolHostConnectionError

logger = logging.getLogger(__name__)

EMPTY_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


@dataclass(frozen=True)
class ToolDescriptor:
    """Name, description and input schema for one callable tool."""

    name: str
    description: str = ""
    input_schema: dict[str, Any] = field(default_factory=lambda: dict(EMPTY_SCHEMA))

    def to_anthropic(self) -> dict[str, Any]:
        """Tool definition in Anthropic Messages API format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def to_openai(self) -> dict[str, Any]:
        """Tool definition in OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


class ToolCatalog:
    """Immutable, ordered set of tool descriptors keyed by name."""

    def __init__(self, descriptors: Iterable[ToolDescriptor] = ()):
        tools: dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in tools:
                logger.warning(f"Duplicate tool '{descriptor.name}' ignored")
                continue
            tools[descriptor.name] = descriptor
        self._tools = tools

    def get(self, name: str) -> Optional[ToolDescriptor]:
        """Get a tool by name."""
        return self._tools.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def get_tools_summary(self) -> str:
        """One line per tool, for logs and the CLI banner."""
        return "\n".join(
            f"- {name}: {tool.description}" for name, tool in self._tools.items()
        )

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ToolCatalog):
            return NotImplemented
        return list(self) == list(other)

    def __repr__(self) -> str:
        return f"ToolCatalog({self.names!r})"


class ToolLister(Protocol):
    async def list_tools(self) -> list[Any]: ...


def normalize_tool(tool: Any) -> ToolDescriptor:
    """Convert an MCP tool (``name``, ``description``, ``inputSchema``) to a descriptor."""
    schema = tool.inputSchema
    if not isinstance(schema, dict):
        schema = dict(EMPTY_SCHEMA)
    return ToolDescriptor(
        name=tool.name,
        description=tool.description or "",
        input_schema=schema,
    )


async def load_catalog(host: ToolLister) -> ToolCatalog:
    """
    Discover the host's tools.

    An empty catalog is valid.

    Raises:
        ToolHostConnectionError: If the host is unreachable or discovery fails.
    """
    try:
        tools = await host.list_tools()
    except ToolHostConnectionError:
        raise
    except Exception as e:
        raise ToolHostConnectionError(f"Tool discovery failed: {e}") from e

    catalog = ToolCatalog(normalize_tool(tool) for tool in tools)
    logger.info(f"Connected to tool host with tools: {catalog.names}")
    return catalog
