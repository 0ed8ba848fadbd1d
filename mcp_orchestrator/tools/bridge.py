"""
Tool Invocation Bridge.

Forwards a tool call requested by the model to the tool host and hands back
its result payload unchanged. Host-reported failures and broken channels
surface as ``ToolExecutionError``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from ..errors import ToolExecutionError
from ..models import content_to_text
from ..tracing import TracingContext

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """Result payload of a tool invocation (MCP content blocks)."""

    content: list[dict] = field(default_factory=list)

    @property
    def text(self) -> str:
        return content_to_text(self.content)


class ToolCaller(Protocol):
    async def call_tool(self, name: str, arguments: Optional[dict[str, Any]]) -> Any: ...


def _dump_block(block: Any) -> dict:
    if isinstance(block, dict):
        return block
    if hasattr(block, "model_dump"):
        return block.model_dump(mode="json", exclude_none=True)
    return {"type": "text", "text": str(block)}


class ToolInvocationBridge:
    """Invokes tools on the connected tool host."""

    def __init__(self, host: ToolCaller):
        self.host = host

    async def invoke(
        self,
        tool_name: str,
        arguments: Optional[dict[str, Any]],
        tracing_context: Optional[TracingContext] = None,
    ) -> ToolResult:
        """
        Invoke a tool by name.

        Args:
            tool_name: Name from the loaded catalog, as emitted by the model.
            arguments: Argument object for the tool.
            tracing_context: Optional request tracing context.

        Returns:
            ToolResult carrying the host's content blocks verbatim.

        Raises:
            ToolExecutionError: If the host reports an error or the call fails.
        """
        if tracing_context is None:
            return await self._invoke(tool_name, arguments)

        with tracing_context.span(name=f"tool:{tool_name}", input=arguments) as span:
            try:
                result = await self._invoke(tool_name, arguments)
            except ToolExecutionError as e:
                span.set_status("error")
                span.set_output({"error": e.message[:500]})
                raise
            span.set_output({"result": result.text[:500]})
            return result

    async def _invoke(
        self, tool_name: str, arguments: Optional[dict[str, Any]]
    ) -> ToolResult:
        logger.debug(f"Calling tool '{tool_name}' with {arguments}")
        try:
            raw = await self.host.call_tool(tool_name, arguments)
        except Exception as e:
            raise ToolExecutionError(
                tool_name, f"Tool '{tool_name}' execution error: {e}"
            ) from e

        content = [_dump_block(block) for block in raw.content or []]
        if raw.isError:
            raise ToolExecutionError(
                tool_name,
                f"Tool '{tool_name}' reported an error: {content_to_text(content)[:500]}",
                content=content,
            )
        return ToolResult(content=content)
