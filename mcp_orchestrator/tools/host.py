"""
MCP tool host connection.

Spawns the tool host as a subprocess and talks to it over the MCP stdio
transport. The connection is process-wide: opened once at startup and
closed on shutdown.
"""

import asyncio
import logging
import sys
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Any, Optional

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.types import CallToolResult, Tool

from ..config import config
from ..errors import ToolHostConnectionError

logger = logging.getLogger(__name__)


def build_server_parameters(
    server_script_path: str,
    command: Optional[str] = None,
) -> StdioServerParameters:
    """
    Build the launch parameters for a tool host script.

    ``.py`` scripts run under the current Python interpreter and ``.js``
    scripts under ``node``, unless an explicit command is given.

    Raises:
        ToolHostConnectionError: If no script is given or its type is unsupported.
    """
    if not server_script_path:
        raise ToolHostConnectionError("No tool host script configured")

    if command:
        return StdioServerParameters(command=command, args=[server_script_path])

    suffix = Path(server_script_path).suffix.lower()
    if suffix == ".py":
        launcher = sys.executable or "python3"
    elif suffix == ".js":
        launcher = "node"
    else:
        raise ToolHostConnectionError("Server script must be a .js or .py file")
    return StdioServerParameters(command=launcher, args=[server_script_path])


class ToolHostClient:
    """Async MCP client session bound to one tool host subprocess."""

    def __init__(
        self,
        server_script_path: Optional[str] = None,
        command: Optional[str] = None,
        init_timeout: Optional[float] = None,
    ):
        self.server_script_path = server_script_path or config.tool_host.server_script_path
        self.command = command or config.tool_host.command or None
        self.init_timeout = init_timeout or config.tool_host.init_timeout
        self._stack: Optional[AsyncExitStack] = None
        self._session: Optional[ClientSession] = None

    @property
    def connected(self) -> bool:
        return self._session is not None

    async def connect(self) -> None:
        """
        Spawn the tool host and complete the MCP handshake.

        Raises:
            ToolHostConnectionError: If the process cannot be started or
                the handshake fails.
        """
        params = build_server_parameters(self.server_script_path, self.command)
        logger.info(f"Launching tool host: {params.command} {' '.join(params.args)}")

        stack = AsyncExitStack()
        try:
            read_stream, write_stream = await stack.enter_async_context(
                stdio_client(params)
            )
            session = await stack.enter_async_context(
                ClientSession(read_stream, write_stream)
            )
            await asyncio.wait_for(session.initialize(), timeout=self.init_timeout)
        except Exception as e:
            await stack.aclose()
            raise ToolHostConnectionError(
                f"Failed to connect to tool host '{self.server_script_path}': {e}"
            ) from e

        self._stack = stack
        self._session = session

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise ToolHostConnectionError("Tool host is not connected")
        return self._session

    async def list_tools(self) -> list[Tool]:
        """Return the raw MCP tool list."""
        session = self._require_session()
        result = await session.list_tools()
        return list(result.tools)

    async def call_tool(self, name: str, arguments: Optional[dict[str, Any]]) -> CallToolResult:
        """Invoke a tool and return the raw MCP result."""
        session = self._require_session()
        return await session.call_tool(name, arguments or {})

    async def close(self) -> None:
        """Shut down the MCP session and the tool host process."""
        if self._stack is None:
            return
        stack, self._stack, self._session = self._stack, None, None
        try:
            await stack.aclose()
        except Exception as e:
            logger.debug(f"Error closing tool host connection: {e}")
