"""
MCP Orchestrator facade.

Owns the process-wide collaborators: the tool host connection, the tool
catalog discovered from it, the inference client and the session store. The
HTTP server and the CLI both drive conversations through this class.
"""

import logging
from typing import Optional

from .config import Config, config as default_config
from .llm_call import LLMClient
from .orchestration import OrchestrationLoop, OrchestrationResult
from .profile import ProfileClient
from .sessions import SessionStore
from .tools import ToolCatalog, ToolHostClient, ToolInvocationBridge, load_catalog

logger = logging.getLogger(__name__)


class MCPOrchestrator:
    """
    Conversational bridge between callers, the model and the tool host.

    Usage:
        orchestrator = MCPOrchestrator()
        await orchestrator.connect("path/to/server.py")
        answer = await orchestrator.process_query("session-1", "Hello")
        await orchestrator.cleanup()
    """

    def __init__(
        self,
        app_config: Optional[Config] = None,
        llm_client: Optional[LLMClient] = None,
        host: Optional[ToolHostClient] = None,
    ):
        """
        Args:
            app_config: Configuration (defaults to the environment config).
            llm_client: Inference client; built from config if omitted.
            host: Tool host client; built from config in ``connect`` if omitted.

        Raises:
            ConfigurationError: If the inference API key is missing.
        """
        self.config = app_config or default_config
        self.config.validate()
        self.llm_client = llm_client or LLMClient(
            provider=self.config.inference.provider,
            api_key=self.config.inference.api_key,
            model=self.config.inference.model,
            max_tokens=self.config.inference.max_tokens,
            base_url=self.config.inference.base_url or None,
        )
        self.host = host
        self.catalog: ToolCatalog = ToolCatalog()
        self.store = SessionStore(
            idle_ttl=self.config.sessions.idle_ttl,
            max_sessions=self.config.sessions.max_sessions,
        )
        self.loop: Optional[OrchestrationLoop] = None

    async def connect(self, server_script_path: Optional[str] = None) -> ToolCatalog:
        """
        Connect to the tool host and load its tool catalog.

        Raises:
            ToolHostConnectionError: If the host cannot be reached or
                discovery fails.
        """
        if self.host is None:
            self.host = ToolHostClient(
                server_script_path=server_script_path
                or self.config.tool_host.server_script_path,
                command=self.config.tool_host.command or None,
                init_timeout=self.config.tool_host.init_timeout,
            )
        try:
            if not self.host.connected:
                await self.host.connect()
            self.catalog = await load_catalog(self.host)
        except Exception:
            logger.exception("Failed to connect to MCP server")
            await self.host.close()
            raise

        self.loop = OrchestrationLoop(
            llm_client=self.llm_client,
            catalog=self.catalog,
            bridge=ToolInvocationBridge(self.host),
            store=self.store,
            max_turns=self.config.sessions.max_turns,
            quota_exempt=self.config.sessions.quota_exempt,
            system_prompt=self.config.prompt.system_prompt,
            profile_client=ProfileClient(
                url_template=self.config.prompt.profile_api_url,
                timeout=self.config.prompt.profile_api_timeout,
            ),
        )
        return self.catalog

    def _require_loop(self) -> OrchestrationLoop:
        if self.loop is None:
            raise RuntimeError("MCPOrchestrator.connect() must be called first")
        return self.loop

    async def process_query(self, session_id: str, query: str) -> str:
        """Run one orchestration round for a session."""
        return await self._require_loop().process(session_id, query)

    async def run(self, session_id: str, query: str) -> OrchestrationResult:
        """Run one orchestration round and return the full result."""
        return await self._require_loop().run(session_id, query)

    async def cleanup(self) -> None:
        """Close the tool host and the inference client."""
        if self.host is not None:
            await self.host.close()
        await self.llm_client.close()
