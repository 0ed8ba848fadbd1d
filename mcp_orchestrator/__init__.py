"""
MCP Orchestrator - conversational bridge between callers, a language model
and an MCP tool host.

This package provides:
- Per-session conversation transcripts with a turn ceiling
- A tool-use orchestration loop over an MCP tool host
- An HTTP API (/api/mcp) and an interactive CLI
"""

from .orchestrator import MCPOrchestrator
from .orchestration import OrchestrationLoop, QUOTA_EXCEEDED_MESSAGE
from .llm_call import LLMClient

__all__ = [
    "MCPOrchestrator",
    "OrchestrationLoop",
    "QUOTA_EXCEEDED_MESSAGE",
    "LLMClient",
]

__version__ = "0.1.0"
