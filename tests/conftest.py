"""
Pytest configuration and fixtures for MCP Orchestrator tests.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from mcp_orchestrator.models import InferenceResponse, TextSegment, ToolUseSegment
from mcp_orchestrator.orchestration import OrchestrationLoop
from mcp_orchestrator.profile import ProfileClient
from mcp_orchestrator.sessions import SessionStore
from mcp_orchestrator.tools import ToolCatalog, ToolDescriptor, ToolResult
from mcp_orchestrator.tracing import shutdown_tracing

WEATHER_SCHEMA = {
    "type": "object",
    "properties": {"city": {"type": "string"}},
    "required": ["city"],
}


@pytest.fixture
def respond():
    """Build an InferenceResponse from strings (text) and (name, args) tuples (tool use)."""

    def _respond(*parts) -> InferenceResponse:
        segments = []
        for part in parts:
            if isinstance(part, str):
                segments.append(TextSegment(text=part))
            else:
                name, args = part
                segments.append(
                    ToolUseSegment(name=name, arguments=args, call_id=f"toolu_{name}")
                )
        return InferenceResponse(segments=segments)

    return _respond


@pytest.fixture
def catalog():
    """A catalog with a single weather tool."""
    return ToolCatalog(
        [ToolDescriptor("get_weather", "Get the current weather for a city", WEATHER_SCHEMA)]
    )


@pytest.fixture
def llm_client():
    """Mock inference client; set create_message.side_effect per test."""
    client = Mock()
    client.create_message = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def bridge():
    """Mock tool bridge returning a fixed weather report."""
    mock_bridge = Mock()
    mock_bridge.invoke = AsyncMock(
        return_value=ToolResult(content=[{"type": "text", "text": "Sunny, 21C"}])
    )
    return mock_bridge


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def orchestration_loop(llm_client, catalog, bridge, store):
    """An orchestration loop wired to mocks, with profile lookup disabled."""
    return OrchestrationLoop(
        llm_client=llm_client,
        catalog=catalog,
        bridge=bridge,
        store=store,
        max_turns=20,
        quota_exempt=frozenset(),
        system_prompt="You are a helpful assistant.",
        profile_client=ProfileClient(url_template=""),
    )


@pytest.fixture(autouse=True)
def reset_tracing():
    """Make sure no test leaks an initialized tracing client."""
    yield
    shutdown_tracing()
