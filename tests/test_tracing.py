"""
Tests for Langfuse tracing integration with SDK v3.

Tests cover:
- Client disabled states (credentials, auth failure)
- Context manager no-ops when disabled
- Trace lifecycle with mocked Langfuse
- Orchestration rounds with and without tracing
"""

from unittest.mock import MagicMock, Mock, patch

import pytest


class TestTracingClient:
    """Tests for TracingClient."""

    def test_client_disabled_without_credentials(self):
        """Test client is disabled when credentials not provided."""
        from mcp_orchestrator.tracing.client import TracingClient

        client = TracingClient(public_key="", secret_key="")
        assert client.enabled is False
        assert "credentials not configured" in client.error.lower()

    def test_client_disabled_with_partial_credentials(self):
        """Test client is disabled with only public key."""
        from mcp_orchestrator.tracing.client import TracingClient

        client = TracingClient(public_key="pk-test", secret_key="")
        assert client.enabled is False

    @patch("mcp_orchestrator.tracing.client.Langfuse")
    def test_client_disabled_when_auth_fails(self, mock_langfuse):
        """Test client is disabled when auth_check() fails."""
        from mcp_orchestrator.tracing.client import TracingClient

        mock_langfuse.return_value.auth_check.return_value = False

        client = TracingClient(public_key="pk-test", secret_key="sk-test")
        assert client.enabled is False
        assert "auth_check" in client.error
        assert client.client is None

    @patch("mcp_orchestrator.tracing.client.Langfuse")
    def test_client_disabled_when_init_raises(self, mock_langfuse):
        """Test client is disabled when the SDK cannot be constructed."""
        from mcp_orchestrator.tracing.client import TracingClient

        mock_langfuse.side_effect = RuntimeError("bad host")

        client = TracingClient(public_key="pk-test", secret_key="sk-test")
        assert client.enabled is False
        assert "bad host" in client.error

    @patch("mcp_orchestrator.tracing.client.Langfuse")
    def test_client_enabled_with_credentials(self, mock_langfuse):
        """Test client is enabled when credentials are valid."""
        from mcp_orchestrator.tracing.client import TracingClient

        mock_langfuse.return_value.auth_check.return_value = True

        client = TracingClient(
            public_key="pk-test", secret_key="sk-test", host="http://langfuse:3000"
        )
        assert client.enabled is True
        assert client.error is None
        mock_langfuse.assert_called_once_with(
            public_key="pk-test",
            secret_key="sk-test",
            debug=False,
            host="http://langfuse:3000",
        )

        client.flush()
        mock_langfuse.return_value.flush.assert_called_once()

    def test_flush_and_shutdown_no_op_when_disabled(self):
        """Test flush and shutdown are no-ops when tracing disabled."""
        from mcp_orchestrator.tracing.client import TracingClient

        client = TracingClient()
        # Should not raise
        client.flush()
        client.shutdown()


class TestTracingClientSingleton:
    """Tests for tracing client singleton pattern."""

    def test_init_tracing_client_creates_singleton(self):
        """Test init_tracing_client creates global singleton."""
        from mcp_orchestrator.tracing.client import (
            get_tracing_client,
            init_tracing_client,
            shutdown_tracing,
        )

        client = init_tracing_client()
        assert client is not None
        assert get_tracing_client() is client

        shutdown_tracing()
        assert get_tracing_client() is None


class TestTracingContext:
    """Tests for TracingContext."""

    def test_context_disabled_without_client(self):
        """Test context is disabled when no client initialized."""
        from mcp_orchestrator.tracing import TracingContext

        ctx = TracingContext(execution_id="test-123", session_id="A")
        assert ctx.enabled is False

    def test_trace_lifecycle_no_op_when_disabled(self):
        """Test start_trace and end_trace are no-ops when disabled."""
        from mcp_orchestrator.tracing import TracingContext

        ctx = TracingContext(execution_id="test-123")
        ctx.start_trace(query="test query")
        assert ctx._root_span is None
        ctx.end_trace(output="result", status="success")

    def test_span_and_generation_no_op_when_disabled(self):
        """Test span and generation context managers are no-ops when disabled."""
        from mcp_orchestrator.tracing import TracingContext

        ctx = TracingContext(execution_id="test-123")
        with ctx.span(name="tool:get_weather") as span:
            assert span._observation is None
            span.set_output({"result": "test"})
        with ctx.generation(name="inference_round_1", model="test-model") as gen:
            assert gen._observation is None
            gen.set_usage(10, 20)

    @patch("mcp_orchestrator.tracing.client.Langfuse")
    def test_trace_lifecycle_with_langfuse(self, mock_langfuse):
        """Test root span, session id and child observations with a mocked SDK."""
        from mcp_orchestrator.tracing import TracingContext, init_tracing_client

        sdk = mock_langfuse.return_value
        sdk.auth_check.return_value = True
        root_span = Mock(trace_id="a" * 32, id="b" * 16)
        child = Mock()
        sdk.start_as_current_observation.side_effect = [
            MagicMock(__enter__=Mock(return_value=root_span), __exit__=Mock(return_value=False)),
            MagicMock(__enter__=Mock(return_value=child), __exit__=Mock(return_value=False)),
        ]
        init_tracing_client(public_key="pk", secret_key="sk")

        ctx = TracingContext(execution_id="exec-1", session_id="A")
        ctx.start_trace(query="Weather?")
        with ctx.generation(name="inference_round_1", model="claude-test") as gen:
            gen.set_usage(3, 4)
        ctx.end_trace(output="Sunny.")

        root_span.update_trace.assert_called_once_with(session_id="A")
        child_kwargs = sdk.start_as_current_observation.call_args_list[1].kwargs
        assert child_kwargs["as_type"] == "generation"
        assert child_kwargs["trace_context"] == {
            "trace_id": "a" * 32,
            "parent_span_id": "b" * 16,
        }
        update_kwargs = child.update.call_args.kwargs
        assert update_kwargs["usage_details"] == {"input": 3, "output": 4, "total": 7}
        assert root_span.update.call_args.kwargs["output"] == "Sunny."


class TestObservationContexts:
    """Tests for SpanContext and GenerationContext."""

    def test_span_set_output_and_status(self):
        from mcp_orchestrator.tracing import SpanContext

        span = SpanContext(name="test", enabled=False)
        span.set_output({"key": "value"})
        span.set_status("error")
        assert span._output == {"key": "value"}
        assert span._status == "error"

    def test_generation_set_usage(self):
        from mcp_orchestrator.tracing import GenerationContext

        gen = GenerationContext(name="test", model="model", enabled=False)
        gen.set_usage(10, 20)
        assert gen._usage == {"input": 10, "output": 20, "total": 30}


class TestOrchestrationTracingIntegration:
    """Orchestration rounds run the same with tracing on or off."""

    @pytest.mark.asyncio
    async def test_round_without_tracing(self, orchestration_loop, llm_client, respond):
        llm_client.create_message.side_effect = [respond("Done.")]

        assert await orchestration_loop.process("A", "Test query") == "Done."
        assert llm_client.create_message.call_args.kwargs["tracing_context"].enabled is False

    @pytest.mark.asyncio
    @patch("mcp_orchestrator.tracing.client.Langfuse")
    async def test_round_survives_tracing_errors(
        self, mock_langfuse, orchestration_loop, llm_client, respond
    ):
        """A tracing backend that throws never fails the round."""
        from mcp_orchestrator.tracing import init_tracing_client

        sdk = mock_langfuse.return_value
        sdk.auth_check.return_value = True
        sdk.start_as_current_observation.side_effect = RuntimeError("exporter down")
        init_tracing_client(public_key="pk", secret_key="sk")
        llm_client.create_message.side_effect = [respond("Done.")]

        assert await orchestration_loop.process("A", "Test query") == "Done."
