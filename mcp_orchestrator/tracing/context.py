"""
Request-scoped tracing context using Langfuse SDK v3.

One ``TracingContext`` covers a single orchestration round for a session.
Spans (tool calls) and generations (inference calls) are linked to the
round's root span through an explicit ``TraceContext`` so nesting is right
even when several sessions are in flight on the same event loop.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

from langfuse.types import TraceContext

from .client import get_tracing_client

logger = logging.getLogger(__name__)


@dataclass
class _Observation:
    """Shared start/end handling for spans and generations."""

    name: str
    enabled: bool = False
    input: Optional[Any] = None
    metadata: Optional[dict] = None
    trace_context: Optional[TraceContext] = None
    _context_manager: Any = field(default=None, repr=False)
    _observation: Any = field(default=None, repr=False)
    _start_time: float = field(default=0.0, repr=False)
    _output: Optional[Any] = field(default=None, repr=False)
    _status: str = field(default="success", repr=False)

    def _start_kwargs(self) -> dict[str, Any]:
        return {"as_type": "span"}

    def _end_kwargs(self) -> dict[str, Any]:
        return {}

    def start(self) -> None:
        if not self.enabled:
            return
        client = get_tracing_client()
        if not client or not client.client:
            return
        try:
            self._start_time = time.time()
            self._context_manager = client.client.start_as_current_observation(
                trace_context=self.trace_context,
                name=self.name,
                input=self.input,
                metadata=self.metadata,
                **self._start_kwargs(),
            )
            self._observation = self._context_manager.__enter__()
        except Exception as e:
            logger.warning(f"Failed to start observation '{self.name}': {e}")
            self._observation = None

    def end(self) -> None:
        if not self.enabled or not self._observation:
            return
        try:
            update_kwargs: dict[str, Any] = {
                "metadata": {
                    "status": self._status,
                    "duration_ms": round((time.time() - self._start_time) * 1000, 2),
                },
                **self._end_kwargs(),
            }
            if self._output is not None:
                update_kwargs["output"] = self._output
            self._observation.update(**update_kwargs)
            self._context_manager.__exit__(None, None, None)
        except Exception as e:
            logger.warning(f"Failed to end observation '{self.name}': {e}")

    def set_output(self, output: Any) -> None:
        self._output = output

    def set_status(self, status: str) -> None:
        self._status = status


@dataclass
class SpanContext(_Observation):
    """A span around a tool invocation or other unit of work."""


@dataclass
class GenerationContext(_Observation):
    """A generation around one inference call."""

    model: str = ""
    model_parameters: Optional[dict] = None
    _usage: Optional[dict] = field(default=None, repr=False)

    def _start_kwargs(self) -> dict[str, Any]:
        return {
            "as_type": "generation",
            "model": self.model,
            "model_parameters": self.model_parameters,
        }

    def _end_kwargs(self) -> dict[str, Any]:
        return {"usage_details": self._usage} if self._usage else {}

    def set_usage(self, input_tokens: int, output_tokens: int) -> None:
        self._usage = {
            "input": input_tokens,
            "output": output_tokens,
            "total": input_tokens + output_tokens,
        }


@dataclass
class TracingContext:
    """Root trace for one ``process()`` call on a session."""

    execution_id: str
    session_id: Optional[str] = None
    _context_manager: Any = field(default=None, repr=False)
    _root_span: Any = field(default=None, repr=False)
    _enabled: bool = field(default=False, repr=False)
    _start_time: float = field(default_factory=time.time, repr=False)
    _trace_context: Optional[TraceContext] = field(default=None, repr=False)

    def __post_init__(self):
        client = get_tracing_client()
        self._enabled = client is not None and client.enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def start_trace(
        self,
        name: str = "orchestration_round",
        query: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> None:
        """Open the root span and attach the session id to the trace."""
        if not self._enabled:
            return
        client = get_tracing_client()
        if not client or not client.client:
            return

        try:
            self._context_manager = client.client.start_as_current_observation(
                as_type="span",
                name=name,
                input={"query": query} if query else None,
                metadata={"execution_id": self.execution_id, **(metadata or {})},
            )
            self._root_span = self._context_manager.__enter__()
            self._root_span.update_trace(session_id=self.session_id)

            trace_id = getattr(self._root_span, "trace_id", None)
            span_id = getattr(self._root_span, "id", None)
            if trace_id and span_id:
                self._trace_context = TraceContext(
                    trace_id=trace_id, parent_span_id=span_id
                )
            self._start_time = time.time()
        except Exception as e:
            logger.warning(f"[{self.execution_id}] Failed to start trace: {e}")
            self._root_span = None

    def end_trace(
        self,
        output: Optional[str] = None,
        status: str = "success",
        metadata: Optional[dict] = None,
    ) -> None:
        """Close the root span."""
        if not self._enabled or not self._root_span:
            return
        try:
            self._root_span.update(
                output=output,
                metadata={
                    "status": status,
                    "duration_ms": round((time.time() - self._start_time) * 1000, 2),
                    **(metadata or {}),
                },
            )
            self._context_manager.__exit__(None, None, None)
        except Exception as e:
            logger.warning(f"[{self.execution_id}] Failed to end trace: {e}")

    @contextmanager
    def span(
        self,
        name: str,
        input: Optional[Any] = None,
        metadata: Optional[dict] = None,
    ) -> Generator[SpanContext, None, None]:
        span_ctx = SpanContext(
            name=name,
            enabled=self._enabled,
            input=input,
            metadata=metadata,
            trace_context=self._trace_context,
        )
        span_ctx.start()
        try:
            yield span_ctx
        finally:
            span_ctx.end()

    @contextmanager
    def generation(
        self,
        name: str,
        model: str,
        input: Optional[Any] = None,
        metadata: Optional[dict] = None,
        model_parameters: Optional[dict] = None,
    ) -> Generator[GenerationContext, None, None]:
        gen_ctx = GenerationContext(
            name=name,
            enabled=self._enabled,
            input=input,
            metadata=metadata,
            trace_context=self._trace_context,
            model=model,
            model_parameters=model_parameters,
        )
        gen_ctx.start()
        try:
            yield gen_ctx
        finally:
            gen_ctx.end()
