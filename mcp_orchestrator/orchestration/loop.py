"""
Core orchestration loop.

Runs one orchestration round per user message:

    AwaitingUser -> InferenceRound1 -> Done
                                    -> ToolPending -> ToolExecuting
                                       -> InferenceRound2 -> Done

The first inference call sees the whole session transcript and the tool
catalog. Every tool-use segment it returns is executed in emission order,
and each one gets exactly one follow-up inference call made without the
tool catalog, so a round can never chain into further tool calls.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..config import config
from ..errors import ToolExecutionError
from ..llm_call import LLMClient
from ..models import (
    AssistantTurn,
    InferenceResponse,
    TextSegment,
    ToolCallTurn,
    ToolResultTurn,
    ToolUseSegment,
    Transcript,
    UserTurn,
    format_tool_call_marker,
)
from ..profile import ProfileClient, build_system_prompt
from ..sessions import SessionStore
from ..tools.bridge import ToolInvocationBridge
from ..tools.catalog import ToolCatalog
from ..tracing import TracingContext

logger = logging.getLogger(__name__)

QUOTA_EXCEEDED_MESSAGE = "You have run out of messages, please email us if you need more."


class RoundState(Enum):
    """Protocol states of one orchestration round."""

    AWAITING_USER = "awaiting_user"
    INFERENCE_ROUND_1 = "inference_round_1"
    TOOL_PENDING = "tool_pending"
    TOOL_EXECUTING = "tool_executing"
    INFERENCE_ROUND_2 = "inference_round_2"
    DONE = "done"


@dataclass
class OrchestrationStep:
    """A single output segment produced during a round."""

    step_number: int
    action: str  # "text" or the name of the tool that was called
    action_input: Optional[dict] = None
    observation: Optional[str] = None
    is_error: bool = False


@dataclass
class OrchestrationResult:
    """Result from a complete orchestration round."""

    answer: str
    steps: list[OrchestrationStep] = field(default_factory=list)
    tools_used: list[str] = field(default_factory=list)
    quota_exceeded: bool = False


@dataclass
class _Round:
    session_id: str
    execution_id: str
    transcript: Transcript
    system_prompt: Optional[str] = None
    tracing_context: Optional[TracingContext] = None
    state: RoundState = RoundState.AWAITING_USER
    output: list[str] = field(default_factory=list)
    steps: list[OrchestrationStep] = field(default_factory=list)

    @property
    def prefix(self) -> str:
        return f"[{self.session_id}/{self.execution_id}] "

    def transition(self, state: RoundState) -> None:
        logger.debug(f"{self.prefix}{self.state.value} -> {state.value}")
        self.state = state

    def emit_text(self, text: str) -> None:
        self.output.append(text)
        self.transcript.append(AssistantTurn(text=text))
        self.steps.append(
            OrchestrationStep(step_number=len(self.steps) + 1, action="text", observation=text)
        )


class OrchestrationLoop:
    """
    Multi-turn tool-use orchestration over per-session transcripts.

    Calls for the same session id are serialized by the session's lock;
    calls for different sessions run concurrently.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        catalog: ToolCatalog,
        bridge: ToolInvocationBridge,
        store: Optional[SessionStore] = None,
        max_turns: Optional[int] = None,
        quota_exempt: Optional[frozenset[str]] = None,
        system_prompt: Optional[str] = None,
        profile_client: Optional[ProfileClient] = None,
    ):
        self.llm_client = llm_client
        self.catalog = catalog
        self.bridge = bridge
        self.store = (
            store
            if store is not None
            else SessionStore(
                idle_ttl=config.sessions.idle_ttl,
                max_sessions=config.sessions.max_sessions,
            )
        )
        self.max_turns = max_turns if max_turns is not None else config.sessions.max_turns
        self.quota_exempt = (
            quota_exempt if quota_exempt is not None else config.sessions.quota_exempt
        )
        self.system_prompt = (
            system_prompt if system_prompt is not None else config.prompt.system_prompt
        )
        self.profile_client = (
            profile_client if profile_client is not None else ProfileClient()
        )

    async def process(self, session_id: str, query: str) -> str:
        """
        Run one orchestration round and return the joined output text.

        Returns the fixed quota message once the session's transcript has
        grown past ``max_turns``.

        Raises:
            InferenceServiceError: If an inference call fails. Turns already
                appended stay in the transcript.
        """
        result = await self.run(session_id, query)
        return result.answer

    async def run(self, session_id: str, query: str) -> OrchestrationResult:
        """Like ``process`` but returns the full OrchestrationResult."""
        execution_id = uuid.uuid4().hex[:8]

        async with self.store.session(session_id) as transcript:
            transcript.append(UserTurn(text=query))

            if self._quota_exhausted(session_id, transcript):
                logger.info(
                    f"[{session_id}] Turn ceiling reached "
                    f"({len(transcript)} > {self.max_turns}), refusing message"
                )
                return OrchestrationResult(answer=QUOTA_EXCEEDED_MESSAGE, quota_exceeded=True)

            tracing_context = TracingContext(execution_id=execution_id, session_id=session_id)
            tracing_context.start_trace(
                query=query,
                metadata={"transcript_turns": len(transcript), "tools": len(self.catalog)},
            )
            round_ = _Round(
                session_id=session_id,
                execution_id=execution_id,
                transcript=transcript,
                tracing_context=tracing_context,
            )
            try:
                result = await self._run_round(round_)
            except Exception as e:
                tracing_context.end_trace(output=str(e), status="error")
                raise
            tracing_context.end_trace(
                output=result.answer, metadata={"tools_used": result.tools_used}
            )
            return result

    def _quota_exhausted(self, session_id: str, transcript: Transcript) -> bool:
        if session_id in self.quota_exempt:
            return False
        return len(transcript) > self.max_turns

    async def _run_round(self, round_: _Round) -> OrchestrationResult:
        profile = await self.profile_client.fetch(round_.session_id)
        round_.system_prompt = build_system_prompt(self.system_prompt, profile)

        round_.transition(RoundState.INFERENCE_ROUND_1)
        response = await self._infer(round_, tools=self.catalog, name="inference_round_1")

        for segment in response.segments:
            if isinstance(segment, TextSegment):
                round_.emit_text(segment.text)
            elif isinstance(segment, ToolUseSegment):
                round_.transition(RoundState.TOOL_PENDING)
                await self._handle_tool_use(round_, segment)

        round_.transition(RoundState.DONE)
        self._log_trace_summary(round_)
        return OrchestrationResult(
            answer="\n".join(round_.output),
            steps=list(round_.steps),
            tools_used=self._unique_tools_used(round_.steps),
        )

    async def _infer(
        self,
        round_: _Round,
        tools: Optional[ToolCatalog],
        name: str,
    ) -> InferenceResponse:
        logger.debug(f"{round_.prefix}Calling inference ({name})")
        return await self.llm_client.create_message(
            round_.transcript.to_messages(),
            system=round_.system_prompt,
            tools=tools,
            tracing_context=round_.tracing_context,
            name=name,
        )

    async def _handle_tool_use(self, round_: _Round, segment: ToolUseSegment) -> None:
        """Execute one tool call and narrate its result with a follow-up call."""
        round_.output.append(format_tool_call_marker(segment.name, segment.arguments))
        round_.transcript.append(
            ToolCallTurn(
                tool_name=segment.name,
                arguments=segment.arguments,
                call_id=segment.call_id,
            )
        )

        round_.transition(RoundState.TOOL_EXECUTING)
        step = OrchestrationStep(
            step_number=len(round_.steps) + 1,
            action=segment.name,
            action_input=segment.arguments,
        )
        try:
            result = await self.bridge.invoke(
                segment.name, segment.arguments, tracing_context=round_.tracing_context
            )
            result_turn = ToolResultTurn(tool_name=segment.name, content=result.content)
        except ToolExecutionError as e:
            logger.error(f"{round_.prefix}Tool '{segment.name}' failed: {e.message}")
            result_turn = ToolResultTurn(
                tool_name=segment.name,
                content=[{"type": "text", "text": e.message}],
                is_error=True,
            )
            step.is_error = True

        round_.transcript.append(result_turn)
        step.observation = result_turn.to_text()
        round_.steps.append(step)

        round_.transition(RoundState.INFERENCE_ROUND_2)
        follow_up = await self._infer(round_, tools=None, name="inference_round_2")
        text = follow_up.first_text
        if text is not None:
            round_.emit_text(text)
        else:
            logger.warning(
                f"{round_.prefix}Follow-up after '{segment.name}' "
                "did not start with text; nothing to narrate"
            )

    @staticmethod
    def _unique_tools_used(steps: list[OrchestrationStep]) -> list[str]:
        seen: set[str] = set()
        result: list[str] = []
        for step in steps:
            if step.action != "text" and step.action not in seen:
                seen.add(step.action)
                result.append(step.action)
        return result

    @staticmethod
    def _log_trace_summary(round_: _Round) -> None:
        """Log a compact trace summary."""
        prefix = round_.prefix
        logger.info(f"{prefix}{'─' * 50}")
        logger.info(f"{prefix}TRACE SUMMARY ({len(round_.transcript)} turns)")
        for step in round_.steps:
            obs = step.observation or ""
            obs_preview = obs[:80] + "..." if len(obs) > 80 else obs
            if step.is_error:
                logger.error(f"{prefix}Step {step.step_number}: {step.action} failed -> {obs_preview}")
            else:
                logger.info(f"{prefix}Step {step.step_number}: {step.action} -> {obs_preview}")
