"""
LLM Call Interface for MCP Orchestrator

Provides a unified async interface for the inference service:
- Anthropic Messages API (default)
- OpenAI-compatible chat completions with function calling

Both backends return an ``InferenceResponse`` whose segments keep the
order in which the model emitted them.
"""

import json
import logging
from typing import Any, Optional

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from .config import config
from .errors import InferenceServiceError
from .models import InferenceResponse, TextSegment, ToolUseSegment, UsageInfo
from .tools.catalog import ToolCatalog
from .tracing import TracingContext

logger = logging.getLogger(__name__)


class LLMClient:
    """Inference client supporting the Anthropic and OpenAI backends."""

    def __init__(
        self,
        provider: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        base_url: Optional[str] = None,
    ):
        self.provider = (provider or config.inference.provider).lower()
        self.model = model or config.inference.model
        self.max_tokens = max_tokens or config.inference.max_tokens
        resolved_key = api_key or config.inference.api_key
        resolved_url = base_url or config.inference.base_url or None

        if self.provider == "anthropic":
            self._client = AsyncAnthropic(api_key=resolved_key, base_url=resolved_url)
        elif self.provider == "openai":
            self._client = AsyncOpenAI(api_key=resolved_key, base_url=resolved_url)
        else:
            raise ValueError(f"Unsupported inference provider: {self.provider}")

    async def create_message(
        self,
        messages: list[dict],
        system: Optional[str] = None,
        tools: Optional[ToolCatalog] = None,
        tracing_context: Optional[TracingContext] = None,
        name: str = "inference",
    ) -> InferenceResponse:
        """
        Call the inference service with a conversation and optional tools.

        Args:
            messages: Two-role wire messages (see ``Transcript.to_messages``).
            system: Optional system prompt.
            tools: Tool catalog to advertise. Omitted when None or empty.
            tracing_context: Optional request tracing context.
            name: Name of the tracing generation.

        Returns:
            InferenceResponse with ordered text and tool-use segments.

        Raises:
            InferenceServiceError: If the service call fails.
        """
        if tracing_context is None:
            return await self._dispatch(messages, system, tools)

        with tracing_context.generation(
            name=name,
            model=self.model,
            input=messages,
            model_parameters={"max_tokens": self.max_tokens},
            metadata={"tools": len(tools) if tools else 0},
        ) as gen:
            try:
                response = await self._dispatch(messages, system, tools)
            except InferenceServiceError:
                gen.set_status("error")
                raise
            gen.set_output([_segment_summary(s) for s in response.segments])
            gen.set_usage(response.usage.input_tokens, response.usage.output_tokens)
            return response

    async def _dispatch(
        self,
        messages: list[dict],
        system: Optional[str],
        tools: Optional[ToolCatalog],
    ) -> InferenceResponse:
        try:
            if self.provider == "anthropic":
                return await self._call_anthropic(messages, system, tools)
            return await self._call_openai(messages, system, tools)
        except InferenceServiceError:
            raise
        except Exception as e:
            logger.error(f"{self.provider} inference call failed: {e}")
            raise InferenceServiceError(str(e)) from e

    async def _call_anthropic(
        self,
        messages: list[dict],
        system: Optional[str],
        tools: Optional[ToolCatalog],
    ) -> InferenceResponse:
        create_kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": messages,
        }
        if system:
            create_kwargs["system"] = system
        if tools:
            create_kwargs["tools"] = [tool.to_anthropic() for tool in tools]

        response = await self._client.messages.create(**create_kwargs)

        segments = []
        for block in response.content:
            if block.type == "text":
                segments.append(TextSegment(text=block.text))
            elif block.type == "tool_use":
                segments.append(
                    ToolUseSegment(
                        name=block.name,
                        arguments=dict(block.input or {}),
                        call_id=block.id,
                    )
                )
            else:
                logger.debug(f"Ignoring unsupported content block: {block.type}")

        usage = UsageInfo()
        if response.usage:
            usage = UsageInfo(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            )
        return InferenceResponse(
            segments=segments, stop_reason=response.stop_reason, usage=usage
        )

    async def _call_openai(
        self,
        messages: list[dict],
        system: Optional[str],
        tools: Optional[ToolCatalog],
    ) -> InferenceResponse:
        wire_messages = list(messages)
        if system:
            wire_messages.insert(0, {"role": "system", "content": system})

        create_kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": wire_messages,
        }
        if tools:
            create_kwargs["tools"] = [tool.to_openai() for tool in tools]

        response = await self._client.chat.completions.create(**create_kwargs)
        choice = response.choices[0]
        message = choice.message

        segments = []
        if message.content:
            segments.append(TextSegment(text=message.content))
        for tool_call in message.tool_calls or []:
            raw_args = tool_call.function.arguments or "{}"
            try:
                arguments = json.loads(raw_args)
            except json.JSONDecodeError as e:
                raise InferenceServiceError(
                    f"Malformed arguments for tool '{tool_call.function.name}': {e}"
                ) from e
            segments.append(
                ToolUseSegment(
                    name=tool_call.function.name,
                    arguments=arguments if isinstance(arguments, dict) else {},
                    call_id=tool_call.id,
                )
            )

        usage = UsageInfo()
        if response.usage:
            usage = UsageInfo(
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens,
            )
        return InferenceResponse(
            segments=segments, stop_reason=choice.finish_reason, usage=usage
        )

    async def close(self) -> None:
        """Close the underlying SDK client."""
        try:
            await self._client.close()
        except Exception as e:
            logger.debug(f"Error closing {self.provider} client: {e}")


def _segment_summary(segment: Any) -> dict:
    if isinstance(segment, TextSegment):
        return {"type": "text", "text": segment.text[:2000]}
    return {"type": "tool_use", "name": segment.name, "input": segment.arguments}
