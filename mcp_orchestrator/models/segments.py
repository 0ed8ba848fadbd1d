"""Normalized inference service response."""

from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass(frozen=True)
class TextSegment:
    """Plain text emitted by the model."""

    text: str
    type: str = field(default="text", init=False)


@dataclass(frozen=True)
class ToolUseSegment:
    """A request from the model to invoke a named tool."""

    name: str
    arguments: dict
    call_id: Optional[str] = None
    type: str = field(default="tool_use", init=False)


Segment = Union[TextSegment, ToolUseSegment]


@dataclass
class UsageInfo:
    """Token usage reported by the inference service."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class InferenceResponse:
    """Ordered content segments returned by one inference call."""

    segments: list[Segment] = field(default_factory=list)
    stop_reason: Optional[str] = None
    usage: UsageInfo = field(default_factory=UsageInfo)

    @property
    def first_text(self) -> Optional[str]:
        """Text of the first segment, or None if it is not a text segment."""
        if self.segments and isinstance(self.segments[0], TextSegment):
            return self.segments[0].text
        return None
