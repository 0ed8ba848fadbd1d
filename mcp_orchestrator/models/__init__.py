"""
Data models for MCP Orchestrator.
"""

from .segments import (
    InferenceResponse,
    Segment,
    TextSegment,
    ToolUseSegment,
    UsageInfo,
)
from .transcript import (
    AssistantTurn,
    ToolCallTurn,
    ToolResultTurn,
    Transcript,
    Turn,
    UserTurn,
    EMPTY_TOOL_OUTPUT,
    content_to_text,
    format_tool_call_marker,
)

__all__ = [
    # Inference response models
    "InferenceResponse",
    "Segment",
    "TextSegment",
    "ToolUseSegment",
    "UsageInfo",
    # Transcript models
    "AssistantTurn",
    "ToolCallTurn",
    "ToolResultTurn",
    "Transcript",
    "Turn",
    "UserTurn",
    "EMPTY_TOOL_OUTPUT",
    "content_to_text",
    "format_tool_call_marker",
]
