"""
Conversation transcript model.

A transcript is the ordered, append-only list of turns for one session. It
is replayed in full to the inference service on every call. Internally tool
calls and tool results are explicit turn variants; ``to_messages`` projects
them onto the service's two-role (user/assistant) wire format.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Union

EMPTY_TOOL_OUTPUT = "(no output)"


def format_tool_call_marker(tool_name: str, arguments: Optional[dict]) -> str:
    """Human-readable annotation for a tool call."""
    args_json = json.dumps(arguments, separators=(",", ":"), ensure_ascii=False)
    return f"[Calling tool {tool_name} with args {args_json}]"


def content_to_text(content: list[dict]) -> str:
    """Flatten MCP content blocks to text. Non-text blocks are JSON encoded."""
    parts = []
    for block in content:
        if block.get("type") == "text" and isinstance(block.get("text"), str):
            parts.append(block["text"])
        else:
            parts.append(json.dumps(block, ensure_ascii=False, default=str))
    return "\n".join(parts)


@dataclass(frozen=True)
class UserTurn:
    """Raw caller text."""

    text: str
    role: str = field(default="user", init=False)

    def to_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class AssistantTurn:
    """Text produced by the model."""

    text: str
    role: str = field(default="assistant", init=False)

    def to_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class ToolCallTurn:
    """The model's request to invoke a tool."""

    tool_name: str
    arguments: dict
    call_id: Optional[str] = None
    role: str = field(default="assistant", init=False)

    def to_text(self) -> str:
        return format_tool_call_marker(self.tool_name, self.arguments)


@dataclass(frozen=True)
class ToolResultTurn:
    """A tool's result payload, framed as user input on the wire."""

    tool_name: str
    content: list[dict]
    is_error: bool = False
    role: str = field(default="user", init=False)

    def to_text(self) -> str:
        """Result text, or ``EMPTY_TOOL_OUTPUT`` when the tool returned nothing."""
        text = content_to_text(self.content)
        return text if text.strip() else EMPTY_TOOL_OUTPUT


Turn = Union[UserTurn, AssistantTurn, ToolCallTurn, ToolResultTurn]


class Transcript:
    """Append-only sequence of turns for a single session."""

    def __init__(self) -> None:
        self._turns: list[Turn] = []

    def append(self, turn: Turn) -> None:
        self._turns.append(turn)

    @property
    def turns(self) -> tuple[Turn, ...]:
        """Snapshot of the turns in insertion order."""
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))

    def __getitem__(self, index: int) -> Turn:
        return self._turns[index]

    def to_messages(self) -> list[dict[str, Any]]:
        """
        Project the transcript onto the two-role wire format.

        Consecutive turns that share a role are merged into one message so
        the result always alternates between user and assistant.
        """
        messages: list[dict[str, Any]] = []
        for turn in self._turns:
            text = turn.to_text()
            if messages and messages[-1]["role"] == turn.role:
                messages[-1]["content"] = f"{messages[-1]['content']}\n{text}"
            else:
                messages.append({"role": turn.role, "content": text})
        return messages
