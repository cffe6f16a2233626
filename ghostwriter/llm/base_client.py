"""Provider-agnostic chat completion protocol and message types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from ghostwriter.tools.tool_registry import Tool


class CompletionError(Exception):
    """The completion service rejected or failed a request."""


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: Dict[str, Any]


@dataclass
class ChatMessage:
    role: str  # "system", "user", "assistant", "tool"
    content: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_call_id: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> ChatMessage:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(role="user", content=content)

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> ChatMessage:
        return cls(role="tool", content=content, tool_call_id=tool_call_id)


@dataclass(frozen=True)
class ResponseSchema:
    """JSON schema the completion must conform to."""

    name: str
    schema: Dict[str, Any]
    description: str = ""


@dataclass
class CompletionResponse:
    content: str
    tool_calls: List[ToolCall] = field(default_factory=list)
    tokens_in: int = 0
    tokens_out: int = 0


@runtime_checkable
class CompletionClient(Protocol):
    """Structural protocol satisfied by any client that can run a chat completion.

    When response_schema is supplied the returned content MUST be a JSON
    string conforming to it. When tools are supplied the model may answer
    with tool calls instead of content.
    """

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        temperature: float = 0.7,
        response_schema: Optional[ResponseSchema] = None,
        tools: Sequence[Tool] = (),
    ) -> CompletionResponse:
        ...
