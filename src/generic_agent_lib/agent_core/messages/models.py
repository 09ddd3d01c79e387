"""Provider-agnostic message models for chat history."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["system", "user", "assistant", "tool"]


class ToolCall(BaseModel):
    """A tool invocation requested by the model.

    Attributes:
        id: Identifier the tool result message refers back to.
        name: Name of the requested tool.
        arguments: Parsed arguments for the tool.
    """

    id: str
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class Message(BaseModel):
    """Base model for messages exchanged with an LLM.

    Attributes:
        role: Role associated with the message.
        content: Text or structured payload. ``None`` for assistant turns that only carry tool calls.
        name: Tool identity for tool result messages.
        tool_calls: Tool calls requested by an assistant turn, in provider order.
        tool_call_id: Back-reference from a tool result to the call it answers.
    """

    role: Role
    content: Any = None
    name: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    tool_call_id: Optional[str] = None


class SystemMessage(Message):
    """Message authored by the system to steer behavior."""

    role: Literal["system"] = "system"


class UserMessage(Message):
    """Message authored by an end user."""

    role: Literal["user"] = "user"


class AssistantMessage(Message):
    """Message authored by the assistant, optionally containing tool calls.

    The final assistant message of a run also carries the usage and meta of the
    response so persistence hooks can store them.
    """

    role: Literal["assistant"] = "assistant"
    usage: Optional[Dict[str, Any]] = None
    meta: Optional[Dict[str, Any]] = None


class ToolMessage(Message):
    """Message emitted by a tool invocation."""

    role: Literal["tool"] = "tool"
    tool_call_id: str
    name: str
    content: str
