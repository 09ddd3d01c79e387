"""Expose provider-agnostic message model types shared by all adapters."""

from .models import Role, ToolCall, Message, SystemMessage, UserMessage, AssistantMessage, ToolMessage

__all__ = [
    "Role",
    "ToolCall",
    "Message",
    "SystemMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolMessage",
]
