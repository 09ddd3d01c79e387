"""Generic Agent Library - One agent interface over OpenAI, Gemini and Grok."""

from .agent_core import (
    Agent,
    AgentConfig,
    AgentEvent,
    AgentResponse,
    AssistantMessage,
    ChainResult,
    ChainStep,
    EventType,
    GenerationConfig,
    LLMProvider,
    Message,
    SSE_HEADERS,
    SystemMessage,
    ToolCall,
    ToolDefinition,
    ToolMessage,
    ToolRegistry,
    UserMessage,
    chain,
    format_sse,
    save_image,
    simple_chain,
    stream_sse,
)
from .agent_impl import GoogleProvider, GrokProvider, OpenAIProvider, create_provider

__all__ = [
    "Agent",
    "AgentConfig",
    "AgentEvent",
    "AgentResponse",
    "AssistantMessage",
    "ChainResult",
    "ChainStep",
    "EventType",
    "GenerationConfig",
    "LLMProvider",
    "Message",
    "SSE_HEADERS",
    "SystemMessage",
    "ToolCall",
    "ToolDefinition",
    "ToolMessage",
    "ToolRegistry",
    "UserMessage",
    "chain",
    "format_sse",
    "save_image",
    "simple_chain",
    "stream_sse",
    "GoogleProvider",
    "GrokProvider",
    "OpenAIProvider",
    "create_provider",
]
