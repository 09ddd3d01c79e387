"""Public exports for the vendor-independent agent core."""

from .agent import (
    Agent,
    AgentConfig,
    AgentEvent,
    ChainResult,
    ChainStep,
    EventType,
    RunState,
    chain,
    simple_chain,
)
from .base import AgentResponse, GenerationConfig, LLMProvider, ResponseMeta, Usage
from .exceptions import (
    AgentLibError,
    ErrorKind,
    FileNotFoundInputError,
    FileReadError,
    LLMToolError,
    MalformedResponseError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderError,
    StructuredOutputError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolRegistrationError,
    ToolValidationError,
    UnsupportedFileTypeError,
    UnsupportedProviderError,
    classify_error,
)
from .logger import get_logger, setup_logging
from .messages import (
    AssistantMessage,
    Message,
    SystemMessage,
    ToolCall,
    ToolMessage,
    UserMessage,
)
from .sse import SSE_HEADERS, format_sse, stream_sse
from .streaming import StreamAccumulator
from .tools import ToolCallResult, ToolDefinition, ToolExecutor, ToolRegistry
from .utils import load_files, save_image

__all__ = [
    "Agent",
    "AgentConfig",
    "AgentEvent",
    "ChainResult",
    "ChainStep",
    "EventType",
    "RunState",
    "chain",
    "simple_chain",
    "AgentResponse",
    "GenerationConfig",
    "LLMProvider",
    "ResponseMeta",
    "Usage",
    "AgentLibError",
    "ErrorKind",
    "FileNotFoundInputError",
    "FileReadError",
    "LLMToolError",
    "MalformedResponseError",
    "ProviderAuthError",
    "ProviderConnectionError",
    "ProviderError",
    "StructuredOutputError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolRegistrationError",
    "ToolValidationError",
    "UnsupportedFileTypeError",
    "UnsupportedProviderError",
    "classify_error",
    "get_logger",
    "setup_logging",
    "AssistantMessage",
    "Message",
    "SystemMessage",
    "ToolCall",
    "ToolMessage",
    "UserMessage",
    "SSE_HEADERS",
    "format_sse",
    "stream_sse",
    "StreamAccumulator",
    "ToolCallResult",
    "ToolDefinition",
    "ToolExecutor",
    "ToolRegistry",
    "load_files",
    "save_image",
]
