"""Export the exception hierarchy used across providers, files and tools."""

from .exceptions import (
    ErrorKind,
    AgentLibError,
    ProviderError,
    ProviderConnectionError,
    ProviderAuthError,
    MalformedResponseError,
    UnsupportedProviderError,
    StructuredOutputError,
    FileReadError,
    FileNotFoundInputError,
    UnsupportedFileTypeError,
    LLMToolError,
    ToolRegistrationError,
    ToolNotFoundError,
    ToolExecutionError,
    ToolValidationError,
    classify_error,
)

__all__ = [
    "ErrorKind",
    "AgentLibError",
    "ProviderError",
    "ProviderConnectionError",
    "ProviderAuthError",
    "MalformedResponseError",
    "UnsupportedProviderError",
    "StructuredOutputError",
    "FileReadError",
    "FileNotFoundInputError",
    "UnsupportedFileTypeError",
    "LLMToolError",
    "ToolRegistrationError",
    "ToolNotFoundError",
    "ToolExecutionError",
    "ToolValidationError",
    "classify_error",
]
