"""
Custom exception classes for the agent library.

This module defines the hierarchy of exceptions raised while talking to model
vendors, reading input files, validating structured output, and while
discovering, registering, validating and executing tools. ``ErrorKind`` is the
tag attached to ``error`` events emitted by the agent.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure kinds surfaced through the agent's error notification."""

    NETWORK = "network_error"
    AUTH = "auth_error"
    JSON = "json_error"
    EXECUTION = "execution_error"


class AgentLibError(Exception):
    """Base exception for all library errors."""

    kind: ErrorKind = ErrorKind.EXECUTION


class ProviderError(AgentLibError):
    """Raised when a model vendor call fails."""

    pass


class ProviderConnectionError(ProviderError):
    """Raised when the vendor cannot be reached or the transport fails."""

    kind = ErrorKind.NETWORK


class ProviderAuthError(ProviderError):
    """Raised when the vendor rejects the credentials or permissions."""

    kind = ErrorKind.AUTH


class MalformedResponseError(ProviderError):
    """Raised when a vendor stream cannot be reduced to a valid response."""

    pass


class UnsupportedProviderError(ProviderError):
    """Raised when a provider string names an unknown vendor."""

    pass


class StructuredOutputError(AgentLibError):
    """Describes a structured-output parse or validation failure.

    Adapters record it as a warning instead of raising it.
    """

    kind = ErrorKind.JSON


class FileReadError(AgentLibError):
    """Raised when an input file cannot be read."""

    pass


class FileNotFoundInputError(FileReadError):
    """Raised when an input file does not exist."""

    pass


class UnsupportedFileTypeError(FileReadError):
    """Raised when an input file has an extension that is not supported."""

    pass


class LLMToolError(AgentLibError):
    """Base exception for all tool-related errors."""

    pass


class ToolRegistrationError(LLMToolError):
    """Raised when there is an error registering a tool."""

    pass


class ToolNotFoundError(LLMToolError):
    """Raised when a requested tool is not found in the registry."""

    pass


class ToolExecutionError(LLMToolError):
    """Raised when a tool fails during execution."""

    pass


class ToolValidationError(LLMToolError):
    """Raised when tool parameters or definition are invalid."""

    pass


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception to the failure kind reported in error events.

    Args:
        error: The exception that aborted a run.

    Returns:
        The matching ``ErrorKind``.
    """
    if isinstance(error, AgentLibError):
        return error.kind
    if isinstance(error, (ConnectionError, TimeoutError)):
        return ErrorKind.NETWORK
    if isinstance(error, PermissionError):
        return ErrorKind.AUTH
    return ErrorKind.EXECUTION
