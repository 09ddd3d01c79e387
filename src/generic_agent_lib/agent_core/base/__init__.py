"""Re-export the provider contract and the shared response models used by all adapters."""

from .base import (
    LLMProvider,
    AgentResponse,
    Usage,
    ResponseMeta,
    GenerationConfig,
    TokenCallback,
    PromptInput,
    config_to_dict,
)

__all__ = [
    "LLMProvider",
    "AgentResponse",
    "Usage",
    "ResponseMeta",
    "GenerationConfig",
    "TokenCallback",
    "PromptInput",
    "config_to_dict",
]
