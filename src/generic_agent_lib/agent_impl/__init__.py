"""Vendor adapters and provider selection."""

from typing import Callable, Dict

from generic_agent_lib.agent_core.base import LLMProvider
from generic_agent_lib.agent_core.exceptions import UnsupportedProviderError
from .gemini import GoogleProvider
from .grok import GrokProvider
from .openai_api import OpenAIProvider

PROVIDERS: Dict[str, Callable[[str], LLMProvider]] = {
    "openai": OpenAIProvider,
    "google": GoogleProvider,
    "gemini": GoogleProvider,
    "grok": GrokProvider,
    "xai": GrokProvider,
}


def create_provider(model_string: str) -> LLMProvider:
    """Create an adapter from a ``"vendor:model"`` string.

    Credentials are taken from the environment.

    Args:
        model_string: e.g. ``"openai:gpt-4o"`` or ``"google:gemini-2.5-flash"``.

    Returns:
        The adapter for the named vendor.

    Raises:
        UnsupportedProviderError: If the vendor is unknown or the model is missing.
    """
    vendor, _, model = model_string.partition(":")
    factory = PROVIDERS.get(vendor.strip().lower())
    if factory is None or not model:
        raise UnsupportedProviderError(
            f"Unsupported provider: {vendor}. Use format 'provider:model' (e.g., openai:gpt-4o)"
        )
    return factory(model)


__all__ = ["GoogleProvider", "GrokProvider", "OpenAIProvider", "PROVIDERS", "create_provider"]
