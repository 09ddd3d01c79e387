"""Expose the OpenAI chat completions adapter."""

from .core import OpenAIProvider

__all__ = ["OpenAIProvider"]
