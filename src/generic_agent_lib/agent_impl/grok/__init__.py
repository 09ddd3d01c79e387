"""xAI Grok adapter."""

from .core import GrokProvider

__all__ = ["GrokProvider"]
