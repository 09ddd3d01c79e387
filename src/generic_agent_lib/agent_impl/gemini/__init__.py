"""Gemini adapter."""

from .core import GoogleProvider
from .schema_sanitizer import sanitize

__all__ = ["GoogleProvider", "sanitize"]
