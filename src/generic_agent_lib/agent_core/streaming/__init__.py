"""Accumulation of streamed vendor output."""

from .accumulator import StreamAccumulator

__all__ = ["StreamAccumulator"]
