"""Data models for tool execution."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class ToolCallResult:
    """Represents the outcome of executing a tool call.

    Attributes:
        name: Name of the executed tool.
        call_id: Id of the tool call this result answers.
        result: The raw return value, ``None`` when the call failed.
        error: Error message when the call failed.
    """

    name: str
    call_id: str
    result: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def content(self) -> str:
        """The text recorded in the tool result message."""
        if self.error is not None:
            return f"Error: {self.error}"
        if isinstance(self.result, str):
            return self.result
        return json.dumps(self.result, default=str)
