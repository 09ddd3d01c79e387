"""Notifications emitted by an agent run."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


class EventType(str, Enum):
    START = "start"
    TOKEN = "token"
    TOOL_START = "tool_start"
    TOOL_END = "tool_end"
    RESPONSE = "response"
    ERROR = "error"
    LOG = "log"


TERMINAL_EVENTS = frozenset({EventType.RESPONSE, EventType.ERROR})


@dataclass(frozen=True)
class AgentEvent:
    """One notification of a run.

    Payloads by type:

    * ``start``: ``{"timestamp", "input"}``
    * ``token``: the text fragment
    * ``tool_start``: ``{"tool", "call_id", "arguments"}``
    * ``tool_end``: ``{"tool", "call_id", "result"}`` or ``{"tool", "call_id", "error"}``
    * ``response``: the final ``AgentResponse``
    * ``error``: ``{"error_key", "message", "details"}``
    * ``log``: ``{"level", "message"}``
    """

    type: EventType
    payload: Any = None

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENTS


EventCallback = Callable[[AgentEvent], None]
