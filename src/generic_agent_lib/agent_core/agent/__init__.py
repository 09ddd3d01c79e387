from .agent import Agent, RunState
from .chain import ChainResult, ChainStep, chain, simple_chain
from .config import AgentConfig
from .events import AgentEvent, EventCallback, EventType

__all__ = [
    "Agent",
    "AgentConfig",
    "AgentEvent",
    "ChainResult",
    "ChainStep",
    "EventCallback",
    "EventType",
    "RunState",
    "chain",
    "simple_chain",
]
