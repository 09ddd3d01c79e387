"""Immutable agent configuration."""

from typing import Any, Callable, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..base import GenerationConfig, LLMProvider
from ..messages import Message
from ..tools import ToolRegistry

SaveFunction = Callable[[Message], Any]


class AgentConfig(BaseModel):
    """
    Configuration snapshot of an agent.

    The model is frozen: an agent's configuration cannot change while it is
    used, so concurrent runs of the same agent always see the same settings.

    Attributes:
        name: Human readable agent name, used in logs.
        provider: The vendor adapter, or a ``"vendor:model"`` string resolved on construction.
        prompt: Base prompt placed before bare-string input.
        system: System instruction.
        files: Paths of files attached to the most recent user turn of every call.
        config: Model overrides.
        tools: The tool set offered to the model.
        output_schema: Pydantic model the final text must satisfy.
        save_function: Sync or async persistence hook receiving every new message.
        max_tool_iterations: Upper bound on generate calls per run.
        tool_timeout: Timeout in seconds for one tool execution.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = "agent"
    provider: LLMProvider
    prompt: Optional[str] = None
    system: Optional[str] = None
    files: Optional[List[str]] = None
    config: GenerationConfig = Field(default_factory=GenerationConfig)
    tools: Optional[ToolRegistry] = None
    output_schema: Optional[Type[BaseModel]] = None
    save_function: Optional[SaveFunction] = None
    max_tool_iterations: int = Field(default=1, ge=1)
    tool_timeout: float = Field(default=180.0, gt=0)

    @field_validator("provider", mode="before")
    @classmethod
    def _resolve_provider(cls, value: Any) -> Any:
        if isinstance(value, str):
            # Imported here, the adapters depend on agent_core.
            from ...agent_impl import create_provider

            return create_provider(value)
        return value

    @field_validator("tools", mode="before")
    @classmethod
    def _build_registry(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return ToolRegistry(list(value))
        return value

    @field_validator("config", mode="before")
    @classmethod
    def _default_config(cls, value: Any) -> Any:
        return GenerationConfig() if value is None else value
