"""Tool-related data models."""

from typing import Any, Callable, Dict, Optional, Type

from pydantic import BaseModel, Field


class ToolDefinition(BaseModel):
    """
    Represents the definition of a tool that can be offered to a model.

    Attributes:
        name: The unique name of the tool.
        description: A brief description of what the tool does.
        func: The callable (sync or async) implementing the tool. It receives the
              parsed arguments as keyword arguments.
        parameters: A JSON schema defining the input parameters for the tool.
        args_model: Optional Pydantic model used for validating and coercing arguments.
    """

    name: str
    description: str
    func: Callable[..., Any]
    parameters: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})
    args_model: Optional[Type[BaseModel]] = None
