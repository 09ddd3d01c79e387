from .models import ToolDefinition
from .call_protocol import ToolCallResult
from .registry import ToolRegistry
from .execution import ToolExecutor
from .schema import SchemaValidator, ToolParameterFactory

__all__ = [
    "ToolDefinition",
    "ToolCallResult",
    "ToolRegistry",
    "ToolExecutor",
    "SchemaValidator",
    "ToolParameterFactory",
]
