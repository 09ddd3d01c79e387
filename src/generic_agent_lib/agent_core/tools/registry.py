"""Tool registry and helper utilities."""

import inspect
from typing import Any, Callable, Dict, Iterator, List, Optional, Union, cast

from pydantic import BaseModel, create_model

from .models import ToolDefinition
from .schema import SchemaValidator, ToolParameterFactory
from ..exceptions import ToolNotFoundError, ToolRegistrationError, ToolValidationError
from ..logger import get_logger

logger = get_logger(__name__)


class ToolRegistry:
    """
    The tool set of an agent.

    Holds the tool definitions offered to the model and maps tool names to
    their Python implementations. Registration order is preserved and is the
    order in which tools are declared to the vendor. The registry is
    provider-agnostic; each adapter converts the definitions to its own wire
    format.
    """

    def __init__(self, tools: Optional[List[Union[ToolDefinition, Callable]]] = None) -> None:
        """Initialize the ToolRegistry.

        Args:
            tools: Optional tool definitions or annotated callables to register right away.
        """
        self.tools: Dict[str, ToolDefinition] = {}
        for tool in tools or []:
            self.register(tool)

    def register(
        self,
        name_or_tool: Union[str, ToolDefinition, Callable],
        description: Optional[str] = None,
        func: Optional[Callable] = None,
        parameters: Optional[Union[Dict[str, Any], type[BaseModel]]] = None,
    ) -> ToolDefinition:
        """
        Register a new tool.

        A tool can be given as a `ToolDefinition`, as a callable (the definition
        is generated from its signature and docstring), or as a name together
        with its description, implementation and parameters.

        Args:
            name_or_tool: Either a `ToolDefinition` object, the name of the tool (str), or a Callable.
            description: What the tool does. Required if `name_or_tool` is a string and parameters are provided.
            func: The callable implementing the tool. Required if `name_or_tool` is a string.
            parameters: A JSON schema dict or a pydantic model class. If None, it is inferred from `func`.

        Returns:
            The registered definition.

        Raises:
            ToolRegistrationError: If arguments are missing or the tool already exists.
            ToolValidationError: If the generated definition is invalid.
        """
        if isinstance(name_or_tool, ToolDefinition):
            tool = name_or_tool
        elif callable(name_or_tool):
            tool = self._generate_tool_definition(name_or_tool, description=description)
        else:
            if func is None:
                raise ToolRegistrationError("If passing name as string, func is required.")

            if parameters is None:
                tool = self._generate_tool_definition(func, name=name_or_tool, description=description)
            else:
                if description is None:
                    raise ToolRegistrationError("If passing name and parameters, description is required.")
                tool = self._definition_from_parameters(name_or_tool, description, func, parameters)

        if tool.name in self.tools:
            msg = f"Tool '{tool.name}' is already registered."
            logger.error(msg)
            raise ToolRegistrationError(msg)

        self.tools[tool.name] = tool
        logger.info(f"Successfully registered tool: '{tool.name}'")
        return tool

    def unregister(self, tool_name: str) -> None:
        """Unregister a tool from the registry.

        Raises:
            ToolNotFoundError: If the tool does not exist in the registry.
        """
        if tool_name not in self.tools:
            raise ToolNotFoundError(f"Tool '{tool_name}' not found in the registry.")
        del self.tools[tool_name]
        logger.info(f"Successfully unregistered tool: '{tool_name}'")

    def tool(self, func: Callable) -> Callable:
        """A decorator to turn a function into a tool.

        Args:
            func: The function to decorate.

        Returns:
            The original function, after registering it as a tool.
        """
        self.register(func)
        return func

    def get(self, tool_name: str) -> Optional[ToolDefinition]:
        return self.tools.get(tool_name)

    @property
    def definitions(self) -> List[ToolDefinition]:
        """Registered tools in registration order."""
        return list(self.tools.values())

    @property
    def implementations(self) -> Dict[str, Callable]:
        """Returns a dictionary mapping tool names to their callables."""
        return {name: tool.func for name, tool in self.tools.items()}

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self.tools

    def __len__(self) -> int:
        return len(self.tools)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self.definitions)

    @staticmethod
    def _definition_from_parameters(
        name: str, description: str, func: Callable, parameters: Union[Dict[str, Any], type[BaseModel]]
    ) -> ToolDefinition:
        if isinstance(parameters, type) and issubclass(parameters, BaseModel):
            return ToolDefinition(
                name=name,
                description=description,
                func=func,
                parameters=SchemaValidator.schema_from_model(parameters),
                args_model=parameters,
            )
        if not isinstance(parameters, dict):
            raise ToolRegistrationError(
                f"Parameters of tool '{name}' must be a JSON schema dict or a pydantic model class."
            )
        return ToolDefinition(name=name, description=description, func=func, parameters=parameters)

    def _generate_tool_definition(
        self, func: Callable, name: Optional[str] = None, description: Optional[str] = None
    ) -> ToolDefinition:
        """Generate a ToolDefinition from a callable function.

        Args:
            func: The function to generate a definition for.
            name: Optional name override for the tool.
            description: Optional description override for the tool.

        Returns:
            A ToolDefinition object containing the tool's metadata and schema.

        Raises:
            ToolValidationError: If the function is missing a docstring or parameter descriptions.
        """
        tool_name = name or func.__name__
        if description is None:
            description = self._get_docstring_from_func(func, tool_name)

        fields = ToolParameterFactory.build_fields(inspect.signature(func), tool_name)

        # create_model expects **field_definitions: Any
        args_model = create_model(f"{tool_name}Params", **cast(Dict[str, Any], fields))

        return ToolDefinition(
            name=tool_name,
            description=description,
            func=func,
            parameters=SchemaValidator.schema_from_model(args_model),
            args_model=args_model,
        )

    @staticmethod
    def _get_docstring_from_func(func: Callable, tool_name: str) -> str:
        doc = inspect.getdoc(func)
        if not doc:
            msg = f"Tool '{tool_name}' missing docstring. Models need a description of what the tool does."
            logger.error(msg)
            raise ToolValidationError(msg)
        return doc
