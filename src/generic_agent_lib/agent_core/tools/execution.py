"""Execution of single tool calls on behalf of the agent loop."""

from __future__ import annotations

import asyncio
import inspect
import json
from typing import Any, Callable, Dict, Optional

from .call_protocol import ToolCallResult
from .registry import ToolRegistry
from ..exceptions import ToolExecutionError, ToolNotFoundError, ToolValidationError
from ..logger import get_logger
from ..messages import ToolCall

logger = get_logger(__name__)


class ToolExecutor:
    """Runs tool calls requested by a model.

    The executor resolves the tool, normalizes and validates the arguments and
    runs the implementation with a timeout. Every failure of a single call is
    turned into an error result so the model can react to it; the agent never
    aborts a run because a tool failed.
    """

    def __init__(
        self,
        *,
        registry: Optional[ToolRegistry],
        tool_timeout: float = 180.0,
    ) -> None:
        """Initialize the executor.

        Args:
            registry: Tool registry used to resolve tool definitions.
            tool_timeout: Timeout in seconds for one tool execution. Default is 180 seconds.
        """
        self._registry = registry
        self._tool_timeout = tool_timeout

    async def execute(self, tool_call: ToolCall) -> ToolCallResult:
        """Execute one tool call.

        Args:
            tool_call: The call requested by the model.

        Returns:
            The result, or an error result if the tool is unknown, the arguments
            are invalid, or the tool raised.
        """
        logger.debug(f"Handling tool call: {tool_call.name} (ID: {tool_call.id})")
        try:
            function_result = await self._run(tool_call)
        except Exception as exc:
            msg = str(exc) or type(exc).__name__
            logger.warning(
                "Tool '%s' failed: %s (%s)", tool_call.name, msg, type(exc).__name__, exc_info=True
            )
            return ToolCallResult(name=tool_call.name, call_id=tool_call.id, error=msg)

        logger.info(f"Tool '{tool_call.name}' executed successfully.")
        return ToolCallResult(name=tool_call.name, call_id=tool_call.id, result=function_result)

    async def _run(self, tool_call: ToolCall) -> Any:
        tool_def = self._registry.get(tool_call.name) if self._registry is not None else None
        if tool_def is None:
            raise ToolNotFoundError(f"Tool '{tool_call.name}' not found in registry.")

        function_args = self._normalize_function_args(tool_call.name, tool_call.arguments)

        if tool_def.args_model is not None:
            try:
                validated_args = tool_def.args_model.model_validate(function_args)
            except Exception as validation_error:
                raise ToolValidationError(f"Argument validation failed: {validation_error}") from validation_error
            function_args = dict(validated_args)

        logger.info(f"Executing tool '{tool_call.name}'...")
        return await self._execute_tool(tool_def.func, function_args)

    def _normalize_function_args(self, tool_name: str, raw_args: Any) -> Dict[str, Any]:
        """Normalize tool arguments into a dictionary.

        Handles JSON strings, dictionaries, or None values.

        Raises:
            ToolExecutionError: If arguments cannot be parsed or are invalid.
        """
        if raw_args is None or raw_args == "":
            return {}

        if isinstance(raw_args, dict):
            return raw_args

        if isinstance(raw_args, str):
            try:
                parsed = json.loads(raw_args)
            except json.JSONDecodeError as exc:
                raise ToolExecutionError(self._argument_error(tool_name, exc)) from exc

            if parsed is None:
                return {}

            if not isinstance(parsed, dict):
                msg = ValueError("Function arguments must decode to a JSON object.")
                raise ToolExecutionError(self._argument_error(tool_name, msg))

            return parsed

        try:
            return dict(raw_args)
        except (TypeError, ValueError) as exc:
            raise ToolExecutionError(self._argument_error(tool_name, exc)) from exc

    async def _execute_tool(self, tool_function: Callable[..., Any], function_args: Dict[str, Any]) -> Any:
        """Execute the tool function, handling async/sync and timeouts.

        Raises:
            ToolExecutionError: If execution times out.
        """
        try:
            if inspect.iscoroutinefunction(tool_function):
                return await asyncio.wait_for(tool_function(**function_args), timeout=self._tool_timeout)

            result = await asyncio.wait_for(
                asyncio.to_thread(tool_function, **function_args),
                timeout=self._tool_timeout,
            )
            # Callables such as functools.partial around a coroutine function
            if inspect.isawaitable(result):
                result = await asyncio.wait_for(result, timeout=self._tool_timeout)
            return result

        except asyncio.TimeoutError as exc:
            msg = f"Tool execution timed out after {self._tool_timeout} seconds."
            raise ToolExecutionError(msg) from exc

    @staticmethod
    def _argument_error(tool_name: str, error: Exception) -> str:
        return f"Failed to parse arguments for tool '{tool_name}': {error}"
