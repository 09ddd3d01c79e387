"""The turn-loop orchestrator."""

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, List, Optional

from .config import AgentConfig
from .events import AgentEvent, EventCallback, EventType
from ..base import AgentResponse, PromptInput
from ..exceptions import classify_error
from ..logger import get_logger
from ..messages import AssistantMessage, Message, ToolMessage, UserMessage
from ..tools import ToolExecutor

logger = get_logger(__name__)


@dataclass
class RunState:
    """Per-run state. Never shared between runs.

    Attributes:
        history: Messages sent to the provider, appended to as the run proceeds.
        iterations: Number of generate calls made so far.
        last_response: Response of the most recent generate call.
    """

    history: List[Message] = field(default_factory=list)
    iterations: int = 0
    last_response: Optional[AgentResponse] = None


class Agent:
    """
    Drives a model through one uniform interface, independent of the vendor.

    A run moves through ``START -> GENERATING -> (TOOL_DISPATCH -> GENERATING)* -> DONE``
    or ends in ``ERROR``. Tool calls of a turn are executed one after another in
    the order the model returned them, and a failing tool becomes an error result
    the model can see. Every other failure aborts the run after a single ``error``
    notification.

    The agent keeps no per-run state, so one instance can serve concurrent runs.
    """

    def __init__(self, config: Optional[AgentConfig] = None, **kwargs: Any):
        """
        Initializes the agent.

        Args:
            config: The agent configuration. If omitted, one is built from ``kwargs``.
            **kwargs: Fields of ``AgentConfig``.
        """
        if config is None:
            config = AgentConfig(**kwargs)
        elif kwargs:
            raise TypeError("Pass either an AgentConfig or keyword arguments, not both.")

        self.config: AgentConfig = config
        self.provider = config.provider
        self._executor = ToolExecutor(registry=config.tools, tool_timeout=config.tool_timeout)

    @property
    def name(self) -> str:
        return self.config.name

    async def run(self, input: PromptInput, on_event: Optional[EventCallback] = None) -> AgentResponse:
        """
        Executes one run.

        Args:
            input: A bare prompt, or a full message history used as-is.
            on_event: Optional callback receiving every notification of this run.

        Returns:
            The final response.

        Raises:
            Exception: Any failure other than a tool failure, after the ``error`` notification.
        """

        def emit(event_type: EventType, payload: Any = None) -> None:
            if on_event is not None:
                on_event(AgentEvent(type=event_type, payload=payload))

        emit(EventType.START, {"timestamp": time.time(), "input": input})
        started = time.perf_counter()

        try:
            state = RunState(history=self._initial_history(input))
            if isinstance(input, str):
                await self._persist(state.history[-1], emit)

            response = await self._loop(state, emit)
        except Exception as e:
            error_key = classify_error(e)
            logger.error(f"Agent '{self.name}' run failed ({error_key.value}): {e}")
            emit(
                EventType.ERROR,
                {"error_key": error_key.value, "message": str(e) or type(e).__name__, "details": e},
            )
            raise

        response.meta.latency_ms = int((time.perf_counter() - started) * 1000)

        await self._persist(
            AssistantMessage(
                content=response.content,
                usage=response.usage.model_dump(),
                meta=response.meta.model_dump(),
            ),
            emit,
        )

        emit(EventType.RESPONSE, response)
        return response

    async def stream(self, input: PromptInput) -> AsyncIterator[AgentEvent]:
        """
        Runs the agent and yields its notifications.

        The iterator ends after the ``response`` or ``error`` event. Failures are
        reported through the ``error`` event only. Closing the iterator early
        cancels the run.

        Args:
            input: A bare prompt, or a full message history.

        Yields:
            The notifications of the run, in order.
        """
        queue: asyncio.Queue[AgentEvent] = asyncio.Queue()
        task = asyncio.create_task(self.run(input, on_event=queue.put_nowait))
        task.add_done_callback(_consume_task_result)

        try:
            while True:
                event = await queue.get()
                yield event
                if event.is_terminal:
                    break
        finally:
            if not task.done():
                logger.debug(f"Stream of agent '{self.name}' closed early, cancelling run.")
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    def _initial_history(self, input: PromptInput) -> List[Message]:
        if isinstance(input, str):
            content = f"{self.config.prompt}\n\n{input}" if self.config.prompt else input
            return [UserMessage(content=content)]
        return list(input)

    async def _loop(self, state: RunState, emit) -> AgentResponse:
        max_iterations = self.config.max_tool_iterations
        tools = self.config.tools
        definitions = tools.definitions if tools is not None else None

        while state.iterations < max_iterations:
            state.iterations += 1
            logger.info(f"Agent '{self.name}': generate call {state.iterations}/{max_iterations}")

            response = await self.provider.generate(
                self.config.system,
                list(state.history),
                self.config.files,
                definitions or None,
                self.config.config,
                self.config.output_schema,
                lambda token: emit(EventType.TOKEN, token),
            )
            state.last_response = response

            if isinstance(response.content, str):
                response.message = response.content

            if not response.tool_calls or tools is None:
                break

            await self._dispatch_tools(state, response, emit)

        if state.last_response is None:
            raise RuntimeError(f"Agent '{self.name}' failed to generate a response.")
        return state.last_response

    async def _dispatch_tools(self, state: RunState, response: AgentResponse, emit) -> None:
        """Executes the tool calls of a response and records the results in history."""
        tool_calls = response.tool_calls or []
        logger.info(f"Agent '{self.name}' dispatching {len(tool_calls)} tool call(s).")

        assistant_message = AssistantMessage(content=response.content or None, tool_calls=tool_calls)
        state.history.append(assistant_message)
        await self._persist(assistant_message, emit)

        has_result = False
        last_result: Any = None
        for call in tool_calls:
            emit(EventType.TOOL_START, {"tool": call.name, "call_id": call.id, "arguments": call.arguments})
            result = await self._executor.execute(call)

            payload = {"tool": call.name, "call_id": call.id}
            if result.ok:
                payload["result"] = result.result
            else:
                payload["error"] = result.error
            emit(EventType.TOOL_END, payload)

            tool_message = ToolMessage(tool_call_id=call.id, name=call.name, content=result.content)
            state.history.append(tool_message)
            await self._persist(tool_message, emit)

            if result.ok and result.result is not None:
                has_result = True
                last_result = result.result

        response.tool_calls = None
        # Single-shot runs answer with the tool output.
        if self.config.max_tool_iterations == 1 and has_result:
            response.content = last_result

    async def _persist(self, message: Message, emit) -> None:
        save_function = self.config.save_function
        if save_function is None:
            return

        try:
            result = save_function(message)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            msg = f"Failed to save {message.role} message: {e}"
            logger.error(msg, exc_info=True)
            emit(EventType.LOG, {"level": "error", "message": msg})

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, provider={self.provider!r})"


def _consume_task_result(task: "asyncio.Task[AgentResponse]") -> None:
    # The failure was delivered as an error event.
    if not task.cancelled():
        task.exception()
