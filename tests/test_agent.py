import asyncio
from typing import Annotated, Any, List

import pytest
from pydantic import Field, ValidationError

from generic_agent_lib import Agent, AgentConfig, EventType, ToolRegistry
from generic_agent_lib.agent_core.base import AgentResponse, LLMProvider, ResponseMeta
from generic_agent_lib.agent_core.exceptions import ProviderConnectionError
from generic_agent_lib.agent_core.messages import AssistantMessage, Message, ToolCall, ToolMessage, UserMessage


def lookup_registry(result: Any = None, error: Exception | None = None) -> ToolRegistry:
    registry = ToolRegistry()

    @registry.tool
    def lookup(query: Annotated[str, Field(description="What to look up.")]) -> Any:
        """Looks something up."""
        if error is not None:
            raise error
        return {"ok": True} if result is None else result

    return registry


def lookup_call(call_id: str = "call_1", query: str = "weather") -> ToolCall:
    return ToolCall(id=call_id, name="lookup", arguments={"query": query})


def types_of(events: List[Any]) -> List[EventType]:
    return [event.type for event in events]


@pytest.mark.asyncio
async def test_plain_run_streams_tokens_then_response(scripted_provider, response_factory) -> None:
    provider = scripted_provider(response_factory("Hi there, how can I help?", total_tokens=12))
    agent = Agent(provider=provider)
    events: List[Any] = []

    response = await agent.run("Hello!", on_event=events.append)

    event_types = types_of(events)
    assert event_types[0] == EventType.START
    assert event_types[-1] == EventType.RESPONSE
    assert event_types.count(EventType.RESPONSE) == 1
    assert set(event_types[1:-1]) == {EventType.TOKEN}
    assert "".join(e.payload for e in events if e.type == EventType.TOKEN) == "Hi there, how can I help?"

    assert response.content == "Hi there, how can I help?"
    assert response.message == response.content
    assert response.usage.total_tokens > 0
    assert events[-1].payload is response
    assert events[0].payload["input"] == "Hello!"
    assert "timestamp" in events[0].payload


@pytest.mark.asyncio
async def test_bare_input_is_prefixed_with_base_prompt(scripted_provider, response_factory) -> None:
    provider = scripted_provider(response_factory("ok"))
    agent = Agent(provider=provider, prompt="You answer in one word.", system="Be terse.")

    await agent.run("Weather?")

    call = provider.calls[0]
    assert call["system"] == "Be terse."
    assert len(call["prompt"]) == 1
    assert isinstance(call["prompt"][0], UserMessage)
    assert call["prompt"][0].content == "You answer in one word.\n\nWeather?"


@pytest.mark.asyncio
async def test_message_history_input_is_used_as_is(scripted_provider, response_factory, saved_messages) -> None:
    provider = scripted_provider(response_factory("Paris"))
    agent = Agent(provider=provider, prompt="ignored for histories", save_function=saved_messages.append)
    history: List[Message] = [UserMessage(content="Capital of France?")]

    await agent.run(history)

    assert provider.calls[0]["prompt"] == history
    # Only the final assistant message is persisted for history input.
    assert [m.role for m in saved_messages] == ["assistant"]


@pytest.mark.asyncio
async def test_single_shot_tool_result_becomes_content(scripted_provider, response_factory) -> None:
    provider = scripted_provider(response_factory("Let me check.", tool_calls=[lookup_call()], total_tokens=8))
    agent = Agent(provider=provider, tools=lookup_registry())
    events: List[Any] = []

    response = await agent.run("Is it ok?", on_event=events.append)

    assert response.content == {"ok": True}
    assert response.message == "Let me check."
    assert response.tool_calls is None
    assert len(provider.calls) == 1

    event_types = [t for t in types_of(events) if t != EventType.TOKEN]
    assert event_types == [EventType.START, EventType.TOOL_START, EventType.TOOL_END, EventType.RESPONSE]
    tool_start = next(e for e in events if e.type == EventType.TOOL_START)
    tool_end = next(e for e in events if e.type == EventType.TOOL_END)
    assert tool_start.payload == {"tool": "lookup", "call_id": "call_1", "arguments": {"query": "weather"}}
    assert tool_end.payload == {"tool": "lookup", "call_id": "call_1", "result": {"ok": True}}


@pytest.mark.asyncio
async def test_single_shot_with_several_calls_answers_with_last_result(scripted_provider, response_factory) -> None:
    registry = ToolRegistry()

    @registry.tool
    def echo(q: Annotated[str, Field(description="Value to echo.")]) -> dict:
        """Echoes the value."""
        return {"q": q}

    calls = [
        ToolCall(id="call_a", name="echo", arguments={"q": "1"}),
        ToolCall(id="call_b", name="echo", arguments={"q": "2"}),
    ]
    agent = Agent(provider=scripted_provider(response_factory(tool_calls=calls)), tools=registry)
    events: List[Any] = []

    response = await agent.run("Echo twice.", on_event=events.append)

    assert response.content == {"q": "2"}
    tool_events = [(e.type, e.payload["call_id"]) for e in events if e.type in (EventType.TOOL_START, EventType.TOOL_END)]
    assert tool_events == [
        (EventType.TOOL_START, "call_a"),
        (EventType.TOOL_END, "call_a"),
        (EventType.TOOL_START, "call_b"),
        (EventType.TOOL_END, "call_b"),
    ]


@pytest.mark.asyncio
async def test_failing_tool_is_recorded_and_run_completes(
    scripted_provider, response_factory, saved_messages
) -> None:
    provider = scripted_provider(response_factory(tool_calls=[lookup_call()]))
    agent = Agent(
        provider=provider,
        tools=lookup_registry(error=ValueError("service unavailable")),
        save_function=saved_messages.append,
    )
    events: List[Any] = []

    response = await agent.run("Is it ok?", on_event=events.append)

    tool_messages = [m for m in saved_messages if isinstance(m, ToolMessage)]
    assert len(tool_messages) == 1
    assert tool_messages[0].content == "Error: service unavailable"
    assert tool_messages[0].tool_call_id == "call_1"

    tool_end = next(e for e in events if e.type == EventType.TOOL_END)
    assert tool_end.payload["error"] == "service unavailable"
    assert types_of(events)[-1] == EventType.RESPONSE
    assert EventType.ERROR not in types_of(events)
    # No successful tool result, so the model's text stays the content.
    assert response.content == ""


@pytest.mark.asyncio
async def test_unknown_tool_yields_error_result(scripted_provider, response_factory, saved_messages) -> None:
    call = ToolCall(id="call_9", name="teleport", arguments={})
    provider = scripted_provider(response_factory(tool_calls=[call]))
    agent = Agent(provider=provider, tools=lookup_registry(), save_function=saved_messages.append)

    await agent.run("Go")

    tool_message = next(m for m in saved_messages if isinstance(m, ToolMessage))
    assert tool_message.content.startswith("Error: ")
    assert "teleport" in tool_message.content


@pytest.mark.asyncio
async def test_tool_results_are_fed_back_on_next_iteration(scripted_provider, response_factory) -> None:
    provider = scripted_provider(
        response_factory(tool_calls=[lookup_call("call_a", "Berlin"), lookup_call("call_b", "Paris")]),
        response_factory("Both are fine."),
    )
    agent = Agent(provider=provider, tools=lookup_registry(result="sunny"), max_tool_iterations=3)

    response = await agent.run("Weather in Berlin and Paris?")

    assert response.content == "Both are fine."
    assert len(provider.calls) == 2

    second_prompt = provider.calls[1]["prompt"]
    assert [m.role for m in second_prompt] == ["user", "assistant", "tool", "tool"]
    assistant = second_prompt[1]
    assert [c.id for c in assistant.tool_calls] == ["call_a", "call_b"]
    # Tool results follow provider order and refer back to the calls.
    assert [m.tool_call_id for m in second_prompt[2:]] == ["call_a", "call_b"]
    assert [m.content for m in second_prompt[2:]] == ["sunny", "sunny"]
    # History passed to the first call is unchanged.
    assert len(provider.calls[0]["prompt"]) == 1


@pytest.mark.asyncio
async def test_iteration_cap_bounds_generate_calls(scripted_provider, response_factory) -> None:
    provider = scripted_provider(
        response_factory("first", tool_calls=[lookup_call("call_1")]),
        response_factory("second", tool_calls=[lookup_call("call_2")]),
    )
    agent = Agent(provider=provider, tools=lookup_registry(), max_tool_iterations=2)

    response = await agent.run("Loop")

    assert len(provider.calls) == 2
    assert response.content == "second"
    assert response.tool_calls is None


@pytest.mark.asyncio
async def test_tool_calls_without_tool_set_are_left_pending(scripted_provider, response_factory) -> None:
    provider = scripted_provider(response_factory("", tool_calls=[lookup_call()]))
    agent = Agent(provider=provider)
    events: List[Any] = []

    response = await agent.run("Hi", on_event=events.append)

    assert response.tool_calls is not None
    assert response.tool_calls[0].name == "lookup"
    assert EventType.TOOL_START not in types_of(events)


@pytest.mark.asyncio
async def test_persistence_hook_receives_every_new_message(
    scripted_provider, response_factory, saved_messages
) -> None:
    provider = scripted_provider(response_factory("Checking", tool_calls=[lookup_call()], total_tokens=5))
    agent = Agent(provider=provider, tools=lookup_registry(), save_function=saved_messages.append)

    response = await agent.run("Status?")

    assert [m.role for m in saved_messages] == ["user", "assistant", "tool", "assistant"]
    assert saved_messages[0].content == "Status?"
    assert saved_messages[1].tool_calls[0].id == "call_1"
    assert saved_messages[1].content == "Checking"

    final = saved_messages[-1]
    assert isinstance(final, AssistantMessage)
    assert final.content == {"ok": True}
    assert final.usage["total_tokens"] == 5
    assert final.meta["latency_ms"] == response.meta.latency_ms


@pytest.mark.asyncio
async def test_async_hook_failures_are_swallowed(scripted_provider, response_factory) -> None:
    saved: List[Message] = []

    async def save(message: Message) -> None:
        if message.role == "user":
            raise RuntimeError("database down")
        saved.append(message)

    provider = scripted_provider(response_factory("fine"))
    agent = Agent(provider=provider, save_function=save)
    events: List[Any] = []

    response = await agent.run("Hi", on_event=events.append)

    assert response.content == "fine"
    assert [m.role for m in saved] == ["assistant"]
    log_event = next(e for e in events if e.type == EventType.LOG)
    assert log_event.payload["level"] == "error"
    assert "database down" in log_event.payload["message"]


@pytest.mark.asyncio
async def test_provider_failure_emits_one_error_and_reraises(scripted_provider) -> None:
    failure = ProviderConnectionError("connection reset")
    agent = Agent(provider=scripted_provider(failure))
    events: List[Any] = []

    with pytest.raises(ProviderConnectionError):
        await agent.run("Hi", on_event=events.append)

    assert types_of(events) == [EventType.START, EventType.ERROR]
    payload = events[-1].payload
    assert payload["error_key"] == "network_error"
    assert payload["message"] == "connection reset"
    assert payload["details"] is failure


@pytest.mark.asyncio
async def test_unexpected_failure_is_an_execution_error(scripted_provider) -> None:
    agent = Agent(provider=scripted_provider(RuntimeError("boom")))
    events: List[Any] = []

    with pytest.raises(RuntimeError):
        await agent.run("Hi", on_event=events.append)

    assert events[-1].payload["error_key"] == "execution_error"


@pytest.mark.asyncio
async def test_latency_is_stamped(scripted_provider, response_factory) -> None:
    agent = Agent(provider=scripted_provider(response_factory("ok")))

    response = await agent.run("Hi")

    assert response.meta.latency_ms >= 0
    assert response.meta.model == "scripted-model"


@pytest.mark.asyncio
async def test_stream_yields_events_until_response(scripted_provider, response_factory) -> None:
    agent = Agent(provider=scripted_provider(response_factory("one two")))

    events = [event async for event in agent.stream("Hi")]

    assert types_of(events) == [EventType.START, EventType.TOKEN, EventType.TOKEN, EventType.RESPONSE]
    assert events[-1].payload.content == "one two"


@pytest.mark.asyncio
async def test_stream_ends_after_error_event(scripted_provider) -> None:
    agent = Agent(provider=scripted_provider(ProviderConnectionError("offline")))

    events = [event async for event in agent.stream("Hi")]

    assert types_of(events) == [EventType.START, EventType.ERROR]
    assert events[-1].payload["error_key"] == "network_error"


class BlockingProvider(LLMProvider):
    def __init__(self) -> None:
        super().__init__("blocking-model")
        self.started = asyncio.Event()
        self.cancelled = False

    async def generate(self, system, prompt, files, tools, config, output_schema, on_token) -> AgentResponse:
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return AgentResponse(meta=ResponseMeta(model=self.model))


@pytest.mark.asyncio
async def test_closing_stream_cancels_run() -> None:
    provider = BlockingProvider()
    agent = Agent(provider=provider)

    stream = agent.stream("Hi")
    first = await stream.__anext__()
    await provider.started.wait()
    await stream.aclose()

    assert first.type == EventType.START
    assert provider.cancelled


def test_config_is_frozen(scripted_provider) -> None:
    agent = Agent(provider=scripted_provider())

    with pytest.raises(ValidationError):
        agent.config.max_tool_iterations = 5  # type: ignore[misc]


def test_config_requires_at_least_one_iteration(scripted_provider) -> None:
    with pytest.raises(ValidationError):
        AgentConfig(provider=scripted_provider(), max_tool_iterations=0)


def test_config_builds_registry_from_callables(scripted_provider) -> None:
    def ping(host: Annotated[str, Field(description="Host name.")]) -> str:
        """Pings a host."""
        return "pong"

    config = AgentConfig(provider=scripted_provider(), tools=[ping])

    assert isinstance(config.tools, ToolRegistry)
    assert "ping" in config.tools


def test_agent_rejects_config_and_kwargs(scripted_provider) -> None:
    config = AgentConfig(provider=scripted_provider())

    with pytest.raises(TypeError):
        Agent(config, name="other")


@pytest.mark.asyncio
async def test_run_without_any_generate_call_fails_loudly(scripted_provider) -> None:
    provider = scripted_provider()
    # Bypasses validation to reach a loop that never calls the model.
    agent = Agent(AgentConfig.model_construct(provider=provider, max_tool_iterations=0))
    events: List[Any] = []

    with pytest.raises(RuntimeError, match="failed to generate a response"):
        await agent.run("Hi", on_event=events.append)

    assert provider.calls == []
    assert events[-1].type == EventType.ERROR
    assert events[-1].payload["error_key"] == "execution_error"
