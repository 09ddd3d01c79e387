import base64
from typing import List

import pytest
from pydantic import BaseModel

from generic_agent_lib.agent_core.base import Usage
from generic_agent_lib.agent_core.exceptions import MalformedResponseError
from generic_agent_lib.agent_core.streaming import StreamAccumulator


class Forecast(BaseModel):
    city: str
    temperature: float


def feed_weather_fragments(accumulator: StreamAccumulator) -> None:
    accumulator.add_tool_call_fragment(0, call_id="call_abc", name="get_")
    accumulator.add_tool_call_fragment(0, name="weather", arguments='{"c')
    accumulator.add_tool_call_fragment(0, arguments='ity":"SF"}')


def test_text_fragments_are_forwarded_and_concatenated() -> None:
    tokens: List[str] = []
    accumulator = StreamAccumulator(on_token=tokens.append)

    for fragment in ["Hel", "lo", "", " world"]:
        accumulator.add_text(fragment)
    response = accumulator.finish("gpt-test")

    assert tokens == ["Hel", "lo", " world"]
    assert response.content == "Hello world"
    assert response.tool_calls is None
    assert response.meta.model == "gpt-test"


def test_indexed_fragments_accumulate_to_one_call() -> None:
    accumulator = StreamAccumulator()
    feed_weather_fragments(accumulator)

    response = accumulator.finish("gpt-test")

    assert response.tool_calls is not None
    assert len(response.tool_calls) == 1
    call = response.tool_calls[0]
    assert call.id == "call_abc"
    assert call.name == "get_weather"
    assert call.arguments == {"city": "SF"}


def test_accumulation_is_deterministic() -> None:
    first, second = StreamAccumulator(), StreamAccumulator()
    feed_weather_fragments(first)
    feed_weather_fragments(second)
    first.add_tool_call("lookup", {"q": 1})
    second.add_tool_call("lookup", {"q": 1})

    assert first.finish("m").tool_calls == second.finish("m").tool_calls


def test_parallel_indexed_calls_keep_index_order() -> None:
    accumulator = StreamAccumulator()
    accumulator.add_tool_call_fragment(1, call_id="call_2", name="second", arguments="{}")
    accumulator.add_tool_call_fragment(0, call_id="call_1", name="first", arguments="")

    response = accumulator.finish("m")

    assert [c.name for c in response.tool_calls or []] == ["first", "second"]
    assert response.tool_calls[0].arguments == {}


def test_malformed_arguments_raise() -> None:
    accumulator = StreamAccumulator()
    accumulator.add_tool_call_fragment(0, call_id="call_1", name="broken", arguments='{"city": ')

    with pytest.raises(MalformedResponseError, match="broken"):
        accumulator.finish("m")


def test_non_object_arguments_raise() -> None:
    accumulator = StreamAccumulator()
    accumulator.add_tool_call_fragment(0, call_id="call_1", name="listy", arguments="[1, 2]")

    with pytest.raises(MalformedResponseError):
        accumulator.finish("m")


def test_whole_calls_are_appended_as_is() -> None:
    accumulator = StreamAccumulator()
    accumulator.add_tool_call("lookup", {"query": "a"}, call_id="fc_1")
    accumulator.add_tool_call("lookup", None)

    calls = accumulator.finish("m").tool_calls or []

    assert [c.id for c in calls] == ["fc_1", "call_1_lookup"]
    assert calls[1].arguments == {}


def test_last_usage_report_wins() -> None:
    accumulator = StreamAccumulator()
    accumulator.set_usage(Usage(input_tokens=5, output_tokens=1, total_tokens=6))
    accumulator.set_usage(Usage(input_tokens=5, output_tokens=9, total_tokens=14, reasoning_tokens=3))

    usage = accumulator.finish("m").usage

    assert usage.total_tokens == 14
    assert usage.output_tokens == 9
    assert usage.reasoning_tokens == 3


def test_inline_data_is_rendered_as_markdown_image() -> None:
    tokens: List[str] = []
    accumulator = StreamAccumulator(on_token=tokens.append)
    accumulator.add_text("Here you go:")
    accumulator.add_inline_data("image/png", b"\x89PNG")

    content = accumulator.finish("m").content

    encoded = base64.b64encode(b"\x89PNG").decode()
    assert content == f"Here you go:\n![Generated Image](data:image/png;base64,{encoded})\n"
    assert tokens == ["Here you go:"]


def test_structured_output_is_parsed() -> None:
    accumulator = StreamAccumulator()
    accumulator.add_text('{"city": "SF", ')
    accumulator.add_text('"temperature": 18.5}')

    response = accumulator.finish("m", output_schema=Forecast)

    assert response.content == {"city": "SF", "temperature": 18.5}
    assert response.meta.warnings == []


def test_invalid_structured_output_keeps_raw_text() -> None:
    accumulator = StreamAccumulator()
    accumulator.add_text("Sunny and warm.")

    response = accumulator.finish("m", output_schema=Forecast)

    assert response.content == "Sunny and warm."
    assert len(response.meta.warnings) == 1


def test_schema_mismatch_keeps_raw_text() -> None:
    accumulator = StreamAccumulator()
    accumulator.add_text('{"city": "SF"}')

    response = accumulator.finish("m", output_schema=Forecast)

    assert response.content == '{"city": "SF"}'
    assert "Forecast" in response.meta.warnings[0]


def test_schema_is_skipped_when_tools_are_called() -> None:
    accumulator = StreamAccumulator()
    accumulator.add_text("not json")
    accumulator.add_tool_call("lookup", {})

    response = accumulator.finish("m", output_schema=Forecast)

    assert response.content == "not json"
    assert response.meta.warnings == []


def test_extras_are_merged_into_meta() -> None:
    accumulator = StreamAccumulator()
    accumulator.merge_extra("grounding_metadata", {"web_search_queries": ["weather sf"]})
    accumulator.merge_extra("grounding_metadata", {"grounding_chunks": [{"web": {"uri": "https://x"}}]})

    meta = accumulator.finish("m").meta

    assert meta.grounding_metadata == {
        "web_search_queries": ["weather sf"],
        "grounding_chunks": [{"web": {"uri": "https://x"}}],
    }


def test_no_tokens_after_finish() -> None:
    tokens: List[str] = []
    accumulator = StreamAccumulator(on_token=tokens.append)
    accumulator.add_text("done")
    accumulator.finish("m")

    with pytest.raises(RuntimeError):
        accumulator.add_text("late")
    assert tokens == ["done"]
