import os
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pytest
from dotenv import load_dotenv, find_dotenv

from generic_agent_lib.agent_core.base import AgentResponse, LLMProvider, ResponseMeta, Usage
from generic_agent_lib.agent_core.messages import Message, ToolCall

# Load environment variables from .env file
env_file = find_dotenv()
if not env_file:
    # Fallback for test runs started from a subdirectory
    potential_env = os.path.join(os.path.dirname(os.getcwd()), ".env")
    if os.path.exists(potential_env):
        env_file = potential_env

if env_file:
    load_dotenv(env_file)


class ScriptedProvider(LLMProvider):
    """Replays prepared responses and records every generate call.

    String content is streamed to ``on_token`` as one fragment per word.
    An exception in the script is raised instead of returning a response.
    """

    def __init__(self, script: Sequence[Union[AgentResponse, Exception]], model: str = "scripted-model"):
        super().__init__(model)
        self.script = list(script)
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, system, prompt, files, tools, config, output_schema, on_token) -> AgentResponse:
        self.calls.append(
            {
                "system": system,
                "prompt": prompt if isinstance(prompt, str) else list(prompt),
                "files": files,
                "tools": list(tools) if tools else None,
                "config": config,
                "output_schema": output_schema,
            }
        )
        if not self.script:
            raise AssertionError("ScriptedProvider ran out of responses.")

        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item

        if isinstance(item.content, str) and item.content:
            words = item.content.split(" ")
            for position, word in enumerate(words):
                on_token(word if position == len(words) - 1 else f"{word} ")
        return item.model_copy(deep=True)


def make_response(
    content: Any = "",
    tool_calls: Optional[List[ToolCall]] = None,
    total_tokens: int = 0,
    model: str = "scripted-model",
) -> AgentResponse:
    return AgentResponse(
        content=content,
        tool_calls=tool_calls,
        usage=Usage(input_tokens=total_tokens // 2, output_tokens=total_tokens - total_tokens // 2, total_tokens=total_tokens),
        meta=ResponseMeta(model=model),
    )


@pytest.fixture
def response_factory() -> Callable[..., AgentResponse]:
    return make_response


@pytest.fixture
def scripted_provider() -> Callable[..., ScriptedProvider]:
    def _make(*script: Union[AgentResponse, Exception]) -> ScriptedProvider:
        return ScriptedProvider(script)

    return _make


@pytest.fixture
def saved_messages() -> List[Message]:
    return []


@pytest.fixture(scope="session")
def vcr_config() -> dict[str, Any]:
    return {
        "cassette_library_dir": "tests/cassettes",
        "record_mode": os.getenv("VCR_RECORD_MODE", "once"),
        "match_on": ["method", "path", "query"],
        "filter_headers": [
            "authorization",
            "openai-organization",
            "x-goog-api-key",
            "x-api-key",
            "api-key",
        ],
        "filter_query_parameters": ["key", "api_key", "access_token"],
        "decode_compressed_response": True,
    }
