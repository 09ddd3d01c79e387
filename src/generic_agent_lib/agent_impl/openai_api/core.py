import json
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

import openai
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletionChunk, ChatCompletionToolParam
from pydantic import BaseModel

from generic_agent_lib.agent_core import get_logger
from generic_agent_lib.agent_core.base import (
    AgentResponse,
    GenerationConfig,
    LLMProvider,
    PromptInput,
    TokenCallback,
    Usage,
    config_to_dict,
)
from generic_agent_lib.agent_core.exceptions import ProviderAuthError, ProviderConnectionError
from generic_agent_lib.agent_core.messages import Message, UserMessage
from generic_agent_lib.agent_core.streaming import StreamAccumulator
from generic_agent_lib.agent_core.tools import ToolDefinition
from generic_agent_lib.agent_core.utils import LoadedFiles

logger = get_logger(__name__)

JSON_INSTRUCTION = "Please respond with valid JSON."

# Overrides understood by the chat completions endpoint
_CHAT_OPTIONS = ("temperature", "max_tokens", "top_p")


class OpenAIProvider(LLMProvider):
    """
    Adapter for OpenAI's chat completions API.

    Requests are always streamed. Tool calls arrive as index-addressed fragments
    and usage arrives in a trailing chunk (``stream_options.include_usage``).
    """

    API_KEY_ENV: Tuple[str, ...] = ("OPENAI_API_KEY",)
    BASE_URL: Optional[str] = None

    def __init__(self, model: str, api_key: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        """
        Initializes the adapter.

        Args:
            model: The model identifier (e.g. 'gpt-4o').
            api_key: Optional API key. Falls back to the environment.
            client: Optional pre-built client. Takes precedence over ``api_key``.

        Raises:
            ProviderAuthError: If neither a client nor an API key is available.
        """
        super().__init__(model)
        if client is None:
            key = api_key or self._api_key_from_env()
            if not key:
                raise ProviderAuthError(
                    f"No API key for {type(self).__name__}. Set one of: {', '.join(self.API_KEY_ENV)}."
                )
            client = AsyncOpenAI(api_key=key, base_url=self.BASE_URL)
        self.client: AsyncOpenAI = client
        logger.info(f"Initialized {type(self).__name__} with model='{model}'")

    @classmethod
    def _api_key_from_env(cls) -> Optional[str]:
        for name in cls.API_KEY_ENV:
            value = os.getenv(name)
            if value:
                return value
        return None

    async def generate(
        self,
        system: Optional[str],
        prompt: PromptInput,
        files: Optional[Sequence[str]],
        tools: Optional[Sequence[ToolDefinition]],
        config: Optional[GenerationConfig],
        output_schema: Optional[Type[BaseModel]],
        on_token: TokenCallback,
    ) -> AgentResponse:
        messages = self._build_messages(system, prompt, self._load_files(files), output_schema is not None)

        request: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        if tools:
            request["tools"] = self._convert_tools(tools)
            request["tool_choice"] = "auto"

        overrides = config_to_dict(config)
        request.update({key: overrides[key] for key in _CHAT_OPTIONS if key in overrides})

        if output_schema is not None:
            request["response_format"] = {"type": "json_object"}

        logger.debug(
            f"Sending request to {self.model}: {len(messages)} messages, {len(tools or [])} tools, "
            f"structured={output_schema is not None}"
        )

        accumulator = StreamAccumulator(on_token)
        try:
            stream = await self.client.chat.completions.create(**request)
            async for chunk in stream:
                self._consume_chunk(chunk, accumulator)
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise ProviderAuthError(f"{type(self).__name__} rejected the credentials: {e}") from e
        except openai.APIConnectionError as e:
            raise ProviderConnectionError(f"Could not reach {type(self).__name__}: {e}") from e

        return accumulator.finish(self.model, output_schema)

    @staticmethod
    def _consume_chunk(chunk: ChatCompletionChunk, accumulator: StreamAccumulator) -> None:
        """Feeds one stream chunk into the accumulator."""
        if chunk.usage is not None:
            details = chunk.usage.completion_tokens_details
            accumulator.set_usage(
                Usage(
                    input_tokens=chunk.usage.prompt_tokens,
                    output_tokens=chunk.usage.completion_tokens,
                    total_tokens=chunk.usage.total_tokens,
                    reasoning_tokens=details.reasoning_tokens if details else None,
                )
            )

        if not chunk.choices:
            return

        delta = chunk.choices[0].delta
        if delta.content:
            accumulator.add_text(delta.content)

        for tool_call in delta.tool_calls or []:
            function = tool_call.function
            accumulator.add_tool_call_fragment(
                tool_call.index,
                call_id=tool_call.id,
                name=function.name if function else None,
                arguments=function.arguments if function else None,
            )

    @classmethod
    def _build_messages(
        cls, system: Optional[str], prompt: PromptInput, files: LoadedFiles, structured: bool
    ) -> List[Dict[str, Any]]:
        """
        Builds the request messages.

        File content and the JSON instruction are attached to the most recent user turn.

        Args:
            system: Optional system instruction.
            prompt: Free-text prompt or message history.
            files: Resolved input files.
            structured: Whether a JSON answer is requested.

        Returns:
            List of OpenAI message dictionaries.
        """
        history: List[Message] = [UserMessage(content=prompt)] if isinstance(prompt, str) else list(prompt)

        messages: List[Dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.extend(cls._convert_history(history))

        if not files and not structured:
            return messages

        user_index = next((i for i in range(len(messages) - 1, -1, -1) if messages[i]["role"] == "user"), None)
        if user_index is None:
            messages.append({"role": "user", "content": ""})
            user_index = len(messages) - 1

        image_parts = [{"type": "image_url", "image_url": {"url": image.data_uri}} for image in files.images]
        original = messages[user_index]["content"] or ""

        if isinstance(original, list):
            # Content parts are kept; files and the JSON instruction become extra text parts.
            content: Any = []
            if files.text:
                content.append({"type": "text", "text": files.text})
            content.extend(original)
            if structured:
                content.append({"type": "text", "text": JSON_INSTRUCTION})
            content.extend(image_parts)
        else:
            text = original
            if files.text:
                text = f"{files.text}\n\n{text}" if text else files.text
            if structured:
                text = f"{text}\n\n{JSON_INSTRUCTION}" if text else JSON_INSTRUCTION
            content = [{"type": "text", "text": text}, *image_parts] if image_parts else text

        messages[user_index] = {**messages[user_index], "content": content}
        return messages

    @classmethod
    def _convert_history(cls, history: Sequence[Message]) -> List[Dict[str, Any]]:
        """
        Converts generic Message history to OpenAI specific dictionary history.

        Args:
            history: List of Message objects.

        Returns:
            List of OpenAI message dictionaries.
        """
        openai_history: List[Dict[str, Any]] = []
        for msg in history:
            if msg.role == "system":
                openai_history.append({"role": "system", "content": cls._stringify(msg.content)})
            elif msg.role == "user":
                content = msg.content if isinstance(msg.content, list) else cls._stringify(msg.content)
                openai_history.append({"role": "user", "content": content})
            elif msg.role == "assistant":
                openai_msg: Dict[str, Any] = {
                    "role": "assistant",
                    "content": cls._stringify(msg.content) if msg.content else None,
                }
                if msg.tool_calls:
                    openai_msg["tool_calls"] = [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                        }
                        for call in msg.tool_calls
                    ]
                openai_history.append(openai_msg)
            elif msg.role == "tool":
                openai_history.append(
                    {"role": "tool", "tool_call_id": msg.tool_call_id, "content": cls._stringify(msg.content)}
                )
        return openai_history

    @staticmethod
    def _convert_tools(tools: Sequence[ToolDefinition]) -> List[ChatCompletionToolParam]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters,
                },
            }
            for tool in tools
        ]
