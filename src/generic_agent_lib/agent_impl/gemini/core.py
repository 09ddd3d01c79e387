import base64
import json
import os
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

import httpx
from google import genai
from google.genai import errors, types
from google.genai.client import AsyncClient
from google.genai.types import GenerateContentResponse
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
from .schema_sanitizer import sanitize

logger = get_logger(__name__)

API_KEY_ENV: Tuple[str, ...] = ("GOOGLE_API_KEY", "GEMINI_API_KEY")

_AUTH_STATUS_CODES = (401, 403)


class GoogleProvider(LLMProvider):
    """
    Adapter for Google's Gemini models.

    Gemini streams whole function calls per chunk, reports usage with every
    chunk, can return generated images as inline data and attaches grounding
    metadata when Google Search is enabled.
    """

    def __init__(self, model: str, api_key: Optional[str] = None, aclient: Optional[AsyncClient] = None):
        """
        Initializes the adapter.

        Args:
            model: The model identifier (e.g. 'gemini-2.5-flash'). The 'models/' prefix is added if missing.
            api_key: Optional API key. Falls back to GOOGLE_API_KEY or GEMINI_API_KEY.
            aclient: Optional pre-built async client (``genai.Client(...).aio``).

        Raises:
            ProviderAuthError: If neither a client nor an API key is available.
        """
        super().__init__(model if model.startswith("models/") else f"models/{model}")
        if aclient is None:
            key = api_key or next((os.getenv(name) for name in API_KEY_ENV if os.getenv(name)), None)
            if not key:
                raise ProviderAuthError(f"No API key for GoogleProvider. Set one of: {', '.join(API_KEY_ENV)}.")
            # The sync client owns the transport shared with .aio
            self._client = genai.Client(api_key=key)
            aclient = self._client.aio
        self.client: AsyncClient = aclient
        logger.info(f"Initialized GoogleProvider with model='{self.model}'")

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
        history: List[Message] = [UserMessage(content=prompt)] if isinstance(prompt, str) else list(prompt)
        contents, history_system = self._convert_history(history)
        self._attach_files(contents, self._load_files(files))

        system_instruction = "\n\n".join(part for part in (system, history_system) if part) or None
        generate_config = self._build_config(system_instruction, tools, config, output_schema)

        logger.debug(f"Sending request to {self.model}: {len(contents)} contents, {len(tools or [])} tools")

        accumulator = StreamAccumulator(on_token)
        try:
            stream = await self.client.models.generate_content_stream(
                model=self.model,
                contents=contents,  # type: ignore[arg-type]
                config=generate_config,
            )
            async for chunk in stream:
                self._consume_chunk(chunk, accumulator)
        except errors.APIError as e:
            if e.code in _AUTH_STATUS_CODES:
                raise ProviderAuthError(f"Gemini rejected the credentials: {e}") from e
            raise
        except httpx.TransportError as e:
            raise ProviderConnectionError(f"Could not reach Gemini: {e}") from e

        return accumulator.finish(self.model, output_schema)

    @staticmethod
    def _consume_chunk(chunk: GenerateContentResponse, accumulator: StreamAccumulator) -> None:
        """Feeds one stream chunk into the accumulator."""
        usage = chunk.usage_metadata
        if usage is not None:
            accumulator.set_usage(
                Usage(
                    input_tokens=usage.prompt_token_count or 0,
                    output_tokens=usage.candidates_token_count or 0,
                    total_tokens=usage.total_token_count or 0,
                    reasoning_tokens=usage.thoughts_token_count,
                )
            )

        if not chunk.candidates:
            return

        candidate = chunk.candidates[0]
        if candidate.grounding_metadata is not None:
            accumulator.merge_extra(
                "grounding_metadata", candidate.grounding_metadata.model_dump(mode="json", exclude_none=True)
            )

        if candidate.content is None or not candidate.content.parts:
            return

        for part in candidate.content.parts:
            if part.function_call is not None:
                accumulator.add_tool_call(
                    name=part.function_call.name or "",
                    arguments=part.function_call.args,
                    call_id=part.function_call.id,
                )
            elif part.inline_data is not None and part.inline_data.data:
                accumulator.add_inline_data(part.inline_data.mime_type or "image/png", part.inline_data.data)
            elif part.text and not part.thought:
                accumulator.add_text(part.text)

    @staticmethod
    def _build_config(
        system_instruction: Optional[str],
        tools: Optional[Sequence[ToolDefinition]],
        config: Optional[GenerationConfig],
        output_schema: Optional[Type[BaseModel]],
    ) -> types.GenerateContentConfig:
        overrides = config_to_dict(config)
        kwargs: Dict[str, Any] = {}

        if system_instruction:
            kwargs["system_instruction"] = system_instruction
        if "temperature" in overrides:
            kwargs["temperature"] = overrides["temperature"]
        if "max_tokens" in overrides:
            kwargs["max_output_tokens"] = overrides["max_tokens"]
        if "top_p" in overrides:
            kwargs["top_p"] = overrides["top_p"]
        if "candidate_count" in overrides:
            kwargs["candidate_count"] = overrides["candidate_count"]
        if "aspect_ratio" in overrides:
            kwargs["image_config"] = types.ImageConfig(aspect_ratio=overrides["aspect_ratio"])

        gemini_tools: List[types.Tool] = []
        if tools:
            declarations = [
                types.FunctionDeclaration(
                    name=tool.name,
                    description=tool.description,
                    parameters=sanitize(tool.parameters),  # type: ignore[arg-type]
                )
                for tool in tools
            ]
            gemini_tools.append(types.Tool(function_declarations=declarations))
            logger.debug(f"Declared {len(declarations)} tools for Gemini.")
        if overrides.get("google_search"):
            gemini_tools.append(types.Tool(google_search=types.GoogleSearch()))
        if gemini_tools:
            kwargs["tools"] = gemini_tools

        if output_schema is not None:
            kwargs["response_mime_type"] = "application/json"
            kwargs["response_schema"] = output_schema

        return types.GenerateContentConfig(**kwargs)

    @classmethod
    def _convert_history(cls, history: Sequence[Message]) -> Tuple[List[types.Content], Optional[str]]:
        """
        Converts generic Message history to Gemini Content history.

        Gemini has no system or tool role: system messages are returned separately
        and merged into the system instruction, tool results become ``user`` turns
        carrying a ``function_response`` part.

        Args:
            history: List of Message objects.

        Returns:
            The contents and the concatenated text of system messages, if any.
        """
        contents: List[types.Content] = []
        system_parts: List[str] = []

        for msg in history:
            if msg.role == "system":
                system_parts.append(cls._stringify(msg.content))
            elif msg.role == "tool":
                contents.append(
                    types.Content(
                        role="user",
                        parts=[
                            types.Part(
                                function_response=types.FunctionResponse(
                                    id=cls._vendor_call_id(msg.tool_call_id, msg.name),
                                    name=msg.name,
                                    response=cls._function_response(msg.content),
                                )
                            )
                        ],
                    )
                )
            elif msg.role == "assistant":
                parts = [
                    types.Part(
                        function_call=types.FunctionCall(
                            id=cls._vendor_call_id(call.id, call.name), name=call.name, args=call.arguments
                        )
                    )
                    for call in msg.tool_calls or []
                ]
                if msg.content:
                    parts.append(types.Part(text=cls._stringify(msg.content)))
                if parts:
                    contents.append(types.Content(role="model", parts=parts))
            else:
                contents.append(types.Content(role="user", parts=[types.Part(text=cls._stringify(msg.content))]))

        return contents, "\n\n".join(system_parts) or None

    @staticmethod
    def _vendor_call_id(call_id: Optional[str], name: Optional[str]) -> Optional[str]:
        """The call id to echo back, or None for ids generated when Gemini sent none."""
        if not call_id or re.fullmatch(rf"call_\d+_{re.escape(name or '')}", call_id):
            return None
        return call_id

    @staticmethod
    def _function_response(content: Any) -> Dict[str, Any]:
        """Tool output as the object Gemini expects in a function response."""
        if isinstance(content, str):
            try:
                content = json.loads(content)
            except json.JSONDecodeError:
                return {"result": content}
        if isinstance(content, dict):
            return content
        return {"result": content}

    @staticmethod
    def _attach_files(contents: List[types.Content], files: LoadedFiles) -> None:
        """Appends file content as extra parts of the most recent user turn."""
        if not files:
            return

        if not contents or contents[-1].role != "user":
            contents.append(types.Content(role="user", parts=[]))
        last = contents[-1]
        parts = list(last.parts or [])

        if files.text:
            parts.append(types.Part(text=f"\n\nReference Context:\n{files.text}"))
        for image in files.images:
            parts.append(types.Part.from_bytes(data=base64.b64decode(image.data), mime_type=image.mime_type))

        last.parts = parts
