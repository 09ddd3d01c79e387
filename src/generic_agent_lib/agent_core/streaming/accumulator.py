"""Fold vendor stream notifications into one canonical response.

Vendors deliver tool calls in two shapes:

* indexed fragments: a call is announced under a positional index and later
  notifications with the same index append to its ``name`` and ``arguments``
  strings (OpenAI-compatible chat completions);
* whole values: each notification carries a complete call with structured
  arguments (Gemini).

Both are supported by one ``StreamAccumulator`` per vendor call.
"""

import base64
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from ..base import AgentResponse, ResponseMeta, TokenCallback, Usage
from ..exceptions import MalformedResponseError, StructuredOutputError
from ..logger import get_logger
from ..messages import ToolCall
from ..utils import image_markdown

logger = get_logger(__name__)


@dataclass
class _ToolCallFragments:
    """Partial state of an index-addressed tool call."""

    id: Optional[str] = None
    name: str = ""
    arguments: str = ""


class StreamAccumulator:
    """Per-call state that turns stream notifications into an ``AgentResponse``.

    Text fragments are forwarded to ``on_token`` before they are accumulated.
    After ``finish`` the accumulator is closed and rejects further input, so no
    token is delivered once the call has settled.
    """

    def __init__(self, on_token: Optional[TokenCallback] = None) -> None:
        self._on_token = on_token
        self._text_parts: List[str] = []
        self._indexed: Dict[int, _ToolCallFragments] = {}
        self._whole: List[ToolCall] = []
        self._usage = Usage()
        self._extras: Dict[str, Any] = {}
        self._closed = False

    @property
    def text(self) -> str:
        return "".join(self._text_parts)

    @property
    def usage(self) -> Usage:
        return self._usage

    @property
    def has_tool_calls(self) -> bool:
        return bool(self._indexed or self._whole)

    def add_text(self, fragment: str) -> None:
        """Forward a text fragment to the token callback and accumulate it."""
        self._ensure_open()
        if not fragment:
            return
        if self._on_token is not None:
            self._on_token(fragment)
        self._text_parts.append(fragment)

    def add_tool_call_fragment(
        self,
        index: int,
        call_id: Optional[str] = None,
        name: Optional[str] = None,
        arguments: Optional[str] = None,
    ) -> None:
        """Merge an index-addressed tool-call fragment.

        ``name`` and ``arguments`` are concatenated onto what was received for the
        same index. The first id seen for an index is kept.
        """
        self._ensure_open()
        fragments = self._indexed.setdefault(index, _ToolCallFragments())
        if call_id and fragments.id is None:
            fragments.id = call_id
        if name:
            fragments.name += name
        if arguments:
            fragments.arguments += arguments

    def add_tool_call(self, name: str, arguments: Optional[Dict[str, Any]] = None, call_id: Optional[str] = None) -> None:
        """Append a tool call that arrived complete."""
        self._ensure_open()
        position = len(self._whole)
        self._whole.append(
            ToolCall(
                id=call_id or f"call_{position}_{name}",
                name=name,
                arguments=dict(arguments or {}),
            )
        )

    def add_inline_data(self, mime_type: str, data: bytes | str) -> None:
        """Render vendor-generated media as an inline markdown image in the text body.

        The image is not forwarded to the token callback.
        """
        self._ensure_open()
        encoded = base64.b64encode(data).decode("ascii") if isinstance(data, bytes) else data
        self._text_parts.append(f"\n{image_markdown(mime_type, encoded)}\n")

    def set_usage(self, usage: Usage) -> None:
        """Record a usage report. Later reports replace earlier ones."""
        self._ensure_open()
        self._usage = usage

    def merge_extra(self, key: str, value: Dict[str, Any]) -> None:
        """Shallow-merge a metadata dictionary into ``meta[key]``."""
        self._ensure_open()
        current = self._extras.get(key) or {}
        self._extras[key] = {**current, **value}

    def finish(self, model: str, output_schema: Optional[Type[BaseModel]] = None) -> AgentResponse:
        """Close the accumulator and build the response.

        Args:
            model: Model identifier recorded in ``meta``.
            output_schema: Optional pydantic model the text must satisfy when no tool was called.

        Returns:
            The canonical response.

        Raises:
            MalformedResponseError: If accumulated tool-call arguments are not a JSON object.
        """
        self._ensure_open()
        self._closed = True

        tool_calls = self._build_tool_calls()
        meta = ResponseMeta(model=model, **self._extras)
        text = self.text
        content: Any = text

        if output_schema is not None and not tool_calls:
            try:
                content = self._parse_structured(text, output_schema)
            except StructuredOutputError as e:
                logger.warning("Returning raw text: %s", e)
                meta.warnings.append(str(e))

        return AgentResponse(
            content=content,
            tool_calls=tool_calls or None,
            usage=self._usage,
            meta=meta,
        )

    def _build_tool_calls(self) -> List[ToolCall]:
        calls = []
        for index in sorted(self._indexed):
            fragments = self._indexed[index]
            calls.append(
                ToolCall(
                    id=fragments.id or f"call_{index}_{fragments.name}",
                    name=fragments.name,
                    arguments=self._parse_arguments(fragments.name, fragments.arguments),
                )
            )
        return calls + self._whole

    @staticmethod
    def _parse_arguments(name: str, raw: str) -> Dict[str, Any]:
        if not raw.strip():
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"Tool call '{name}' has invalid JSON arguments: {e}") from e
        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise MalformedResponseError(f"Tool call '{name}' arguments must be a JSON object.")
        return parsed

    @staticmethod
    def _parse_structured(text: str, output_schema: Type[BaseModel]) -> Any:
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            raise StructuredOutputError(f"Failed to parse structured output: {e}") from e
        try:
            output_schema.model_validate(parsed)
        except ValidationError as e:
            raise StructuredOutputError(f"Structured output does not match {output_schema.__name__}: {e}") from e
        return parsed

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("StreamAccumulator is already finished.")
