"""Core abstractions for model provider adapters."""

import json
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from ..messages import Message, ToolCall
from ..tools.models import ToolDefinition
from ..utils import LoadedFiles, load_files
from ..logger import get_logger

logger = get_logger(__name__)

TokenCallback = Callable[[str], None]
PromptInput = Union[str, Sequence[Message]]


class Usage(BaseModel):
    """Token counts taken from the vendor's final usage report."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    reasoning_tokens: Optional[int] = None


class ResponseMeta(BaseModel):
    """Response metadata.

    Adapters may attach extras such as ``grounding_metadata``; they are kept as
    extra fields.
    """

    model_config = ConfigDict(extra="allow")

    model: str
    latency_ms: int = 0
    warnings: List[str] = Field(default_factory=list)


class AgentResponse(BaseModel):
    """Normalized result of one generate call and of one agent run.

    Attributes:
        content: Text, a validated structured object, or a tool result.
        message: The model's original text, kept when ``content`` is replaced.
        tool_calls: Tool calls requested by the model and not yet resolved.
        usage: Token usage.
        meta: Model identifier, latency and adapter extras.
    """

    content: Any = ""
    message: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    usage: Usage = Field(default_factory=Usage)
    meta: ResponseMeta


class GenerationConfig(BaseModel):
    """Model-specific overrides passed to the adapter on every call.

    Unknown keys are kept so adapters can support vendor options not listed here.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, ge=1)
    top_p: Optional[float] = Field(default=None, ge=0, le=1)
    google_search: bool = False
    aspect_ratio: Optional[str] = None
    candidate_count: Optional[int] = None
    n: Optional[int] = None
    response_format: Optional[str] = None
    reference_image: Optional[str] = None
    image_url: Optional[str] = None


class LLMProvider(ABC):
    """Abstract base class for vendor adapters.

    An adapter translates one canonical request into one vendor call and reduces
    the vendor's streamed output to an ``AgentResponse``. Adapters hold no
    per-call state, so one instance can serve concurrent runs.
    """

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
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
        """
        Runs one streaming request against the vendor.

        Args:
            system: Optional system instruction.
            prompt: A free-text prompt or the full message history.
            files: Optional file paths to attach to the most recent user turn.
            tools: Optional tool definitions offered to the model.
            config: Optional model overrides.
            output_schema: Optional pydantic model the final text must satisfy.
            on_token: Called once per streamed text fragment, in arrival order.

        Returns:
            The normalized response.
        """
        pass

    @staticmethod
    def _load_files(files: Optional[Sequence[str]]) -> LoadedFiles:
        return load_files(files)

    @staticmethod
    def _stringify(content: Any) -> str:
        """Render message content as text for wire formats that need a string."""
        if content is None:
            return ""
        if isinstance(content, str):
            return content
        if isinstance(content, BaseModel):
            return content.model_dump_json()
        return json.dumps(content, default=str)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"


def config_to_dict(config: Optional[GenerationConfig]) -> Dict[str, Any]:
    """Return the overrides that were actually set."""
    if config is None:
        return {}
    return config.model_dump(exclude_none=True)
