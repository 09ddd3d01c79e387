"""Bridge agent notifications to a Server-Sent Events stream.

``stream_sse`` is an async generator of SSE frames, so it plugs into any ASGI
streaming response, e.g. with FastAPI::

    return StreamingResponse(stream_sse(agent, prompt), headers=SSE_HEADERS)
"""

import json
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict

from pydantic import BaseModel

from .agent.events import EventType
from .base import PromptInput
from .logger import get_logger

if TYPE_CHECKING:
    from .agent import Agent

logger = get_logger(__name__)

SSE_HEADERS: Dict[str, str] = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    # Disables proxy buffering (nginx) so tokens are flushed right away
    "X-Accel-Buffering": "no",
}

_FORWARDED_EVENTS = (EventType.TOKEN, EventType.RESPONSE, EventType.ERROR)


def _default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, BaseException):
        return {"type": type(value).__name__, "message": str(value)}
    return str(value)


def format_sse(event: str, data: Any) -> str:
    """Render one SSE frame.

    The payload is JSON-encoded, so newlines inside tokens never break the frame.

    Args:
        event: The event name.
        data: Any JSON-serializable payload. Pydantic models and exceptions are converted.

    Returns:
        ``event: <event>\\ndata: <json>\\n\\n``
    """
    return f"event: {event}\ndata: {json.dumps(data, default=_default, ensure_ascii=False)}\n\n"


async def stream_sse(agent: "Agent", input: PromptInput) -> AsyncIterator[str]:
    """Run an agent and yield its ``token``, ``response`` and ``error`` events as SSE frames.

    The generator stops after the terminal event. If the consumer goes away and
    the generator is closed, the run is cancelled.

    Args:
        agent: The agent to run.
        input: The run input.

    Yields:
        SSE frames.
    """
    events = agent.stream(input)
    try:
        async for event in events:
            if event.type not in _FORWARDED_EVENTS:
                continue
            yield format_sse(event.type.value, event.payload)
    finally:
        await events.aclose()
        logger.debug(f"SSE stream of agent '{agent.name}' finished.")
