"""Sequential composition of agents."""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, List, Sequence, Union

from .agent import Agent
from ..base import AgentResponse
from ..logger import get_logger

logger = get_logger(__name__)

StepInput = Union[Any, Callable[[List[AgentResponse]], Any]]


@dataclass
class ChainStep:
    """One agent of a chain.

    Attributes:
        agent: The agent to run.
        input: The run input, or a callable building it from the results of the previous steps.
    """

    agent: Agent
    input: StepInput


@dataclass
class ChainResult:
    """Responses of all steps plus aggregated latency and token usage."""

    results: List[AgentResponse] = field(default_factory=list)
    total_latency: int = 0
    total_tokens: int = 0


async def chain(steps: Sequence[ChainStep]) -> ChainResult:
    """
    Runs agents one after another.

    Each step starts after the previous one has finished. A failing step aborts
    the chain and its exception propagates.

    Args:
        steps: The steps to run, in order.

    Returns:
        The responses of all steps with the summed latency and total tokens.
    """
    chain_result = ChainResult()

    for position, step in enumerate(steps, start=1):
        step_input = step.input(chain_result.results) if callable(step.input) else step.input
        logger.info(f"Chain step {position}/{len(steps)}: running agent '{step.agent.name}'")

        response = await step.agent.run(step_input)

        chain_result.results.append(response)
        chain_result.total_latency += response.meta.latency_ms or 0
        chain_result.total_tokens += response.usage.total_tokens or 0

    return chain_result


async def simple_chain(agents: Sequence[Agent], initial_input: Any) -> ChainResult:
    """
    Runs agents in sequence, feeding each the previous agent's content.

    Args:
        agents: The agents to run.
        initial_input: Input of the first agent.

    Returns:
        The chain result.
    """
    steps = [
        ChainStep(agent=agent, input=initial_input if index == 0 else _previous_content(index))
        for index, agent in enumerate(agents)
    ]
    return await chain(steps)


def _previous_content(index: int) -> Callable[[List[AgentResponse]], Any]:
    return lambda results: _as_input(results[index - 1].content)


def _as_input(content: Any) -> str:
    # Structured content is passed on as JSON text.
    if isinstance(content, str):
        return content
    return json.dumps(content, default=str)
