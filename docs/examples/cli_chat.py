import asyncio
import os
from typing import List

from dotenv import load_dotenv

from generic_agent_lib import Agent, AssistantMessage, EventType, Message, UserMessage
from generic_agent_lib.agent_core import setup_logging

# Load environment variables
load_dotenv()
setup_logging(os.getenv("LOG_LEVEL", "WARNING"))


async def main() -> None:
    """
    Main function to run the CLI chat with streamed answers.

    The provider is read from AGENT_MODEL, e.g. 'openai:gpt-4o-mini' or 'google:gemini-2.5-flash'.
    """
    model = os.getenv("AGENT_MODEL", "openai:gpt-4o-mini")
    print(f"Welcome to the CLI Chat ({model})!")

    try:
        agent = Agent(name="cli", provider=model, system="You are a helpful assistant.")
    except Exception as e:
        print(f"Error: {e}")
        return

    history: List[Message] = []

    print("\nStart chatting! Type 'exit' or 'quit' to stop.")
    while True:
        user_input = input("\nYou: ").strip()
        if user_input.lower() in ["exit", "quit"]:
            print("Goodbye!")
            break

        if not user_input:
            continue

        history.append(UserMessage(content=user_input))
        print("Assistant: ", end="", flush=True)

        async for event in agent.stream(history):
            if event.type == EventType.TOKEN:
                print(event.payload, end="", flush=True)
            elif event.type == EventType.RESPONSE:
                history.append(AssistantMessage(content=event.payload.content))
                print()
            elif event.type == EventType.ERROR:
                history.pop()
                print(f"\nAn error occurred: {event.payload['message']}")


if __name__ == "__main__":
    asyncio.run(main())
