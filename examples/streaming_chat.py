"""
Example: Streaming Chat with Retries and Usage

This example shows a chat session streaming responses from the Gemini
endpoint, reacting to retry events, and reading token usage from the
in-memory transcript recorder.
"""

import asyncio

from resilient_chat import ChatContext, ChatSession, ChatSettings
from resilient_chat.fallback import RETRY_ONCE, get_negotiation_broker
from resilient_chat.models import StreamEventType
from resilient_chat.recording import InMemoryChatRecorder
from resilient_chat.reliability import CancellationToken


async def example_basic_streaming():
    """Stream one answer and print token usage."""
    print("=== Basic Streaming ===\n")

    recorder = InMemoryChatRecorder()
    context = ChatContext.from_settings(ChatSettings.from_env(), recorder=recorder)
    session = ChatSession(context, system_instruction="Keep answers short.")

    stream = await session.send_message_stream(
        "flash", "Write a haiku about Python programming", "example-1"
    )
    async for event in stream:
        if event.type == StreamEventType.CHUNK:
            print(event.value.text, end="", flush=True)
        elif event.type == StreamEventType.RETRY:
            # Partial output from the failed attempt should be discarded
            print("\n[retrying]\n")

    model_message = recorder.messages[-1]
    print("\n\nUsage information:")
    for key, value in (model_message.tokens or {}).items():
        print(f"  {key}: {value}")

    await context.content_generator.aclose()


async def example_fallback_once():
    """Accept a one-off model switch whenever quota runs out."""
    print("\n=== Automatic Fallback ===\n")

    broker = get_negotiation_broker()
    broker.on_fallback_request = lambda request: broker.resolve_fallback(RETRY_ONCE)

    context = ChatContext.from_settings(
        ChatSettings.from_env(),
        fallback_handler=broker.fallback_handler,
        validation_handler=broker.validation_handler,
    )
    session = ChatSession(context)

    stream = await session.send_message_stream("pro", "Explain list vs tuple in Python", "example-2")
    text = "".join(
        event.value.text for event in await stream.collect() if event.type == StreamEventType.CHUNK
    )
    print(text)
    print(f"\nAnswered by: {context.get_active_model()}")

    await context.content_generator.aclose()


async def example_cancellation():
    """Cancel a turn after the first chunk."""
    print("\n=== Cancellation ===\n")

    context = ChatContext.from_settings(ChatSettings.from_env())
    session = ChatSession(context)
    signal = CancellationToken()

    stream = await session.send_message_stream("flash", "Count slowly from 1 to 100", "example-3", signal)
    async for event in stream:
        if event.type == StreamEventType.CHUNK:
            print(event.value.text, end="", flush=True)
            signal.cancel("enough")
            break
    await stream.aclose()

    print(f"\n\nHistory length after cancel: {len(session.get_history())}")
    await context.content_generator.aclose()


async def main():
    """Run all examples."""
    await example_basic_streaming()
    await example_fallback_once()
    await example_cancellation()


if __name__ == "__main__":
    asyncio.run(main())
