"""CLI entry point for Resilient Chat SDK."""

import argparse
import asyncio
import logging
import uuid
from typing import Optional

from .chat import ChatContext, ChatSession
from .config import MODEL_ALIASES, MODEL_CONFIGS, ChatSettings, get_fallback_model
from .fallback import (
    RETRY_ALWAYS,
    RETRY_LATER,
    RETRY_ONCE,
    STOP,
    FallbackRequest,
    ValidationRequest,
    get_negotiation_broker,
)
from .models import StreamEventType
from .reliability import CancellationToken
from .reliability.retry import VALIDATION_CANCEL, VALIDATION_CHANGE_AUTH, VALIDATION_VERIFY
from .services import ModelConfigKey

FALLBACK_CHOICES = {"1": RETRY_ALWAYS, "2": RETRY_ONCE, "3": RETRY_LATER, "4": STOP}
VALIDATION_CHOICES = {"1": VALIDATION_VERIFY, "2": VALIDATION_CHANGE_AUTH, "3": VALIDATION_CANCEL}


async def _ask(prompt: str) -> str:
    return (await asyncio.to_thread(input, prompt)).strip()


async def _prompt_fallback(request: FallbackRequest):
    broker = get_negotiation_broker()
    print(f"\n{request.message}")
    print(f"  1) Switch to {request.fallback_model} for this session")
    print(f"  2) Use {request.fallback_model} for this request only")
    print("  3) Try again later")
    print("  4) Stop")
    answer = await _ask("> ")
    broker.resolve_fallback(FALLBACK_CHOICES.get(answer, STOP))


async def _prompt_validation(request: ValidationRequest):
    broker = get_negotiation_broker()
    print("\nYour account needs to be verified before continuing.")
    if request.validation_description:
        print(request.validation_description)
    if request.validation_link:
        print(f"Verify at: {request.validation_link}")
    if request.learn_more_url:
        print(f"Learn more: {request.learn_more_url}")
    print("  1) I have verified, retry")
    print("  2) Change authentication")
    print("  3) Cancel")
    answer = await _ask("> ")
    broker.resolve_validation(VALIDATION_CHOICES.get(answer, VALIDATION_CANCEL))


def _install_prompts() -> None:
    broker = get_negotiation_broker()
    broker.on_fallback_request = lambda request: asyncio.ensure_future(_prompt_fallback(request))
    broker.on_validation_request = lambda request: asyncio.ensure_future(_prompt_validation(request))


async def _run_turn(session: ChatSession, model: str, prompt: str) -> None:
    signal = CancellationToken()
    prompt_id = str(uuid.uuid4())[:8]
    stream = await session.send_message_stream(ModelConfigKey(model=model), prompt, prompt_id, signal)
    try:
        async for event in stream:
            if event.type == StreamEventType.CHUNK and event.value is not None:
                print(event.value.text, end="", flush=True)
            elif event.type == StreamEventType.RETRY:
                print("\n[retrying...]\n", flush=True)
            elif event.type in (
                StreamEventType.AGENT_EXECUTION_STOPPED,
                StreamEventType.AGENT_EXECUTION_BLOCKED,
            ):
                print(f"\n[{event.reason}]")
        print()
    except asyncio.CancelledError:
        signal.cancel("interrupted")
        raise
    finally:
        await stream.aclose()


async def chat(model: Optional[str] = None, prompt: Optional[str] = None):
    """Run a single prompt, or an interactive chat when no prompt is given."""
    settings = ChatSettings.from_env()
    logging.basicConfig(level=settings.log_level)
    if model:
        settings = settings.model_copy(update={"model": model})

    broker = get_negotiation_broker()
    _install_prompts()
    context = ChatContext.from_settings(
        settings,
        fallback_handler=broker.fallback_handler,
        validation_handler=broker.validation_handler,
    )
    session = ChatSession(context)

    try:
        if prompt:
            await _run_turn(session, context.get_active_model(), prompt)
            return

        print(f"Chatting with {context.get_active_model()} (Ctrl-D to exit)")
        while True:
            try:
                line = await _ask("you> ")
            except EOFError:
                print()
                break
            if not line:
                continue
            try:
                await _run_turn(session, context.get_active_model(), line)
            except Exception as e:
                print(f"Error: {str(e)}")
    finally:
        aclose = getattr(context.content_generator, "aclose", None)
        if aclose is not None:
            await aclose()


def list_models():
    """List the model catalog."""
    aliases = {}
    for alias, target in MODEL_ALIASES.items():
        aliases.setdefault(target, []).append(alias)

    print("Available Models:")
    print("-" * 50)
    for name, config in MODEL_CONFIGS.items():
        tier = config.get("tier", "stable")
        print(f"{name} ({config.get('display_name', name)}, {tier})")
        print(f"   {config.get('description', '')}")
        if aliases.get(name):
            print(f"   Aliases: {', '.join(sorted(aliases[name]))}")
        fallback = get_fallback_model(name)
        if fallback:
            print(f"   Falls back to: {fallback}")
        print()


def main():
    """Main CLI function."""
    parser = argparse.ArgumentParser(description="Resilient Chat SDK CLI")
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    chat_parser = subparsers.add_parser('chat', help='Chat with a model')
    chat_parser.add_argument('--model', help='Model id or alias (e.g., "flash")')
    chat_parser.add_argument('--prompt', help='Send one prompt and exit')

    subparsers.add_parser('models', help='List available models')

    args = parser.parse_args()

    if args.command == 'chat':
        try:
            asyncio.run(chat(args.model, args.prompt))
        except KeyboardInterrupt:
            pass
    elif args.command == 'models':
        list_models()
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
