"""CLI entry point for openai-bindings.

Thin terminal front-end over the library for quick manual checks.

Entry point:
    openai-bindings models [--json]
    openai-bindings chat "Hello!" [--model gpt-3.5-turbo] [--system ...] [--stream] [--json]
    openai-bindings embed "some text" [--model text-embedding-ada-002]
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from openai_bindings.chat import ChatCompletion, ChatCompletionMessage, ContentDelta
from openai_bindings.client import OpenAIClient
from openai_bindings.config import DEFAULT_CHAT_MODEL, DEFAULT_EMBEDDING_MODEL
from openai_bindings.embeddings import Embedding
from openai_bindings.errors import OpenAIBindingsError, StreamDecodeError
from openai_bindings.models import list_models
from openai_bindings.streaming import ChatCompletionAccumulator

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# ARGUMENT PARSING
# ─────────────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openai-bindings",
        description="Command line access to the OpenAI API bindings.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--base-url", default=None, help="Override OPENAI_BASE_URL")
    sub = parser.add_subparsers(dest="command")

    # models
    models_p = sub.add_parser("models", help="List available models")
    models_p.add_argument(
        "--json", action="store_true", dest="json_output",
        help="Full JSON output (id, owner, created)",
    )

    # chat
    chat_p = sub.add_parser("chat", help="Send one prompt and print the reply")
    chat_p.add_argument("prompt", help="User message")
    chat_p.add_argument("--model", default=DEFAULT_CHAT_MODEL, help="Model ID")
    chat_p.add_argument("--system", default=None, help="Optional system message")
    chat_p.add_argument("--temperature", type=float, default=None, help="Sampling temperature (0-2)")
    chat_p.add_argument("--max-tokens", type=int, default=None, help="Max tokens in the reply")
    chat_p.add_argument("--stream", action="store_true", help="Print fragments as they arrive")
    chat_p.add_argument(
        "--json", action="store_true", dest="json_output",
        help="Print the full completion as JSON",
    )

    # embed
    embed_p = sub.add_parser("embed", help="Embed a text and print vector summary")
    embed_p.add_argument("text", help="Text to embed")
    embed_p.add_argument("--model", default=DEFAULT_EMBEDDING_MODEL, help="Model ID")

    return parser


# ─────────────────────────────────────────────────────────────────────
# COMMANDS
# ─────────────────────────────────────────────────────────────────────


async def _cmd_models(json_output: bool = False, base_url: Optional[str] = None) -> int:
    """List available models. Returns exit code."""
    async with OpenAIClient(base_url=base_url) as client:
        models = await list_models(client)

    if json_output:
        json.dump([m.model_dump() for m in models], sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        for model in sorted(models, key=lambda m: m.id):
            print(model.id)
    return 0


async def _cmd_chat(
    prompt: str,
    model: str = DEFAULT_CHAT_MODEL,
    system: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    stream: bool = False,
    json_output: bool = False,
    base_url: Optional[str] = None,
) -> int:
    """Send a single prompt. Returns exit code."""
    messages = []
    if system:
        messages.append(ChatCompletionMessage.system(system))
    messages.append(ChatCompletionMessage.user(prompt))

    builder = ChatCompletion.builder(model, messages)
    if temperature is not None:
        builder = builder.temperature(temperature)
    if max_tokens is not None:
        builder = builder.max_tokens(max_tokens)

    async with OpenAIClient(base_url=base_url) as client:
        if not stream:
            completion = await builder.create(client)
        else:
            accumulator = ChatCompletionAccumulator()
            async with builder.create_stream(client) as events:
                async for item in events:
                    if isinstance(item, StreamDecodeError):
                        print(f"Warning: {item}", file=sys.stderr)
                        continue
                    accumulator.add(item)
                    if not json_output:
                        for choice in item.choices:
                            if choice.index == 0 and isinstance(choice.delta, ContentDelta):
                                sys.stdout.write(choice.delta.content)
                                sys.stdout.flush()
            completion = accumulator.build()

    if json_output:
        json.dump(completion.model_dump(mode="json"), sys.stdout, indent=2)
        sys.stdout.write("\n")
    elif stream:
        sys.stdout.write("\n")
    else:
        print(completion.content)

    if completion.usage:
        logger.debug(
            "usage: prompt=%d completion=%d total=%d",
            completion.usage.prompt_tokens,
            completion.usage.completion_tokens,
            completion.usage.total_tokens,
        )
    return 0


async def _cmd_embed(
    text: str, model: str = DEFAULT_EMBEDDING_MODEL, base_url: Optional[str] = None
) -> int:
    """Embed one text. Returns exit code."""
    async with OpenAIClient(base_url=base_url) as client:
        embedding = await Embedding.create(client, model, text)

    head = ", ".join(f"{x:.4f}" for x in embedding.embedding[:5])
    print(f"dimensions: {len(embedding.embedding)}")
    print(f"head: [{head}{', ...' if len(embedding.embedding) > 5 else ''}]")
    return 0


async def _dispatch(args: argparse.Namespace) -> int:
    try:
        if args.command == "models":
            return await _cmd_models(json_output=args.json_output, base_url=args.base_url)
        if args.command == "chat":
            return await _cmd_chat(
                prompt=args.prompt,
                model=args.model,
                system=args.system,
                temperature=args.temperature,
                max_tokens=args.max_tokens,
                stream=args.stream,
                json_output=args.json_output,
                base_url=args.base_url,
            )
        if args.command == "embed":
            return await _cmd_embed(text=args.text, model=args.model, base_url=args.base_url)
    except (OpenAIBindingsError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 1


# ─────────────────────────────────────────────────────────────────────
# ENTRY POINT
# ─────────────────────────────────────────────────────────────────────


def main(argv: Optional[list[str]] = None):
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Logging
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s %(message)s", stream=sys.stderr)

    # Load env
    from dotenv import load_dotenv
    load_dotenv()

    sys.exit(asyncio.run(_dispatch(args)))


if __name__ == "__main__":
    main()
