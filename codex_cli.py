#!/usr/bin/env python3
"""
Codex CLI - terminal client and HTTP launcher for the provider resolver.

Usage:
    python codex_cli.py ask "explain this regex" [--provider ollama] [--model codellama] [--image shot.png]
    python codex_cli.py chat [--provider openai] [--model o4-mini]
    python codex_cli.py models [--provider gemini]
    python codex_cli.py pull llama3
    python codex_cli.py info
    python codex_cli.py serve [--host 127.0.0.1] [--port 3030]

Every prompt is sent on its own; no conversation history is kept.
"""

import argparse
import asyncio
import base64
import json
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Dict, Optional

from providers.aliases import normalize_model_name
from providers.base import GenerationRequest, ProviderKind
from providers.config import Settings, load_settings
from providers.exceptions import ProviderError
from services.provider_resolver import ProviderResolver

logger = logging.getLogger("codex_cli")

PROVIDER_CYCLE = [ProviderKind.OPENAI, ProviderKind.GEMINI, ProviderKind.OLLAMA]

HELP_TEXT = """
Available Commands:
  help           - Display this help message
  model <name>   - Change the model for the current provider
  models         - List available models for the current provider
  api            - Switch to the next provider (OpenAI → Gemini → Ollama)
  ollama <name>  - Change the Ollama model
  pull <name>    - Pull an Ollama model
  clear          - Clear the screen
  exit           - Exit the application
"""


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='[%(asctime)s] %(levelname)s - %(name)s: %(message)s',
    )


def read_image(path: str) -> str:
    """Load an image file as a data URL."""
    file_path = Path(path)
    mime_type = mimetypes.guess_type(file_path.name)[0] or "image/jpeg"
    encoded = base64.b64encode(file_path.read_bytes()).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


# ── Interactive session ───────────────────────────────


class ChatSession:
    """Interactive loop. Holds the provider/model selection, never the history."""

    def __init__(self, resolver: ProviderResolver, provider: Optional[str] = None, model: Optional[str] = None):
        self.resolver = resolver
        self.kind = resolver.resolve_kind(provider)
        self.models: Dict[ProviderKind, str] = {
            kind: resolver.default_model(kind) for kind in PROVIDER_CYCLE
        }
        if model:
            self.models[self.kind] = model

    @property
    def current_model(self) -> str:
        return self.models[self.kind]

    def welcome(self) -> str:
        return (
            "=================================================\n"
            "                Codex Client\n"
            "=================================================\n"
            f"API: {self.kind.value}\n"
            f"Current model: {self.current_model}\n"
            "Type 'help' for commands or start typing your coding question.\n"
        )

    async def show_models(self) -> str:
        catalog = await self.resolver.list_provider_models(self.kind)
        current = normalize_model_name(self.current_model, self.kind)
        lines = [f"Available {self.kind.value} models:"]
        for name in catalog:
            marker = "* " if name == current else "  "
            suffix = " (current)" if name == current else ""
            lines.append(f"  {marker}{name}{suffix}")
        if not catalog:
            lines.append("  (none - is an API key configured?)")
        return "\n".join(lines)

    async def handle(self, line: str) -> Optional[str]:
        """
        Handle one input line.

        Returns:
            Text to print, or None to exit
        """
        line = line.strip()
        if not line:
            return ""

        command, _, arg = line.partition(" ")
        command = command.lower()
        arg = arg.strip()

        if command in ("exit", "quit"):
            return None
        if command == "help":
            return HELP_TEXT
        if command == "clear":
            return "\033[2J\033[H"
        if command == "models":
            return await self.show_models()
        if command == "api":
            index = PROVIDER_CYCLE.index(self.kind)
            self.kind = PROVIDER_CYCLE[(index + 1) % len(PROVIDER_CYCLE)]
            return f"Switched to {self.kind.value} ({self.current_model})"
        if command in ("model", "ollama", "pull") and not arg:
            return f"Usage: {command} <name>"
        if command == "model":
            self.models[self.kind] = arg
            return f"Model changed to {normalize_model_name(arg, self.kind)}"
        if command == "ollama":
            self.models[ProviderKind.OLLAMA] = arg
            return f"Ollama model changed to {arg}"
        if command == "pull":
            outcome = await self.resolver.pull_model(arg)
            return f"{'✅' if outcome.success else '❌'} {outcome.message}"

        return await self.ask(line)

    async def ask(self, prompt: str) -> str:
        request = GenerationRequest(prompt=prompt, model=self.current_model)
        try:
            result = await self.resolver.generate(self.kind, request)
        except ProviderError as e:
            return f"❌ {e.message}"
        note = " (model pulled)" if result.pulled else ""
        return f"{result.text}\n\n[{result.provider}:{result.model_used}{note}]"


async def _read_line(prompt: str) -> Optional[str]:
    try:
        return await asyncio.to_thread(input, prompt)
    except EOFError:
        return None


async def run_chat(resolver: ProviderResolver, provider: Optional[str], model: Optional[str]) -> int:
    session = ChatSession(resolver, provider, model)
    print(session.welcome())
    while True:
        line = await _read_line(f"{session.kind.value}> ")
        if line is None:
            break
        output = await session.handle(line)
        if output is None:
            break
        if output:
            print(output)
    print("👋 Bye")
    return 0


# ── Subcommands ───────────────────────────────────────


async def cmd_ask(resolver: ProviderResolver, args) -> int:
    image = read_image(args.image) if args.image else None
    request = GenerationRequest(prompt=args.prompt, model=args.model, image_data=image)
    try:
        result = await resolver.generate(args.provider, request)
    except ProviderError as e:
        print(f"❌ {e.message}", file=sys.stderr)
        return 1
    print(result.text)
    return 0


async def cmd_models(resolver: ProviderResolver, args) -> int:
    if args.provider:
        catalog = {args.provider: await resolver.list_provider_models(args.provider)}
    else:
        catalog = await resolver.list_models()
    print(json.dumps(catalog, indent=2))
    return 0


async def cmd_pull(resolver: ProviderResolver, args) -> int:
    outcome = await resolver.pull_model(args.name)
    print(f"{'✅' if outcome.success else '❌'} {outcome.message}")
    return 0 if outcome.success else 1


async def cmd_info(resolver: ProviderResolver, args) -> int:
    print(json.dumps(await resolver.get_system_info(), indent=2))
    return 0


async def cmd_chat(resolver: ProviderResolver, args) -> int:
    return await run_chat(resolver, args.provider, args.model)


def cmd_serve(settings: Settings, args) -> int:
    import uvicorn
    from services import api

    api.configure(ProviderResolver(settings))
    print(f"🚀 Codex bridge running at http://{args.host}:{args.port}")
    uvicorn.run(api.app, host=args.host, port=args.port)
    return 0


ASYNC_COMMANDS = {
    "ask": cmd_ask,
    "chat": cmd_chat,
    "models": cmd_models,
    "pull": cmd_pull,
    "info": cmd_info,
}


async def _run_async(command, settings: Settings, args) -> int:
    resolver = ProviderResolver(settings)
    try:
        return await command(resolver, args)
    finally:
        await resolver.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send prompts to OpenAI, Gemini or Ollama")
    parser.add_argument("--env-file", default=".env", help="KEY=value file read before the environment")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    providers = [k.value for k in ProviderKind]

    p_ask = sub.add_parser("ask", help="Send a single prompt")
    p_ask.add_argument("prompt")
    p_ask.add_argument("--provider", choices=providers)
    p_ask.add_argument("--model")
    p_ask.add_argument("--image", help="Image file to attach")

    p_chat = sub.add_parser("chat", help="Interactive prompt loop")
    p_chat.add_argument("--provider", choices=providers)
    p_chat.add_argument("--model")

    p_models = sub.add_parser("models", help="List model catalogs")
    p_models.add_argument("--provider", choices=providers)

    p_pull = sub.add_parser("pull", help="Pull an Ollama model")
    p_pull.add_argument("name")

    sub.add_parser("info", help="Show provider availability")

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=3030)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    command = args.command or "chat"
    if command == "chat" and not hasattr(args, "provider"):
        args.provider = None
        args.model = None

    settings = load_settings(env_file=args.env_file)

    if command == "serve":
        return cmd_serve(settings, args)

    try:
        return asyncio.run(_run_async(ASYNC_COMMANDS[command], settings, args))
    except KeyboardInterrupt:
        print("\n👋 Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
