"""CLI entry point for Troll."""

import argparse
import asyncio
import importlib.util
import logging
import sys
from pathlib import Path

from rich.logging import RichHandler

from troll.agent import run_agent
from troll.config import (
    DEFAULT_OLLAMA_HOST,
    DEFAULT_OLLAMA_MODEL,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_PROVIDER,
    MAX_TOOL_ITERATIONS,
)
from troll.console import RenderOptions
from troll.personalities import PERSONALITIES
from troll.providers import PROVIDERS


def load_hook(hook_path: str):
    """Load a hook module from a file path."""
    path = Path(hook_path).resolve()
    if not path.exists():
        raise FileNotFoundError(f"Hook file not found: {hook_path}")

    # Use unique module name based on file path to avoid collisions
    module_name = f"hook_{path.stem}_{id(path)}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Troll - a chat agent that routes requests to tools",
    )
    parser.add_argument(
        "--provider", "-p",
        choices=list(PROVIDERS.keys()),
        default=DEFAULT_PROVIDER,
        help=f"LLM provider (default: {DEFAULT_PROVIDER})",
    )
    parser.add_argument(
        "--model", "-m",
        help="Model ID (provider-specific, uses default if not set)",
    )
    parser.add_argument(
        "--host",
        help="Host URL for Ollama or OpenAI-compatible providers",
    )
    parser.add_argument(
        "--personality",
        choices=list(PERSONALITIES.keys()),
        default=None,
        help="Persona for replies (default: assistant)",
    )
    parser.add_argument(
        "--session", "-s",
        default=None,
        help="Session id to continue (default: the shared session)",
    )
    parser.add_argument(
        "--db",
        default=None,
        help="JSON file to persist sessions in (default: memory only)",
    )
    parser.add_argument(
        "--hook",
        action="append",
        help="Path to a Python hook file (can be used multiple times)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=MAX_TOOL_ITERATIONS,
        help=f"Maximum LLM calls per turn (default: {MAX_TOOL_ITERATIONS})",
    )
    parser.add_argument(
        "--show-tools",
        action="store_true",
        help="Show tool calls as they run",
    )
    parser.add_argument(
        "--show-tool-responses",
        action="store_true",
        help="Show raw tool results",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show message metadata and raw structured payloads",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()

    # Validate openai_compatible provider requirements
    if args.provider == "openai_compatible":
        if args.model is None:
            parser.error("--model is required for openai_compatible provider")
        if args.host is None:
            parser.error("--host is required for openai_compatible provider")

    # Apply default host for ollama if not specified
    if args.provider == "ollama" and args.host is None:
        args.host = DEFAULT_OLLAMA_HOST

    # Determine model based on provider if not specified
    if args.model is None:
        args.model = {
            "openai": DEFAULT_OPENAI_MODEL,
            "ollama": DEFAULT_OLLAMA_MODEL,
        }[args.provider]

    configure_logging("DEBUG" if args.debug else args.log_level)

    # Load hooks if specified
    hooks = []
    if args.hook:
        for hook_path in args.hook:
            hooks.append(load_hook(hook_path))

    asyncio.run(run_agent(
        provider=args.provider,
        model=args.model,
        host=args.host,
        hooks=hooks,
        personality=args.personality,
        session_id=args.session,
        db_path=args.db,
        max_iterations=args.max_iterations,
        render_options=RenderOptions(
            show_tool_usage=args.show_tools,
            show_tool_responses=args.show_tool_responses,
            debug=args.debug,
        ),
    ))


if __name__ == "__main__":
    main()
