"""Command-line entrypoint: run the service or optimize one text from a terminal."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional

import state
from client import default_client_factory
from errors import CompletionError
from logging_config import setup_logging
from modes import OptimizeMode
from service import PromptService
from settings_store import BackendKind, JsonFileSettingsStore


async def _optimize(text: str, mode: OptimizeMode, backend: Optional[BackendKind], title: bool) -> int:
    store = JsonFileSettingsStore(state.settings.settings_path)
    async with default_client_factory(state.settings) as client:
        service = PromptService(client, store, state.settings)
        session = service.optimize(text, mode, backend=backend, derive_title=title)
        try:
            async for delta in session:
                sys.stdout.write(delta)
                sys.stdout.flush()
        except CompletionError as exc:
            sys.stdout.write("\n")
            print(f"error: {exc}", file=sys.stderr)
            return 1
        sys.stdout.write("\n")
        derived = await session.title()
        if derived:
            print(f"title: {derived}", file=sys.stderr)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="promptcraft", description="PromptCraft service.")
    parser.add_argument("--debug", action="store_true")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="run the HTTP service")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    optimize = sub.add_parser("optimize", help="optimize text and print the result")
    optimize.add_argument("text", nargs="?", help="text to optimize (default: read stdin)")
    optimize.add_argument(
        "--mode",
        choices=[mode.value for mode in OptimizeMode],
        default=OptimizeMode.CONCISE.value,
    )
    optimize.add_argument("--backend", choices=[kind.value for kind in BackendKind])
    optimize.add_argument("--no-title", action="store_true")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the PromptCraft CLI."""
    args = _build_parser().parse_args(argv)

    if args.debug:
        state.settings.debug = True
        setup_logging(True)

    if args.command == "optimize":
        text = args.text if args.text is not None else sys.stdin.read()
        if not text.strip():
            print("error: nothing to optimize", file=sys.stderr)
            return 2
        backend = BackendKind(args.backend) if args.backend else None
        return asyncio.run(_optimize(text, OptimizeMode(args.mode), backend, not args.no_title))

    import main as app_main  # pylint: disable=import-outside-toplevel

    app_main.run(host=getattr(args, "host", None), port=getattr(args, "port", None))
    return 0


if __name__ == "__main__":
    sys.exit(main())
