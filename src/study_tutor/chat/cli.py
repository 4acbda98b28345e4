"""`tutor chat` entry point."""

from __future__ import annotations

import argparse
from typing import Sequence

from rich.console import Console

from study_tutor import commands
from study_tutor.core.errors import PersistenceError, ValidationError

from .runtime import ChatRuntime, InputProvider, render_sessions


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tutor chat",
        description="Ask the AI tutor questions in a saved chat session.",
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument(
        "--subject",
        type=str,
        help="Start a new session about this subject.",
    )
    target.add_argument(
        "--session",
        type=str,
        help="Resume an existing session by id.",
    )
    target.add_argument(
        "--list",
        action="store_true",
        help="List recent sessions and exit.",
    )
    commands.add_common_arguments(parser)
    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    console: Console | None = None,
    input_provider: InputProvider | None = None,
) -> int:
    args = commands.parse_args(_build_parser(), argv)
    console = console or Console()
    try:
        ctx = commands.prepare(
            "chat", config_path=args.config, verbose=args.verbose
        )
        store = ctx.require_store()
        user = ctx.require_user()
        if args.list:
            client = None
        else:
            client = ctx.model_client()
    except commands.CommandSetupError as exc:
        commands.print_error(str(exc), console=console)
        return commands.EXIT_SETUP

    limit = ctx.config.chat.session_list_limit
    if args.list:
        try:
            sessions = store.list_sessions(user, limit=limit)
        except PersistenceError as exc:
            commands.print_error(str(exc), console=console)
            return commands.EXIT_RUNTIME
        render_sessions(console, sessions, show_ids=True)
        return commands.EXIT_OK

    runtime = ChatRuntime(store=store, client=client, user=user)
    try:
        if args.session:
            runtime.open_session(args.session)
        elif args.subject:
            runtime.start_session(args.subject)
    except (ValidationError, PersistenceError) as exc:
        commands.print_error(str(exc), console=console)
        return commands.EXIT_RUNTIME

    runtime.interactive_loop(
        console,
        input_provider or console.input,
        session_list_limit=limit,
    )
    return commands.EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
