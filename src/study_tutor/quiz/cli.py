"""`tutor quiz` entry point."""

from __future__ import annotations

import argparse
from typing import Sequence

from rich.console import Console

from study_tutor import commands

from .generator import QuizGenerator
from .session import QuizSession
from .view import InputProvider, run_quiz


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tutor quiz",
        description="Generate a five-question quiz on a topic and take it.",
    )
    parser.add_argument(
        "--topic",
        type=str,
        help="Start immediately with this topic instead of prompting.",
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
            "quiz", config_path=args.config, verbose=args.verbose
        )
        client = ctx.model_client()
    except commands.CommandSetupError as exc:
        commands.print_error(str(exc), console=console)
        return commands.EXIT_SETUP

    session = QuizSession(
        generator=QuizGenerator(client),
        store=ctx.require_store(),
        user=ctx.require_user(),
    )
    result = run_quiz(
        session,
        console,
        input_provider or console.input,
        topic=args.topic,
        show_explanations=ctx.config.quiz.show_explanations,
    )
    ctx.logger.info(
        "Quiz command finished",
        extra={
            "user_id": ctx.require_user().user_id,
            "completed": len(result.completed),
            "exit_action": result.exit_action,
        },
    )
    return commands.EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
