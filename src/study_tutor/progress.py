"""`tutor progress`: recent quiz attempts and per-topic mastery."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Sequence

from rich.console import Console
from rich.table import Table

from study_tutor import commands
from study_tutor.auth import UserContext
from study_tutor.core.errors import PersistenceError
from study_tutor.models import Attempt, StudyTopic
from study_tutor.storage import TutorStore

__all__ = ["AttemptRow", "ProgressReport", "collect_progress", "main"]


@dataclass(frozen=True)
class AttemptRow:
    attempt: Attempt
    quiz_title: str | None

    @property
    def percentage(self) -> int:
        if not self.attempt.total_questions:
            return 0
        return round(self.attempt.score / self.attempt.total_questions * 100)


@dataclass(frozen=True)
class ProgressReport:
    attempts: tuple[AttemptRow, ...]
    topics: tuple[StudyTopic, ...]


def collect_progress(
    store: TutorStore, user: UserContext, *, limit: int
) -> ProgressReport:
    """Join recent attempts with quiz titles; deleted quizzes show no title."""

    rows = []
    for attempt in store.list_recent_attempts(user, limit=limit):
        quiz = store.get_quiz(attempt.quiz_id)
        rows.append(
            AttemptRow(attempt, quiz_title=quiz.title if quiz else None)
        )
    return ProgressReport(
        attempts=tuple(rows), topics=tuple(store.list_study_topics(user))
    )


def render_progress(console: Console, report: ProgressReport) -> None:
    if not report.attempts:
        console.print("[dim]No quiz attempts yet. Run `tutor quiz`.[/]")
    else:
        table = Table(title="Recent Quiz Attempts")
        table.add_column("Completed")
        table.add_column("Quiz")
        table.add_column("Score", justify="right")
        table.add_column("%", justify="right")
        for row in report.attempts:
            pct = row.percentage
            style = "green" if pct >= 80 else "yellow" if pct >= 60 else "red"
            table.add_row(
                row.attempt.completed_at[:16],
                row.quiz_title or "(deleted quiz)",
                f"{row.attempt.score}/{row.attempt.total_questions}",
                f"[{style}]{pct}%[/]",
            )
        console.print(table)

    if report.topics:
        table = Table(title="Study Topics")
        table.add_column("Topic")
        table.add_column("Subject")
        table.add_column("Mastery", justify="right")
        table.add_column("Sessions", justify="right")
        table.add_column("Last studied")
        for topic in report.topics:
            table.add_row(
                topic.topic,
                topic.subject,
                f"{round(topic.mastery_level * 100)}%",
                str(topic.study_count),
                topic.last_studied[:16],
            )
        console.print(table)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tutor progress",
        description="Show recent quiz attempts and topic mastery.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        help="Number of attempts to list (defaults to progress config).",
    )
    commands.add_common_arguments(parser)
    return parser


def main(
    argv: Sequence[str] | None = None, *, console: Console | None = None
) -> int:
    args = commands.parse_args(_build_parser(), argv)
    console = console or Console()
    if args.limit is not None and args.limit <= 0:
        commands.print_error("--limit must be positive.", console=console)
        return commands.EXIT_SETUP
    try:
        ctx = commands.prepare(
            "progress", config_path=args.config, verbose=args.verbose
        )
    except commands.CommandSetupError as exc:
        commands.print_error(str(exc), console=console)
        return commands.EXIT_SETUP

    limit = args.limit or ctx.config.progress.recent_attempts
    try:
        report = collect_progress(
            ctx.require_store(), ctx.require_user(), limit=limit
        )
    except PersistenceError as exc:
        ctx.logger.error("Progress lookup failed", extra={"error": str(exc)})
        commands.print_error(str(exc), console=console)
        return commands.EXIT_RUNTIME
    render_progress(console, report)
    return commands.EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
