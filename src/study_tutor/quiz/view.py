"""Rich console front-end for a quiz session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Literal

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from study_tutor.notices import Notice

from .scoring import ScoreResult
from .session import QuizPhase, QuizSession

__all__ = [
    "InputProvider",
    "QuizCommand",
    "QuizRunResult",
    "parse_quiz_command",
    "run_quiz",
]

InputProvider = Callable[[str], str]
ExitAction = Literal["quit", "interrupted"]

_GRADE_STYLES = {"correct": "green", "pending": "yellow", "incorrect": "red"}
_OPTION_KEYS = "ABCD"


@dataclass(frozen=True)
class QuizCommand:
    """Normalized user command parsed from console input."""

    type: Literal[
        "select", "next", "prev", "submit", "restart", "retry", "quit"
    ]
    choice: int | None = None


@dataclass(frozen=True)
class QuizRunResult:
    completed: tuple[ScoreResult, ...]
    exit_action: ExitAction


def parse_quiz_command(raw: str | None) -> QuizCommand | None:
    """Parse raw input; options accept ``1``-``4`` or ``A``-``D``."""

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"n", "next"}:
        return QuizCommand("next")
    if lowered in {"p", "prev", "previous"}:
        return QuizCommand("prev")
    if lowered in {"s", "submit"}:
        return QuizCommand("submit")
    if lowered in {"r", "restart", "new"}:
        return QuizCommand("restart")
    if lowered in {"retry", "again"}:
        return QuizCommand("retry")
    if lowered in {"q", "quit", "exit"}:
        return QuizCommand("quit")
    if len(text) == 1:
        if text.isdigit() and 1 <= int(text) <= len(_OPTION_KEYS):
            return QuizCommand("select", int(text) - 1)
        upper = text.upper()
        if upper in _OPTION_KEYS:
            return QuizCommand("select", _OPTION_KEYS.index(upper))
    return None


def run_quiz(
    session: QuizSession,
    console: Console,
    input_provider: InputProvider,
    *,
    topic: str | None = None,
    show_explanations: bool = True,
) -> QuizRunResult:
    """Drive ``session`` interactively until the user quits."""

    completed: list[ScoreResult] = []
    pending_topic = topic
    try:
        while True:
            phase = session.phase
            if phase is QuizPhase.IDLE:
                if pending_topic is None:
                    pending_topic = input_provider("Quiz topic (q to quit)> ")
                if pending_topic.strip().lower() in {"q", "quit", "exit"}:
                    return QuizRunResult(tuple(completed), "quit")
                if not pending_topic.strip():
                    console.print("[yellow]Enter a topic to continue.[/]")
                    pending_topic = None
                    continue
                with console.status("Generating quiz..."):
                    session.submit_topic(pending_topic)
                pending_topic = None
                _render_notices(console, session.drain_notices())
                continue

            if phase is QuizPhase.ANSWERING:
                _render_question(console, session)
                command = parse_quiz_command(input_provider("> "))
                if command is None:
                    console.print("[red]Unrecognized command. Try again.[/]")
                    continue
                if command.type == "quit":
                    console.print(
                        "[bold yellow]Ending quiz without submission.[/]"
                    )
                    return QuizRunResult(tuple(completed), "quit")
                _apply_answering_command(command, session, console)
                if (
                    session.phase is QuizPhase.SUBMITTED
                    and session.result is not None
                ):
                    completed.append(session.result)
                    _render_results(
                        console, session, show_explanations=show_explanations
                    )
                    _render_notices(console, session.drain_notices())
                continue

            command = parse_quiz_command(
                input_provider("restart, retry or quit> ")
            )
            if command is None or command.type == "quit":
                return QuizRunResult(tuple(completed), "quit")
            if command.type == "retry":
                with console.status("Generating quiz..."):
                    session.retry()
                _render_notices(console, session.drain_notices())
            elif command.type == "restart":
                session.restart()
            else:
                console.print("[dim]Results are read-only.[/]")
    except (EOFError, KeyboardInterrupt, StopIteration):
        console.print("\n[bold yellow]Quiz interrupted.[/]")
        return QuizRunResult(tuple(completed), "interrupted")
    finally:
        session.dispose()


def _apply_answering_command(
    command: QuizCommand, session: QuizSession, console: Console
) -> None:
    if command.type == "select" and command.choice is not None:
        if not session.select(command.choice):
            console.print("[red]That option is not available.[/]")
        return
    if command.type == "next":
        if not session.next():
            console.print("[dim]Choose an answer first.[/]")
        return
    if command.type == "prev":
        if not session.previous():
            console.print("[dim]Already at the first question.[/]")
        return
    if command.type == "submit":
        if session.submit() is None:
            console.print(
                "[dim]Answer the last question before submitting.[/]"
            )
        return
    console.print("[dim]Finish or quit the quiz first.[/]")


def _render_question(console: Console, session: QuizSession) -> None:
    quiz = session.quiz
    question = session.current_question
    if quiz is None or question is None:
        return
    total = quiz.total_questions
    position = session.index + 1
    header = Text.assemble(
        (quiz.title, "bold"),
        (f"  [{quiz.subject}]", "dim"),
        (f"  Question {position} of {total}", "cyan"),
    )
    console.print()
    console.rule(header)
    console.print(ProgressBar(total=total, completed=position, width=40))
    console.print(Text(question.prompt, style="bold"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Option")
    selected = session.answers.get(session.index)
    for idx, option in enumerate(question.options):
        marker = "•" if idx == selected else " "
        text = Text(f"{marker} {option}")
        if idx == selected:
            text.stylize("bold green")
        table.add_row(_OPTION_KEYS[idx], text)
    console.print(table)

    hints = ["1-4/A-D select"]
    if session.can_previous:
        hints.append("p previous")
    if session.can_submit:
        hints.append("submit")
    elif session.can_next:
        hints.append("n next")
    hints.append("q quit")
    console.print(Text(" | ".join(hints), style="dim"))


def _render_results(
    console: Console, session: QuizSession, *, show_explanations: bool
) -> None:
    quiz, result = session.quiz, session.result
    if quiz is None or result is None:
        return
    style = _GRADE_STYLES[result.grade]
    console.print()
    console.print(
        Panel(
            Text.assemble(
                (f"{result.score}/{result.total}", f"bold {style}"),
                (f"  {result.percentage}%", style),
            ),
            title="Quiz Complete!",
            border_style=style,
        )
    )

    for idx, question in enumerate(quiz.questions):
        chosen = session.answers.get(idx)
        correct = result.per_question[idx]
        lines = Text()
        for opt_idx, option in enumerate(question.options):
            line = Text(f"{_OPTION_KEYS[opt_idx]}. {option}")
            if opt_idx == question.correct_option_index:
                line.stylize("green")
                line.append("  Correct", style="bold green")
            elif opt_idx == chosen and not correct:
                line.stylize("red")
                line.append("  Your Answer", style="bold red")
            lines.append(line)
            lines.append("\n")
        if show_explanations:
            lines.append("Explanation: ", style="bold")
            lines.append(question.explanation)
        console.print(
            Panel(
                lines,
                title=Text(
                    f"{'✅' if correct else '❌'} Question {idx + 1}: "
                    f"{question.prompt}"
                ),
                title_align="left",
                border_style="green" if correct else "red",
            )
        )


def _render_notices(console: Console, notices: Iterable[Notice]) -> None:
    for notice in notices:
        console.print(
            Panel(
                Text(notice.message),
                title=notice.title,
                border_style=notice.style,
            )
        )
