"""Chat turn orchestration for the tutor."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Literal, Sequence

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from study_tutor.auth.context import UserContext
from study_tutor.core.errors import (
    PersistenceError,
    TutorError,
    UpstreamUnavailable,
    ValidationError,
)
from study_tutor.llm import TutorModelClient
from study_tutor.models import (
    ChatSession,
    Message,
    Role,
    new_id,
    utc_timestamp,
)
from study_tutor.notices import Notice
from study_tutor.storage import TutorStore

__all__ = [
    "EntryStatus",
    "TranscriptEntry",
    "ChatTurn",
    "ChatRuntime",
    "session_title",
]

logger = logging.getLogger(__name__)

EntryStatus = Literal["pending", "saved", "unsaved"]
InputProvider = Callable[[str], str]

DEFAULT_TITLE = "New Chat"


def session_title(subject: str | None) -> str:
    return f"{subject} Discussion" if subject else DEFAULT_TITLE


@dataclass
class TranscriptEntry:
    """A message as shown to the user.

    Entries start ``pending`` with only a local id. Once the store answers
    they become ``saved`` (carrying the stored id) or ``unsaved`` (kept on
    screen, flagged with a warning). No entry stays pending after a turn.
    """

    role: Role
    content: str
    created_at: str = field(default_factory=utc_timestamp)
    local_id: str = field(default_factory=new_id)
    status: EntryStatus = "pending"
    message_id: str | None = None

    @classmethod
    def from_message(cls, message: Message) -> "TranscriptEntry":
        return cls(
            role=message.role,
            content=message.content,
            created_at=message.created_at,
            status="saved",
            message_id=message.id,
        )


@dataclass(frozen=True)
class ChatTurn:
    session_id: str
    prompt: str
    response: str
    user_entry: TranscriptEntry
    assistant_entry: TranscriptEntry


class ChatRuntime:
    """Own the active chat session and its visible transcript."""

    def __init__(
        self,
        *,
        store: TutorStore,
        client: TutorModelClient,
        user: UserContext,
    ) -> None:
        self._store = store
        self._client = client
        self._user = user
        self._session: ChatSession | None = None
        self._transcript: list[TranscriptEntry] = []
        self._notices: list[Notice] = []
        self._loading = False
        self._closed = False

    @property
    def session(self) -> ChatSession | None:
        return self._session

    @property
    def transcript(self) -> tuple[TranscriptEntry, ...]:
        return tuple(self._transcript)

    @property
    def is_loading(self) -> bool:
        return self._loading

    def drain_notices(self) -> list[Notice]:
        notices, self._notices = self._notices, []
        return notices

    # Sessions ----------------------------------------------------------

    def start_session(self, subject: str | None = None) -> ChatSession:
        cleaned = (subject or "").strip() or None
        sess = self._store.create_session(
            self._user, title=session_title(cleaned), subject=cleaned
        )
        logger.info(
            "Created chat session",
            extra={"user_id": self._user.user_id, "session_id": sess.id},
        )
        self._session = sess
        self._transcript = []
        return sess

    def open_session(self, session_id: str) -> ChatSession:
        sess = self._store.get_session(session_id)
        if sess is None or sess.user_id != self._user.user_id:
            raise ValidationError(f"Chat session not found: {session_id}")
        messages = self._store.list_messages(sess.id)
        self._session = sess
        self._transcript = [TranscriptEntry.from_message(m) for m in messages]
        return sess

    def list_sessions(self, *, limit: int | None = None) -> list[ChatSession]:
        return self._store.list_sessions(self._user, limit=limit)

    # Turns -------------------------------------------------------------

    def send(self, text: str) -> ChatTurn | None:
        """Send ``text`` on the active session, creating one if needed."""

        if not (text or "").strip():
            raise ValidationError("Message cannot be empty.")
        if self._loading:
            return None
        session = self._session or self.start_session()
        return self.send_turn(session.id, text)

    def send_turn(self, session_id: str, text: str) -> ChatTurn | None:
        """Persist the user turn, ask the model, persist the reply.

        Returns ``None`` when a turn is already in flight. Raises
        ``ValidationError`` for blank text or an unknown session and
        ``UpstreamUnavailable`` when the model call fails; in that case the
        user message stays in the transcript and the store.
        """

        prompt = (text or "").strip()
        if not prompt:
            raise ValidationError("Message cannot be empty.")
        if self._loading:
            logger.debug("Ignoring send while a turn is in flight")
            return None
        if self._session is None or self._session.id != session_id:
            self.open_session(session_id)

        self._loading = True
        try:
            user_entry = self._append_entry(Role.USER, prompt, session_id)
            try:
                response = self._client.complete(prompt, context=session_id)
            except UpstreamUnavailable as exc:
                logger.error(
                    "Chat completion failed",
                    extra={"session_id": session_id, "error": str(exc)},
                )
                self._notices.append(
                    Notice(
                        "error",
                        "Error",
                        "Failed to send message. Please try again.",
                    )
                )
                raise
            assistant_entry = self._append_entry(
                Role.ASSISTANT, response, session_id
            )
        finally:
            self._loading = False

        return ChatTurn(
            session_id=session_id,
            prompt=prompt,
            response=response,
            user_entry=user_entry,
            assistant_entry=assistant_entry,
        )

    def close(self) -> None:
        """Stop updating the transcript; the store still receives replies."""

        self._closed = True

    def _append_entry(
        self, role: Role, content: str, session_id: str
    ) -> TranscriptEntry:
        entry = TranscriptEntry(role=role, content=content)
        if not self._closed:
            self._transcript.append(entry)
        try:
            stored = self._store.create_message(
                self._user, session_id=session_id, role=role, content=content
            )
        except PersistenceError as exc:
            entry.status = "unsaved"
            logger.warning(
                "Could not save chat message",
                extra={
                    "session_id": session_id,
                    "role": role.value,
                    "error": str(exc),
                },
            )
            self._notices.append(
                Notice(
                    "warning",
                    "Not saved",
                    "A message could not be saved to your history.",
                )
            )
            return entry
        entry.status = "saved"
        entry.message_id = stored.id
        entry.created_at = stored.created_at
        return entry

    # Console -----------------------------------------------------------

    def interactive_loop(
        self,
        console: Console,
        input_provider: InputProvider,
        *,
        session_list_limit: int = 20,
    ) -> None:
        console.print(
            Panel(
                "Ask any academic question. Commands: :new [subject], "
                ":sessions, :open <n>, :quit",
                title="Study Tutor Chat",
            )
        )
        if self._session is not None:
            render_transcript(console, self._transcript)
        listed: list[ChatSession] = []
        try:
            while True:
                raw = input_provider("You> ").strip()
                if not raw:
                    continue
                if raw in {":quit", ":q", "exit"}:
                    console.print("Goodbye!")
                    break
                try:
                    listed = self._dispatch(
                        console, raw, listed, session_list_limit
                    )
                except TutorError as exc:
                    notices = self.drain_notices()
                    if not notices:
                        console.print(Text(f"Error: {exc}", style="red"))
                    _render_notices(console, notices)
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\nExiting chat.")
        finally:
            self.close()

    def _dispatch(
        self,
        console: Console,
        raw: str,
        listed: list[ChatSession],
        session_list_limit: int,
    ) -> list[ChatSession]:
        if raw.startswith(":new"):
            subject = raw[len(":new"):].strip() or None
            sess = self.start_session(subject)
            console.print(Text(f"Started {sess.title}", style="green"))
            return listed
        if raw == ":sessions":
            listed = self.list_sessions(limit=session_list_limit)
            render_sessions(console, listed)
            return listed
        if raw.startswith(":open"):
            self._open_listed(console, raw, listed)
            return listed
        with console.status("Thinking..."):
            turn = self.send(raw)
        _render_notices(console, self.drain_notices())
        if turn is not None:
            render_entry(console, turn.assistant_entry)
        return listed

    def _open_listed(
        self, console: Console, raw: str, listed: Sequence[ChatSession]
    ) -> None:
        choice = raw[len(":open"):].strip()
        if not choice.isdigit() or not 1 <= int(choice) <= len(listed):
            console.print("[red]Run :sessions and pick a listed number.[/]")
            return
        sess = self.open_session(listed[int(choice) - 1].id)
        console.print(Text(f"Opened {sess.title}", style="green"))
        render_transcript(console, self._transcript)


def render_sessions(
    console: Console,
    sessions: Sequence[ChatSession],
    *,
    show_ids: bool = False,
) -> None:
    if not sessions:
        console.print("[dim]No chat sessions yet.[/]")
        return
    table = Table(title="Chat Sessions")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Subject")
    table.add_column("Created")
    if show_ids:
        table.add_column("Id", style="dim")
    for idx, sess in enumerate(sessions, start=1):
        row = [
            str(idx), sess.title, sess.subject or "-", sess.created_at[:16]
        ]
        if show_ids:
            row.append(sess.id)
        table.add_row(*row)
    console.print(table)


def render_transcript(
    console: Console, entries: Iterable[TranscriptEntry]
) -> None:
    for entry in entries:
        render_entry(console, entry)


def render_entry(console: Console, entry: TranscriptEntry) -> None:
    if entry.role is Role.USER:
        console.print(Text(f"You: {entry.content}", style="bold green"))
        return
    subtitle = "not saved" if entry.status == "unsaved" else None
    console.print(
        Panel(Markdown(entry.content), title="Tutor", subtitle=subtitle)
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
