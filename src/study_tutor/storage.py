"""Storage collaborator for sessions, messages, quizzes and attempts.

``TutorStore`` is the seam the runtimes depend on. ``JsonTutorStore`` keeps
one JSON document per table under the workspace ``store`` directory, with an
exclusive lock file and atomic replace on every write.
"""

from __future__ import annotations

import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol, Sequence, TypeVar

from study_tutor.auth.context import UserContext
from study_tutor.core.errors import PersistenceError
from study_tutor.models import (
    AnswerSet,
    Attempt,
    ChatSession,
    Message,
    Quiz,
    Role,
    StudyTopic,
    new_id,
    utc_timestamp,
)

__all__ = [
    "TutorStore",
    "JsonTutorStore",
]


T = TypeVar("T")

_LOCK_TIMEOUT_SECONDS = 5.0

_SESSIONS = "chat_sessions"
_MESSAGES = "chat_messages"
_QUIZZES = "quizzes"
_ATTEMPTS = "quiz_attempts"
_TOPICS = "study_topics"


class TutorStore(Protocol):
    """Operations the tutor runtimes need from persistence."""

    def create_session(
        self, user: UserContext, *, title: str, subject: str | None = None
    ) -> ChatSession: ...

    def get_session(self, session_id: str) -> ChatSession | None: ...

    def list_sessions(
        self, user: UserContext, *, limit: int | None = None
    ) -> list[ChatSession]: ...

    def create_message(
        self,
        user: UserContext,
        *,
        session_id: str,
        role: Role,
        content: str,
    ) -> Message: ...

    def list_messages(self, session_id: str) -> list[Message]: ...

    def create_quiz(self, user: UserContext, quiz: Quiz) -> Quiz: ...

    def get_quiz(self, quiz_id: str) -> Quiz | None: ...

    def create_attempt(
        self,
        user: UserContext,
        *,
        quiz_id: str,
        answers: AnswerSet,
        score: int,
        total_questions: int,
    ) -> Attempt: ...

    def list_recent_attempts(
        self, user: UserContext, *, limit: int
    ) -> list[Attempt]: ...

    def upsert_study_topic(
        self,
        user: UserContext,
        *,
        topic: str,
        subject: str,
        mastery_level: float,
    ) -> StudyTopic: ...

    def list_study_topics(self, user: UserContext) -> list[StudyTopic]: ...


class JsonTutorStore:
    """File-backed ``TutorStore`` implementation."""

    def __init__(self, root: Path) -> None:
        self._root = root
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(
                f"Cannot create store directory: {root}"
            ) from exc

    @property
    def root(self) -> Path:
        return self._root

    # Chat sessions -----------------------------------------------------

    def create_session(
        self, user: UserContext, *, title: str, subject: str | None = None
    ) -> ChatSession:
        session = ChatSession(
            id=new_id(),
            user_id=user.user_id,
            title=title,
            subject=subject,
            created_at=utc_timestamp(),
        )
        self._append(_SESSIONS, session.to_dict())
        return session

    def get_session(self, session_id: str) -> ChatSession | None:
        for row in self._read(_SESSIONS):
            if row.get("id") == session_id:
                return _decode(ChatSession.from_dict, row, _SESSIONS)
        return None

    def list_sessions(
        self, user: UserContext, *, limit: int | None = None
    ) -> list[ChatSession]:
        sessions = [
            _decode(ChatSession.from_dict, row, _SESSIONS)
            for row in self._read(_SESSIONS)
            if row.get("user_id") == user.user_id
        ]
        sessions.sort(key=lambda item: item.created_at, reverse=True)
        return sessions if limit is None else sessions[: max(0, limit)]

    # Messages ----------------------------------------------------------

    def create_message(
        self,
        user: UserContext,
        *,
        session_id: str,
        role: Role,
        content: str,
    ) -> Message:
        message = Message(
            id=new_id(),
            session_id=session_id,
            user_id=user.user_id,
            role=Role(role),
            content=content,
            created_at=utc_timestamp(),
        )
        self._append(_MESSAGES, message.to_dict())
        return message

    def list_messages(self, session_id: str) -> list[Message]:
        messages = [
            _decode(Message.from_dict, row, _MESSAGES)
            for row in self._read(_MESSAGES)
            if row.get("session_id") == session_id
        ]
        # Stable sort keeps insertion order for equal timestamps.
        messages.sort(key=lambda item: item.created_at)
        return messages

    # Quizzes -----------------------------------------------------------

    def create_quiz(self, user: UserContext, quiz: Quiz) -> Quiz:
        row = dict(quiz.to_dict())
        row["user_id"] = user.user_id
        self._append(_QUIZZES, row)
        return quiz

    def get_quiz(self, quiz_id: str) -> Quiz | None:
        for row in self._read(_QUIZZES):
            if row.get("id") == quiz_id:
                return _decode(Quiz.from_dict, row, _QUIZZES)
        return None

    def create_attempt(
        self,
        user: UserContext,
        *,
        quiz_id: str,
        answers: AnswerSet,
        score: int,
        total_questions: int,
    ) -> Attempt:
        attempt = Attempt(
            id=new_id(),
            user_id=user.user_id,
            quiz_id=quiz_id,
            answers=dict(answers),
            score=score,
            total_questions=total_questions,
            completed_at=utc_timestamp(),
        )
        self._append(_ATTEMPTS, attempt.to_dict())
        return attempt

    def list_recent_attempts(
        self, user: UserContext, *, limit: int
    ) -> list[Attempt]:
        attempts = [
            _decode(Attempt.from_dict, row, _ATTEMPTS)
            for row in self._read(_ATTEMPTS)
            if row.get("user_id") == user.user_id
        ]
        attempts.sort(key=lambda item: item.completed_at, reverse=True)
        return attempts[: max(0, limit)]

    # Study topics ------------------------------------------------------

    def upsert_study_topic(
        self,
        user: UserContext,
        *,
        topic: str,
        subject: str,
        mastery_level: float,
    ) -> StudyTopic:
        result: list[StudyTopic] = []

        def _update(rows: list[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
            key = (user.user_id, topic, subject)
            updated: list[Mapping[str, Any]] = []
            previous: StudyTopic | None = None
            for row in rows:
                existing = _decode(StudyTopic.from_dict, row, _TOPICS)
                if existing.key == key:
                    previous = existing
                    continue
                updated.append(row)
            entry = StudyTopic(
                user_id=user.user_id,
                topic=topic,
                subject=subject,
                mastery_level=mastery_level,
                last_studied=utc_timestamp(),
                study_count=(previous.study_count + 1) if previous else 1,
            )
            result.append(entry)
            updated.append(entry.to_dict())
            return updated

        self._mutate(_TOPICS, _update)
        return result[0]

    def list_study_topics(self, user: UserContext) -> list[StudyTopic]:
        topics = [
            _decode(StudyTopic.from_dict, row, _TOPICS)
            for row in self._read(_TOPICS)
            if row.get("user_id") == user.user_id
        ]
        topics.sort(key=lambda item: item.last_studied, reverse=True)
        return topics

    # Internals ---------------------------------------------------------

    def _table_path(self, table: str) -> Path:
        return self._root / f"{table}.json"

    def _read(self, table: str) -> list[Mapping[str, Any]]:
        path = self._table_path(table)
        if not path.is_file():
            return []
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Failed to read table: {path}") from exc
        if not isinstance(payload, list):
            raise PersistenceError(
                f"Unexpected structure in {path}; expected a list."
            )
        return [row for row in payload if isinstance(row, Mapping)]

    def _append(self, table: str, row: Mapping[str, Any]) -> None:
        self._mutate(table, lambda rows: [*rows, row])

    def _mutate(
        self,
        table: str,
        change: Callable[
            [list[Mapping[str, Any]]], Sequence[Mapping[str, Any]]
        ],
    ) -> None:
        path = self._table_path(table)
        try:
            with _TableLock(path.with_suffix(".lock")):
                rows = self._read(table)
                _atomic_write_json(path, list(change(rows)))
        except OSError as exc:
            raise PersistenceError(f"Failed to write table: {path}") from exc


def _decode(
    factory: Callable[[Mapping[str, Any]], T],
    row: Mapping[str, Any],
    table: str,
) -> T:
    try:
        return factory(row)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise PersistenceError(
            f"Malformed row in {table} (id={row.get('id')!r}): {exc!r}"
        ) from exc


class _TableLock:
    """Filesystem lock using exclusive file creation."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def __enter__(self) -> "_TableLock":
        deadline = time.time() + _LOCK_TIMEOUT_SECONDS
        while True:
            try:
                fd = os.open(self._path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                os.close(fd)
                return self
            except FileExistsError:
                if time.time() > deadline:
                    raise PersistenceError(
                        f"Timed out waiting for store lock: {self._path}"
                    )
                time.sleep(0.05)

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self._path.unlink(missing_ok=True)


def _atomic_write_json(path: Path, payload: Any) -> None:
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
        suffix=".tmp",
    )
    try:
        json.dump(payload, handle, indent=2, sort_keys=True)
        handle.flush()
        os.fsync(handle.fileno())
    finally:
        handle.close()
    os.replace(handle.name, path)
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
