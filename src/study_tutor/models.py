"""Records exchanged between the tutor runtimes and the store."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, MutableMapping

__all__ = [
    "QUESTIONS_PER_QUIZ",
    "OPTIONS_PER_QUESTION",
    "AnswerSet",
    "Role",
    "Question",
    "Quiz",
    "Attempt",
    "ChatSession",
    "Message",
    "StudyTopic",
    "new_id",
    "utc_timestamp",
]


QUESTIONS_PER_QUIZ = 5
OPTIONS_PER_QUESTION = 4

# Question index -> selected option index.
AnswerSet = Mapping[int, int]


class Role(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Question:
    prompt: str
    options: tuple[str, ...]
    correct_option_index: int
    explanation: str

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "question": self.prompt,
            "options": list(self.options),
            "correct_answer": self.correct_option_index,
            "explanation": self.explanation,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Question":
        return cls(
            prompt=str(payload["question"]),
            options=tuple(str(option) for option in payload["options"]),
            correct_option_index=int(payload["correct_answer"]),
            explanation=str(payload["explanation"]),
        )


@dataclass(frozen=True)
class Quiz:
    """A generated quiz; immutable once created."""

    id: str
    title: str
    subject: str
    topic: str
    questions: tuple[Question, ...]
    created_at: str

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "subject": self.subject,
            "topic": self.topic,
            "questions": [question.to_dict() for question in self.questions],
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Quiz":
        return cls(
            id=str(payload["id"]),
            title=str(payload["title"]),
            subject=str(payload["subject"]),
            topic=str(payload.get("topic", "")),
            questions=tuple(
                Question.from_dict(item) for item in payload["questions"]
            ),
            created_at=str(payload["created_at"]),
        )


@dataclass(frozen=True)
class Attempt:
    """One scored pass through a quiz. ``quiz_id`` may outlive the quiz."""

    id: str
    user_id: str
    quiz_id: str
    answers: Mapping[int, int]
    score: int
    total_questions: int
    completed_at: str

    def __post_init__(self) -> None:
        if not 0 <= self.score <= self.total_questions:
            raise ValueError(
                f"score {self.score} outside 0..{self.total_questions}"
            )

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "quiz_id": self.quiz_id,
            "answers": {str(k): v for k, v in sorted(self.answers.items())},
            "score": self.score,
            "total_questions": self.total_questions,
            "completed_at": self.completed_at,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Attempt":
        answers = payload.get("answers") or {}
        return cls(
            id=str(payload["id"]),
            user_id=str(payload["user_id"]),
            quiz_id=str(payload["quiz_id"]),
            answers={int(k): int(v) for k, v in answers.items()},
            score=int(payload["score"]),
            total_questions=int(payload["total_questions"]),
            completed_at=str(payload["completed_at"]),
        )


@dataclass(frozen=True)
class ChatSession:
    id: str
    user_id: str
    title: str
    subject: str | None
    created_at: str

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "subject": self.subject,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ChatSession":
        subject = payload.get("subject")
        return cls(
            id=str(payload["id"]),
            user_id=str(payload["user_id"]),
            title=str(payload["title"]),
            subject=str(subject) if subject is not None else None,
            created_at=str(payload["created_at"]),
        )


@dataclass(frozen=True)
class Message:
    id: str
    session_id: str
    user_id: str
    role: Role
    content: str
    created_at: str

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "user_id": self.user_id,
            "role": self.role.value,
            "content": self.content,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Message":
        return cls(
            id=str(payload["id"]),
            session_id=str(payload["session_id"]),
            user_id=str(payload["user_id"]),
            role=Role(payload["role"]),
            content=str(payload["content"]),
            created_at=str(payload["created_at"]),
        )


@dataclass(frozen=True)
class StudyTopic:
    """Per-user mastery of a quiz topic, refreshed after every attempt."""

    user_id: str
    topic: str
    subject: str
    mastery_level: float
    last_studied: str
    study_count: int = field(default=1)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.user_id, self.topic, self.subject)

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "user_id": self.user_id,
            "topic": self.topic,
            "subject": self.subject,
            "mastery_level": self.mastery_level,
            "last_studied": self.last_studied,
            "study_count": self.study_count,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "StudyTopic":
        return cls(
            user_id=str(payload["user_id"]),
            topic=str(payload["topic"]),
            subject=str(payload["subject"]),
            mastery_level=float(payload["mastery_level"]),
            last_studied=str(payload["last_studied"]),
            study_count=int(payload.get("study_count", 1)),
        )


def new_id() -> str:
    return uuid.uuid4().hex


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
