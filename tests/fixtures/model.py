"""Fake language-model collaborators for tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any, List, Mapping


def completion(content: str | None) -> SimpleNamespace:
    """Build an object shaped like an OpenAI chat completion."""

    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class _Completions:
    def __init__(self, owner: "FakeOpenAI") -> None:
        self._owner = owner

    def create(self, **kwargs: Any) -> Any:
        self._owner.calls.append(kwargs)
        item = self._owner.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class FakeOpenAI:
    """Stand-in for ``openai.OpenAI`` exposing ``chat.completions.create``."""

    def __init__(self, *responses: Any) -> None:
        self.responses: List[Any] = list(responses)
        self.calls: List[Mapping[str, Any]] = []
        self.chat = SimpleNamespace(completions=_Completions(self))


@dataclass
class FakeModelClient:
    """Scripted ``TutorModelClient``; exceptions in the queues are raised."""

    replies: List[Any] = field(default_factory=list)
    quizzes: List[Any] = field(default_factory=list)
    chat_calls: List[tuple[str, str]] = field(default_factory=list)
    quiz_calls: List[str] = field(default_factory=list)

    def complete(self, message: str, *, context: str) -> str:
        self.chat_calls.append((message, context))
        item = self.replies.pop(0) if self.replies else "Here is an answer."
        if isinstance(item, BaseException):
            raise item
        return item

    def request_quiz(self, topic: str) -> Any:
        self.quiz_calls.append(topic)
        item = self.quizzes.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item
