"""Store wrapper that fails on demand."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

from study_tutor.core.errors import PersistenceError
from study_tutor.storage import JsonTutorStore


class FlakyStore(JsonTutorStore):
    """``JsonTutorStore`` whose methods named in ``fail`` raise."""

    def __init__(self, root: Path, *, fail: Iterable[str] = ()) -> None:
        super().__init__(root)
        self.fail = set(fail)

    def _guard(self, name: str) -> None:
        if name in self.fail:
            raise PersistenceError(f"{name} unavailable")

    def create_session(self, user, **kwargs: Any):
        self._guard("create_session")
        return super().create_session(user, **kwargs)

    def create_message(self, user, **kwargs: Any):
        self._guard("create_message")
        return super().create_message(user, **kwargs)

    def create_quiz(self, user, quiz):
        self._guard("create_quiz")
        return super().create_quiz(user, quiz)

    def create_attempt(self, user, **kwargs: Any):
        self._guard("create_attempt")
        return super().create_attempt(user, **kwargs)

    def upsert_study_topic(self, user, **kwargs: Any):
        self._guard("upsert_study_topic")
        return super().upsert_study_topic(user, **kwargs)

    def list_recent_attempts(self, user, **kwargs: Any):
        self._guard("list_recent_attempts")
        return super().list_recent_attempts(user, **kwargs)
