"""State machine driving one quiz attempt.

``QuizSession`` moves through four phases::

    IDLE --submit_topic--> GENERATING --success--> ANSWERING(0)
      ^                        |                      |  select/next/previous
      |<-------failure---------+                      v
      |<----------------restart---------------- SUBMITTED

Guards never raise: a refused transition returns ``False`` (or ``None``) and
leaves the state untouched, matching a disabled button in the UI. Model and
storage failures are turned into :class:`~study_tutor.notices.Notice`
entries for the view to render.
"""

from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from study_tutor.auth.context import UserContext
from study_tutor.core.errors import (
    MalformedResponse,
    PersistenceError,
    UpstreamUnavailable,
    ValidationError,
)
from study_tutor.models import Attempt, Question, Quiz
from study_tutor.notices import Notice
from study_tutor.storage import TutorStore

from .generator import QuizGenerator, normalize_topic
from .scoring import ScoreResult, score

__all__ = ["QuizPhase", "QuizSession"]

logger = logging.getLogger(__name__)


class QuizPhase(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    ANSWERING = "answering"
    SUBMITTED = "submitted"


class QuizSession:
    """Own the current quiz, its answers and the resulting score."""

    def __init__(
        self,
        *,
        generator: QuizGenerator,
        store: TutorStore,
        user: UserContext,
    ) -> None:
        self._generator = generator
        self._store = store
        self._user = user
        self._phase = QuizPhase.IDLE
        self._topic: str | None = None
        self._quiz: Quiz | None = None
        self._index = 0
        self._answers: dict[int, int] = {}
        self._result: ScoreResult | None = None
        self._attempt: Attempt | None = None
        self._error: str | None = None
        self._notices: list[Notice] = []
        self._disposed = False

    # Read-only view ----------------------------------------------------

    @property
    def phase(self) -> QuizPhase:
        return self._phase

    @property
    def topic(self) -> str | None:
        return self._topic

    @property
    def quiz(self) -> Quiz | None:
        return self._quiz

    @property
    def index(self) -> int:
        return self._index

    @property
    def answers(self) -> Mapping[int, int]:
        return MappingProxyType(self._answers)

    @property
    def result(self) -> ScoreResult | None:
        return self._result

    @property
    def attempt(self) -> Attempt | None:
        return self._attempt

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def current_question(self) -> Question | None:
        if self._quiz is None or self._phase is not QuizPhase.ANSWERING:
            return None
        return self._quiz.questions[self._index]

    @property
    def is_last(self) -> bool:
        return (
            self._quiz is not None
            and self._index == self._quiz.total_questions - 1
        )

    @property
    def can_previous(self) -> bool:
        return self._phase is QuizPhase.ANSWERING and self._index > 0

    @property
    def can_next(self) -> bool:
        return (
            self._phase is QuizPhase.ANSWERING
            and self._index in self._answers
        )

    @property
    def can_submit(self) -> bool:
        return self.can_next and self.is_last

    def drain_notices(self) -> list[Notice]:
        """Return and clear pending notices."""

        notices, self._notices = self._notices, []
        return notices

    # Transitions -------------------------------------------------------

    def submit_topic(self, topic: str) -> bool:
        """Generate a quiz for ``topic``; ``True`` when answering starts."""

        if self._disposed or self._phase is not QuizPhase.IDLE:
            return False
        try:
            cleaned = normalize_topic(topic)
        except ValidationError:
            return False

        self._phase = QuizPhase.GENERATING
        self._error = None
        try:
            quiz = self._generator.generate(cleaned)
        except (MalformedResponse, UpstreamUnavailable) as exc:
            return self._fail_generation(cleaned, exc)
        except BaseException:
            self._phase = QuizPhase.IDLE
            raise
        if self._disposed:
            logger.info(
                "Dropping quiz generated after dispose",
                extra={"quiz_id": quiz.id},
            )
            self._phase = QuizPhase.IDLE
            return False

        self._persist_quiz(quiz)
        self._topic = cleaned
        self._quiz = quiz
        self._index = 0
        self._answers = {}
        self._result = None
        self._attempt = None
        self._phase = QuizPhase.ANSWERING
        return True

    def select(self, option_index: int) -> bool:
        question = self.current_question
        if question is None:
            return False
        if not 0 <= option_index < len(question.options):
            return False
        self._answers[self._index] = option_index
        return True

    def next(self) -> bool:
        """Advance one question; on the last question this submits."""

        if not self.can_next:
            return False
        if self.is_last:
            return self.submit() is not None
        self._index += 1
        return True

    def previous(self) -> bool:
        if not self.can_previous:
            return False
        self._index -= 1
        return True

    def submit(self) -> ScoreResult | None:
        if not self.can_submit or self._quiz is None:
            return None
        answers = dict(self._answers)
        result = score(self._quiz, answers)
        self._answers = answers
        self._result = result
        self._phase = QuizPhase.SUBMITTED
        logger.info(
            "Quiz submitted",
            extra={
                "user_id": self._user.user_id,
                "quiz_id": self._quiz.id,
                "score": result.score,
                "total": result.total,
            },
        )
        self._persist_attempt(self._quiz, answers, result)
        return result

    def restart(self) -> bool:
        """Leave the results screen, discarding the quiz and answers."""

        if self._phase is not QuizPhase.SUBMITTED:
            return False
        self._phase = QuizPhase.IDLE
        self._quiz = None
        self._index = 0
        self._answers = {}
        self._result = None
        self._attempt = None
        self._error = None
        return True

    def retry(self) -> bool:
        """Generate a fresh quiz on the topic just completed."""

        topic = self._topic
        if topic is None or not self.restart():
            return False
        return self.submit_topic(topic)

    def dispose(self) -> None:
        """Stop applying results; later responses are dropped."""

        self._disposed = True

    # Helpers -----------------------------------------------------------

    def _fail_generation(self, topic: str, exc: Exception) -> bool:
        logger.error(
            "Quiz generation failed",
            extra={
                "user_id": self._user.user_id,
                "topic": topic,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )
        self._phase = QuizPhase.IDLE
        self._quiz = None
        if self._disposed:
            return False
        self._error = str(exc)
        self._notices.append(
            Notice(
                "error",
                "Error",
                "Failed to generate quiz. Please try again.",
            )
        )
        return False

    def _persist_quiz(self, quiz: Quiz) -> None:
        try:
            self._store.create_quiz(self._user, quiz)
        except PersistenceError as exc:
            logger.warning(
                "Could not save quiz",
                extra={"quiz_id": quiz.id, "error": str(exc)},
            )
            self._notices.append(
                Notice(
                    "warning",
                    "Not saved",
                    "The quiz could not be saved; you can still take it.",
                )
            )

    def _persist_attempt(
        self, quiz: Quiz, answers: Mapping[int, int], result: ScoreResult
    ) -> None:
        try:
            self._attempt = self._store.create_attempt(
                self._user,
                quiz_id=quiz.id,
                answers=answers,
                score=result.score,
                total_questions=result.total,
            )
            self._store.upsert_study_topic(
                self._user,
                topic=quiz.title,
                subject=quiz.subject,
                mastery_level=result.mastery,
            )
        except PersistenceError as exc:
            logger.warning(
                "Could not save quiz results",
                extra={"quiz_id": quiz.id, "error": str(exc)},
            )
            self._notices.append(
                Notice(
                    "warning",
                    "Not saved",
                    "Your results could not be saved.",
                )
            )
