"""Pure scoring of a quiz attempt."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from study_tutor.models import AnswerSet, Quiz

__all__ = ["Grade", "ScoreResult", "score"]

Grade = Literal["correct", "pending", "incorrect"]


@dataclass(frozen=True)
class ScoreResult:
    score: int
    per_question: tuple[bool, ...]

    @property
    def total(self) -> int:
        return len(self.per_question)

    @property
    def percentage(self) -> int:
        if not self.total:
            return 0
        return round(self.score / self.total * 100)

    @property
    def mastery(self) -> float:
        if not self.total:
            return 0.0
        return self.score / self.total

    @property
    def grade(self) -> Grade:
        if self.percentage >= 80:
            return "correct"
        if self.percentage >= 60:
            return "pending"
        return "incorrect"


def score(quiz: Quiz, answers: AnswerSet) -> ScoreResult:
    """Compare ``answers`` against ``quiz``; unanswered questions are wrong."""

    per_question = tuple(
        answers.get(index) == question.correct_option_index
        for index, question in enumerate(quiz.questions)
    )
    return ScoreResult(score=sum(per_question), per_question=per_question)
