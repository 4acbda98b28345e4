"""Quiz payload builders."""

from __future__ import annotations

import json
from typing import Any, Dict, Sequence

from study_tutor.models import Quiz
from study_tutor.quiz.parsing import parse_quiz

DEFAULT_CORRECT = (0, 1, 2, 3, 0)


def quiz_payload(
    *,
    title: str = "Photosynthesis Basics",
    subject: str = "Biology",
    correct: Sequence[int] = DEFAULT_CORRECT,
) -> Dict[str, Any]:
    return {
        "title": title,
        "subject": subject,
        "questions": [
            {
                "question": f"Question {idx + 1}?",
                "options": [f"Option {c}{idx + 1}" for c in "ABCD"],
                "correct_answer": answer,
                "explanation": f"Because of reason {idx + 1}.",
            }
            for idx, answer in enumerate(correct)
        ],
    }


def quiz_json(**kwargs: Any) -> str:
    return json.dumps(quiz_payload(**kwargs))


def make_quiz(topic: str = "Photosynthesis", **kwargs: Any) -> Quiz:
    return parse_quiz(quiz_payload(**kwargs), topic=topic)
