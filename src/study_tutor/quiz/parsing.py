"""Decode and validate quiz JSON returned by the language model."""

from __future__ import annotations

import json
import re
from typing import Any, List, Mapping, Optional

from study_tutor.core.errors import MalformedResponse
from study_tutor.models import (
    OPTIONS_PER_QUESTION,
    QUESTIONS_PER_QUIZ,
    Question,
    Quiz,
    new_id,
    utc_timestamp,
)

__all__ = ["extract_payload", "parse_quiz", "validate_question"]


_FENCED_RE = re.compile(r"```(?:json)?\s*(.+?)```", re.DOTALL | re.IGNORECASE)

DEFAULT_SUBJECT = "General"


def extract_payload(raw: str | Mapping[str, Any]) -> Mapping[str, Any]:
    """Return the JSON object carried by ``raw``.

    Mappings pass through untouched. Text is tried as-is, then as the first
    fenced code block, then as the objects embedded in surrounding prose;
    the first embedded object carrying ``questions`` wins.
    """

    if isinstance(raw, Mapping):
        return raw
    if not isinstance(raw, str):
        raise MalformedResponse(
            f"Expected text or an object, got {type(raw).__name__}."
        )
    text = raw.strip()
    if not text:
        raise MalformedResponse("Model returned an empty response.")

    for candidate in _candidates(text):
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, Mapping):
            return data
        raise MalformedResponse("Quiz JSON must be an object.")

    embedded = _first_embedded_object(text)
    if embedded is None:
        raise MalformedResponse("Model response is not valid JSON.")
    return embedded


def _candidates(text: str) -> List[str]:
    found = [text]
    fenced = _FENCED_RE.search(text)
    if fenced:
        found.append(fenced.group(1).strip())
    return found


def _first_embedded_object(text: str) -> Optional[Mapping[str, Any]]:
    """Decode objects starting at each ``{``; prefer one with questions."""

    decoder = json.JSONDecoder()
    first: Optional[Mapping[str, Any]] = None
    start = text.find("{")
    while start != -1:
        try:
            data, end = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(data, Mapping):
            if "questions" in data:
                return data
            if first is None:
                first = data
        start = text.find("{", end)
    return first


def parse_quiz(
    raw: str | Mapping[str, Any],
    *,
    topic: str,
    quiz_id: Optional[str] = None,
) -> Quiz:
    """Parse ``raw`` into a :class:`Quiz` or raise ``MalformedResponse``.

    Validation is all-or-nothing: a single bad question rejects the quiz.
    """

    payload = extract_payload(raw)
    questions = payload.get("questions")
    if not isinstance(questions, list):
        raise MalformedResponse("Quiz is missing a 'questions' list.")
    if len(questions) != QUESTIONS_PER_QUIZ:
        raise MalformedResponse(
            f"Quiz must contain exactly {QUESTIONS_PER_QUIZ} questions, "
            f"got {len(questions)}."
        )
    parsed = tuple(
        validate_question(item, index)
        for index, item in enumerate(questions)
    )
    title = _optional_text(payload.get("title")) or f"{topic} Quiz"
    subject = _optional_text(payload.get("subject")) or DEFAULT_SUBJECT
    return Quiz(
        id=quiz_id or new_id(),
        title=title,
        subject=subject,
        topic=topic,
        questions=parsed,
        created_at=utc_timestamp(),
    )


def validate_question(item: Any, index: int) -> Question:
    """Validate one question entry; ``index`` is used in error messages."""

    label = f"Question {index + 1}"
    if not isinstance(item, Mapping):
        raise MalformedResponse(f"{label} must be an object.")

    prompt = _required_text(
        item.get("question", item.get("prompt")), f"{label} prompt"
    )
    explanation = _required_text(
        item.get("explanation"), f"{label} explanation"
    )

    options = item.get("options")
    if not isinstance(options, list) or len(options) != OPTIONS_PER_QUESTION:
        raise MalformedResponse(
            f"{label} must have exactly {OPTIONS_PER_QUESTION} options."
        )
    if not all(isinstance(option, str) for option in options):
        raise MalformedResponse(f"{label} options must be strings.")

    correct = item.get("correct_answer", item.get("correct_option_index"))
    if (
        isinstance(correct, bool)
        or not isinstance(correct, int)
        or not 0 <= correct < OPTIONS_PER_QUESTION
    ):
        raise MalformedResponse(
            f"{label} correct answer must be an integer in "
            f"0..{OPTIONS_PER_QUESTION - 1}."
        )

    return Question(
        prompt=prompt,
        options=tuple(option.strip() for option in options),
        correct_option_index=correct,
        explanation=explanation,
    )


def _required_text(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise MalformedResponse(f"{label} is missing.")
    return value.strip()


def _optional_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
