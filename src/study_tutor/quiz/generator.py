"""Issue one quiz request to the model and validate the result."""

from __future__ import annotations

import logging

from study_tutor.core.errors import MalformedResponse, ValidationError
from study_tutor.llm import TutorModelClient
from study_tutor.models import Quiz

from .parsing import parse_quiz

__all__ = ["QuizGenerator", "normalize_topic"]

logger = logging.getLogger(__name__)


def normalize_topic(topic: str | None) -> str:
    """Return the trimmed topic or raise ``ValidationError`` when blank."""

    cleaned = (topic or "").strip()
    if not cleaned:
        raise ValidationError("Topic cannot be empty.")
    return cleaned


class QuizGenerator:
    """Turn a topic into a validated five-question quiz."""

    def __init__(self, client: TutorModelClient) -> None:
        self._client = client

    def generate(self, topic: str) -> Quiz:
        """Request and parse a quiz for ``topic``.

        Raises ``ValidationError`` before any call for a blank topic,
        ``UpstreamUnavailable`` when the call fails and ``MalformedResponse``
        when the output breaks the quiz contract.
        """

        cleaned = normalize_topic(topic)
        raw = self._client.request_quiz(cleaned)
        try:
            quiz = parse_quiz(raw, topic=cleaned)
        except MalformedResponse as exc:
            logger.warning(
                "Rejected malformed quiz",
                extra={"topic": cleaned, "reason": str(exc)},
            )
            raise
        logger.info(
            "Generated quiz",
            extra={"topic": cleaned, "quiz_id": quiz.id, "title": quiz.title},
        )
        return quiz
