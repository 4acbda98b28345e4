"""Language model collaborator used by the chat and quiz runtimes.

The tutor needs exactly two request shapes from the model provider: a chat
completion that answers a student's question, and a quiz request that returns
a five-question multiple-choice quiz as JSON. Both go through the OpenAI SDK,
so any OpenAI-compatible provider can serve them.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

import openai

from study_tutor.config import ModelConfig
from study_tutor.core.ai import load_client
from study_tutor.core.errors import UpstreamUnavailable

__all__ = [
    "CHAT_SYSTEM_PROMPT",
    "QUIZ_SYSTEM_PROMPT",
    "EMPTY_COMPLETION_TEXT",
    "TutorModelClient",
    "OpenAITutorClient",
    "build_model_client",
]

logger = logging.getLogger(__name__)


CHAT_SYSTEM_PROMPT = """\
You are an educational AI assistant focused on helping students learn. For \
every academic question:

1. Provide a clear, grade-appropriate explanation
2. Give 2 concrete examples to illustrate the concept
3. Create 2 practice questions with answers to test understanding

Format your response with clear sections:
- **Explanation:** (clear explanation of the concept)
- **Examples:** (2 relevant examples)
- **Practice Questions:** (2 questions with answers)

Keep explanations engaging and accessible. Adapt complexity to the question \
level."""

QUIZ_SYSTEM_PROMPT = """\
Create a 5-question multiple choice quiz about the given topic. Return only \
valid JSON in this exact format:
{
  "title": "Quiz Title",
  "subject": "Subject Category",
  "questions": [
    {
      "question": "Question text?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correct_answer": 0,
      "explanation": "Why this answer is correct"
    }
  ]
}
Make questions educational and age-appropriate."""

EMPTY_COMPLETION_TEXT = (
    "I apologize, but I could not generate a response. Please try again."
)


class TutorModelClient(Protocol):
    """Protocol satisfied by model adapters."""

    def complete(self, message: str, *, context: str) -> str:
        """Answer ``message`` within the chat session ``context``."""

    def request_quiz(self, topic: str) -> str | Mapping[str, Any]:
        """Return quiz JSON for ``topic`` as text or an already-decoded map."""


class OpenAITutorClient:
    """Adapter for OpenAI-compatible chat completions."""

    def __init__(
        self,
        *,
        chat_model: str,
        quiz_model: str,
        temperature: float,
        max_output_tokens: int,
        request_timeout: int,
        client: Any,
    ) -> None:
        self._chat_model = chat_model
        self._quiz_model = quiz_model
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._timeout = request_timeout
        self._client = client

    def complete(self, message: str, *, context: str) -> str:
        logger.info(
            "Requesting chat completion",
            extra={"session_id": context, "chars": len(message)},
        )
        content = self._create(
            model=self._chat_model,
            system_prompt=CHAT_SYSTEM_PROMPT,
            user_prompt=message,
        )
        return content or EMPTY_COMPLETION_TEXT

    def request_quiz(self, topic: str) -> str:
        logger.info("Requesting quiz", extra={"topic": topic})
        return self._create(
            model=self._quiz_model,
            system_prompt=QUIZ_SYSTEM_PROMPT,
            user_prompt=f"Create a quiz about: {topic}",
        )

    def _create(
        self, *, model: str, system_prompt: str, user_prompt: str
    ) -> str:
        try:
            response = self._client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self._temperature,
                max_tokens=self._max_output_tokens,
                timeout=self._timeout,
            )
        except openai.OpenAIError as exc:
            logger.error(
                "Model request failed",
                extra={"model": model, "error": str(exc)},
            )
            raise UpstreamUnavailable(f"Model request failed: {exc}") from exc
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise UpstreamUnavailable(
                "Model returned a response without choices."
            ) from exc
        return (content or "").strip()


def build_model_client(
    settings: ModelConfig, *, client: Any | None = None
) -> OpenAITutorClient:
    """Create the default adapter from ``[model]`` settings."""

    if client is None:
        client = load_client(
            api_key_env=settings.api_key_env,
            api_base=settings.api_base,
            timeout=float(settings.request_timeout_seconds),
        )
    return OpenAITutorClient(
        chat_model=settings.chat_model,
        quiz_model=settings.quiz_model,
        temperature=settings.temperature,
        max_output_tokens=settings.max_output_tokens,
        request_timeout=settings.request_timeout_seconds,
        client=client,
    )
