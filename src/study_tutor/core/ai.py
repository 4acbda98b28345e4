"""Shared OpenAI client construction."""

from __future__ import annotations

import os
from typing import Mapping

from dotenv import load_dotenv
from openai import OpenAI

__all__ = ["MissingApiKeyError", "load_client"]


class MissingApiKeyError(RuntimeError):
    """Raised when the configured API key variable is unset."""


def load_client(
    *,
    api_key_env: str = "GROQ_API_KEY",
    api_base: str | None = None,
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
) -> OpenAI:
    """Initialise an OpenAI-compatible client from environment credentials.

    ``.env`` files are honoured. ``api_base`` points the SDK at a different
    OpenAI-compatible provider (Groq by default in the tutor config).
    """

    load_dotenv()
    source = os.environ if env is None else env
    api_key = (source.get(api_key_env) or "").strip()
    if not api_key:
        raise MissingApiKeyError(
            f"{api_key_env} not found in environment. Set it or add to .env"
        )
    kwargs: dict[str, object] = {"api_key": api_key}
    if api_base:
        kwargs["base_url"] = api_base
    if timeout is not None:
        kwargs["timeout"] = timeout
    return OpenAI(**kwargs)
