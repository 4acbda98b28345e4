"""Error taxonomy shared by the tutor runtimes."""

from __future__ import annotations

__all__ = [
    "TutorError",
    "ValidationError",
    "MalformedResponse",
    "UpstreamUnavailable",
    "PersistenceError",
]


class TutorError(RuntimeError):
    """Base class for recoverable tutor failures."""


class ValidationError(TutorError):
    """Raised when user input fails a guard before any external call."""


class MalformedResponse(TutorError):
    """Raised when model output does not satisfy the quiz contract."""


class UpstreamUnavailable(TutorError):
    """Raised when the language model call fails or times out."""


class PersistenceError(TutorError):
    """Raised when the storage collaborator cannot read or write a record."""
