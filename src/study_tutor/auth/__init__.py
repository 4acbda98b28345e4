"""User identity for tutor commands."""

from .context import (  # noqa: F401
    PROFILE_FILENAME,
    AuthError,
    AuthSession,
    UserContext,
)

__all__ = [
    "PROFILE_FILENAME",
    "AuthError",
    "AuthSession",
    "UserContext",
]
