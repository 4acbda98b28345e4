"""Signed-in user context threaded into every store call.

The profile is a small JSON document in the workspace ``config`` directory.
``AuthSession.load`` restores it when a command starts and ``sign_out``
removes it, so no command reads identity from ambient global state.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from study_tutor.models import utc_timestamp

__all__ = [
    "PROFILE_FILENAME",
    "AuthError",
    "UserContext",
    "AuthSession",
]

logger = logging.getLogger(__name__)

PROFILE_FILENAME = "profile.json"

_USER_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._@-]{0,63}$")


class AuthError(RuntimeError):
    """Raised when a command needs a signed-in user and none is present."""


@dataclass(frozen=True)
class UserContext:
    user_id: str
    signed_in_at: str

    def to_dict(self) -> Mapping[str, Any]:
        return {"user_id": self.user_id, "signed_in_at": self.signed_in_at}


class AuthSession:
    """Own the signed-in user for the lifetime of one command."""

    def __init__(self, config_dir: Path) -> None:
        self._path = config_dir / PROFILE_FILENAME
        self._current: UserContext | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def current(self) -> UserContext | None:
        return self._current

    def load(self) -> UserContext | None:
        """Restore the persisted profile; a missing file means signed out."""

        if not self._path.is_file():
            self._current = None
            return None
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
            context = UserContext(
                user_id=str(payload["user_id"]),
                signed_in_at=str(payload["signed_in_at"]),
            )
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise AuthError(
                f"Profile file is unreadable: {self._path}"
            ) from exc
        self._current = context
        return context

    def sign_in(self, user_id: str) -> UserContext:
        candidate = user_id.strip()
        if not _USER_ID_RE.match(candidate):
            raise AuthError(
                "User id must be 1-64 characters of letters, digits, "
                "'.', '_', '@' or '-'."
            )
        context = UserContext(user_id=candidate, signed_in_at=utc_timestamp())
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(context.to_dict(), indent=2), encoding="utf-8"
        )
        try:
            self._path.chmod(0o600)
        except PermissionError:  # pragma: no cover - depends on filesystem
            pass
        self._current = context
        logger.info("Signed in", extra={"user_id": candidate})
        return context

    def sign_out(self) -> UserContext | None:
        """Remove the profile; an unreadable one is removed as well."""

        try:
            previous = self._current or self.load()
        except AuthError:
            logger.warning(
                "Removing unreadable profile", extra={"path": str(self._path)}
            )
            previous = None
        self._path.unlink(missing_ok=True)
        self._current = None
        if previous is not None:
            logger.info("Signed out", extra={"user_id": previous.user_id})
        return previous

    def require(self) -> UserContext:
        context = self._current or self.load()
        if context is None:
            raise AuthError(
                "Not signed in. Run `tutor auth login <user>` first."
            )
        return context
