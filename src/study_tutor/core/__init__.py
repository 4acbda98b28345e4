"""Core shared helpers for study_tutor commands."""

from __future__ import annotations

from .ai import MissingApiKeyError, load_client
from .errors import (
    MalformedResponse,
    PersistenceError,
    TutorError,
    UpstreamUnavailable,
    ValidationError,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
    describe_layout,
)

__all__ = [
    "MissingApiKeyError",
    "load_client",
    "TutorError",
    "ValidationError",
    "MalformedResponse",
    "UpstreamUnavailable",
    "PersistenceError",
    "configure_logger",
    "JsonLogFormatter",
    "ensure_workspace",
    "describe_layout",
    "WorkspaceLayout",
    "WorkspaceError",
    "WORKSPACE_ENV",
]
