"""Shared setup for tutor subcommands.

Every command that touches the store follows the same steps: load the
config, resolve the workspace, start the JSON log file and (usually) restore
the signed-in user. ``prepare`` does these in one place and converts the
failures into exit code 2 via :class:`CommandSetupError`.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from rich.console import Console
from rich.text import Text

from study_tutor import config as config_mod
from study_tutor.auth import AuthError, AuthSession, UserContext
from study_tutor.core.ai import MissingApiKeyError
from study_tutor.core.errors import PersistenceError
from study_tutor.core.logging import configure_logger
from study_tutor.core.workspace import WorkspaceLayout
from study_tutor.llm import TutorModelClient, build_model_client
from study_tutor.storage import JsonTutorStore

__all__ = [
    "EXIT_OK",
    "EXIT_RUNTIME",
    "EXIT_SETUP",
    "CommandSetupError",
    "CommandContext",
    "add_common_arguments",
    "parse_args",
    "prepare",
    "print_error",
]

EXIT_OK = 0
EXIT_RUNTIME = 1
EXIT_SETUP = 2

LOGGER_NAME = "study_tutor"


class CommandSetupError(RuntimeError):
    """Raised when a command cannot start; maps to exit code 2."""


@dataclass
class CommandContext:
    config: config_mod.TutorConfig
    layout: WorkspaceLayout
    logger: logging.Logger
    log_path: Path
    auth: AuthSession
    user: UserContext | None = None
    store: JsonTutorStore | None = None

    def require_user(self) -> UserContext:
        if self.user is None:
            raise CommandSetupError(
                "Not signed in. Run `tutor auth login <user>` first."
            )
        return self.user

    def require_store(self) -> JsonTutorStore:
        if self.store is None:
            raise CommandSetupError("Store is not available.")
        return self.store

    def model_client(self) -> TutorModelClient:
        try:
            return build_model_client(self.config.model)
        except MissingApiKeyError as exc:
            raise CommandSetupError(str(exc)) from exc


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=str,
        help="Path to tutor.toml (defaults to the workspace config dir).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror debug logs to stderr.",
    )


def prepare(
    command: str,
    *,
    config_path: str | None = None,
    verbose: bool = False,
    require_user: bool = True,
    load_user: bool = True,
    open_store: bool = True,
    env: Mapping[str, str] | None = None,
) -> CommandContext:
    """Load config, workspace, logging, identity and store for ``command``.

    ``load_user=False`` leaves the profile untouched so commands that
    replace or remove it still run when it is unreadable.
    """

    explicit = (
        Path(config_path).expanduser().resolve() if config_path else None
    )
    try:
        cfg = config_mod.load_config(explicit_path=explicit, env=env)
        layout = cfg.layout(env=env)
    except config_mod.ConfigError as exc:
        raise CommandSetupError(str(exc)) from exc

    logger, log_path = configure_logger(
        LOGGER_NAME,
        log_dir=layout.path_for("logs"),
        level=cfg.logging.level,
        verbose=verbose or cfg.logging.verbose,
        filename=f"{command}.log",
    )

    auth = AuthSession(layout.path_for("config"))
    user = None
    try:
        if require_user:
            user = auth.require()
        elif load_user:
            user = auth.load()
    except AuthError as exc:
        raise CommandSetupError(str(exc)) from exc

    store = None
    if open_store:
        try:
            store = JsonTutorStore(layout.path_for("store"))
        except PersistenceError as exc:
            raise CommandSetupError(str(exc)) from exc

    logger.debug(
        "Command ready",
        extra={
            "command": command,
            "user_id": user.user_id if user else None,
            "workspace": str(layout.home),
        },
    )
    return CommandContext(
        config=cfg,
        layout=layout,
        logger=logger,
        log_path=log_path,
        auth=auth,
        user=user,
        store=store,
    )


def print_error(message: str, *, console: Console | None = None) -> None:
    if console is None:
        sys.stderr.write(message + "\n")
        return
    console.print(Text.assemble(("Error: ", "bold red"), message))


def parse_args(
    parser: argparse.ArgumentParser, argv: Sequence[str] | None
) -> argparse.Namespace:
    return parser.parse_args(list(argv) if argv is not None else None)
