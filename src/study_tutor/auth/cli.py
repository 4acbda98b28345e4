"""`tutor auth` entry point."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from study_tutor import commands

from .context import AuthError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tutor auth",
        description="Sign in as a local tutor user.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    login = subparsers.add_parser("login", help="Sign in as <user>.")
    login.add_argument("user", help="User id (letters, digits, . _ @ -).")
    commands.add_common_arguments(login)
    logout = subparsers.add_parser("logout", help="Forget the signed-in user.")
    commands.add_common_arguments(logout)
    status = subparsers.add_parser("status", help="Show the signed-in user.")
    commands.add_common_arguments(status)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = commands.parse_args(_build_parser(), argv)
    try:
        ctx = commands.prepare(
            "auth",
            config_path=args.config,
            verbose=args.verbose,
            require_user=False,
            load_user=False,
            open_store=False,
        )
    except commands.CommandSetupError as exc:
        commands.print_error(str(exc))
        return commands.EXIT_SETUP

    if args.command == "login":
        try:
            user = ctx.auth.sign_in(args.user)
        except (AuthError, OSError) as exc:
            commands.print_error(str(exc))
            return commands.EXIT_SETUP
        sys.stdout.write(f"Signed in as {user.user_id}\n")
        return commands.EXIT_OK

    if args.command == "logout":
        previous = ctx.auth.sign_out()
        if previous is None:
            sys.stdout.write("Not signed in.\n")
        else:
            sys.stdout.write(f"Signed out {previous.user_id}\n")
        return commands.EXIT_OK

    try:
        user = ctx.auth.load()
    except AuthError as exc:
        commands.print_error(
            f"{exc} Run `tutor auth logout` or sign in again."
        )
        return commands.EXIT_SETUP
    if user is None:
        sys.stdout.write("Not signed in.\n")
        return commands.EXIT_SETUP
    sys.stdout.write(
        f"Signed in as {user.user_id} (since {user.signed_in_at})\n"
    )
    return commands.EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
