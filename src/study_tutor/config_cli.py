"""`tutor config` entry point."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from study_tutor import config as config_mod


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tutor config",
        description="Manage the tutor configuration file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser(
        "init",
        help="Write the default configuration template.",
    )
    init_parser.add_argument(
        "--path",
        type=str,
        help="Destination for tutor.toml (defaults to the workspace).",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file if present.",
    )

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate the active configuration file.",
    )
    validate_parser.add_argument(
        "--path",
        type=str,
        help="Path to tutor.toml (defaults to the resolved location).",
    )
    validate_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress success output; errors still print to stderr.",
    )

    path_parser = subparsers.add_parser(
        "path",
        help="Print the resolved config path.",
    )
    path_parser.add_argument(
        "--path",
        type=str,
        help="Optional path override to resolve.",
    )
    return parser


def _to_path(value: str | None) -> Path | None:
    if value is None:
        return None
    return Path(value).expanduser().resolve()


def _handle_init(args: argparse.Namespace) -> int:
    try:
        target = config_mod.resolve_config_path(
            explicit_path=_to_path(args.path)
        )
        config_mod.write_template(target, overwrite=args.force)
    except config_mod.ConfigError as exc:
        _print_error(str(exc))
        return 2
    print(f"Wrote config template to {target}")
    return 0


def _handle_validate(args: argparse.Namespace) -> int:
    try:
        cfg = config_mod.load_config(
            explicit_path=_to_path(args.path), require_file=True
        )
    except config_mod.ConfigError as exc:
        _print_error(str(exc))
        return 2
    if not args.quiet:
        print("Configuration OK")
        print(f"  api_base: {cfg.model.api_base or '(default)'}")
        print(f"  chat_model: {cfg.model.chat_model}")
        print(f"  quiz_model: {cfg.model.quiz_model}")
        print(f"  temperature: {cfg.model.temperature}")
        print(f"  log level: {cfg.logging.level}")
    return 0


def _handle_path(args: argparse.Namespace) -> int:
    try:
        path = config_mod.resolve_config_path(
            explicit_path=_to_path(args.path)
        )
    except config_mod.ConfigError as exc:
        _print_error(str(exc))
        return 2
    print(path)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    handlers = {
        "init": _handle_init,
        "validate": _handle_validate,
        "path": _handle_path,
    }
    return handlers[args.command](args)


def _print_error(message: str) -> None:
    sys.stderr.write(message + "\n")


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
