"""`tutor init`: bootstrap the shared workspace."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Mapping, Sequence

from study_tutor import config as config_mod
from study_tutor.core import workspace as workspace_mod


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tutor init",
        description=(
            "Create the tutor workspace (config, logs and store directories) "
            "and write a starter tutor.toml."
        ),
    )
    parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Override the workspace root (defaults to STUDY_TUTOR_DATA_HOME "
            "or ~/.study-tutor-data)."
        ),
    )
    parser.add_argument(
        "--no-config",
        action="store_true",
        help="Skip writing the config template.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational output on success.",
    )
    return parser


def _format_created(created: Mapping[str, bool], key: str) -> str:
    return "created" if created.get(key, False) else "exists"


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(list(argv) if argv is not None else None)

    try:
        layout = workspace_mod.ensure_workspace(path=args.path)
    except workspace_mod.WorkspaceError as exc:
        sys.stderr.write(f"{exc}\n")
        return 2

    config_status = "skipped"
    if not args.no_config:
        target = layout.path_for("config") / config_mod.CONFIG_FILENAME
        if target.exists():
            config_status = "exists"
        else:
            try:
                config_mod.write_template(target)
            except config_mod.ConfigError as exc:
                sys.stderr.write(f"{exc}\n")
                return 2
            config_status = "created"

    if args.quiet:
        return 0

    created = layout.created
    lines = [
        f"Workspace ready at {layout.home} "
        f"({_format_created(created, 'home')})"
    ]
    if layout.directories:
        lines.append("Subdirectories:")
        width = max(len(name) for name in layout.directories)
        for name, directory in layout.items():
            status = _format_created(created, name)
            lines.append(f"  {name.ljust(width)}  {directory} ({status})")
    lines.append(f"Config: {config_status}")
    sys.stdout.write("\n".join(lines) + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
