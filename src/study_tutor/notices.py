"""User-visible notifications raised by the runtimes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

__all__ = ["Notice", "NoticeLevel"]

NoticeLevel = Literal["error", "warning", "info"]


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    title: str
    message: str

    @property
    def style(self) -> str:
        return {"error": "red", "warning": "yellow"}.get(self.level, "cyan")
