"""Level-filtered console output for the resolver and build backend."""
from __future__ import annotations

from typing import TextIO
import sys


class Console:
    """Diagnostics sink shared by the resolver, the backend and the CLI.

    Messages pass when their level is at or below the configured one
    (none < error < info < debug). Dry-run command listings bypass the
    level filter and are shown whenever ``dry_run`` is set.
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "info": 2,
        "debug": 3,
    }

    def __init__(self, level: str = "none", *, dry_run: bool = False):
        if level not in self.LEVELS:
            raise ValueError(f"Unknown log level '{level}'. Choose from: {', '.join(self.LEVELS)}")
        self.level_name = level
        self.level = self.LEVELS[level]
        self.dry_run = dry_run

    def _emit(self, level: str, message: str, stream: TextIO | None = None) -> None:
        if self.level >= self.LEVELS[level]:
            print(f"[{level.upper()}] {message}", file=stream or sys.stdout)

    def error(self, message: str) -> None:
        self._emit("error", message, sys.stderr)

    def info(self, message: str) -> None:
        self._emit("info", message)

    def debug(self, message: str) -> None:
        self._emit("debug", message)

    def dry(self, message: str) -> None:
        # Lines arrive already tagged by the recording runner.
        if self.dry_run:
            print(message)


__all__ = ["Console"]
