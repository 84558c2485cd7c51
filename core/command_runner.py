"""Run build commands for real or record them for a dry run."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence
import shlex
import subprocess


def format_command(command: Sequence[str]) -> str:
    return " ".join(shlex.quote(part) for part in command)


@dataclass
class CommandResult:
    """Outcome of one command invocation."""

    command: Sequence[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    streamed: bool = False


class CommandError(RuntimeError):
    """Raised when a checked command exits non-zero."""

    def __init__(self, result: CommandResult):
        message = f"Command failed with exit code {result.returncode}: {format_command(result.command)}"
        if result.streamed:
            message = f"{message}\noutput already streamed above."
        elif result.stderr:
            message = f"{message}\nstderr: {result.stderr}"
        super().__init__(message)
        self.result = result


class CommandRunner:
    """Interface shared by the real and the recording runner."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = True,
    ) -> CommandResult:
        raise NotImplementedError

    def format_command(self, command: Sequence[str]) -> str:
        return format_command(command)


class SubprocessCommandRunner(CommandRunner):
    """Execute commands with :mod:`subprocess`.

    Streaming (the default) lets the build tool write progress straight to
    the terminal; otherwise output is captured into the result.
    """

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = True,
    ) -> CommandResult:
        if stream:
            process = subprocess.run(command, cwd=str(cwd) if cwd else None, check=False)
            result = CommandResult(command=command, returncode=process.returncode, streamed=True)
        else:
            process = subprocess.run(
                command,
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                check=False,
            )
            result = CommandResult(
                command=command,
                returncode=process.returncode,
                stdout=process.stdout,
                stderr=process.stderr,
            )
        if check and result.returncode != 0:
            raise CommandError(result)
        return result


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None
    note: str | None


class RecordingCommandRunner(CommandRunner):
    """Record commands instead of executing them."""

    def __init__(self) -> None:
        self.commands: List[RecordedCommand] = []

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = True,
    ) -> CommandResult:
        self.commands.append(RecordedCommand(command=list(command), cwd=str(cwd) if cwd else None, note=note))
        return CommandResult(command=command, returncode=0)

    def iter_formatted(self) -> Iterable[str]:
        for record in self.commands:
            parts: List[str] = ["[dry-run]"]
            if record.note:
                parts.append(record.note)
            if record.cwd:
                parts.append(f"(cwd={record.cwd})")
            parts.append(self.format_command(record.command))
            yield " ".join(parts)


__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordedCommand",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "format_command",
]
