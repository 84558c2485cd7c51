"""Command line interface for the bake resolver."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Dict, Iterable, List
import json
import os
import sys

from core.command_runner import CommandError, RecordingCommandRunner, SubprocessCommandRunner

from .backend import BuildBackend
from .console import Console
from .declarations import discover_files, load_declarations
from .errors import ResolveError
from .plan import Resolver


def _make_runner(dry_run: bool) -> SubprocessCommandRunner | RecordingCommandRunner:
    return RecordingCommandRunner() if dry_run else SubprocessCommandRunner()


def _split_file_values(values: Iterable[str]) -> List[str]:
    parts: List[str] = []
    for value in values:
        if not value:
            continue
        for segment in value.split(os.pathsep):
            trimmed = segment.strip()
            if trimmed:
                parts.append(trimmed)
    return parts


def _resolve_bake_files(workspace: Path, cli_values: Iterable[str]) -> List[Path]:
    entries: List[str] = []
    env_value = os.environ.get("BAKE_FILE")
    if env_value:
        entries.extend(_split_file_values([env_value]))
    entries.extend(_split_file_values(cli_values))

    if not entries:
        return discover_files(workspace)

    files: List[Path] = []
    for entry in entries:
        path = Path(entry)
        if not path.is_absolute():
            path = workspace / path
        if path in files:
            files.remove(path)
        files.append(path)
    return files


def _parse_overrides(values: Iterable[str]) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for raw in values:
        name, separator, value = raw.partition("=")
        name = name.strip()
        if not separator or not name:
            raise ValueError(f"Invalid variable override '{raw}'. Expected NAME=VALUE")
        overrides[name] = value
    return overrides


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="bake", description="Resolve bake files into container build plans")
    parser.add_argument(
        "-f",
        "--file",
        dest="files",
        action="append",
        default=[],
        metavar="PATH",
        help="Bake file to load (repeat or separate with PATH separator; later files override earlier ones)",
    )
    parser.add_argument(
        "--var",
        dest="variables",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Override a declared variable",
    )
    parser.add_argument("--print", dest="print_plan", action="store_true", help="Print the resolved plan as JSON and exit")
    parser.add_argument("-n", "--dry-run", action="store_true", help="Print build commands without executing them")
    parser.add_argument(
        "--log-level",
        choices=list(Console.LEVELS),
        default="none",
        help="Diagnostic output level",
    )
    parser.add_argument(
        "names",
        nargs="*",
        metavar="NAME",
        help="Targets or groups to build; defaults to the 'default' group",
    )
    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    return _handle_bake(args, Path.cwd())


def _handle_bake(args: Namespace, workspace: Path) -> int:
    console = Console(getattr(args, "log_level", "none"), dry_run=args.dry_run)

    try:
        files = _resolve_bake_files(workspace, args.files)
        if not files:
            raise FileNotFoundError(f"No bake file found in {workspace}")
        console.debug(f"Loading {', '.join(str(path) for path in files)}")
        declarations = load_declarations(files)
        overrides = _parse_overrides(args.variables)
        plan = Resolver(declarations, console=console).resolve(args.names, overrides)
    except (ResolveError, ValueError, TypeError, FileNotFoundError) as exc:
        print(f"Error: {exc}")
        return 1

    if args.print_plan:
        print(json.dumps(plan.to_mapping(), indent=2))
        return 0

    runner = _make_runner(args.dry_run)
    backend = BuildBackend(runner, console=console, workspace=workspace)
    try:
        backend.build(plan)
    except CommandError as exc:
        print(f"Error: {exc}")
        return 1

    if isinstance(runner, RecordingCommandRunner):
        for line in runner.iter_formatted():
            console.dry(line)
    return 0


__all__ = ["main"]
