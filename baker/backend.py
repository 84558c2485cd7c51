"""Hand a resolved plan to ``docker buildx build``, one command per target."""
from __future__ import annotations

from pathlib import Path
from typing import List, Sequence
import os

from core.command_runner import CommandError, CommandResult, CommandRunner

from .console import Console
from .plan import BuildPlan
from .targets import EffectiveTarget

DEFAULT_BUILD_COMMAND: tuple[str, ...] = ("docker", "buildx", "build")


class BuildBackend:
    """Translate effective targets into build invocations.

    Values are passed through verbatim; the plan order is the build order.
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        console: Console | None = None,
        workspace: Path | None = None,
        build_command: Sequence[str] = DEFAULT_BUILD_COMMAND,
    ) -> None:
        self.runner = runner
        self.console = console or Console()
        self.workspace = workspace
        self.build_command = tuple(build_command)

    def command_for(self, target: EffectiveTarget) -> List[str]:
        command: List[str] = list(self.build_command)

        dockerfile = target.dockerfile
        if not os.path.isabs(dockerfile) and target.context not in ("", "."):
            dockerfile = os.path.join(target.context, dockerfile)
        command.extend(["--file", dockerfile])

        if target.target:
            command.extend(["--target", target.target])
        if target.network:
            command.extend(["--network", target.network])
        for key, value in target.args.items():
            command.extend(["--build-arg", f"{key}={value}"])
        for key, value in target.labels.items():
            command.extend(["--label", f"{key}={value}"])
        for tag in target.tags:
            command.extend(["--tag", tag])
        if target.platforms:
            command.extend(["--platform", ",".join(target.platforms)])
        for entry in target.cache_from:
            command.extend(["--cache-from", entry])
        for entry in target.cache_to:
            command.extend(["--cache-to", entry])
        for entry in target.output:
            command.extend(["--output", entry])

        command.append(target.context)
        return command

    def build(self, plan: BuildPlan) -> List[CommandResult]:
        results: List[CommandResult] = []
        total = len(plan)
        for index, target in enumerate(plan.targets, start=1):
            self.console.info(f"Building target '{target.name}' ({index}/{total})")
            try:
                result = self.runner.run(
                    self.command_for(target),
                    cwd=self.workspace,
                    note=f"Build target {target.name}",
                )
            except CommandError:
                self.console.error(f"Build of target '{target.name}' failed")
                raise
            results.append(result)
        return results


__all__ = ["BuildBackend", "DEFAULT_BUILD_COMMAND"]
