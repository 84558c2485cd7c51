"""Resolve requested targets and groups into an ordered build plan."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence
import os

from .console import Console
from .declarations import Declarations
from .errors import UnknownGroup, UnknownTarget
from .expressions import ExpressionEvaluator
from .targets import EffectiveTarget, InheritanceResolver

DEFAULT_GROUP = "default"


@dataclass(frozen=True, slots=True)
class BuildPlan:
    """Ordered, immutable hand-off to the build backend."""

    requested: tuple[str, ...]
    targets: tuple[EffectiveTarget, ...]

    def names(self) -> List[str]:
        return [target.name for target in self.targets]

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "group": {DEFAULT_GROUP: {"targets": self.names()}},
            "target": {target.name: target.to_mapping() for target in self.targets},
        }

    def __iter__(self):
        return iter(self.targets)

    def __len__(self) -> int:
        return len(self.targets)


class Resolver:
    """Single-pass pipeline: validate, expand, flatten, emit.

    The declarations are treated as read-only once handed over; every call
    works on its own variable snapshot, so calls may run on separate threads.
    """

    def __init__(self, declarations: Declarations, *, console: Console | None = None) -> None:
        self.declarations = declarations
        self.console = console or Console()

    def resolve(
        self,
        requested: Sequence[str] | None = None,
        overrides: Mapping[str, str] | None = None,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> BuildPlan:
        declarations = self.declarations
        names = list(requested or ())
        if not names:
            if DEFAULT_GROUP not in declarations.groups:
                raise UnknownGroup(DEFAULT_GROUP)
            names = [DEFAULT_GROUP]

        variables = declarations.variables.with_overrides(
            overrides,
            environ=os.environ if environ is None else environ,
        )
        evaluator = ExpressionEvaluator(variables, declarations.functions)
        flattener = InheritanceResolver(declarations.targets, evaluator)

        self.console.debug(f"Validating {len(declarations.targets)} target(s)")
        flattener.validate()
        declarations.groups.validate(declarations.targets)

        for name in names:
            if name not in declarations.targets and name not in declarations.groups:
                raise UnknownTarget(name)
        target_names = declarations.groups.expand(names, declarations.targets)
        self.console.debug(f"Expanded {', '.join(names)} to {', '.join(target_names) or '<none>'}")

        effective = tuple(flattener.flatten(name) for name in target_names)
        self.console.debug(f"Plan contains {len(effective)} target(s)")
        return BuildPlan(requested=tuple(names), targets=effective)

    def resolve_many(
        self,
        requests: Iterable[Sequence[str]],
        overrides: Mapping[str, str] | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        max_workers: int = 4,
    ) -> List[BuildPlan]:
        """Resolve independent requests in parallel, keeping request order."""

        batches = list(requests)
        if not batches:
            return []
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(self.resolve, batch, overrides, environ=environ)
                for batch in batches
            ]
            return [future.result() for future in futures]


def resolve(
    declarations: Declarations,
    requested: Sequence[str] | None = None,
    overrides: Mapping[str, str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> List[EffectiveTarget]:
    """Resolve ``requested`` names into effective targets."""

    return list(Resolver(declarations).resolve(requested, overrides, environ=environ).targets)


__all__ = ["BuildPlan", "DEFAULT_GROUP", "Resolver", "resolve"]
