"""Named groups of targets and their expansion into target names."""
from __future__ import annotations

from typing import Dict, Iterable, Iterator, List

from .errors import CyclicGroup, DuplicateGroup, UnknownTarget
from .targets import TargetTable


class GroupTable:
    def __init__(self) -> None:
        self._groups: Dict[str, tuple[str, ...]] = {}

    def declare(self, name: str, members: Iterable[str]) -> tuple[str, ...]:
        if name in self._groups:
            raise DuplicateGroup(name)
        entries = tuple(members)
        self._groups[name] = entries
        return entries

    def members(self, name: str) -> tuple[str, ...] | None:
        return self._groups.get(name)

    def names(self) -> Iterator[str]:
        return iter(self._groups)

    def __contains__(self, name: object) -> bool:
        return name in self._groups

    def validate(self, targets: TargetTable) -> None:
        """Check every group for cycles and unknown members."""

        self.expand(list(self._groups), targets)

    def expand(self, names: Iterable[str], targets: TargetTable) -> List[str]:
        """Expand target and group names into target names.

        Groups expand depth-first in member order. Every target appears once,
        at the position where it was first reached.
        """

        ordered: List[str] = []
        seen: set[str] = set()
        # Groups whose members are all in ``ordered`` already.
        expanded: set[str] = set()
        path: List[str] = []
        frames: List[Iterator[str]] = [iter(names)]

        while frames:
            name = next(frames[-1], None)
            if name is None:
                frames.pop()
                if path:
                    expanded.add(path.pop())
                continue
            if name in targets:
                if name not in seen:
                    seen.add(name)
                    ordered.append(name)
                continue
            members = self._groups.get(name)
            if members is None:
                raise UnknownTarget(name, f"member of group '{path[-1]}'" if path else None)
            if name in path:
                raise CyclicGroup(name, " -> ".join(path + [name]))
            if name in expanded:
                continue
            path.append(name)
            frames.append(iter(members))
        return ordered


__all__ = ["GroupTable"]
