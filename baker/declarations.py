"""Build typed declaration tables from bake files or plain mappings."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from core.config_loader import load_config_file, merge_mappings, normalize_string_list

from .errors import DuplicateGroup, InvalidDeclaration
from .functions import FunctionRegistry
from .groups import GroupTable
from .targets import TargetDefinition, TargetTable, normalize_attributes
from .variables import VariableStore


DEFAULT_FILENAMES: tuple[str, ...] = (
    "docker-bake.toml",
    "docker-bake.json",
    "docker-bake.yaml",
    "docker-bake.yml",
)
"""Files looked up in the working directory when none are given."""

_SECTIONS = ("variable", "function", "group", "target")


@dataclass
class Declarations:
    """Everything declared in one or more bake files."""

    variables: VariableStore = field(default_factory=VariableStore)
    functions: FunctionRegistry = field(default_factory=FunctionRegistry)
    targets: TargetTable = field(default_factory=TargetTable)
    groups: GroupTable = field(default_factory=GroupTable)

    def declare_group(self, name: str, members: Iterable[str]) -> tuple[str, ...]:
        if name in self.targets:
            raise DuplicateGroup(name, "a target with the same name is already declared")
        return self.groups.declare(name, members)

    def declare_target(self, definition: TargetDefinition) -> TargetDefinition:
        if definition.name in self.groups:
            raise DuplicateGroup(definition.name, "a group with the same name is already declared")
        return self.targets.declare(definition)


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    section = data.get(key)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        raise InvalidDeclaration(key, "section must be a table")
    return section


def _string_list(name: str, value: Any, field_name: str) -> List[str]:
    try:
        return normalize_string_list(value, field_name=field_name)
    except TypeError as exc:
        raise InvalidDeclaration(name, str(exc)) from exc


def parse_declarations(data: Mapping[str, Any]) -> Declarations:
    """Populate declaration tables from a decoded bake mapping."""

    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise InvalidDeclaration(unknown[0], f"unknown top-level section; expected one of {', '.join(_SECTIONS)}")

    declarations = Declarations()

    for name, raw in _section(data, "variable").items():
        if isinstance(raw, Mapping):
            extra = set(raw) - {"default"}
            if extra:
                raise InvalidDeclaration(name, f"unknown variable field '{sorted(extra)[0]}'")
            default = raw.get("default")
        else:
            default = raw
        declarations.variables.declare(str(name), default)

    for name, raw in _section(data, "function").items():
        if not isinstance(raw, Mapping) or "result" not in raw:
            raise InvalidDeclaration(name, "function needs a 'result'")
        extra = set(raw) - {"params", "result"}
        if extra:
            raise InvalidDeclaration(name, f"unknown function field '{sorted(extra)[0]}'")
        params = _string_list(name, raw.get("params"), "params")
        declarations.functions.define(str(name), params, raw["result"])

    for name, raw in _section(data, "target").items():
        if not isinstance(raw, Mapping):
            raise InvalidDeclaration(name, "target must be a table")
        attributes = dict(raw)
        inherits = _string_list(name, attributes.pop("inherits", None), "inherits")
        target_name = str(name)
        declarations.declare_target(
            TargetDefinition(
                name=target_name,
                inherits=tuple(inherits),
                attributes=normalize_attributes(target_name, attributes),
            )
        )

    for name, raw in _section(data, "group").items():
        members: Any = raw
        if isinstance(raw, Mapping):
            extra = set(raw) - {"targets"}
            if extra:
                raise InvalidDeclaration(name, f"unknown group field '{sorted(extra)[0]}'")
            members = raw.get("targets")
        declarations.declare_group(str(name), _string_list(name, members, "targets"))

    return declarations


def load_declarations(paths: Sequence[Path]) -> Declarations:
    """Load, deep-merge (left to right) and parse bake files."""

    if not paths:
        raise FileNotFoundError("No bake files given")
    merged: Dict[str, Any] = {}
    for path in paths:
        if not path.is_file():
            raise FileNotFoundError(f"Bake file '{path}' does not exist")
        merged = merge_mappings(merged, load_config_file(path))
    return parse_declarations(merged)


def discover_files(workspace: Path) -> List[Path]:
    """Return the first default bake file present in ``workspace``."""

    for filename in DEFAULT_FILENAMES:
        candidate = workspace / filename
        if candidate.is_file():
            return [candidate]
    return []


__all__ = [
    "DEFAULT_FILENAMES",
    "Declarations",
    "discover_files",
    "load_declarations",
    "parse_declarations",
]
