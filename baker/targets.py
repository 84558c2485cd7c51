"""Target declarations and inheritance flattening."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Sequence

from .errors import CyclicInheritance, DuplicateTarget, InvalidDeclaration, UnknownBaseTarget
from .expressions import ExpressionEvaluator, escape_literal


class AttributeKind(Enum):
    SCALAR = "scalar"
    MAPPING = "mapping"
    SEQUENCE = "sequence"


ATTRIBUTE_KINDS: Dict[str, AttributeKind] = {
    "dockerfile": AttributeKind.SCALAR,
    "context": AttributeKind.SCALAR,
    "target": AttributeKind.SCALAR,
    "network": AttributeKind.SCALAR,
    "labels": AttributeKind.MAPPING,
    "args": AttributeKind.MAPPING,
    "tags": AttributeKind.SEQUENCE,
    "platforms": AttributeKind.SEQUENCE,
    "cache_from": AttributeKind.SEQUENCE,
    "cache_to": AttributeKind.SEQUENCE,
    "output": AttributeKind.SEQUENCE,
}
"""Every attribute a target may declare, keyed to its merge behaviour."""

DEFAULT_DOCKERFILE = "Dockerfile"
DEFAULT_CONTEXT = "."


def _replace(_inherited: Any, own: Any) -> Any:
    return own


def _merge_keys(inherited: Any, own: Any) -> Any:
    merged = dict(inherited or {})
    merged.update(own)
    return merged


MERGE_POLICIES: Dict[AttributeKind, Callable[[Any, Any], Any]] = {
    AttributeKind.SCALAR: _replace,
    AttributeKind.MAPPING: _merge_keys,
    AttributeKind.SEQUENCE: _replace,
}
"""How a more specific layer combines with what it inherits."""


@dataclass(frozen=True, slots=True)
class TargetDefinition:
    """A target as declared: raw templates, not yet inherited or evaluated.

    ``attributes`` only holds the keys the declaration actually sets; a
    missing key means "inherit", which is different from an empty value.
    """

    name: str
    inherits: tuple[str, ...] = ()
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, name: str, *, inherits: Iterable[str] = (), **attributes: Any) -> "TargetDefinition":
        return cls(name=name, inherits=tuple(inherits), attributes=normalize_attributes(name, attributes))

    @classmethod
    def from_effective(cls, effective: "EffectiveTarget") -> "TargetDefinition":
        """Treat an already flattened target as a declaration with no bases."""

        attributes: Dict[str, Any] = {
            "dockerfile": escape_literal(effective.dockerfile),
            "context": escape_literal(effective.context),
        }
        for key in ("target", "network"):
            value = getattr(effective, key)
            if value is not None:
                attributes[key] = escape_literal(value)
        for key in ("labels", "args"):
            attributes[key] = {k: escape_literal(v) for k, v in getattr(effective, key).items()}
        for key in ("tags", "platforms", "cache_from", "cache_to", "output"):
            attributes[key] = tuple(escape_literal(v) for v in getattr(effective, key))
        return cls(name=effective.name, inherits=(), attributes=attributes)


def normalize_attributes(name: str, raw: Mapping[str, Any]) -> Dict[str, Any]:
    attributes: Dict[str, Any] = {}
    for key, value in raw.items():
        kind = ATTRIBUTE_KINDS.get(key)
        if kind is None:
            raise InvalidDeclaration(name, f"unknown attribute '{key}'")
        if value is None:
            continue
        if kind is AttributeKind.SCALAR:
            if not isinstance(value, str):
                raise InvalidDeclaration(name, f"'{key}' must be a string")
            attributes[key] = value
        elif kind is AttributeKind.MAPPING:
            if not isinstance(value, Mapping):
                raise InvalidDeclaration(name, f"'{key}' must be a mapping of strings")
            entries: Dict[str, str] = {}
            for entry_key, entry_value in value.items():
                if not isinstance(entry_value, str):
                    raise InvalidDeclaration(name, f"'{key}.{entry_key}' must be a string")
                entries[str(entry_key)] = entry_value
            attributes[key] = entries
        else:
            if isinstance(value, str):
                attributes[key] = (value,)
            elif isinstance(value, Sequence) and all(isinstance(item, str) for item in value):
                attributes[key] = tuple(value)
            else:
                raise InvalidDeclaration(name, f"'{key}' must be a string or a list of strings")
    return attributes


@dataclass(frozen=True, slots=True)
class EffectiveTarget:
    """A fully resolved target: only literal values, ready for the backend."""

    name: str
    dockerfile: str = DEFAULT_DOCKERFILE
    context: str = DEFAULT_CONTEXT
    target: str | None = None
    network: str | None = None
    labels: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    args: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    tags: tuple[str, ...] = ()
    platforms: tuple[str, ...] = ()
    cache_from: tuple[str, ...] = ()
    cache_to: tuple[str, ...] = ()
    output: tuple[str, ...] = ()

    def to_mapping(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "context": self.context,
            "dockerfile": self.dockerfile,
        }
        if self.target is not None:
            data["target"] = self.target
        if self.network is not None:
            data["network"] = self.network
        for key in ("args", "labels"):
            values = getattr(self, key)
            if values:
                data[key] = dict(values)
        for key in ("tags", "platforms", "cache_from", "cache_to", "output"):
            values = getattr(self, key)
            if values:
                data[key] = list(values)
        return data


class TargetTable:
    def __init__(self) -> None:
        self._targets: Dict[str, TargetDefinition] = {}

    def declare(self, definition: TargetDefinition) -> TargetDefinition:
        if definition.name in self._targets:
            raise DuplicateTarget(definition.name)
        self._targets[definition.name] = definition
        return definition

    def get(self, name: str) -> TargetDefinition | None:
        return self._targets.get(name)

    def names(self) -> Iterator[str]:
        return iter(self._targets)

    def __contains__(self, name: object) -> bool:
        return name in self._targets

    def __len__(self) -> int:
        return len(self._targets)


class InheritanceResolver:
    """Flatten ``inherits`` chains and evaluate the merged templates.

    Bases are applied in declared order, each one already flattened, and the
    target's own attributes are applied last. Merged raw layers are memoized
    per resolver instance; create one per resolve call.
    """

    def __init__(self, table: TargetTable, evaluator: ExpressionEvaluator) -> None:
        self._table = table
        self._evaluator = evaluator
        self._merged: Dict[str, Dict[str, Any]] = {}

    def validate(self) -> None:
        """Check every declared target's chain without evaluating anything."""

        for name in self._table.names():
            self._merge_chain(name)

    def flatten(self, target: str | TargetDefinition) -> EffectiveTarget:
        if isinstance(target, TargetDefinition):
            if target.inherits:
                raise InvalidDeclaration(target.name, "only zero-inheritance definitions can be flattened directly")
            raw = self._merge_layers({}, target.attributes)
            return self._evaluate(target.name, raw)
        return self._evaluate(target, self._merge_chain(target))

    def _merge_chain(self, name: str) -> Dict[str, Any]:
        cached = self._merged.get(name)
        if cached is not None:
            return cached
        if name not in self._table:
            raise UnknownBaseTarget(name)

        # Each frame is a target and the chain of targets that inherit it.
        frames: List[tuple[str, tuple[str, ...]]] = [(name, ())]
        while frames:
            current, seen = frames[-1]
            definition = self._table.get(current)
            path = seen + (current,)
            pending = None
            for base in definition.inherits:
                if base in path:
                    raise CyclicInheritance(base, " -> ".join(path + (base,)))
                if base not in self._table:
                    raise UnknownBaseTarget(base, f"required by '{current}'")
                if base not in self._merged:
                    pending = base
                    break
            if pending is not None:
                frames.append((pending, path))
                continue

            frames.pop()
            merged: Dict[str, Any] = {}
            for base in definition.inherits:
                merged = self._merge_layers(merged, self._merged[base])
            self._merged[current] = self._merge_layers(merged, definition.attributes)
        return self._merged[name]

    @staticmethod
    def _merge_layers(inherited: Mapping[str, Any], own: Mapping[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(inherited)
        for key, value in own.items():
            policy = MERGE_POLICIES[ATTRIBUTE_KINDS[key]]
            result[key] = policy(result.get(key), value)
        return result

    def _evaluate(self, name: str, raw: Mapping[str, Any]) -> EffectiveTarget:
        evaluator = self._evaluator
        values: Dict[str, Any] = {"name": name}
        for key, kind in ATTRIBUTE_KINDS.items():
            if key not in raw:
                continue
            value = raw[key]
            if kind is AttributeKind.SCALAR:
                values[key] = evaluator.evaluate_string(value)
            elif kind is AttributeKind.MAPPING:
                values[key] = MappingProxyType(
                    {entry: evaluator.evaluate_string(template) for entry, template in value.items()}
                )
            else:
                values[key] = evaluator.evaluate_sequence(value)
        return EffectiveTarget(**values)


__all__ = [
    "ATTRIBUTE_KINDS",
    "AttributeKind",
    "DEFAULT_CONTEXT",
    "DEFAULT_DOCKERFILE",
    "EffectiveTarget",
    "InheritanceResolver",
    "MERGE_POLICIES",
    "TargetDefinition",
    "TargetTable",
    "normalize_attributes",
]
