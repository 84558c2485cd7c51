"""Variable declarations with default and override handling."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Mapping

from .errors import DuplicateVariable, InvalidDeclaration, UndeclaredVariable


@dataclass(frozen=True, slots=True)
class Variable:
    name: str
    default: str | None = None


class VariableStore:
    """Declared variables plus the overrides applied on top of them.

    Values are always strings. Precedence when resolving: an explicit
    override, then the declared default, then ``""``.
    """

    def __init__(self) -> None:
        self._variables: Dict[str, Variable] = {}
        self._overrides: Dict[str, str] = {}

    def declare(self, name: str, default: str | None = None) -> Variable:
        if name in self._variables:
            raise DuplicateVariable(name)
        if default is not None and not isinstance(default, str):
            raise InvalidDeclaration(name, f"default must be a string, got {type(default).__name__}")
        variable = Variable(name=name, default=default)
        self._variables[name] = variable
        return variable

    def override(self, name: str, value: str) -> None:
        if name not in self._variables:
            raise UndeclaredVariable(name)
        if not isinstance(value, str):
            raise InvalidDeclaration(name, f"override must be a string, got {type(value).__name__}")
        self._overrides[name] = value

    def resolve(self, name: str) -> str:
        variable = self._variables.get(name)
        if variable is None:
            raise UndeclaredVariable(name)
        if name in self._overrides:
            return self._overrides[name]
        if variable.default is not None:
            return variable.default
        return ""

    def is_declared(self, name: str) -> bool:
        return name in self._variables

    def names(self) -> Iterator[str]:
        return iter(self._variables)

    def with_overrides(
        self,
        overrides: Mapping[str, str] | None = None,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> "VariableStore":
        """Return a copy with environment and explicit overrides applied.

        Only declared names are picked up from ``environ``; explicit
        ``overrides`` must name declared variables and win over the
        environment.
        """

        snapshot = VariableStore()
        snapshot._variables = dict(self._variables)
        snapshot._overrides = dict(self._overrides)
        if environ:
            for name in self._variables:
                if name in environ:
                    snapshot._overrides[name] = str(environ[name])
        for name, value in (overrides or {}).items():
            snapshot.override(name, value)
        return snapshot

    def as_dict(self) -> Dict[str, str]:
        return {name: self.resolve(name) for name in self._variables}

    def __contains__(self, name: object) -> bool:
        return name in self._variables

    def __len__(self) -> int:
        return len(self._variables)


__all__ = ["Variable", "VariableStore"]
