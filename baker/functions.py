"""User-defined and built-in functions callable from templates."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .errors import ArityMismatch, DuplicateFunction, InvalidDeclaration, InvalidExpression, RecursiveFunction, UnresolvedReference
from .expressions import ExpressionEvaluator, Value, parse_template
from .variables import VariableStore


@dataclass(frozen=True, slots=True)
class Function:
    """A named template function.

    ``result`` is either one template (the function returns a string) or a
    tuple of templates (the function returns a sequence of strings).
    """

    name: str
    params: tuple[str, ...]
    result: str | tuple[str, ...]

    @property
    def returns_sequence(self) -> bool:
        return isinstance(self.result, tuple)

    def templates(self) -> tuple[str, ...]:
        return self.result if isinstance(self.result, tuple) else (self.result,)

    def called_functions(self) -> set[str]:
        names: set[str] = set()
        for template in self.templates():
            names |= parse_template(template).called_functions()
        return names


@dataclass(frozen=True)
class _BuiltinSpec:
    func: Callable[..., Value]
    min_args: int = 1
    max_args: Optional[int] = 1


def _text(name: str, value: Value) -> str:
    if not isinstance(value, str):
        raise InvalidExpression(name, "expected a string argument but got a sequence")
    return value


def _items(values: Iterable[Value]) -> List[str]:
    items: List[str] = []
    for value in values:
        if isinstance(value, str):
            items.append(value)
        else:
            items.extend(value)
    return items


def _integer(name: str, value: Value) -> int:
    try:
        return int(_text(name, value))
    except ValueError as exc:
        raise InvalidExpression(name, f"expected an integer argument, got '{value}'") from exc


def _substr(value: Value, offset: Value, length: Value) -> str:
    text = _text("substr", value)
    start = _integer("substr", offset)
    count = _integer("substr", length)
    if start < 0:
        start = max(len(text) + start, 0)
    if count < 0:
        return text[start:]
    return text[start:start + count]


def _bool(result: bool) -> str:
    return "true" if result else "false"


BUILTINS: Dict[str, _BuiltinSpec] = {
    "lower": _BuiltinSpec(lambda v: _text("lower", v).lower()),
    "upper": _BuiltinSpec(lambda v: _text("upper", v).upper()),
    "trim": _BuiltinSpec(lambda v: _text("trim", v).strip()),
    "trimprefix": _BuiltinSpec(lambda v, p: _text("trimprefix", v).removeprefix(_text("trimprefix", p)), 2, 2),
    "trimsuffix": _BuiltinSpec(lambda v, s: _text("trimsuffix", v).removesuffix(_text("trimsuffix", s)), 2, 2),
    "replace": _BuiltinSpec(
        lambda v, old, new: _text("replace", v).replace(_text("replace", old), _text("replace", new)), 3, 3
    ),
    "substr": _BuiltinSpec(_substr, 3, 3),
    "join": _BuiltinSpec(lambda sep, *values: _text("join", sep).join(_items(values)), 2, None),
    "split": _BuiltinSpec(lambda sep, v: tuple(_text("split", v).split(_text("split", sep))), 2, 2),
    "coalesce": _BuiltinSpec(lambda *values: next((item for item in _items(values) if item), ""), 1, None),
    "equal": _BuiltinSpec(lambda a, b: _bool(a == b), 2, 2),
    "notequal": _BuiltinSpec(lambda a, b: _bool(a != b), 2, 2),
}
"""Functions available in every template; they cannot be redefined."""


class FunctionRegistry:
    def __init__(self) -> None:
        self._functions: Dict[str, Function] = {}

    def define(self, name: str, params: Sequence[str], result: str | Sequence[str]) -> Function:
        if name in self._functions or name in BUILTINS:
            raise DuplicateFunction(name)

        if isinstance(result, str):
            normalized: str | tuple[str, ...] = result
        elif isinstance(result, Sequence) and all(isinstance(item, str) for item in result):
            normalized = tuple(result)
        else:
            raise InvalidDeclaration(name, "result must be a string or a list of strings")

        param_names = tuple(params)
        if len(set(param_names)) != len(param_names):
            raise InvalidDeclaration(name, "parameter names must be unique")

        function = Function(name=name, params=param_names, result=normalized)
        self._check_recursion(function)
        self._functions[name] = function
        return function

    def _check_recursion(self, function: Function) -> None:
        # A cycle is always closed by whichever of its members is defined last.
        pending = list(function.called_functions())
        visited: set[str] = set()
        while pending:
            callee = pending.pop()
            if callee == function.name:
                raise RecursiveFunction(function.name)
            if callee in visited:
                continue
            visited.add(callee)
            defined = self._functions.get(callee)
            if defined is not None:
                pending.extend(defined.called_functions())

    def get(self, name: str) -> Function | None:
        return self._functions.get(name)

    def names(self) -> Iterable[str]:
        return self._functions.keys()

    def __contains__(self, name: object) -> bool:
        return name in self._functions or name in BUILTINS

    def invoke(self, name: str, args: Sequence[Value], *, variables: VariableStore) -> Value:
        builtin = BUILTINS.get(name)
        if builtin is not None:
            if len(args) < builtin.min_args or (builtin.max_args is not None and len(args) > builtin.max_args):
                raise ArityMismatch(name, f"got {len(args)} argument{'s' if len(args) != 1 else ''}")
            return builtin.func(*args)

        function = self._functions.get(name)
        if function is None:
            raise UnresolvedReference(name)
        if len(args) != len(function.params):
            raise ArityMismatch(name, f"expected {len(function.params)}, got {len(args)}")

        evaluator = ExpressionEvaluator(variables, self, scope=dict(zip(function.params, args)))
        if function.returns_sequence:
            return evaluator.evaluate_sequence(function.templates())
        return evaluator.evaluate_string(function.result)  # type: ignore[arg-type]


__all__ = ["BUILTINS", "Function", "FunctionRegistry"]
