"""Parsing and evaluation of ``${...}`` interpolation templates.

A template is literal text with embedded placeholders::

    registry/${target}:dev_${GIT_REV}
    ${generate_tags("validator")}
    ${lower(join("-", "${PREFIX}", name))}

Inside a placeholder the grammar is::

    expr   := call | ident | string | number
    call   := ident "(" [expr ("," expr)*] ")"
    string := '"' chars-with-nested-placeholders '"'

``$${`` escapes a literal ``${``. Parsed templates are cached by source text
and evaluation never mutates anything, so a single evaluator setup can be
shared across threads.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping, Tuple, Union
import re

from .errors import InvalidExpression, UnresolvedReference
from .variables import VariableStore

if TYPE_CHECKING:  # pragma: no cover
    from .functions import FunctionRegistry


Value = Union[str, Tuple[str, ...]]

_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")
_NUMBER_PATTERN = re.compile(r"-?[0-9]+")
_ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "t": "\t"}


@dataclass(frozen=True, slots=True)
class Literal:
    value: str


@dataclass(frozen=True, slots=True)
class Reference:
    name: str


@dataclass(frozen=True, slots=True)
class Call:
    name: str
    args: tuple["Node", ...]


@dataclass(frozen=True, slots=True)
class Interpolation:
    """A quoted string inside a placeholder, itself made of parts."""

    parts: tuple["Part", ...]


Node = Union[Literal, Reference, Call, Interpolation]
Part = Union[str, Node]


@dataclass(frozen=True, slots=True)
class Template:
    source: str
    parts: tuple[Part, ...]

    def called_functions(self) -> set[str]:
        return {node.name for node in _walk(self.parts) if isinstance(node, Call)}


def _walk(parts: Iterable[Part]) -> Iterator[Node]:
    for part in parts:
        if isinstance(part, str):
            continue
        yield part
        if isinstance(part, Call):
            yield from _walk(part.args)
        elif isinstance(part, Interpolation):
            yield from _walk(part.parts)


class _Parser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0

    def error(self, detail: str) -> InvalidExpression:
        return InvalidExpression(self.source, f"{detail} at offset {self.pos}")

    def parse_template(self) -> tuple[Part, ...]:
        return self._parse_parts(terminator=None)

    def _parse_parts(self, *, terminator: str | None) -> tuple[Part, ...]:
        text = self.source
        parts: list[Part] = []
        buffer: list[str] = []

        def flush() -> None:
            if buffer:
                parts.append("".join(buffer))
                buffer.clear()

        while True:
            if self.pos >= len(text):
                if terminator is not None:
                    raise self.error("Unterminated string literal")
                break
            char = text[self.pos]
            if terminator is not None and char == terminator:
                self.pos += 1
                break
            if text.startswith("$${", self.pos):
                buffer.append("${")
                self.pos += 3
                continue
            if text.startswith("${", self.pos):
                flush()
                self.pos += 2
                parts.append(self._parse_placeholder())
                continue
            if terminator is not None and char == "\\":
                escaped = text[self.pos + 1:self.pos + 2]
                if escaped not in _ESCAPES:
                    raise self.error(f"Unknown escape sequence '\\{escaped}'")
                buffer.append(_ESCAPES[escaped])
                self.pos += 2
                continue
            buffer.append(char)
            self.pos += 1

        flush()
        return tuple(parts)

    def _parse_placeholder(self) -> Node:
        self._skip_whitespace()
        node = self._parse_expression()
        self._skip_whitespace()
        if not self.source.startswith("}", self.pos):
            raise self.error("Expected '}' to close placeholder")
        self.pos += 1
        return node

    def _parse_expression(self) -> Node:
        self._skip_whitespace()
        text = self.source
        if self.pos >= len(text):
            raise self.error("Unexpected end of expression")

        if text[self.pos] == '"':
            self.pos += 1
            parts = self._parse_parts(terminator='"')
            if all(isinstance(part, str) for part in parts):
                return Literal("".join(parts))  # type: ignore[arg-type]
            return Interpolation(parts)

        number = _NUMBER_PATTERN.match(text, self.pos)
        if number:
            self.pos = number.end()
            return Literal(number.group(0))

        identifier = _IDENTIFIER_PATTERN.match(text, self.pos)
        if not identifier:
            raise self.error(f"Unexpected character '{text[self.pos]}'")
        self.pos = identifier.end()
        name = identifier.group(0)

        self._skip_whitespace()
        if not text.startswith("(", self.pos):
            return Reference(name)

        self.pos += 1
        args: list[Node] = []
        self._skip_whitespace()
        if text.startswith(")", self.pos):
            self.pos += 1
            return Call(name, ())
        while True:
            args.append(self._parse_expression())
            self._skip_whitespace()
            if text.startswith(",", self.pos):
                self.pos += 1
                continue
            if text.startswith(")", self.pos):
                self.pos += 1
                return Call(name, tuple(args))
            raise self.error(f"Expected ',' or ')' in call to '{name}'")

    def _skip_whitespace(self) -> None:
        text = self.source
        while self.pos < len(text) and text[self.pos].isspace():
            self.pos += 1


@lru_cache(maxsize=1024)
def parse_template(source: str) -> Template:
    """Parse ``source`` into a :class:`Template`, raising InvalidExpression."""

    return Template(source=source, parts=_Parser(source).parse_template())


def escape_literal(value: str) -> str:
    """Escape ``value`` so that it evaluates back to itself."""

    return value.replace("${", "$${")


class ExpressionEvaluator:
    """Evaluate templates against variables, functions and a local scope.

    ``scope`` holds function parameter bindings; they shadow variables of the
    same name.
    """

    def __init__(
        self,
        variables: VariableStore,
        functions: "FunctionRegistry | None" = None,
        scope: Mapping[str, Value] | None = None,
    ) -> None:
        self.variables = variables
        self.functions = functions
        self.scope: Mapping[str, Value] = dict(scope or {})

    def evaluate(self, source: str) -> Value:
        template = parse_template(source)
        return self._evaluate_parts(template.parts, source)

    def evaluate_string(self, source: str) -> str:
        value = self.evaluate(source)
        if not isinstance(value, str):
            raise InvalidExpression(source, "expected a single string but got a sequence")
        return value

    def evaluate_sequence(self, sources: Iterable[str]) -> tuple[str, ...]:
        """Evaluate each element, splicing elements that yield sequences."""

        values: list[str] = []
        for source in sources:
            value = self.evaluate(source)
            if isinstance(value, str):
                values.append(value)
            else:
                values.extend(value)
        return tuple(values)

    def _evaluate_parts(self, parts: tuple[Part, ...], source: str) -> Value:
        if len(parts) == 1 and not isinstance(parts[0], str):
            return self._evaluate_node(parts[0], source)

        pieces: list[str] = []
        for part in parts:
            if isinstance(part, str):
                pieces.append(part)
                continue
            value = self._evaluate_node(part, source)
            if not isinstance(value, str):
                raise InvalidExpression(source, "a sequence value cannot be embedded in text")
            pieces.append(value)
        return "".join(pieces)

    def _evaluate_node(self, node: Node, source: str) -> Value:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Reference):
            return self._lookup(node.name)
        if isinstance(node, Interpolation):
            return self._evaluate_parts(node.parts, source)
        if isinstance(node, Call):
            args = [self._evaluate_node(arg, source) for arg in node.args]
            if self.functions is None:
                raise UnresolvedReference(node.name)
            return self.functions.invoke(node.name, args, variables=self.variables)
        raise InvalidExpression(source, f"unsupported node {type(node).__name__}")  # pragma: no cover

    def _lookup(self, name: str) -> Value:
        if name in self.scope:
            return self.scope[name]
        if self.variables.is_declared(name):
            return self.variables.resolve(name)
        raise UnresolvedReference(name)


__all__ = [
    "Call",
    "ExpressionEvaluator",
    "Interpolation",
    "Literal",
    "Reference",
    "Template",
    "Value",
    "escape_literal",
    "parse_template",
]
