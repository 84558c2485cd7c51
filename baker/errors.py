"""Error taxonomy for declaration parsing and plan resolution."""
from __future__ import annotations


class ResolveError(ValueError):
    """Base class for every failure that aborts a resolve call.

    Each error carries the offending ``name`` (variable, function, target or
    group) so callers can report it verbatim.
    """

    template = "Resolution failed for '{name}'"

    def __init__(self, name: str, detail: str | None = None) -> None:
        message = self.template.format(name=name)
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.name = name
        self.detail = detail


class DuplicateVariable(ResolveError):
    template = "Variable '{name}' is already declared"


class UndeclaredVariable(ResolveError):
    template = "Variable '{name}' is not declared"


class UnresolvedReference(ResolveError):
    template = "Reference '{name}' is neither a variable, a parameter nor a function"


class InvalidExpression(ResolveError):
    template = "Invalid expression '{name}'"


class DuplicateFunction(ResolveError):
    template = "Function '{name}' is already defined"


class RecursiveFunction(ResolveError):
    template = "Function '{name}' calls itself"


class ArityMismatch(ResolveError):
    template = "Function '{name}' called with the wrong number of arguments"


class InvalidDeclaration(ResolveError):
    template = "Invalid declaration '{name}'"


class DuplicateTarget(ResolveError):
    template = "Target '{name}' is already declared"


class DuplicateGroup(ResolveError):
    template = "Group '{name}' is already declared"


class CyclicInheritance(ResolveError):
    template = "Target '{name}' inherits from itself"


class UnknownBaseTarget(ResolveError):
    template = "Inherited target '{name}' is not declared"


class CyclicGroup(ResolveError):
    template = "Group '{name}' contains itself"


class UnknownTarget(ResolveError):
    template = "Target '{name}' is not declared"


class UnknownGroup(ResolveError):
    template = "Group '{name}' is not declared"


__all__ = [
    "ArityMismatch",
    "CyclicGroup",
    "CyclicInheritance",
    "DuplicateFunction",
    "DuplicateGroup",
    "DuplicateTarget",
    "DuplicateVariable",
    "InvalidDeclaration",
    "InvalidExpression",
    "RecursiveFunction",
    "ResolveError",
    "UndeclaredVariable",
    "UnknownBaseTarget",
    "UnknownGroup",
    "UnknownTarget",
    "UnresolvedReference",
]
