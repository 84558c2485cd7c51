"""Bake file resolver: variables, functions, inheritance and groups to build plans."""

from .declarations import Declarations, load_declarations, parse_declarations
from .errors import ResolveError
from .plan import BuildPlan, Resolver, resolve
from .targets import EffectiveTarget, TargetDefinition

__all__ = [
    "BuildPlan",
    "Declarations",
    "EffectiveTarget",
    "ResolveError",
    "Resolver",
    "TargetDefinition",
    "load_declarations",
    "parse_declarations",
    "resolve",
]
