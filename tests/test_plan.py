from __future__ import annotations

import io
import unittest
from contextlib import redirect_stdout

from baker.console import Console
from baker.declarations import parse_declarations
from baker.errors import CyclicGroup, CyclicInheritance, UndeclaredVariable, UnknownGroup, UnknownTarget
from baker.plan import Resolver, resolve


def _declarations():
    return parse_declarations(
        {
            "variable": {"GIT_REV": {"default": "local"}, "REGISTRY": "registry"},
            "function": {
                "generate_tags": {
                    "params": ["target"],
                    "result": ["${REGISTRY}/${target}:dev_${GIT_REV}"],
                }
            },
            "group": {
                "default": {"targets": ["validator", "api"]},
                "all": {"targets": ["default", "worker", "api"]},
                "twice": {"targets": ["worker", "worker"]},
            },
            "target": {
                "base": {"dockerfile": "docker/Dockerfile", "args": {"IMAGE_TARGETS": "release"}},
                "validator": {"inherits": ["base"], "tags": ['${generate_tags("validator")}']},
                "api": {"inherits": ["base"], "tags": ['${generate_tags("api")}', "api:latest"]},
                "worker": {"inherits": "base", "target": "worker"},
            },
        }
    )


class ResolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.resolver = Resolver(_declarations())

    def test_tag_generation_scenario(self) -> None:
        plan = self.resolver.resolve(["validator"], {"GIT_REV": "abc123"}, environ={})
        self.assertEqual(plan.names(), ["validator"])
        self.assertEqual(plan.targets[0].tags, ("registry/validator:dev_abc123",))
        self.assertEqual(dict(plan.targets[0].args), {"IMAGE_TARGETS": "release"})

    def test_default_group_used_when_nothing_requested(self) -> None:
        plan = self.resolver.resolve([], environ={})
        self.assertEqual(plan.requested, ("default",))
        self.assertEqual(plan.names(), ["validator", "api"])

    def test_missing_default_group(self) -> None:
        declarations = parse_declarations({"target": {"app": {}}})
        with self.assertRaises(UnknownGroup) as exc_info:
            Resolver(declarations).resolve(None, environ={})
        self.assertEqual(exc_info.exception.name, "default")

    def test_nested_groups_deduplicate_in_first_seen_order(self) -> None:
        plan = self.resolver.resolve(["all"], environ={})
        self.assertEqual(plan.names(), ["validator", "api", "worker"])

    def test_repeated_requests_deduplicate(self) -> None:
        self.assertEqual(self.resolver.resolve(["all", "all"], environ={}).names(), ["validator", "api", "worker"])
        self.assertEqual(self.resolver.resolve(["twice"], environ={}).names(), ["worker"])
        self.assertEqual(self.resolver.resolve(["worker", "default"], environ={}).names(), ["worker", "validator", "api"])

    def test_environment_overrides_declared_variables_only(self) -> None:
        plan = self.resolver.resolve(["validator"], environ={"GIT_REV": "envrev", "OTHER": "x"})
        self.assertEqual(plan.targets[0].tags, ("registry/validator:dev_envrev",))
        plan = self.resolver.resolve(["validator"], {"GIT_REV": "cli"}, environ={"GIT_REV": "envrev"})
        self.assertEqual(plan.targets[0].tags, ("registry/validator:dev_cli",))

    def test_undeclared_override_fails(self) -> None:
        with self.assertRaises(UndeclaredVariable):
            self.resolver.resolve(["validator"], {"NOT_DECLARED": "x"}, environ={})

    def test_unknown_requested_name(self) -> None:
        with self.assertRaises(UnknownTarget) as exc_info:
            self.resolver.resolve(["nope"], environ={})
        self.assertEqual(exc_info.exception.name, "nope")

    def test_empty_requested_name_is_unknown(self) -> None:
        with self.assertRaises(UnknownTarget) as exc_info:
            self.resolver.resolve([""], environ={})
        self.assertEqual(exc_info.exception.name, "")

    def test_broken_declarations_fail_every_request(self) -> None:
        declarations = parse_declarations(
            {
                "target": {
                    "good": {},
                    "loop-a": {"inherits": ["loop-b"]},
                    "loop-b": {"inherits": ["loop-a"]},
                }
            }
        )
        with self.assertRaises(CyclicInheritance):
            Resolver(declarations).resolve(["good"], environ={})

    def test_cyclic_group(self) -> None:
        declarations = parse_declarations(
            {
                "target": {"app": {}},
                "group": {"one": ["two", "app"], "two": ["one"]},
            }
        )
        with self.assertRaises(CyclicGroup):
            Resolver(declarations).resolve(["app"], environ={})

    def test_group_member_unknown(self) -> None:
        declarations = parse_declarations({"group": {"default": ["ghost"]}})
        with self.assertRaises(UnknownTarget) as exc_info:
            Resolver(declarations).resolve([], environ={})
        self.assertEqual(exc_info.exception.name, "ghost")

    def test_resolution_is_repeatable(self) -> None:
        first = self.resolver.resolve(["all"], {"GIT_REV": "r1"}, environ={})
        second = self.resolver.resolve(["all"], {"GIT_REV": "r1"}, environ={})
        self.assertEqual(first, second)

    def test_resolve_many_keeps_request_order(self) -> None:
        plans = self.resolver.resolve_many([["worker"], ["validator"], ["all"]], {"GIT_REV": "abc"}, environ={})
        self.assertEqual([plan.names() for plan in plans], [["worker"], ["validator"], ["validator", "api", "worker"]])

    def test_plan_mapping(self) -> None:
        plan = self.resolver.resolve(["worker", "validator"], {"GIT_REV": "abc"}, environ={})
        mapping = plan.to_mapping()
        self.assertEqual(mapping["group"], {"default": {"targets": ["worker", "validator"]}})
        self.assertEqual(
            mapping["target"]["worker"],
            {"context": ".", "dockerfile": "docker/Dockerfile", "target": "worker", "args": {"IMAGE_TARGETS": "release"}},
        )
        self.assertEqual(mapping["target"]["validator"]["tags"], ["registry/validator:dev_abc"])

    def test_resolve_function_surface(self) -> None:
        targets = resolve(_declarations(), ["api"], {"GIT_REV": "x"}, environ={})
        self.assertEqual([target.tags for target in targets], [("registry/api:dev_x", "api:latest")])

    def test_debug_console_reports_phases(self) -> None:
        resolver = Resolver(_declarations(), console=Console("debug"))
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            resolver.resolve(["worker"], environ={})
        output = buffer.getvalue()
        self.assertIn("[DEBUG] Validating 4 target(s)", output)
        self.assertIn("[DEBUG] Plan contains 1 target(s)", output)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
