from __future__ import annotations

import unittest

from baker.errors import ArityMismatch, InvalidExpression, UnresolvedReference
from baker.expressions import Call, ExpressionEvaluator, Literal, Reference, parse_template
from baker.functions import FunctionRegistry
from baker.variables import VariableStore


class TemplateParsingTests(unittest.TestCase):
    def test_literal_template(self) -> None:
        template = parse_template("plain text")
        self.assertEqual(template.parts, ("plain text",))

    def test_placeholders_and_calls(self) -> None:
        template = parse_template('pre-${NAME}-${lower("X", 1)}')
        self.assertEqual(
            template.parts,
            ("pre-", Reference("NAME"), "-", Call("lower", (Literal("X"), Literal("1")))),
        )
        self.assertEqual(template.called_functions(), {"lower"})

    def test_escaped_placeholder(self) -> None:
        self.assertEqual(parse_template("$${HOME}").parts, ("${HOME}",))

    def test_malformed_templates(self) -> None:
        for source in ("${", "${NAME", '${lower("x)}', "${lower(x y)}", "${!}"):
            with self.subTest(source=source):
                with self.assertRaises(InvalidExpression):
                    parse_template(source)

    def test_parse_is_cached(self) -> None:
        self.assertIs(parse_template("${A}-${B}"), parse_template("${A}-${B}"))


class ExpressionEvaluatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.variables = VariableStore()
        self.variables.declare("GIT_REV", "abc123")
        self.variables.declare("PREFIX", "Registry")
        self.functions = FunctionRegistry()
        self.functions.define("tags", ["name"], ["${name}:latest", "${name}:${GIT_REV}"])
        self.evaluator = ExpressionEvaluator(self.variables, self.functions)

    def test_variable_substitution(self) -> None:
        self.assertEqual(self.evaluator.evaluate("img:dev_${GIT_REV}"), "img:dev_abc123")

    def test_scope_shadows_variables(self) -> None:
        evaluator = ExpressionEvaluator(self.variables, self.functions, scope={"GIT_REV": "shadow"})
        self.assertEqual(evaluator.evaluate("${GIT_REV}"), "shadow")

    def test_unknown_identifier(self) -> None:
        with self.assertRaises(UnresolvedReference) as exc_info:
            self.evaluator.evaluate("${NOPE}")
        self.assertEqual(exc_info.exception.name, "NOPE")

    def test_unknown_function(self) -> None:
        with self.assertRaises(UnresolvedReference):
            self.evaluator.evaluate("${nope()}")

    def test_nested_arguments_resolved_first(self) -> None:
        result = self.evaluator.evaluate('${lower("${PREFIX}/${upper(GIT_REV)}")}')
        self.assertEqual(result, "registry/abc123")

    def test_single_placeholder_returns_sequence(self) -> None:
        self.assertEqual(self.evaluator.evaluate('${tags("app")}'), ("app:latest", "app:abc123"))

    def test_sequence_cannot_be_embedded(self) -> None:
        with self.assertRaises(InvalidExpression):
            self.evaluator.evaluate('x-${tags("app")}')
        with self.assertRaises(InvalidExpression):
            self.evaluator.evaluate_string('${tags("app")}')

    def test_sequence_elements_are_spliced(self) -> None:
        result = self.evaluator.evaluate_sequence(['${tags("app")}', "extra"])
        self.assertEqual(result, ("app:latest", "app:abc123", "extra"))

    def test_builtins(self) -> None:
        cases = {
            '${trim("  x ")}': "x",
            '${trimprefix("v1.2", "v")}': "1.2",
            '${trimsuffix("app-dev", "-dev")}': "app",
            '${replace("a/b/c", "/", "_")}': "a_b_c",
            '${substr("abcdef", 1, 3)}': "bcd",
            '${substr("abcdef", 2, -1)}': "cdef",
            '${join(",", split("-", "a-b-c"))}': "a,b,c",
            '${coalesce("", GIT_REV)}': "abc123",
            '${equal(GIT_REV, "abc123")}': "true",
            '${notequal(GIT_REV, "abc123")}': "false",
        }
        for source, expected in cases.items():
            with self.subTest(source=source):
                self.assertEqual(self.evaluator.evaluate(source), expected)

    def test_builtin_arity(self) -> None:
        with self.assertRaises(ArityMismatch):
            self.evaluator.evaluate('${lower("a", "b")}')
        with self.assertRaises(ArityMismatch):
            self.evaluator.evaluate("${coalesce()}")

    def test_builtin_rejects_bad_integer(self) -> None:
        with self.assertRaises(InvalidExpression):
            self.evaluator.evaluate('${substr("abc", "x", 1)}')


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
