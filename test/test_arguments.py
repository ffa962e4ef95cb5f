"""
Argument specification behavioral tests.

Scope
- OptionSpec / PositionalParamSpec construction: type and arity inference,
  container resolution, metadata validation.
- Bindings (in-memory and attribute) and the reset policy.
- Value splitting (plain, quote-aware, limited).

Conventions
- Test method names follow CamelCase per project convention.
- Specs are built directly; parsing is covered by test_interpreter.
"""

import copy
import enum
import unittest
import warnings
from unittest import TestCase

from argbind import (
    ArgSpec,
    AttributeBinding,
    OptionSpec,
    ParserSpec,
    PositionalParamSpec,
    Range,
    UNBOUNDED,
    ValueBinding,
)
from argbind.faults import InitializationError, UnbalancedQuotesWarning


class Mode(enum.Enum):
    FAST = "fast"
    SAFE = "safe"


class TestOptionSpec(TestCase):
    """Construction and inference of options."""

    def testFlagByDefault(self):
        option = OptionSpec("-v", "--verbose")
        self.assertIs(option.type, bool)
        self.assertEqual(option.arity, Range(0))
        self.assertTrue(option.arity.unspecified)
        self.assertFalse(option.multivalue)

    def testSingleValueWhenTyped(self):
        option = OptionSpec("--count", type=int)
        self.assertEqual(option.arity, Range(1))
        self.assertEqual(option.auxiliary, (int,))

    def testListInferredFromArity(self):
        option = OptionSpec("--items", arity="1..*")
        self.assertEqual(option.type, list[str])
        self.assertIs(option.container, list)
        self.assertTrue(option.multivalue)
        self.assertFalse(option.arity.unspecified)

    def testMapResolvesKeyAndValueTypes(self):
        option = OptionSpec("-D", type=dict[str, int])
        self.assertTrue(option.mapping)
        self.assertEqual(option.auxiliary, (str, int))

    def testNamesAreKeptInOrder(self):
        option = OptionSpec("-o", "--output")
        self.assertEqual(option.names, ("-o", "--output"))
        self.assertEqual(option.longest_name, "--output")
        self.assertEqual(option.shortest_name, "-o")
        self.assertEqual(str(option), "option '--output'")

    def testNamesRequired(self):
        with self.assertRaises(InitializationError):
            OptionSpec()

    def testNamesWithWhitespaceRejected(self):
        with self.assertRaises(ValueError) as ctx:
            OptionSpec("-a", "--bad name")
        self.assertEqual(str(ctx.exception), "Invalid names: ['-a', '--bad name']")

    def testDuplicateNamesRejected(self):
        with self.assertRaises(ValueError):
            OptionSpec("-a", "-a")

    def testDefaultMakesOptional(self):
        option = OptionSpec("--level", type=int, required=True, default="3")
        self.assertFalse(option.required)
        self.assertEqual(option.default_value(), "3")

    def testDefaultMustBeString(self):
        with self.assertRaises(TypeError):
            OptionSpec("--level", type=int, default=3)

    def testInteractiveRequiresArityOne(self):
        with self.assertRaises(InitializationError) as ctx:
            OptionSpec("--password", type=list[str], arity="1..2", interactive=True)
        self.assertIn("only supported for arity=1, not for arity=1..2", str(ctx.exception))
        self.assertTrue(OptionSpec("--password", type=str, interactive=True).interactive)

    def testInvalidSplitRejected(self):
        with self.assertRaises(ValueError):
            OptionSpec("--x", arity="1..*", split="(")

    def testConvertersMustBeCallable(self):
        with self.assertRaises(TypeError):
            OptionSpec("--x", type=int, converters=["int"])

    def testLabelDefaultsToParam(self):
        self.assertEqual(OptionSpec("--x", type=str).label, "PARAM")
        self.assertEqual(OptionSpec("--x", type=str, label="FILE").label, "FILE")
        with self.assertRaises(ValueError):
            OptionSpec("--x", type=str, label=" ")

    def testEnumCompletions(self):
        self.assertEqual(OptionSpec("--mode", type=Mode).completions, ("FAST", "SAFE"))

    def testReplaceBuildsDetachedCopy(self):
        option = OptionSpec("-o", "--output", type=str, descr="target")
        replica = copy.replace(option, descr="other")
        self.assertIsNot(replica, option)
        self.assertEqual(replica.names, ("-o", "--output"))
        self.assertEqual(replica.descr, "other")
        self.assertIsNone(replica.command)


class TestPositionalParamSpec(TestCase):
    """Construction of positionals."""

    def testDefaultIndexClaimsEveryPosition(self):
        positional = PositionalParamSpec()
        self.assertEqual(positional.index, Range(0, UNBOUNDED))
        self.assertIs(positional.type, str)
        self.assertEqual(positional.arity, Range(1))

    def testIndexFromString(self):
        positional = PositionalParamSpec(index="1..2", label="FILE")
        self.assertEqual(positional.index, Range(1, 2))
        self.assertEqual(str(positional), "positional parameter[1..2]")

    def testCapacity(self):
        self.assertEqual(PositionalParamSpec(index="0..1").capacity, Range(2))

    def testArgSpecIsAbstract(self):
        with self.assertRaises(TypeError):
            ArgSpec()


class TestBindings(TestCase):
    """Value access and reset between parses."""

    def testValueBindingReturnsPrevious(self):
        binding = ValueBinding(1)
        self.assertEqual(binding.set(2), 1)
        self.assertEqual(binding.get(), 2)

    def testAttributeBinding(self):
        class Host:
            name = "initial"

        host = Host()
        option = OptionSpec("--name", type=str, binding=AttributeBinding(host, "name"))
        option.set_value("changed")
        self.assertEqual(host.name, "changed")
        option.clear()
        self.assertEqual(host.name, "initial")

    def testBindingMustProvideAccessors(self):
        with self.assertRaises(TypeError):
            OptionSpec("--name", type=str, binding=object())

    def testClearRestoresCopyOfInitial(self):
        initial = ["a"]
        option = OptionSpec("--items", type=list[str], initial=initial)
        option.clear()
        option.value.append("b")
        option.clear()
        self.assertEqual(option.value, ["a"])
        self.assertEqual(initial, ["a"])

    def testResetCanBeDisabled(self):
        option = OptionSpec("--name", type=str, initial="x", reset=False)
        option.set_value("y")
        option.clear()
        self.assertEqual(option.value, "y")

    def testClearDropsCapturedValues(self):
        option = OptionSpec("--name", type=str)
        option.capture("a", strings=["a"], typed=["a"])
        option.reserve(0).append("a")
        option.clear()
        self.assertEqual(option.string_values, ())
        self.assertEqual(option.original_string_values, ())
        self.assertEqual(option.typed_values, ())
        self.assertEqual(dict(option.typed_value_at_position), {})


class TestSplitValue(TestCase):
    """Splitting one raw token into several values."""

    def setUp(self):
        self.parser = ParserSpec()
        self.option = OptionSpec("--x", arity="1..*", split=",")

    def testNoRegexReturnsTokenUnchanged(self):
        option = OptionSpec("--y", arity="1..*")
        self.assertEqual(option.split_value("a,b", self.parser, option.arity, 0), ["a,b"])

    def testPlainSplit(self):
        self.assertEqual(self.option.split_value("a,b,c", self.parser, self.option.arity, 0), ["a", "b", "c"])

    def testQuotedSegmentsStayIntact(self):
        self.assertEqual(
            self.option.split_value('a,"b,c",d', self.parser, self.option.arity, 0),
            ["a", '"b,c"', "d"],
        )

    def testQuotesTrimmedOnRequest(self):
        parser = ParserSpec(trim_quotes=True)
        self.assertEqual(self.option.split_value('a,"b,c",d', parser, self.option.arity, 0), ["a", "b,c", "d"])

    def testQuotedStringsSplitOnRequest(self):
        parser = ParserSpec(split_quoted_strings=True)
        self.assertEqual(
            self.option.split_value('a,"b,c"', parser, self.option.arity, 0),
            ["a", '"b', 'c"'],
        )

    def testUnbalancedQuotesWarn(self):
        with self.assertWarns(UnbalancedQuotesWarning):
            parts = self.option.split_value('a,"b', self.parser, self.option.arity, 0)
        self.assertEqual(parts, ["a", '"b'])

    def testLimitSplit(self):
        parser = ParserSpec(limit_split=True)
        self.assertEqual(self.option.split_value("a,b,c", parser, Range(2), 0), ["a", "b,c"])
        self.assertEqual(self.option.split_value("a,b,c", parser, Range(2), 1), ["a,b,c"])

    def testBalancedQuotesDoNotWarn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            self.option.split_value('"a,b"', self.parser, self.option.arity, 0)


if __name__ == "__main__":
    unittest.main()
