"""
Command specification behavioral tests.

Scope
- Registration of options, positionals and subcommands (uniqueness, back
  references, POSIX short-name map).
- Mixins and configuration propagation.
- validate(): positional index gaps and help-option checks.
- Lookup helpers (find_option, resembles_option).

Conventions
- Test method names follow CamelCase per project convention.
"""

import copy
import unittest
from unittest import TestCase

from argbind import CommandSpec, OptionSpec, ParserSpec, PositionalParamSpec, strip_prefix
from argbind.faults import (
    DuplicateOptionError,
    DuplicateSubcommandError,
    InitializationError,
    InvalidHelpOptionError,
    MultipleHelpOptionsWarning,
    ParameterIndexGapError,
)


class TestParserSpec(TestCase):
    """Parser configuration values."""

    def testDefaults(self):
        parser = ParserSpec()
        self.assertEqual(parser.separator, "=")
        self.assertFalse(parser.separator_initialized)
        self.assertEqual(parser.end_of_options, "--")
        self.assertTrue(parser.posix_clustered)
        self.assertTrue(parser.toggle_boolean_flags)
        self.assertFalse(parser.collect_errors)

    def testReplaceKeepsOtherSettings(self):
        parser = copy.replace(ParserSpec(separator=":"), stop_at_unmatched=True)
        self.assertEqual(parser.separator, ":")
        self.assertTrue(parser.separator_initialized)
        self.assertTrue(parser.stop_at_unmatched)

    def testReplaceRejectsUnknownSettings(self):
        with self.assertRaises(TypeError):
            copy.replace(ParserSpec(), bogus=True)

    def testEmptySeparatorRejected(self):
        with self.assertRaises(ValueError):
            ParserSpec(separator="")

    def testEquality(self):
        self.assertEqual(ParserSpec(), ParserSpec())
        self.assertNotEqual(ParserSpec(), ParserSpec(trim_quotes=True))


class TestCommandRegistration(TestCase):
    """Adding arguments and subcommands."""

    def testOptionsAreIndexedByEveryName(self):
        verbose = OptionSpec("-v", "--verbose")
        command = CommandSpec("app", arguments=[verbose])
        self.assertIs(command.options_map["-v"], verbose)
        self.assertIs(command.options_map["--verbose"], verbose)
        self.assertIs(command.posix_options_map["v"], verbose)
        self.assertIs(verbose.command, command)

    def testLongOnlyNamesStayOutOfPosixMap(self):
        command = CommandSpec("app", arguments=[OptionSpec("--verbose"), OptionSpec("-vv")])
        self.assertEqual(dict(command.posix_options_map), {})

    def testDuplicateOptionNameRejected(self):
        command = CommandSpec("app", arguments=[OptionSpec("-v", "--verbose")])
        with self.assertRaises(DuplicateOptionError) as ctx:
            command.add(OptionSpec("-v", "--version"))
        self.assertEqual(ctx.exception.name, "-v")
        self.assertEqual(
            str(ctx.exception),
            "Option name '-v' is used by both option '--verbose' and option '--version'",
        )
        self.assertNotIn("--version", command.options_map)

    def testArgumentBelongsToOneCommand(self):
        option = OptionSpec("-v")
        CommandSpec("first", arguments=[option])
        with self.assertRaises(InitializationError):
            CommandSpec("second", arguments=[option])

    def testRequiredArgumentsAreTracked(self):
        required = OptionSpec("--name", type=str, required=True)
        command = CommandSpec("app", arguments=[required, OptionSpec("-v")])
        self.assertEqual(command.required, (required,))

    def testAddRejectsOtherObjects(self):
        with self.assertRaises(TypeError):
            CommandSpec("app").add("-v")

    def testSubcommandNameAndParent(self):
        git = CommandSpec("git")
        status = CommandSpec(aliases=["st"])
        git.add_subcommand("status", status)
        self.assertEqual(status.name, "status")
        self.assertIs(status.parent, git)
        self.assertIs(status.root, git)
        self.assertIs(git.subcommands["st"], status)
        self.assertEqual(status.qualified_name(), "git status")

    def testDuplicateSubcommandRejected(self):
        git = CommandSpec("git")
        git.add_subcommand("status", CommandSpec())
        with self.assertRaises(DuplicateSubcommandError):
            git.add_subcommand("status", CommandSpec())

    def testDuplicateAliasRejected(self):
        git = CommandSpec("git")
        git.add_subcommand("status", CommandSpec(aliases=["s"]))
        with self.assertRaises(DuplicateSubcommandError):
            git.add_subcommand("stash", CommandSpec(aliases=["s"]))

    def testUnnamedRootFallsBackToProgramName(self):
        self.assertTrue(CommandSpec().name)

    def testAliasesAndVersionAreNormalized(self):
        command = CommandSpec("git", aliases=iter(["g", "gt"]), version="git 2.45")
        self.assertEqual(command.aliases, ("g", "gt"))
        self.assertEqual(command.version, ("git 2.45",))

    def testInvalidAliasesAndVersionRejected(self):
        with self.assertRaises(TypeError):
            CommandSpec("git", aliases="g")
        with self.assertRaises(TypeError):
            CommandSpec("git", aliases=["g", ""])
        with self.assertRaises(TypeError):
            CommandSpec("git", version=["git", 2])


class TestMixins(TestCase):
    """Merging partial commands."""

    def testArgumentsAreCopied(self):
        shared = OptionSpec("--verbose")
        mixin = CommandSpec(arguments=[shared, PositionalParamSpec(label="FILE")])
        command = CommandSpec("app").add_mixin("common", mixin)
        self.assertIn("--verbose", command.options_map)
        self.assertIsNot(command.options_map["--verbose"], shared)
        self.assertIs(command.options_map["--verbose"].command, command)
        self.assertIs(shared.command, mixin)
        self.assertEqual([p.label for p in command.positionals], ["FILE"])
        self.assertIs(command.mixins["common"], mixin)

    def testMetadataFilledOnlyWhenMissing(self):
        mixin = CommandSpec("mixed", version="1.0", parser=ParserSpec(separator=":"))
        command = CommandSpec(parser=ParserSpec()).add_mixin("m", mixin)
        self.assertEqual(command.name, "mixed")
        self.assertEqual(command.version, ("1.0",))
        self.assertEqual(command.parser.separator, ":")

        named = CommandSpec("app", version="2.0", parser=ParserSpec(separator="=")).add_mixin("m", mixin)
        self.assertEqual(named.name, "app")
        self.assertEqual(named.version, ("2.0",))
        self.assertEqual(named.parser.separator, "=")

    def testSubcommandsAreAttached(self):
        sub = CommandSpec(aliases=["s"])
        mixin = CommandSpec()
        mixin.add_subcommand("sub", sub)
        command = CommandSpec("app").add_mixin("m", mixin)
        self.assertIs(command.subcommands["sub"], sub)
        self.assertIs(command.subcommands["s"], sub)


class TestConfiguration(TestCase):
    """Settings and converters propagate to the subcommands attached now."""

    def testConfigureReachesAttachedSubcommands(self):
        root = CommandSpec("root")
        child = CommandSpec()
        root.add_subcommand("child", child)
        root.configure(stop_at_unmatched=True)
        late = CommandSpec()
        root.add_subcommand("late", late)
        self.assertTrue(root.parser.stop_at_unmatched)
        self.assertTrue(child.parser.stop_at_unmatched)
        self.assertFalse(late.parser.stop_at_unmatched)

    def testConverterRegistrationOrdering(self):
        class Point:
            pass

        root = CommandSpec("root")
        early = CommandSpec()
        root.add_subcommand("early", early)
        root.register_converter(Point, lambda value: Point())
        late = CommandSpec()
        root.add_subcommand("late", late)
        self.assertIn(Point, root.converters)
        self.assertIn(Point, early.converters)
        self.assertNotIn(Point, late.converters)

    def testRegistryIsForkedPerCommand(self):
        first, second = CommandSpec("a"), CommandSpec("b")
        first.register_converter(complex, str)
        self.assertIsNot(first.converters, second.converters)
        self.assertIs(second.converters.lookup(complex), complex)


class TestValidation(TestCase):
    """Checks run by validate()."""

    def testContiguousIndexesAccepted(self):
        command = CommandSpec("app", arguments=[
            PositionalParamSpec(index=1, label="B"),
            PositionalParamSpec(index=0, label="A"),
        ])
        command.validate()
        self.assertEqual([p.label for p in command.positionals], ["A", "B"])

    def testIndexGapRejected(self):
        command = CommandSpec("app", arguments=[
            PositionalParamSpec(index=0, label="A"),
            PositionalParamSpec(index=2, label="C"),
        ])
        with self.assertRaises(ParameterIndexGapError) as ctx:
            command.validate()
        self.assertEqual(
            str(ctx.exception),
            "Command definition should have a positional parameter with index=1. "
            "Nearest positional parameter 'C' has index=2",
        )

    def testRepeatedIndexDoesNotCloseGap(self):
        command = CommandSpec("app", arguments=[
            PositionalParamSpec(index=0, label="A"),
            PositionalParamSpec(index=0, label="B"),
            PositionalParamSpec(index=2, label="C"),
        ])
        with self.assertRaises(ParameterIndexGapError) as ctx:
            command.validate()
        self.assertEqual(
            str(ctx.exception),
            "Command definition should have a positional parameter with index=1. "
            "Nearest positional parameter 'C' has index=2",
        )

    def testOverlappingRangeDoesNotCloseGap(self):
        with self.assertRaises(ParameterIndexGapError):
            CommandSpec("app", arguments=[
                PositionalParamSpec(index="0..1", type=list[str]),
                PositionalParamSpec(index=1),
                PositionalParamSpec(index=3),
            ]).validate()

    def testGapMustStartAtZero(self):
        with self.assertRaises(ParameterIndexGapError):
            CommandSpec("app", arguments=[PositionalParamSpec(index="1..*")]).validate()

    def testOverlappingIndexesAccepted(self):
        CommandSpec("app", arguments=[
            PositionalParamSpec(index="0..*", type=list[str]),
            PositionalParamSpec(index=1),
        ]).validate()

    def testSubcommandsAreValidated(self):
        root = CommandSpec("root")
        root.add_subcommand("bad", CommandSpec(arguments=[PositionalParamSpec(index=3)]))
        with self.assertRaises(ParameterIndexGapError):
            root.validate()

    def testNonBooleanHelpOptionRejected(self):
        command = CommandSpec("app", arguments=[OptionSpec("-h", type=str, usage_help=True)])
        with self.assertRaises(InvalidHelpOptionError):
            command.validate()

    def testSeveralHelpOptionsWarn(self):
        command = CommandSpec("app", arguments=[
            OptionSpec("-h", usage_help=True),
            OptionSpec("-?", usage_help=True),
        ])
        with self.assertWarns(MultipleHelpOptionsWarning):
            command.validate()


class TestLookup(TestCase):
    """Option lookup and the option-resemblance heuristic."""

    def setUp(self):
        self.command = CommandSpec("app", arguments=[
            OptionSpec("-v", "--verbose"),
            OptionSpec("--version"),
        ])

    def testFindOption(self):
        verbose = self.command.options_map["-v"]
        self.assertIs(self.command.find_option("v"), verbose)
        self.assertIs(self.command.find_option("--verbose"), verbose)
        self.assertIs(self.command.find_option("verbose"), verbose)
        self.assertIsNone(self.command.find_option("missing"))

    def testFindOptionNamesWithPrefix(self):
        self.assertEqual(self.command.find_option_names_with_prefix("ve"), ["--verbose", "--version"])

    def testStripPrefix(self):
        self.assertEqual(strip_prefix("--foo"), "foo")
        self.assertEqual(strip_prefix("/x"), "x")
        self.assertEqual(strip_prefix("--"), "--")

    def testResemblesOption(self):
        self.assertTrue(self.command.resembles_option("--verbos"))
        self.assertFalse(self.command.resembles_option("file.txt"))

    def testWithoutOptionsDashMeansOption(self):
        bare = CommandSpec("bare")
        self.assertTrue(bare.resembles_option("-x"))
        self.assertFalse(bare.resembles_option("x"))

    def testUnmatchedOptionsArePositional(self):
        self.command.configure(unmatched_options_are_positional=True)
        self.assertFalse(self.command.resembles_option("--verbos"))

    def testCustomPredicate(self):
        self.command.configure(resembles=lambda command, token: token.startswith("+"))
        self.assertTrue(self.command.resembles_option("+x"))
        self.assertFalse(self.command.resembles_option("--verbos"))


if __name__ == "__main__":
    unittest.main()
