"""
Utility and tracing behavioral tests.

Scope
- Unset sentinel: singleton identity, falsiness, copy behavior, sealing.
- coalesce(), rename(), read-only mirrors produced by SpecType.
- tracing.enable()/disable() with a rich console.

Conventions
- Test method names follow CamelCase per project convention.
"""

import copy
import io
import logging
import sys
import unittest
from types import MappingProxyType
from unittest import TestCase

from rich.console import Console

from argbind import CommandSpec, OptionSpec, parse
from argbind import tracing
from argbind.utils import SpecType, Unset, UnsetType, coalesce, rename


class TestUnset(TestCase):
    """The "not provided" sentinel."""

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)

    def testFalseyAndPrintable(self):
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testSealed(self):
        with self.assertRaises(TypeError):
            type("Sub", (UnsetType,), {})

    def testUnionSupport(self):
        self.assertIsInstance(Unset, str | UnsetType)


class TestHelpers(TestCase):
    """coalesce() and rename()."""

    def testCoalesce(self):
        self.assertEqual(coalesce(Unset, "d"), "d")
        self.assertIsNone(coalesce(Unset))
        self.assertIsNone(coalesce(None, "d"))
        self.assertEqual(coalesce(0, 1), 0)

    def testRenameCallable(self):
        def f():
            pass

        self.assertIs(rename(f, "g"), f)
        self.assertEqual((f.__name__, f.__qualname__), ("g", "g"))

    def testRenameDecorator(self):
        @rename("named")
        def f():
            pass

        self.assertEqual(f.__name__, "named")

    def testRenameRejectsWrongArguments(self):
        with self.assertRaises(TypeError):
            rename(1, "x")
        with self.assertRaises(TypeError):
            rename()


class TestSpecType(TestCase):
    """Generated accessors and representation."""

    def testTypename(self):
        self.assertEqual(OptionSpec.__typename__, "option-spec")
        self.assertEqual(CommandSpec.__typename__, "command-spec")

    def testMirrorsAreReadOnlyViews(self):
        command = CommandSpec("app", arguments=[OptionSpec("-v")])
        self.assertIsInstance(command.options, tuple)
        self.assertIsInstance(command.options_map, MappingProxyType)
        with self.assertRaises(AttributeError):
            command.options = ()

    def testRepr(self):
        class Point(metaclass=SpecType):
            __introspectable__ = ("x", "y")

            def __init__(self):
                self._x, self._y = 1, [2]

        self.assertEqual(repr(Point()), "point(x=1, y=(2,))")


class TestTracing(TestCase):
    """Rich trace output."""

    def tearDown(self):
        tracing.disable()

    def testEnableSendsTracesToConsole(self):
        buffer = io.StringIO()
        tracing.enable("DEBUG", console=Console(file=buffer, color_system=None, width=200))
        parse(CommandSpec("app", arguments=[OptionSpec("-v")]), ["-v"])
        output = buffer.getvalue()
        self.assertIn("[argbind]", output)
        self.assertIn("found option named '-v'", output)

    def testDisableRemovesHandler(self):
        handler = tracing.enable()
        tracing.disable()
        self.assertNotIn(handler, logging.getLogger("argbind").handlers)
        self.assertEqual(logging.getLogger("argbind").level, logging.NOTSET)


class TestPackage(TestCase):
    """Top-level namespace."""

    def testSubmodulesStayReachable(self):
        import argbind
        import argbind.similarity
        self.assertIs(argbind.similarity, sys.modules["argbind.similarity"])
        self.assertTrue(callable(argbind.cosine_similarity))

    def testExportedNamesResolve(self):
        import argbind
        self.assertEqual(len(argbind.__all__), len(set(argbind.__all__)))
        for name in argbind.__all__:
            self.assertTrue(hasattr(argbind, name), name)


if __name__ == "__main__":
    unittest.main()
