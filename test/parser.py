"""
Parser behavioral tests (process termination, rendering and logging).

Scope
- Validate that Parser.parse turns outcomes into exits: 0 for help/version, 2 for usage faults.
- Validate the default help/version renderers and the fault header through a recording console.
- Validate collaborators (helper, versioner, logger) and show_help.

Conventions
- Test method names follow CamelCase per project convention.
- Output is captured with rich's recording Console; nothing reaches the terminal.
"""

from __future__ import annotations

import functools
import io
import logging
import unittest
from unittest import TestCase

from rich.console import Console

from flagtree import FlagKind, Parser, Subcommand, Value
from flagtree.help import render_help, render_version
from flagtree.utils import Unset


def _console():
    return Console(file=io.StringIO(), record=True, width=120, color_system=None)


def _parser(console, /, *args, **kwargs):
    return Parser(
        *args,
        helper=functools.partial(render_help, console=console),
        versioner=functools.partial(render_version, console=console),
        **kwargs
    )


class TestTermination(TestCase):
    """Outcomes become exits only in Parser.parse."""

    def testSuccessReturns(self):
        parser = _parser(_console(), "tool")
        self.assertIsNone(parser.parse([]))

    def testQuickStart(self):
        parser = _parser(_console(), "tool", version="1.0.0")
        verbose = Value(False)
        parser.add_flag(FlagKind.BOOL, verbose, "V", "verbose", "talk more")
        build = Subcommand("build", "b", "compile the project")
        target = Value()
        build.add_positional(target, "target", 1, required=True)
        parser.add_subcommand(build, 1)
        parser.parse("build --verbose release")
        self.assertTrue(build.used)
        self.assertEqual(target.value, "release")
        self.assertIs(verbose.value, True)

    def testMissingPositionalExitsTwo(self):
        console = _console()
        parser = _parser(console, "tool", colorful=False)
        build = parser.add_subcommand(Subcommand("build"), 1)
        build.add_positional(Value(), "target", 1, required=True)
        with self.assertRaises(SystemExit) as context:
            parser.parse(["build"])
        self.assertEqual(context.exception.code, 2)
        output = console.export_text()
        self.assertIn("'target'", output)
        self.assertIn("first position", output)
        self.assertIn("22102", output)
        self.assertIn("usage: tool build <target> [flags]", output)

    def testHelpAtNestedSubcommandExitsZero(self):
        calls = []
        parser = Parser("tool", helper=lambda node, message: calls.append((node, message)))
        a = parser.add_subcommand(Subcommand("a"), 1)
        b = a.add_subcommand(Subcommand("b", descr="the b subcommand"), 1)
        with self.assertRaises(SystemExit) as context:
            parser.parse(["a", "b", "-h"])
        self.assertEqual(context.exception.code, 0)
        self.assertEqual(calls, [(b, Unset)])

    def testVersionExitsZero(self):
        console = _console()
        parser = _parser(console, "tool", version="1.2.3")
        with self.assertRaises(SystemExit) as context:
            parser.parse(["--version"])
        self.assertEqual(context.exception.code, 0)
        self.assertIn("1.2.3", console.export_text())

    def testFailureCarriesRenderingOptions(self):
        received = []
        parser = Parser("tool", colorful=False, fancy=True, helper=lambda node, message: received.append(message))
        with self.assertRaises(SystemExit):
            parser.parse(["unexpected"])
        fault, = received
        self.assertIs(fault.options["colorful"], False)
        self.assertIs(fault.options["fancy"], True)
        self.assertIs(fault.options["node"], parser)


class TestRendering(TestCase):
    """Default help layout."""

    def _tree(self):
        console = _console()
        parser = _parser(console, "tool", "a tool that builds things", "2.0.0", append="see the manual")
        parser.add_flag(FlagKind.STRING, Value("info"), "l", "level", "log level")
        parser.add_flag(FlagKind.BOOL, Value(False), long="secret", hidden=True)
        build = parser.add_subcommand(Subcommand("build", "b", "compile the project"), 1)
        parser.add_subcommand(Subcommand("internal", hidden=True), 1)
        build.add_flag(FlagKind.INT, Value(), "j", "jobs", "parallel jobs")
        build.add_positional(Value(), "target", 1, required=True, descr="what to build")
        return console, parser, build

    def testRootHelp(self):
        console, parser, build = self._tree()
        parser.show_help()
        output = console.export_text()
        self.assertIn("usage: tool <subcommand> [flags]", output)
        self.assertIn("a tool that builds things", output)
        self.assertIn("build", output)
        self.assertIn("compile the project", output)
        self.assertNotIn("internal", output)
        self.assertIn("--level <string>", output)
        self.assertIn("log level (current: info)", output)
        self.assertNotIn("--secret", output)
        self.assertIn("--version", output)
        self.assertIn("see the manual", output)

    def testSubcommandHelp(self):
        console, parser, build = self._tree()
        build.show_help("something went wrong")
        output = console.export_text()
        self.assertIn("something went wrong", output)
        self.assertIn("usage: tool build <target> [flags]", output)
        self.assertIn("what to build", output)
        self.assertIn("--jobs <int>", output)
        self.assertIn("global flags", output)
        self.assertIn("--level", output)
        self.assertNotIn("--version", output)

    def testCurrentValueWithoutDescription(self):
        console = _console()
        parser = _parser(console, "tool")
        parser.add_flag(FlagKind.INT, Value(3), "r", "retries")
        parser.show_help()
        line, = (line for line in console.export_text().splitlines() if "--retries" in line)
        self.assertEqual(line[24:].rstrip(), "(current: 3)")

    def testFancyPanel(self):
        console = _console()
        parser = _parser(console, "tool", fancy=True)
        parser.show_help()
        self.assertIn("TOOL HELP", console.export_text())

    def testDetachedTreeUsesDefaultRenderer(self):
        console = _console()
        node = Subcommand("node", descr="standalone")
        render_help(node, console=console)
        self.assertIn("usage: node [flags]", console.export_text())

    def testVersionLine(self):
        console = _console()
        render_version(Parser("tool", version="3.1.4"), console=console)
        self.assertEqual(console.export_text().strip(), "tool — 3.1.4")


class TestCollaborators(TestCase):
    """Constructor validation and logging."""

    def testCallableCollaborators(self):
        with self.assertRaises(TypeError):
            Parser("tool", helper="render")
        with self.assertRaises(TypeError):
            Parser("tool", versioner=1)
        with self.assertRaises(TypeError):
            Parser("tool", logger=object())

    def testVersionCannotBeEmpty(self):
        with self.assertRaises(ValueError):
            Parser("tool", version=" ")

    def testDebugTrace(self):
        parser = Parser("tool")
        parser.add_subcommand(Subcommand("run"), 1)
        with self.assertLogs("flagtree", level=logging.DEBUG) as logs:
            parser.evaluate(["run", "--unknown=1"])
        output = "\n".join(logs.output)
        self.assertIn("descending into subcommand 'run'", output)
        self.assertIn("dropped unknown flag '--unknown=1'", output)

    def testCustomLogger(self):
        logger = logging.getLogger("flagtree.test.custom")
        parser = Parser("tool", logger=logger)
        with self.assertLogs(logger, level=logging.DEBUG) as logs:
            parser.evaluate([])
        self.assertTrue(any("parsing subcommand 'tool'" in line for line in logs.output))


if __name__ == "__main__":
    unittest.main()
