"""
Flagtree faults and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues.
  Codes are grouped by domain to keep copy consistent and make logs/searches predictable.
- ParserException: base type that carries message + options and knows how to render
  itself in a friendly, lowercased, and actionable way (rich).
- The taxonomy:
  • RegistrationConflictError: duplicate name or position while building the tree.
  • UsageError (and subclasses): bad command lines; always terminal (exit code 2).
  • CoercionError: a raw string does not parse as its flag's kind; raised to the caller.
  • AlreadyParsedError: a tree parsed more than once.

UX goals
- Position-first messages where a position exists (“at second position”, etc.).
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).

Integration
- Registration raises its faults directly.
- The engine wraps usage faults into a Failure outcome; Parser.parse renders them through
  the help collaborator and exits with the fault's exit code.
- Coercion faults propagate out of Parser.parse; the host decides what to do with them
  (they render nicely with rich: console.print(error)).
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset


class FaultCode(IntEnum):
    """
    canonical fault codes used across the library (stable identifiers).

    grouping (by high-level domain)
    - registration (21xxx)
      • DUPLICATED_FLAG, DUPLICATED_SUBCOMMAND, OCCUPIED_POSITION, ATTACHED_SUBCOMMAND
    - usage (22xxx)
      • MISSING_FLAG_VALUE, MISSING_POSITIONAL, UNEXPECTED_ARGUMENT, UNKNOWN_SUBCOMMAND
    - coercion (23xxx)
      • UNCASTABLE_VALUE
    - lifecycle (24xxx)
      • ALREADY_PARSED

    rationale
    - spacing leaves room for future additions without reshuffling existing codes.
    - normalize() allows host remapping to custom labels while keeping code-stability.
    """
    # --- registration errors (21xxx) ---
    DUPLICATED_FLAG         = 21101
    DUPLICATED_SUBCOMMAND   = 21102
    OCCUPIED_POSITION       = 21103
    ATTACHED_SUBCOMMAND     = 21104

    # --- usage errors (22xxx) ---
    MISSING_FLAG_VALUE      = 22101
    MISSING_POSITIONAL      = 22102
    UNEXPECTED_ARGUMENT     = 22111
    UNKNOWN_SUBCOMMAND      = 22112

    # --- coercion errors (23xxx) ---
    UNCASTABLE_VALUE        = 23101

    # --- lifecycle errors (24xxx) ---
    ALREADY_PARSED          = 24101

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class ParserException(Exception):
    """
    base fault: a message plus a read-only mapping of options.

    well-known options
    - code: FaultCode, title: str, hint: str (rendering)
    - node: the Subcommand in whose context the fault happened
    - colorful / fancy: rendering switches merged in by the parser (copy.replace)
    - anything else is context for the host (flag, value, position, ...)
    """
    exit_code = 1

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message if message is not Unset else "")
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message if self.message is not Unset else ""

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", True)
        fancy = self.options.get("fancy", False)

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        node = self.options.get("node")
        name = getattr(node, "root", None) and node.root.name
        prog = text(getattr(main, "__prog__", name or "flagtree"), styler("prog-name"))

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(self.options["code"].normalize() if "code" in self.options else "?", styler("code")),
            " | ",
            text(self.options.get("title", "error").title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))

        renders = [message]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

        if fancy:
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class RegistrationConflictError(ParserException, ValueError): ...


class UsageError(ParserException):
    exit_code = 2


class MissingFlagValueError(UsageError): ...
class MissingPositionalError(UsageError): ...
class UnexpectedArgumentError(UsageError): ...
class UnknownSubcommandError(UsageError): ...


class CoercionError(ParserException, ValueError): ...


class AlreadyParsedError(ParserException, RuntimeError): ...


__all__ = (
    "ParserException",
    "RegistrationConflictError",
    "UsageError",
    "MissingFlagValueError",
    "MissingPositionalError",
    "UnexpectedArgumentError",
    "UnknownSubcommandError",
    "CoercionError",
    "AlreadyParsedError",
    "FaultCode",
)
