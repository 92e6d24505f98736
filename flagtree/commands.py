"""
Flagtree command layer: build a subcommand tree and parse a command line into it.

What this module provides
- Subcommand: a named node of the command tree, addressed by its position relative
  to its parent. It owns its flags, positional values and child subcommands.
- Parser: the root Subcommand. Its flags and positional values are global (resolved
  at every nesting level), it collects trailing arguments and it is the only place
  where an outcome turns into output and a process exit.

Core ideas
- Recursive descent over the FULL token list: every reached node re-scans the whole
  stream for flags, then walks the remaining positional tokens using
  relative = p - depth + 1, so a child only ever looks at what follows it.
- Boolean lookahead: a bool flag written with a space takes the following token only
  when it is exactly "true" or "false"; otherwise it means "true" on its own.
- The matcher never prints nor exits: it returns Success, HelpRequested,
  VersionRequested or Failure (see flagtree.outcomes) up the call chain.
- Values are written through caller-owned storage (see flagtree.storage).

Quick start
    from flagtree import Parser, Subcommand, FlagKind, Value

    parser = Parser("tool", version="1.0.0")
    verbose = Value(False)
    parser.add_flag(FlagKind.BOOL, verbose, "V", "verbose", "talk more")

    build = Subcommand("build", "b", "compile the project")
    target = Value()
    build.add_positional(target, "target", 1, required=True)
    parser.add_subcommand(build, 1)

    parser.parse("build --verbose release")
    assert build.used and target.value == "release" and verbose.value is True

See also
- flagtree.arguments for the Flag/PositionalValue specs.
- flagtree.faults for fault codes and rendering.
- flagtree.help for the default help/version collaborators.
"""
import copy
import functools
import logging
import operator
import os.path
import re
import shlex
import sys
from collections.abc import Iterable

from rich.text import Text

from .arguments import Flag, PositionalValue
from .faults import *
from .help import render_help, render_version
from .outcomes import *
from .tokens import TokenKind, classify, split, strip
from .utils import *


class SubcommandType(type):
    """
    Metaclass that turns tree nodes into introspectable objects.

    Responsibilities
    - Provide stable, readable __repr__/__rich_repr__ for diagnostics and rich UI.
    - Expose selected fields as read-only properties using mirror() for all names
      listed in __introspectable__.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      for consistent, human-friendly labels in messages.
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - subcommand(name='build', short='b', position=1, ...)
            """
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield a sequence of (name, object) pairs for pretty printers.
            """
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata):
    """
    Normalize and validate the identity and help metadata of a node.

    - name: non-empty string; it cannot start with "-" (it would be read as a flag)
      nor contain whitespace.
    - short: same rules as name, optional, and different from name.
    - descr, prepend, append: str | Text | Unset; strings are trimmed and cannot be empty.

    Errors
    - TypeError: wrong types.
    - ValueError: empty or malformed strings.
    """
    for field in ("name", "short"):
        if not isinstance(name := metadata[field], str | Unset):
            raise TypeError(f"{cls.__typename__} {field!r} must be a string")
        if isinstance(name, str):
            if not (name := name.strip()):
                raise ValueError(f"{cls.__typename__} {field!r} cannot be empty")
            if not re.fullmatch(r"[^\s-]\S*", name):
                raise ValueError(f"{cls.__typename__} {field!r} must not start with '-' nor contain spaces")
        metadata[field] = coalesce(name)

    if metadata["name"] is None:
        raise TypeError(f"{cls.__typename__} must have a name")
    if metadata["name"] == metadata["short"]:
        raise ValueError(f"{cls.__typename__} 'short' must differ from 'name'")

    for field in ("descr", "prepend", "append"):
        if not isinstance(object := metadata[field], str | Text | Unset):
            raise TypeError(f"{cls.__typename__} {field!r} must be a string")
        elif isinstance(object, str) and not (object := object.strip()):
            raise ValueError(f"{cls.__typename__} {field!r} cannot be empty")
        metadata[field] = coalesce(object)


def _sanitize_position(cls, position):
    # bool is an int subclass but never a meaningful position
    if not isinstance(position, int) or isinstance(position, bool):
        raise TypeError(f"{cls.__typename__} 'position' must be an integer")
    if position < 1:
        raise ValueError(f"{cls.__typename__} 'position' must start at 1")


def _route(node):
    return " ".join(step.name for step in node.path)


class Subcommand(metaclass=SubcommandType):
    """
    A named node in the command tree.

    Responsibilities
    - Registration: add_subcommand/add_flag/add_positional grow the tree and reject
      conflicting names or positions with RegistrationConflictError.
    - Parsing (internal): _strip resolves flags out of the token stream, _descend
      matches positional tokens against children and positional slots, _validate
      checks required positional values once the deepest node is reached.

    Lifecycle
    - position and parent are assigned when the node is attached to a parent.
    - used flips to True when a parse reaches this node.

    Notes
    - Containers (children, flags, positionals) are exposed as copies; the nodes and
      specs inside them are the live objects.
    """

    __introspectable__ = (
        "name",
        "short",
        "descr",
        "position",
        "parent",
        "children",
        "flags",
        "positionals",
        "used",
        "hidden",
        "prepend",
        "append",
    )

    __displayable__ = (
        "name",
        "short",
        "position",
        "descr",
        "hidden",
        "used",
    )

    @property
    def root(self):
        """
        Return the topmost node of the tree this node belongs to.
        """
        child, parent = self, self.parent
        while parent:
            child, parent = parent, parent.parent
        return child

    @property
    def path(self):
        """
        Return the full ancestry from root to this node as a tuple.
        """
        path = [node := self]
        while node.parent:
            path.append(node := node.parent)
        return tuple(reversed(path))

    @property
    def names(self):
        return tuple(name for name in (self.name, self.short) if name)

    def __new__(
            cls,
            name,
            /,
            short=Unset,
            descr=Unset,
            *,
            hidden=False,
            prepend=Unset,
            append=Unset
    ):
        """
        Construct a detached subcommand.

        Parameters
        - name: str
          Token that selects this subcommand (e.g. "build").
        - short: str | Unset
          Alternative, usually shorter, token (e.g. "b").
        - descr: str | Text | Unset
          Short description for help.
        - hidden: bool
          If True, the subcommand is left out of help listings and suggestions.
        - prepend / append: str | Text | Unset
          Extra help text shown before/after the generated help of this node.
        """
        metadata = {
            "name": name,
            "short": short,
            "descr": descr,
            "hidden": bool(hidden),
            "prepend": prepend,
            "append": append,
        }
        _sanitize_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, coalesce(object))
        self._position = None
        self._parent = None
        self._children = []
        self._flags = []
        self._positionals = []
        self._used = False
        return self

    def add_subcommand(self, child, position, /):
        """
        Attach child at a position relative to this node and return it.

        Rules
        - position is an int >= 1.
        - a sibling at the same position cannot share the child's name or short name.
        - no positional value of this node may sit at that position.
        - child must be detached (a node has a single parent).

        Raises
        - TypeError / ValueError: wrong argument types or a position below 1.
        - RegistrationConflictError: any conflict; the tree is left untouched.
        """
        if not isinstance(child, Subcommand):
            raise TypeError(f"{type(self).__typename__} child must be a subcommand")
        if isinstance(child, Parser):
            raise TypeError(f"{type(self).__typename__} child cannot be a parser")
        _sanitize_position(type(self), position)

        if child.parent is not None or child in self.path:
            raise RegistrationConflictError(
                "subcommand %r is already attached to %r" % (child.name, (child.parent or child).name),
                title="attached subcommand",
                code=FaultCode.ATTACHED_SUBCOMMAND,
                hint="create a separate subcommand for every place it appears in the tree",
                node=self,
                subcommand=child,
            )

        for sibling in self._children:
            if sibling.position == position and (shared := set(sibling.names) & set(child.names)):
                raise RegistrationConflictError(
                    "subcommand name %r is already in use at %s position of %r" % (
                        shared.pop(), ordinal(position), _route(self)
                    ),
                    title="duplicated subcommand",
                    code=FaultCode.DUPLICATED_SUBCOMMAND,
                    hint="rename the subcommand or register it at another position",
                    node=self,
                    subcommand=child,
                    position=position,
                )

        for positional in self._positionals:
            if positional.position == position:
                raise RegistrationConflictError(
                    "%s position of %r is already taken by positional value %r" % (
                        ordinal(position), _route(self), positional.name
                    ),
                    title="occupied position",
                    code=FaultCode.OCCUPIED_POSITION,
                    hint="subcommands and positional values cannot share a position",
                    node=self,
                    subcommand=child,
                    position=position,
                )

        child._position = position
        child._parent = self
        self._children.append(child)
        return child

    def add_flag(
            self,
            kind,
            storage,
            /,
            short=Unset,
            long=Unset,
            descr=Unset,
            *,
            hidden=False
    ):
        """
        Register a Flag on this node and return it.

        Flags of the root (a Parser) are global: they are resolved at every nesting level.

        Raises
        - TypeError / ValueError: invalid spec metadata (see Flag).
        - RegistrationConflictError: the short or long name is already used on this node.
        """
        flag = Flag(kind, storage, short, long, descr, hidden=hidden)
        for name in flag.names:
            if self.flag_exists(name):
                raise RegistrationConflictError(
                    "flag name %r is already in use on %r" % (name, _route(self)),
                    title="duplicated flag",
                    code=FaultCode.DUPLICATED_FLAG,
                    hint="give every flag of a subcommand its own short and long names",
                    node=self,
                    flag=flag,
                )
        self._flags.append(flag)
        return flag

    def add_positional(
            self,
            storage,
            name,
            position,
            /,
            required=False,
            descr=Unset
    ):
        """
        Register a PositionalValue on this node and return it.

        Raises
        - TypeError / ValueError: invalid spec metadata (see PositionalValue).
        - RegistrationConflictError: a positional value or a subcommand already sits
          at that position.
        """
        positional = PositionalValue(storage, name, position, required, descr)

        for other in self._positionals:
            if other.position == positional.position:
                raise RegistrationConflictError(
                    "%s position of %r is already taken by positional value %r" % (
                        ordinal(other.position), _route(self), other.name
                    ),
                    title="occupied position",
                    code=FaultCode.OCCUPIED_POSITION,
                    hint="register the positional value at a free position",
                    node=self,
                    positional=positional,
                    position=positional.position,
                )

        for child in self._children:
            if child.position == positional.position:
                raise RegistrationConflictError(
                    "%s position of %r is already taken by subcommand %r" % (
                        ordinal(child.position), _route(self), child.name
                    ),
                    title="occupied position",
                    code=FaultCode.OCCUPIED_POSITION,
                    hint="subcommands and positional values cannot share a position",
                    node=self,
                    positional=positional,
                    position=positional.position,
                )

        self._positionals.append(positional)
        return positional

    def flag_exists(self, name, /):
        return any(flag.has_name(name) for flag in self._flags)

    def set_value_for_key(self, key, value, /):
        """
        Assign a raw value to this node's flag named key.

        Returns True when a flag matched, False otherwise. Bool flags expect "true"
        or "false"; a value that does not parse raises CoercionError.
        """
        for flag in self._flags:
            if flag.has_name(key):
                flag.assign(value)
                return True
        return False

    def show_help(self, message=Unset, /):
        """
        Render help for this node through the help collaborator of its root parser
        (flagtree.help.render_help when the tree has no parser).

        message may be a fault (rendered as a header) or a plain string.
        """
        helper = self.root.helper if isinstance(self.root, Parser) else render_help
        helper(self, message)

    def _resolve(self, key):
        """
        Find the flag addressed by key: this node's flags first, then the root's.
        """
        for node in dict.fromkeys((self, self.root)):
            for flag in node._flags:
                if flag.has_name(key):
                    return flag
        return None

    def _apply(self, parser, flag, index, raw):
        # a token occurrence feeds a flag once, however many nodes re-scan it
        if (flag, index) in parser._applied:
            return
        parser._applied.add((flag, index))
        value = flag.assign(raw)
        parser.logger.debug("assigned %r to flag %s of %r", value, flag.label, self.name)

    def _strip(self, parser, args):
        """
        Scan the full token list for flags and return (positionals, help).

        Rules (in order, per token)
        - after a terminator "--", every token is a trailing argument.
        - a token consumed as the previous flag's value is skipped.
        - -v/--version stops the scan with VersionRequested (when enabled and a version
          is set); -h/--help records a help request (when enabled).
        - flag-with-space: bool kinds take the next token only if it is "true"/"false";
          other kinds require it (Failure otherwise).
        - flag-with-value: the text after the first "=" is the value.
        - unknown keys are dropped; a spaced unknown key still swallows its follower.

        Returns an Outcome instead of the tuple when the scan must stop early.
        """
        logger = parser.logger
        positionals = []
        help = False
        skip = False
        terminated = False

        # the deepest scan wins
        parser._trailing_arguments = []

        for index, token in enumerate(args):
            if terminated:
                parser._trailing_arguments.append(token)
                continue

            if skip:
                skip = False
                continue

            follower = args[index + 1] if index + 1 < len(args) else None

            match classify(token):
                case TokenKind.TERMINATOR:
                    terminated = True

                case TokenKind.POSITIONAL:
                    positionals.append(token)

                case TokenKind.FLAG_WITH_SPACE:
                    key = strip(token)

                    if key in ("v", "version") and parser.show_version_with_v_flag and parser.version:
                        logger.debug("version requested by %r", token)
                        return VersionRequested()

                    if key in ("h", "help") and parser.show_help_with_h_flag:
                        logger.debug("help requested by %r at %r", token, self.name)
                        help = True
                        continue

                    if (flag := self._resolve(key)) is None:
                        logger.debug("dropped unknown flag %r at %r", token, self.name)
                        skip = follower is not None
                    elif flag.kind.boolean:
                        if follower in ("true", "false"):
                            skip = True
                            self._apply(parser, flag, index, follower)
                        else:
                            self._apply(parser, flag, index, "true")
                    elif follower is None:
                        return Failure(MissingFlagValueError(
                            "expected a following value for flag %r, but it did not exist" % token,
                            title="missing flag value",
                            code=FaultCode.MISSING_FLAG_VALUE,
                            hint="pass a value after %s or use %s=<value>" % (token, token),
                            node=self,
                            flag=flag,
                        ), self)
                    else:
                        skip = True
                        self._apply(parser, flag, index, follower)

                case TokenKind.FLAG_WITH_VALUE:
                    key, value = split(strip(token))
                    if (flag := self._resolve(key)) is None:
                        logger.debug("dropped unknown flag %r at %r", token, self.name)
                    else:
                        self._apply(parser, flag, index, value)

        return positionals, help

    def _descend(self, parser, args, depth):
        """
        Match the positional tokens of args against this node.

        depth is the absolute index (1-based) of the first positional token that
        belongs to this node; earlier tokens were matched by its ancestors.
        """
        self._used = True
        parser.logger.debug("parsing subcommand %r with depth %d and args %r", self.name, depth, args)

        stripped = self._strip(parser, args)
        if isinstance(stripped, Outcome):
            return stripped
        positionals, help = stripped

        parsed = 0
        for p, value in enumerate(positionals, 1):
            relative = p - depth + 1
            if relative < 1:
                parser.logger.debug("skipped value %r", value)
                continue
            parsed += 1

            for child in self._children:
                if child.position == relative and value in child.names:
                    parser.logger.debug(
                        "descending into subcommand %r at relative depth %d and absolute depth %d",
                        child.name, relative, depth + parsed
                    )
                    return child._descend(parser, args, depth + parsed)

            for positional in self._positionals:
                if positional.position == relative:
                    parser.logger.debug("assigned %r to positional value %r at %d", value, positional.name, relative)
                    positional.assign(value)
                    break
            else:
                if any(child.position == relative for child in self._children):
                    choices = [child.name for child in self._children if not child.hidden]
                    return Failure(UnknownSubcommandError(
                        "unknown subcommand %r at %s position of %r" % (value, ordinal(relative), _route(self)),
                        title="unknown subcommand",
                        code=FaultCode.UNKNOWN_SUBCOMMAND,
                        hint="available subcommands: %s" % ", ".join(choices) if choices else
                             "run '%s --help' to see the expected usage" % _route(self),
                        node=self,
                        value=value,
                        position=relative,
                        choices=choices,
                    ), self)

                return Failure(UnexpectedArgumentError(
                    "unexpected argument %r at %s position of %r" % (value, ordinal(relative), _route(self)),
                    title="unexpected argument",
                    code=FaultCode.UNEXPECTED_ARGUMENT,
                    hint="remove this extra value or run '%s --help' to see the expected usage" % _route(self),
                    node=self,
                    value=value,
                    position=relative,
                ), self)

        return self._validate(parser, help)

    def _validate(self, parser, help):
        """
        Conclude the deepest matched node: help first, then required positional values
        of the root (global) and of this node.
        """
        if help and parser.show_help_with_h_flag:
            return HelpRequested(self)

        for node in dict.fromkeys((self.root, self)):
            for positional in node._positionals:
                if positional.required and not positional.found:
                    if node is self.root:
                        message = "required global positional %r not found at %s position" % (
                            positional.name, ordinal(positional.position)
                        )
                    else:
                        message = "required positional %r of subcommand %r not found at %s position" % (
                            positional.name, node.name, ordinal(positional.position)
                        )
                    return Failure(MissingPositionalError(
                        message,
                        title="missing positional",
                        code=FaultCode.MISSING_POSITIONAL,
                        hint="add the missing value; run '%s --help' to see the expected order" % _route(node),
                        node=node,
                        positional=positional,
                        position=positional.position,
                    ), node)

        return Success()


class Parser(Subcommand):
    """
    The root of a command tree and the parse entry point.

    Highlights
    - Flags and positional values registered on the parser are global: they are
      resolved at every nesting level.
    - -h/--help and -v/--version are handled automatically (see the
      show_help_with_h_flag/show_version_with_v_flag switches).
    - trailing_arguments holds every token after "--".
    - A parser parses once; a second parse raises AlreadyParsedError.

    Collaborators
    - helper(node, message): renders help (default flagtree.help.render_help).
    - versioner(parser): renders the version (default flagtree.help.render_version).
    - logger: receives DEBUG traces of the descent (default logging.getLogger("flagtree")).
    """

    __introspectable__ = Subcommand.__introspectable__ + (
        "version",
        "trailing_arguments",
        "show_help_with_h_flag",
        "show_version_with_v_flag",
        "colorful",
        "fancy",
        "helper",
        "versioner",
        "logger",
        "parsed",
    )

    __displayable__ = (
        "name",
        "descr",
        "version",
        "show_help_with_h_flag",
        "show_version_with_v_flag",
        "colorful",
        "fancy",
        "parsed",
    )

    def __new__(
            cls,
            name=Unset,
            /,
            descr=Unset,
            version=Unset,
            *,
            prepend=Unset,
            append=Unset,
            show_help_with_h_flag=True,
            show_version_with_v_flag=True,
            colorful=True,
            fancy=False,
            helper=Unset,
            versioner=Unset,
            logger=Unset
    ):
        """
        Construct a Parser.

        Parameters
        - name: str | Unset
          Program name shown in help; defaults to the basename of sys.argv[0].
        - descr: str | Text | Unset
          Program description for help.
        - version: str | Unset
          Version shown by -v/--version; without it the version flags are plain flags.
        - prepend / append: str | Text | Unset
          Extra help text shown before/after the generated help.
        - show_help_with_h_flag / show_version_with_v_flag: bool
          Enable the reserved -h/--help and -v/--version keys.
        - colorful / fancy: bool
          Rendering switches for help, version and faults.
        - helper / versioner: callables replacing the default renderers.
        - logger: a logging.Logger (or anything with a debug() method).
        """
        self = super().__new__(
            cls,
            coalesce(name, os.path.basename(sys.argv[0]) or "flagtree"),
            descr=descr,
            prepend=prepend,
            append=append,
        )

        if not isinstance(version, str | Unset):
            raise TypeError(f"{cls.__typename__} 'version' must be a string")
        elif isinstance(version, str) and not (version := version.strip()):
            raise ValueError(f"{cls.__typename__} 'version' cannot be empty")

        for field, object in (("helper", helper), ("versioner", versioner)):
            if not callable(coalesce(object, render_help)):
                raise TypeError(f"{cls.__typename__} {field!r} must be callable")

        if logger is not Unset and not callable(getattr(logger, "debug", None)):
            raise TypeError(f"{cls.__typename__} 'logger' must provide a debug() method")

        self._version = coalesce(version)
        self._show_help_with_h_flag = bool(show_help_with_h_flag)
        self._show_version_with_v_flag = bool(show_version_with_v_flag)
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)
        self._helper = coalesce(helper, render_help)
        self._versioner = coalesce(versioner, render_version)
        self._logger = coalesce(logger, logging.getLogger("flagtree"))
        self._trailing_arguments = []
        self._applied = set()
        self._parsed = False
        return self

    def evaluate(self, args=Unset, /):
        """
        Run the engine over args and return the outcome without rendering or exiting.

        Parameters
        - args:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; split with shlex.split.
          • Iterable[str]: pre-tokenized sequence, used verbatim.

        Raises
        - AlreadyParsedError: this parser already parsed a command line.
        - CoercionError: a flag value does not parse as its kind.
        - TypeError: args is not one of the accepted shapes.
        """
        if args is Unset:
            tokens = sys.argv[1:]
        elif isinstance(args, str):
            tokens = shlex.split(args)
        elif isinstance(args, Iterable):
            tokens = list(args)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("evaluate() argument must be a string or an iterable of strings")
        else:
            raise TypeError("evaluate() argument must be a string or an iterable of strings")

        if self._parsed:
            raise AlreadyParsedError(
                "parser %r already parsed its arguments" % self.name,
                title="already parsed",
                code=FaultCode.ALREADY_PARSED,
                hint="build a new parser for every command line",
                node=self,
            )
        self._parsed = True

        self._trailing_arguments = []
        self._applied = set()
        outcome = self._descend(self, tokens, 1)
        self._logger.debug("parsed %r into %r", tokens, outcome)
        return outcome

    def parse(self, args=Unset, /):
        """
        Parse args into the tree and act on the outcome.

        - Success: return None.
        - HelpRequested: show help for the deepest matched node and exit 0.
        - VersionRequested: show the version and exit 0.
        - Failure: show help for the failing node prefixed by the fault and exit 2.

        CoercionError and AlreadyParsedError propagate to the caller.
        """
        self._conclude(self.evaluate(args))

    def _conclude(self, outcome):
        match outcome:
            case Success():
                return
            case HelpRequested(node=node):
                self._helper(node, Unset)
            case VersionRequested():
                self._versioner(self)
            case Failure(fault=fault, node=node):
                self._helper(node, copy.replace(fault, node=node, colorful=self.colorful, fancy=self.fancy))
            case _:
                raise RuntimeError("unexpected outcome")
        sys.exit(outcome.exit_code)


__all__ = (
    "Subcommand",
    "Parser",
)

# Remove the internal metaclass from the module namespace to avoid accidental
# exposure in docs, autocompletion, or star-imports. Not part of the public API.
del SubcommandType
