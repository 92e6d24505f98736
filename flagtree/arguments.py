r"""
Flagtree argument specifications.

Overview
- Specs
  • Flag: named, typed input (-f/--file) bound to caller storage; its FlagKind decides
    how raw strings are coerced and whether repeats overwrite (scalar) or append (sequence).
  • PositionalValue: string input bound to caller storage, matched purely by its position
    relative to the owning subcommand.

- Introspection & representation
  • ArgumentType metaclass provides stable __repr__/__rich_repr__ and exposes selected
    fields via read-only properties declared in __introspectable__/__displayable__.

Metadata (sanitized on construction)
- Shared
  • descr: Unset | str | Text (short help), non-empty when provided.
  • storage: any object with set(value) and append(value) (see flagtree.storage).
- Flag only
  • kind: FlagKind.
  • short / long: names given without dashes ("f", "file"); at least one is required.
  • hidden: bool (suppresses from help).
- PositionalValue only
  • name: non-empty string used in help and messages.
  • position: int >= 1, relative to the owning subcommand.
  • required: bool.

Validation highlights
- Names must not be empty, start with "-", or contain "=" or whitespace.
- short and long must differ.

Quick example:
    >>> from flagtree import Flag, FlagKind, PositionalValue, Value
    >>> count = Value(1)
    >>> Flag(FlagKind.INT, count, "c", "count", "how many times")
    flag(short='c', long='count', kind=<FlagKind.INT: 'int'>, ...)
    >>> PositionalValue(Value(), "target", 1, required=True)
    positional-value(name='target', position=1, required=True, ...)

Public API
- Classes: Flag, PositionalValue
"""
import functools
import operator
import re

from rich.text import Text

from .faults import CoercionError, FaultCode
from .kinds import FlagKind
from .storage import Storage
from .utils import *


class ArgumentType(type):
    """
    Metaclass that turns specs into introspectable descriptors.

    Responsibilities
    - Provide stable, readable __repr__/__rich_repr__ implementations for
      diagnostics and help output.
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages and help output.
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
            - flag(short='v', long='verbose', kind=<FlagKind.BOOL: 'bool'>, ...)
            """
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield (name, object) pairs for pretty printers.
            """
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate metadata shared by every spec.

    - descr: optional short description. Unset becomes None; a provided string must be
      non-empty after trimming.
    - storage: must satisfy the Storage protocol (set/append).

    Raises
    - TypeError: wrong types.
    - ValueError: empty strings.
    """
    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)

    if not isinstance(metadata["storage"], Storage):
        raise TypeError(f"{cls.__typename__} 'storage' must provide set() and append() methods")


def _sanitize_named_metadata(cls, metadata, /):
    """
    Internal: validate the short/long names of a Flag.

    Names are written without dashes; the classifier strips dashes from tokens
    before lookup, so "-f", "--f" and "---f" all address the name "f".
    """
    names = []
    for field in ("short", "long"):
        if not isinstance(name := metadata[field], str | Unset):
            raise TypeError(f"{cls.__typename__} '{field}' name must be a string")
        if isinstance(name, str):
            if not (name := name.strip()):
                raise ValueError(f"{cls.__typename__} '{field}' name cannot be empty")
            if not re.fullmatch(r"[^\s=-][^\s=]*", name):
                raise ValueError(f"{cls.__typename__} '{field}' name must not start with '-' nor contain '=' or spaces")
            if name in names:
                raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
            names.append(name)
        metadata[field] = coalesce(name)

    if not names:
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    if not isinstance(metadata["kind"], FlagKind):
        raise TypeError(f"{cls.__typename__} 'kind' must be a flag kind")


def _sanitize_positional_metadata(cls, metadata, /):
    """
    Internal: validate the name/position of a PositionalValue.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    metadata["name"] = name

    # bool is an int subclass but never a meaningful position
    if not isinstance(position := metadata["position"], int) or isinstance(position, bool):
        raise TypeError(f"{cls.__typename__} 'position' must be an integer")
    if position < 1:
        raise ValueError(f"{cls.__typename__} 'position' must start at 1")


class Flag(metaclass=ArgumentType):
    """
    Named, typed input bound to caller storage.

    Highlights
    - short/long names are matched against the key of -k, --key, -k=value and --key=value tokens.
    - kind selects the coercion and the write mode: scalar kinds call storage.set(),
      sequence kinds call storage.append() once per occurrence.
    - BOOL and BOOL_SEQUENCE flags may stand alone: "-v" means "-v true".

    Properties
    - The names listed in __introspectable__ are exposed as read-only attributes.
    """

    __introspectable__ = (
        "short",
        "long",
        "kind",
        "descr",
        "storage",
        "hidden",
    )

    __displayable__ = (
        "short",
        "long",
        "kind",
        "descr",
        "hidden",
    )

    def __new__(
            cls,
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
        Construct a Flag spec.

        Parameters
        - kind: FlagKind
          Declared value kind (coercion + scalar/sequence semantics).
        - storage: Storage
          Caller-owned handle receiving the coerced value(s).
        - short / long: str | Unset
          Names without dashes; at least one is required and they must differ.
        - descr: str | Text | Unset
          Short description for help. If Unset, becomes None.
        - hidden: bool
          If True, the flag is omitted from help output (it still parses).
        """
        metadata = {
            "kind": kind,
            "storage": storage,
            "short": short,
            "long": long,
            "descr": descr,
            "hidden": bool(hidden),
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, coalesce(object))
        return self

    @property
    def names(self):
        """
        the declared names, short first.
        """
        return tuple(name for name in (self.short, self.long) if name)

    @property
    def label(self):
        """
        the spelling used in messages: '-s/--long', '--long' or '-s'.
        """
        return "/".join(("-" if name == self.short else "--") + name for name in self.names)

    def has_name(self, name, /):
        return name in self.names

    def assign(self, raw, /):
        """
        Coerce a raw string and write it through the bound storage.

        - scalar kinds overwrite (storage.set), sequence kinds append (storage.append).
        - a string that does not parse raises CoercionError (nothing is written).
        """
        try:
            value = self.kind.parse(raw)
        except ValueError as exception:
            raise CoercionError(
                "value %r of flag %r cannot be read as %s" % (raw, self.label, self.kind.element.value),
                title="uncastable value",
                code=FaultCode.UNCASTABLE_VALUE,
                hint="pass a valid %s value (%s)" % (self.kind.element.value, exception),
                flag=self,
                kind=self.kind,
                value=raw,
            ) from exception

        if self.kind.sequence:
            self.storage.append(value)
        else:
            self.storage.set(value)
        return value


class PositionalValue(metaclass=ArgumentType):
    """
    String input bound to caller storage and addressed by relative position.

    Highlights
    - position is relative to the owning subcommand and starts at 1.
    - found flips to True the first time the matcher writes the slot.
    - required slots that are still not found once their branch completes are a usage error.
    """

    __introspectable__ = (
        "name",
        "position",
        "required",
        "found",
        "descr",
        "storage",
    )

    __displayable__ = (
        "name",
        "position",
        "required",
        "found",
        "descr",
    )

    def __new__(
            cls,
            storage,
            name,
            position,
            /,
            required=False,
            descr=Unset
    ):
        """
        Construct a PositionalValue spec.

        Parameters
        - storage: Storage
          Caller-owned handle; receives the raw token via storage.set().
        - name: str
          Label used in help and in missing-value messages.
        - position: int
          1-based position relative to the owning subcommand.
        - required: bool
          When True, the branch that owns this slot must fill it.
        - descr: str | Text | Unset
          Short description for help. If Unset, becomes None.
        """
        metadata = {
            "storage": storage,
            "name": name,
            "position": position,
            "required": bool(required),
            "descr": descr,
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_positional_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, coalesce(object))
        self._found = False
        return self

    def assign(self, raw, /):
        self.storage.set(raw)
        self._found = True


__all__ = (
    # Classes (specifications)
    "Flag",
    "PositionalValue",
)

# Remove the internal metaclass from the module namespace to avoid accidental
# exposure in docs, autocompletion, or star-imports. Not part of the public API.
del ArgumentType
