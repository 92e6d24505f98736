"""
Write-through storage handles.

The parser never owns the values it produces: every Flag and PositionalValue is bound
to a caller-supplied handle that exposes two operations.

- set(value):    overwrite (scalar kinds, positional values)
- append(value): extend, preserving encounter order (sequence kinds)

Handles
- Value(default): a small box whose .value the caller reads after parsing.
- Attribute(object, name): writes through to an attribute (namespaces, dataclasses, ...).
- Item(mapping, key): writes through to a mapping entry.

Any object providing set/append satisfies the Storage protocol; sharing a handle
between concurrent parses is the caller's responsibility.
"""
from collections.abc import MutableMapping
from typing import Protocol, runtime_checkable

from .utils import Unset, coalesce


@runtime_checkable
class Storage(Protocol):
    def set(self, value, /): ...

    def append(self, value, /): ...


class Value:
    """
    A caller-owned box.

    - scalars: Value(default) then read .value after parsing.
    - sequences: Value([]) (or Value()); appends extend the same list object,
      so a list passed in by the caller is filled in place.
    """
    __slots__ = ("value",)

    def __init__(self, default=Unset, /):
        self.value = coalesce(default)

    def set(self, value, /):
        self.value = value

    def append(self, value, /):
        if self.value is None:
            self.value = []
        self.value.append(value)

    def __repr__(self):
        return f"value({self.value!r})"


class Attribute:
    """
    Write-through handle to object.name.
    """
    __slots__ = ("object", "name")

    def __init__(self, object, name, /):
        if not isinstance(name, str):
            raise TypeError("attribute storage 'name' must be a string")
        self.object = object
        self.name = name

    @property
    def value(self):
        return getattr(self.object, self.name, None)

    def set(self, value, /):
        setattr(self.object, self.name, value)

    def append(self, value, /):
        if (sequence := getattr(self.object, self.name, None)) is None:
            setattr(self.object, self.name, sequence := [])
        sequence.append(value)

    def __repr__(self):
        return f"attribute({type(self.object).__name__}.{self.name})"


class Item:
    """
    Write-through handle to mapping[key].
    """
    __slots__ = ("mapping", "key")

    def __init__(self, mapping, key, /):
        if not isinstance(mapping, MutableMapping):
            raise TypeError("item storage 'mapping' must be a mutable mapping")
        self.mapping = mapping
        self.key = key

    @property
    def value(self):
        return self.mapping.get(self.key)

    def set(self, value, /):
        self.mapping[self.key] = value

    def append(self, value, /):
        if self.mapping.get(self.key) is None:
            self.mapping[self.key] = []
        self.mapping[self.key].append(value)

    def __repr__(self):
        return f"item({self.key!r})"


__all__ = (
    "Storage",
    "Value",
    "Attribute",
    "Item",
)
