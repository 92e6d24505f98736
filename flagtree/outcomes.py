"""
Parse outcomes.

The recursive matcher never prints or exits: every branch returns one of these values up
the call chain and only Parser.parse turns it into output and a process exit.

- Success              parsing completed; control returns to the caller
- HelpRequested(node)  -h/--help was seen; show help for the deepest matched node (exit 0)
- VersionRequested()   -v/--version was seen; show the version (exit 0)
- Failure(fault, node) a usage error; show help for node prefixed by the fault (exit 2)
"""


class Outcome:
    __slots__ = ()

    exit_code = None

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in self.__slots__)

    def __hash__(self):
        return hash((type(self), *(getattr(self, name) for name in self.__slots__)))

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, ", ".join(
            "%s=%r" % (name, getattr(self, name)) for name in self.__slots__
        ))


class Success(Outcome):
    __slots__ = ()


class HelpRequested(Outcome):
    __slots__ = ("node",)

    exit_code = 0

    def __init__(self, node, /):
        self.node = node


class VersionRequested(Outcome):
    __slots__ = ()

    exit_code = 0


class Failure(Outcome):
    __slots__ = ("fault", "node")

    def __init__(self, fault, node, /):
        self.fault = fault
        self.node = node

    @property
    def exit_code(self):
        return self.fault.exit_code


__all__ = (
    "Outcome",
    "Success",
    "HelpRequested",
    "VersionRequested",
    "Failure",
)
