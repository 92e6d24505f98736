from rich.pretty import pprint

from flagtree import *

__prog__ = "deploy"


parser = Parser("deploy", "ship builds to an environment", "0.1.0")
verbose = parser.add_flag(FlagKind.BOOL, Value(False), "V", "verbose", "print every step")

push = parser.add_subcommand(Subcommand("push", "p", "upload a build"), 1)
target = push.add_positional(Value(), "target", 1, required=True, descr="environment name")
timeout = push.add_flag(FlagKind.DURATION, Value(), "t", "timeout", "give up after this long")
tags = push.add_flag(FlagKind.STRING_SEQUENCE, Value([]), long="tag", descr="labels for the build")


if __name__ == '__main__':
    parser.parse()
    pprint(parser)
    pprint({
        "verbose": verbose.storage.value,
        "target": target.storage.value,
        "timeout": timeout.storage.value,
        "tags": tags.storage.value,
        "trailing": parser.trailing_arguments,
    })
