"""
Token classification.

Every raw token falls in exactly one class:

- TERMINATOR       "--"; everything after it is a trailing argument
- FLAG_WITH_VALUE  starts with "-" and contains "=":   --file=a.txt, -f=a.txt
- FLAG_WITH_SPACE  starts with "-" without "=":        --file a.txt, -v
- POSITIONAL       anything else (subcommand names and positional values)

Stateful rules (terminator already seen, token consumed as the previous flag's value,
reserved help/version keys) belong to the scan loop in commands.py.
"""
from enum import Enum

TERMINATOR = "--"


class TokenKind(Enum):
    TERMINATOR = "terminator"
    POSITIONAL = "positional"
    FLAG_WITH_SPACE = "flag-with-space"
    FLAG_WITH_VALUE = "flag-with-value"


def classify(token, /):
    if not isinstance(token, str):
        raise TypeError("classify() argument must be a string")
    if token == TERMINATOR:
        return TokenKind.TERMINATOR
    if token.startswith("-"):
        if "=" in token:
            return TokenKind.FLAG_WITH_VALUE
        return TokenKind.FLAG_WITH_SPACE
    return TokenKind.POSITIONAL


def strip(token, /):
    """
    drop the leading dashes of a flag token: "--file" -> "file", "-f=x" -> "f=x".
    """
    return token.lstrip("-")


def split(key, /):
    """
    split a stripped flag-with-value token on its first "=": "f=a=b" -> ("f", "a=b").
    """
    key, _, value = key.partition("=")
    return key, value


__all__ = (
    "TERMINATOR",
    "TokenKind",
    "classify",
    "strip",
    "split",
)
