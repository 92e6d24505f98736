r"""
Flagtree value kinds (the coercion engine).

Overview
- FlagKind: one member per value kind a Flag can be declared with, plus a *_SEQUENCE
  variant of each. Scalar kinds overwrite their storage; sequence kinds append to it.
- A single dispatch table maps every kind to Coercion(parse, boolean, sequence).
  Adding a kind is one enum member pair and one row in _PARSERS.

Grammars (raw string -> Python value)
- STRING            as-is
- BOOL              1 t T TRUE true True / 0 f F FALSE false False
- INT, INT8..INT64  base-10 literal, optional sign, bounded by the bit width (INT is 64-bit)
- UINT, UINT8..64   base-10 literal, no sign, bounded by the bit width (UINT is 64-bit)
- FLOAT32/FLOAT64   decimal or scientific literal, inf, nan; FLOAT32 is rounded to single precision
- DURATION          [-+]<decimal><unit>... with units ns, us (µs), ms, s, m, h, or a bare 0
                    -> datetime.timedelta (sub-microsecond precision is truncated)
- BYTES             strict hexadecimal, even length -> bytes
- IP                IPv4 or IPv6 notation -> ipaddress.IPv4Address | ipaddress.IPv6Address
- HARDWARE_ADDRESS  xx:xx:..., xx-xx-... or xxxx.xxxx.... (6, 8 or 20 octets) -> bytes
- IP_MASK           dotted IPv4 notation -> ipaddress.IPv4Address

Errors
- every parser raises ValueError (or a subclass) on bad input; Flag.assign wraps it
  into a CoercionError that names the flag and the offending string.

Quick example:
    >>> FlagKind.DURATION.parse("1h50m")
    datetime.timedelta(seconds=6600)
    >>> FlagKind.INT8.parse("300")
    Traceback (most recent call last):
    ...
    ValueError: value out of range for int8
"""
import binascii
import ipaddress
import re
import struct
from collections.abc import Callable
from datetime import timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, NamedTuple


class Coercion(NamedTuple):
    parse: Callable[[str], Any]
    boolean: bool
    sequence: bool


class FlagKind(Enum):
    """
    tagged value kinds; the value is the label shown in help output.
    """
    STRING = "string"
    BOOL = "bool"
    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    DURATION = "duration"
    BYTES = "bytes"
    IP = "ip"
    HARDWARE_ADDRESS = "hardware-address"
    IP_MASK = "ip-mask"

    STRING_SEQUENCE = "string..."
    BOOL_SEQUENCE = "bool..."
    INT_SEQUENCE = "int..."
    INT8_SEQUENCE = "int8..."
    INT16_SEQUENCE = "int16..."
    INT32_SEQUENCE = "int32..."
    INT64_SEQUENCE = "int64..."
    UINT_SEQUENCE = "uint..."
    UINT8_SEQUENCE = "uint8..."
    UINT16_SEQUENCE = "uint16..."
    UINT32_SEQUENCE = "uint32..."
    UINT64_SEQUENCE = "uint64..."
    FLOAT32_SEQUENCE = "float32..."
    FLOAT64_SEQUENCE = "float64..."
    DURATION_SEQUENCE = "duration..."
    BYTES_SEQUENCE = "bytes..."
    IP_SEQUENCE = "ip..."
    HARDWARE_ADDRESS_SEQUENCE = "hardware-address..."
    IP_MASK_SEQUENCE = "ip-mask..."

    @property
    def boolean(self):
        """
        True for BOOL and BOOL_SEQUENCE: these take the optional-value lookahead path.
        """
        return _TABLE[self].boolean

    @property
    def sequence(self):
        return _TABLE[self].sequence

    @property
    def element(self):
        """
        the scalar kind produced for each occurrence (the kind itself for scalars).
        """
        return FlagKind[self.name.removesuffix("_SEQUENCE")]

    def parse(self, raw, /):
        if not isinstance(raw, str):
            raise TypeError("flag kinds can only parse strings")
        return _TABLE[self].parse(raw)


_TRUTHS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def _parse_string(raw):
    return raw


def _parse_bool(raw):
    if raw in _TRUTHS:
        return True
    if raw in _FALSES:
        return False
    raise ValueError("invalid syntax for bool")


def _signed(bits):
    label = "int%d" % bits
    low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1

    def parse(raw):
        if not re.fullmatch(r"[-+]?[0-9]+", raw):
            raise ValueError("invalid syntax for %s" % label)
        if not low <= (number := int(raw, 10)) <= high:
            raise ValueError("value out of range for %s" % label)
        return number

    return parse


def _unsigned(bits):
    label = "uint%d" % bits
    high = (1 << bits) - 1

    def parse(raw):
        if not re.fullmatch(r"[0-9]+", raw):
            raise ValueError("invalid syntax for %s" % label)
        if (number := int(raw, 10)) > high:
            raise ValueError("value out of range for %s" % label)
        return number

    return parse


def _parse_float64(raw):
    # float() is laxer than a literal grammar: it strips whitespace and accepts underscores
    if not raw or raw != raw.strip() or "_" in raw:
        raise ValueError("invalid syntax for float")
    return float(raw)


def _parse_float32(raw):
    try:
        return struct.unpack("<f", struct.pack("<f", _parse_float64(raw)))[0]
    except OverflowError:
        raise ValueError("value out of range for float32") from None


_UNITS = {
    "ns": Decimal(1),
    "us": Decimal(1_000),
    "µs": Decimal(1_000),  # U+00B5 micro sign
    "μs": Decimal(1_000),  # U+03BC greek mu
    "ms": Decimal(1_000_000),
    "s": Decimal(1_000_000_000),
    "m": Decimal(60_000_000_000),
    "h": Decimal(3_600_000_000_000),
}
_COMPONENT = r"(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:ns|us|µs|μs|ms|s|m|h)"


def _parse_duration(raw):
    if raw in ("0", "+0", "-0"):
        return timedelta(0)
    if not re.fullmatch(r"[-+]?(?:%s)+" % _COMPONENT, raw):
        raise ValueError("invalid duration %r" % raw)

    nanoseconds = Decimal(0)
    for match in re.finditer(r"([0-9]*(?:\.[0-9]*)?)(ns|us|µs|μs|ms|s|m|h)", raw.lstrip("+-")):
        quantity, unit = match.groups()
        nanoseconds += Decimal(quantity) * _UNITS[unit]

    # sub-nanosecond fractions are dropped, like integer nanosecond arithmetic would
    nanoseconds = int(nanoseconds)
    if nanoseconds > (1 << 63) - 1:
        raise ValueError("invalid duration %r" % raw)
    if raw.startswith("-"):
        nanoseconds = -nanoseconds
    return timedelta(microseconds=int(Decimal(nanoseconds) / 1000))


def _parse_bytes(raw):
    try:
        return binascii.unhexlify(raw)
    except (binascii.Error, ValueError):
        raise ValueError("invalid hexadecimal byte sequence") from None


def _parse_ip(raw):
    return ipaddress.ip_address(raw)


def _parse_hardware_address(raw):
    if re.fullmatch(r"[0-9A-Fa-f]{2}([:-])(?:[0-9A-Fa-f]{2}\1)*[0-9A-Fa-f]{2}", raw):
        octets = bytes.fromhex(raw.replace(raw[2], ""))
    elif re.fullmatch(r"[0-9A-Fa-f]{4}(?:\.[0-9A-Fa-f]{4})*", raw):
        octets = bytes.fromhex(raw.replace(".", ""))
    else:
        raise ValueError("invalid hardware address %r" % raw)
    # EUI-48, EUI-64 and 20-octet IP over InfiniBand link-layer addresses
    if len(octets) not in (6, 8, 20):
        raise ValueError("invalid hardware address %r" % raw)
    return octets


def _parse_ip_mask(raw):
    try:
        return ipaddress.IPv4Address(raw)
    except ipaddress.AddressValueError:
        raise ValueError("invalid ip mask %r" % raw) from None


_PARSERS = {
    FlagKind.STRING: _parse_string,
    FlagKind.BOOL: _parse_bool,
    FlagKind.INT: _signed(64),
    FlagKind.INT8: _signed(8),
    FlagKind.INT16: _signed(16),
    FlagKind.INT32: _signed(32),
    FlagKind.INT64: _signed(64),
    FlagKind.UINT: _unsigned(64),
    FlagKind.UINT8: _unsigned(8),
    FlagKind.UINT16: _unsigned(16),
    FlagKind.UINT32: _unsigned(32),
    FlagKind.UINT64: _unsigned(64),
    FlagKind.FLOAT32: _parse_float32,
    FlagKind.FLOAT64: _parse_float64,
    FlagKind.DURATION: _parse_duration,
    FlagKind.BYTES: _parse_bytes,
    FlagKind.IP: _parse_ip,
    FlagKind.HARDWARE_ADDRESS: _parse_hardware_address,
    FlagKind.IP_MASK: _parse_ip_mask,
}

_TABLE = {}
for _scalar, _parse in _PARSERS.items():
    _TABLE[_scalar] = Coercion(_parse, _scalar is FlagKind.BOOL, False)
    _TABLE[FlagKind[_scalar.name + "_SEQUENCE"]] = Coercion(_parse, _scalar is FlagKind.BOOL, True)
del _scalar, _parse

# every member must have a row
assert _TABLE.keys() == set(FlagKind), "flag kinds and coercion table are out of sync"


__all__ = (
    "FlagKind",
    "Coercion",
)
