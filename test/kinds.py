"""
Kinds module behavioral tests (value coercion).

Scope
- Validate every grammar of the coercion table: integers, floats, bools, durations,
  bytes, ip addresses, hardware addresses and ip masks.
- Validate the scalar/sequence/boolean classification of FlagKind members.

Conventions
- Test method names follow CamelCase per project convention.
- Bad input must raise ValueError (Flag.assign wraps it into a CoercionError).
"""

from __future__ import annotations

import ipaddress
import math
import unittest
from datetime import timedelta
from unittest import TestCase

from flagtree import FlagKind


class TestIntegerKinds(TestCase):
    """Signed/unsigned integers bounded by their bit width."""

    def testSignedAcceptsSign(self):
        self.assertEqual(FlagKind.INT8.parse("-128"), -128)
        self.assertEqual(FlagKind.INT8.parse("+127"), 127)

    def testSignedOutOfRange(self):
        with self.assertRaises(ValueError):
            FlagKind.INT8.parse("300")
        with self.assertRaises(ValueError):
            FlagKind.INT16.parse("-32769")

    def testIntIsSixtyFourBits(self):
        self.assertEqual(FlagKind.INT.parse("9223372036854775807"), 2 ** 63 - 1)
        with self.assertRaises(ValueError):
            FlagKind.INT.parse("9223372036854775808")

    def testUnsignedRejectsSign(self):
        with self.assertRaises(ValueError):
            FlagKind.UINT8.parse("-1")
        with self.assertRaises(ValueError):
            FlagKind.UINT.parse("+1")

    def testUnsignedBounds(self):
        self.assertEqual(FlagKind.UINT8.parse("255"), 255)
        with self.assertRaises(ValueError):
            FlagKind.UINT8.parse("256")
        self.assertEqual(FlagKind.UINT64.parse("18446744073709551615"), 2 ** 64 - 1)

    def testIntegersAreBaseTen(self):
        for raw in ("0x10", "1_000", " 1", "", "1.0"):
            with self.subTest(raw=raw), self.assertRaises(ValueError):
                FlagKind.INT.parse(raw)


class TestFloatKinds(TestCase):
    """Decimal/scientific literals with single-precision rounding for FLOAT32."""

    def testFloat64Literals(self):
        self.assertEqual(FlagKind.FLOAT64.parse("1.5"), 1.5)
        self.assertEqual(FlagKind.FLOAT64.parse("-2e3"), -2000.0)
        self.assertTrue(math.isinf(FlagKind.FLOAT64.parse("inf")))
        self.assertTrue(math.isnan(FlagKind.FLOAT64.parse("nan")))

    def testFloat64RejectsLaxForms(self):
        for raw in (" 1.5", "1_0.5", "", "abc"):
            with self.subTest(raw=raw), self.assertRaises(ValueError):
                FlagKind.FLOAT64.parse(raw)

    def testFloat32IsRounded(self):
        value = FlagKind.FLOAT32.parse("0.1")
        self.assertNotEqual(value, 0.1)
        self.assertAlmostEqual(value, 0.1, places=7)

    def testFloat32OutOfRange(self):
        with self.assertRaises(ValueError):
            FlagKind.FLOAT32.parse("1e39")


class TestBoolKind(TestCase):
    """The fixed true/false spellings."""

    def testTruths(self):
        for raw in ("1", "t", "T", "TRUE", "true", "True"):
            with self.subTest(raw=raw):
                self.assertIs(FlagKind.BOOL.parse(raw), True)

    def testFalses(self):
        for raw in ("0", "f", "F", "FALSE", "false", "False"):
            with self.subTest(raw=raw):
                self.assertIs(FlagKind.BOOL.parse(raw), False)

    def testOtherSpellingsRejected(self):
        for raw in ("yes", "no", "tRUE", ""):
            with self.subTest(raw=raw), self.assertRaises(ValueError):
                FlagKind.BOOL.parse(raw)


class TestDurationKind(TestCase):
    """Sequences of <decimal><unit> with an optional sign."""

    def testCompound(self):
        self.assertEqual(FlagKind.DURATION.parse("1h50m"), timedelta(hours=1, minutes=50))
        self.assertEqual(FlagKind.DURATION.parse("2h45m30.5s"), timedelta(hours=2, minutes=45, seconds=30.5))

    def testSignedFraction(self):
        self.assertEqual(FlagKind.DURATION.parse("-1.5s"), timedelta(seconds=-1.5))

    def testSmallUnits(self):
        self.assertEqual(FlagKind.DURATION.parse("300ms"), timedelta(milliseconds=300))
        self.assertEqual(FlagKind.DURATION.parse("1us"), timedelta(microseconds=1))
        self.assertEqual(FlagKind.DURATION.parse("1µs"), timedelta(microseconds=1))
        self.assertEqual(FlagKind.DURATION.parse("1500ns"), timedelta(microseconds=1))

    def testBareZero(self):
        self.assertEqual(FlagKind.DURATION.parse("0"), timedelta(0))

    def testMissingUnitRejected(self):
        for raw in ("1", "h", "1d", "", "1h 2m"):
            with self.subTest(raw=raw), self.assertRaises(ValueError):
                FlagKind.DURATION.parse(raw)


class TestAddressKinds(TestCase):
    """Bytes, ip addresses, hardware addresses and ip masks."""

    def testBytes(self):
        self.assertEqual(FlagKind.BYTES.parse("deadbeef"), b"\xde\xad\xbe\xef")
        for raw in ("abc", "zz"):
            with self.subTest(raw=raw), self.assertRaises(ValueError):
                FlagKind.BYTES.parse(raw)

    def testIp(self):
        self.assertEqual(FlagKind.IP.parse("192.168.0.1"), ipaddress.IPv4Address("192.168.0.1"))
        self.assertEqual(FlagKind.IP.parse("::1"), ipaddress.IPv6Address("::1"))
        with self.assertRaises(ValueError):
            FlagKind.IP.parse("300.1.1.1")

    def testHardwareAddress(self):
        expected = bytes.fromhex("00005e005301")
        self.assertEqual(FlagKind.HARDWARE_ADDRESS.parse("00:00:5e:00:53:01"), expected)
        self.assertEqual(FlagKind.HARDWARE_ADDRESS.parse("00-00-5e-00-53-01"), expected)
        self.assertEqual(FlagKind.HARDWARE_ADDRESS.parse("0000.5e00.5301"), expected)
        self.assertEqual(len(FlagKind.HARDWARE_ADDRESS.parse("02:00:5e:10:00:00:00:01")), 8)

    def testHardwareAddressRejected(self):
        for raw in ("00:00:5e", "00:00-5e:00:53:01", "00005e005301"):
            with self.subTest(raw=raw), self.assertRaises(ValueError):
                FlagKind.HARDWARE_ADDRESS.parse(raw)

    def testIpMask(self):
        self.assertEqual(FlagKind.IP_MASK.parse("255.255.255.0"), ipaddress.IPv4Address("255.255.255.0"))
        with self.assertRaises(ValueError):
            FlagKind.IP_MASK.parse("::1")


class TestKindClassification(TestCase):
    """Scalar/sequence/boolean traits of the enumeration."""

    def testEveryScalarHasASequence(self):
        for kind in FlagKind:
            with self.subTest(kind=kind):
                self.assertIs(kind.element.sequence, False)
                self.assertIs(kind.sequence, kind is not kind.element)

    def testBooleanKinds(self):
        self.assertEqual({kind for kind in FlagKind if kind.boolean}, {FlagKind.BOOL, FlagKind.BOOL_SEQUENCE})

    def testSequenceSharesScalarGrammar(self):
        self.assertEqual(FlagKind.INT8_SEQUENCE.parse("7"), 7)
        self.assertIs(FlagKind.INT8_SEQUENCE.element, FlagKind.INT8)

    def testParseRequiresString(self):
        with self.assertRaises(TypeError):
            FlagKind.INT.parse(1)


if __name__ == "__main__":
    unittest.main()
