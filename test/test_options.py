"""
Options module behavioral tests.

Scope
- Validate Option/Flag construction, normalization and derived metadata.
- Validate metadata constraints (names, arity, defaults, choices, callables).
- Validate the boolean converter and the delimited tokenizer.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from kubepizza import Option, Flag, boolean, isboolean, delimited, HELP, VERSION
from kubepizza.utils import Unset


class TestOption(TestCase):
    """Behavioral tests for Option definitions."""

    def testOptionNamesKeepDeclarationOrder(self):
        o = Option("-o", "--output")
        self.assertEqual(o.names, ("-o", "--output"))

    def testOptionLongestNameLeads(self):
        o = Option("-o", "--output")
        self.assertEqual(o.name, "--output")
        self.assertEqual(o.dest, "output")

    def testOptionDestReplacesInnerDashes(self):
        self.assertEqual(Option("--in-stock").dest, "in_stock")

    def testOptionGroupPluralDefault(self):
        self.assertEqual(Option("--size").group, "options")
        self.assertEqual(Flag("--delivery").group, "flags")

    def testOptionGroupEmptyRejected(self):
        with self.assertRaises(ValueError):
            Option("--size", group="  ")

    def testOptionDescrDefaultsToNone(self):
        self.assertIsNone(Option("--size").descr)

    def testOptionRequiresAName(self):
        with self.assertRaises(TypeError):
            Option()

    def testOptionInvalidNamesRejected(self):
        for name in ("size", "---size", "--1size", "--size-", "-"):
            with self.subTest(name=name), self.assertRaises(ValueError):
                Option(name)

    def testOptionDuplicateNamesRejected(self):
        with self.assertRaises(ValueError):
            Option("--size", "--size")

    def testOptionNargsRestricted(self):
        with self.assertRaises(ValueError):
            Option("--toppings", nargs="+")
        with self.assertRaises(TypeError):
            Option("--toppings", nargs=2)

    def testOptionMultipleFollowsNargs(self):
        self.assertTrue(Option("--toppings", nargs="*").multiple)
        self.assertFalse(Option("--size", nargs="?").multiple)
        self.assertFalse(Option("--size").multiple)

    def testOptionDefaultAndFactoryAreExclusive(self):
        with self.assertRaises(TypeError):
            Option("--toppings", default=[], default_factory=list)

    def testOptionDefaultFactoryMustBeCallable(self):
        with self.assertRaises(TypeError):
            Option("--toppings", default_factory=[])

    def testOptionDefaultStaysUnsetWhenOmitted(self):
        o = Option("--size")
        self.assertIs(o.default, Unset)
        self.assertIs(o.default_factory, Unset)

    def testOptionNoneIsALegitimateDefault(self):
        self.assertIsNone(Option("--size", default=None).default)

    def testOptionTypeMustBeCallable(self):
        with self.assertRaises(TypeError):
            Option("--count", type="int")

    def testOptionChoicesBecomeTuple(self):
        o = Option("--size", choices=["small", "medium", "large"])
        self.assertEqual(o.choices, ("small", "medium", "large"))

    def testOptionChoicesRejectCaseInsensitiveDuplicates(self):
        with self.assertRaises(ValueError):
            Option("--size", choices=["small", "SMALL"])

    def testOptionChoicesMustNotBeAString(self):
        with self.assertRaises(TypeError):
            Option("--size", choices="sml")

    def testOptionMetavarAndChoicesConflict(self):
        with self.assertRaises(TypeError):
            Option("--size", metavar="size", choices=["small"])

    def testOptionDefaultMustBelongToChoices(self):
        with self.assertRaises(ValueError):
            Option("--size", choices=["small", "medium"], default="huge")

    def testOptionDefaultMatchesChoicesCaseInsensitively(self):
        self.assertEqual(Option("--size", choices=["small", "medium"], default="MEDIUM").default, "MEDIUM")

    def testOptionValidatorsMustBeCallables(self):
        with self.assertRaises(TypeError):
            Option("--pizza", validators=["margherita"])

    def testOptionCompletionsMustBeCallables(self):
        with self.assertRaises(TypeError):
            Option("--pizza", completions=[1])

    def testOptionTokenizerMustBeCallable(self):
        with self.assertRaises(TypeError):
            Option("--toppings", tokenizer=",")

    def testOptionMetadataIsReadOnly(self):
        o = Option("--size")
        with self.assertRaises(AttributeError):
            o.name = "--other"

    def testOptionReprUsesTypename(self):
        self.assertTrue(repr(Option("--size")).startswith("option("))
        self.assertTrue(repr(Flag("--delivery")).startswith("flag("))


class TestFlag(TestCase):
    """Behavioral tests for Flag definitions."""

    def testFlagIsBooleanAndOptional(self):
        f = Flag("--delivery")
        self.assertTrue(f.flag)
        self.assertEqual(f.nargs, "?")
        self.assertIs(f.type, boolean)
        self.assertFalse(f.required)

    def testFlagDefault(self):
        self.assertIs(Flag("--delivery", default=False).default, False)

    def testBuiltinFlags(self):
        self.assertEqual(HELP.names, ("-h", "--help"))
        self.assertEqual(HELP.dest, "help")
        self.assertEqual(VERSION.dest, "version")


class TestConverters(TestCase):
    """Behavioral tests for boolean() and delimited()."""

    def testBooleanLiterals(self):
        for literal in ("true", "YES", "On", "1"):
            with self.subTest(literal=literal):
                self.assertIs(boolean(literal), True)
        for literal in ("false", "No", "OFF", "0"):
            with self.subTest(literal=literal):
                self.assertIs(boolean(literal), False)

    def testBooleanRejectsOtherValues(self):
        with self.assertRaises(ValueError):
            boolean("maybe")

    def testIsBoolean(self):
        self.assertTrue(isboolean("False"))
        self.assertFalse(isboolean("order"))

    def testDelimitedSplitsAndTrims(self):
        tokenizer = delimited(",")
        self.assertEqual(tokenizer(["basil, mozzarella", "olive"]), ["basil", "mozzarella", "olive"])

    def testDelimitedDropsEmptyPieces(self):
        self.assertEqual(delimited(",")(["basil,,", " , olive"]), ["basil", "olive"])

    def testDelimitedExposesSeparator(self):
        self.assertEqual(delimited(";").separator, ";")

    def testDelimitedRejectsEmptySeparator(self):
        with self.assertRaises(TypeError):
            delimited("")


if __name__ == "__main__":
    unittest.main()
