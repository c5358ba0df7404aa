"""
Validation runner behavioral tests.

Scope
- Validate the two tiers (per-option, then command-level) and their order.
- Validate outcome normalization (messages, faults, iterables, failures).
- Validate the among() and at_most() validator builders.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from kubepizza import Command, Option, delimited, validate, among, at_most
from kubepizza.faults import (
    BusinessRuleViolationError,
    DelegatedCommandError,
    InvalidValueError,
    MissingRequiredValueError,
    UnknownOptionError,
    ValueNotInAllowedSetError,
)

PIZZAS = ("margherita", "diavola", "capricciosa")
TOPPINGS = ("basil", "mozzarella", "olive", "ham")


def tree(option_validators=(), command_validators=()):
    pizza = Option("--pizza", validators=[among(lambda: PIZZAS, "pizza"), *option_validators])
    size = Option("--size", choices=["small", "medium", "large"], default="medium")
    toppings = Option(
        "--toppings",
        nargs="*",
        tokenizer=delimited(","),
        default_factory=list,
        validators=[among(lambda: TOPPINGS, "topping")],
    )
    create = Command(
        "create",
        options=[pizza, size, toppings],
        validators=[
            at_most(toppings, 3, when=lambda result: result.get(size) == "small", message="too many toppings for a small size (max 3)"),
            *command_validators,
        ],
    )
    return Command("kubepizza", children=[create])


def check(root, prompt):
    result = root.parse(prompt)
    validate(result)
    return result


class TestTiers(TestCase):
    """Behavioral tests for tier order and accumulation."""

    def testKnownPizzaInAnyCasingIsValid(self):
        for pizza in ("margherita", "MARGHERITA", "Margherita"):
            with self.subTest(pizza=pizza):
                self.assertEqual(check(tree(), ["create", "--pizza", pizza]).errors, [])

    def testUnknownPizzaYieldsExactlyOneError(self):
        for pizza in ("hawaiian", "margherit", "pepperoni"):
            with self.subTest(pizza=pizza):
                errors = check(tree(), ["create", "--pizza", pizza]).errors
                self.assertEqual(len(errors), 1)
                self.assertIsInstance(errors[0], ValueNotInAllowedSetError)
                self.assertIn(pizza, str(errors[0]))
                for known in PIZZAS:
                    self.assertIn(known, str(errors[0]))

    def testOneErrorPerInvalidTopping(self):
        errors = check(tree(), "create --pizza diavola --toppings basil,pineapple,olive,corn".split()).errors
        self.assertEqual([error.options["value"] for error in errors], ["pineapple", "corn"])

    def testSmallSizeCapsToppings(self):
        errors = check(tree(), "create --pizza diavola --size small --toppings basil,mozzarella,olive,ham".split()).errors
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], BusinessRuleViolationError)
        self.assertEqual(str(errors[0]), "too many toppings for a small size (max 3)")

    def testSmallSizeRuleIgnoresToppingValidity(self):
        errors = check(tree(), "create --pizza diavola --size small --toppings a,b,c,d".split()).errors
        self.assertEqual(sum(isinstance(error, ValueNotInAllowedSetError) for error in errors), 4)
        self.assertIsInstance(errors[-1], BusinessRuleViolationError)

    def testOtherSizesAreNotCapped(self):
        self.assertEqual(check(tree(), "create --pizza diavola --size large --toppings basil,mozzarella,olive,ham".split()).errors, [])

    def testMissingPizzaAndTooManyToppings(self):
        size = Option("--size", default="medium")
        toppings = Option("--toppings", nargs="*", tokenizer=delimited(","))
        create = Command(
            "create",
            options=[Option("--pizza", required=True), size, toppings],
            validators=[at_most(toppings, 3, when=lambda result: result.get(size) == "small")],
        )
        result = check(Command("kubepizza", children=[create]), "create --size small --toppings a,b,c,d".split())
        self.assertGreaterEqual(len(result.errors), 2)
        self.assertIsInstance(result.errors[0], MissingRequiredValueError)
        self.assertIsInstance(result.errors[-1], BusinessRuleViolationError)

    def testParseErrorsComeFirstAndNothingShortCircuits(self):
        def never(result):
            return "never mind"

        result = check(tree(command_validators=[never]), "create --pizza hawaiian --bogus".split())
        self.assertEqual([type(error) for error in result.errors], [
            UnknownOptionError,
            ValueNotInAllowedSetError,
            BusinessRuleViolationError,
        ])

    def testOptionValidatorsSeeValueAndResult(self):
        seen = []

        def spy(value, result):
            seen.append((value, result.get("size")))

        check(tree(option_validators=[spy]), "create --pizza diavola --size large".split())
        self.assertEqual(seen, [("diavola", "large")])

    def testUnboundOptionsAreNotValidated(self):
        seen = []
        check(tree(option_validators=[seen.append]), ["create"])
        self.assertEqual(seen, [])


class TestOutcomes(TestCase):
    """Behavioral tests for validator outcome handling."""

    def testMessageFromOptionValidator(self):
        def spicy(value, result):
            return "%s is too spicy" % value

        errors = check(tree(option_validators=[spicy]), "create --pizza diavola".split()).errors
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], InvalidValueError)
        self.assertEqual(str(errors[0]), "diavola is too spicy")

    def testGeneratorValidatorsYieldSeveralMessages(self):
        def twice(result):
            yield "first"
            yield ["second", None]

        errors = check(tree(command_validators=[twice]), "create --pizza diavola".split()).errors
        self.assertEqual([str(error) for error in errors], ["first", "second"])

    def testRaisedExceptionIsDelegated(self):
        def broken(result):
            raise RuntimeError("boom")

        def after(result):
            return "still runs"

        errors = check(tree(command_validators=[broken, after]), "create --pizza diavola".split()).errors
        self.assertIsInstance(errors[0], DelegatedCommandError)
        self.assertIn("boom", str(errors[0]))
        self.assertEqual(str(errors[1]), "still runs")

    def testRaisedFaultIsKept(self):
        def strict(result):
            raise BusinessRuleViolationError("closed today")

        errors = check(tree(command_validators=[strict]), "create --pizza diavola".split()).errors
        self.assertIsInstance(errors[0], BusinessRuleViolationError)
        self.assertEqual(str(errors[0]), "closed today")

    def testUnsupportedOutcomeIsDelegated(self):
        errors = check(tree(command_validators=[lambda result: 42]), "create --pizza diavola".split()).errors
        self.assertIsInstance(errors[0], DelegatedCommandError)


class TestBuilders(TestCase):
    """Behavioral tests for among() and at_most()."""

    def testAmongReadsSupplierEveryTime(self):
        allowed = ["basil"]
        validator = among(lambda: allowed, "topping")
        self.assertEqual(len(list(validator("olive", None))), 1)
        allowed.append("olive")
        self.assertEqual(list(validator("OLIVE", None)), [])

    def testAmongArguments(self):
        with self.assertRaises(TypeError):
            among(["basil"], "topping")
        with self.assertRaises(TypeError):
            among(lambda: [], "")

    def testAtMostArguments(self):
        with self.assertRaises(ValueError):
            at_most("--toppings", -1)
        with self.assertRaises(TypeError):
            at_most("--toppings", 3, when=True)

    def testAtMostDefaultMessage(self):
        toppings = Option("--toppings", nargs="*")
        root = Command("kubepizza", options=[toppings], validators=[at_most(toppings, 1)])
        errors = check(root, "--toppings a b".split()).errors
        self.assertEqual(str(errors[0]), "too many values for --toppings (max 1, got 2)")


if __name__ == "__main__":
    unittest.main()
