"""
Application behavioral tests (the kubepizza tree end to end).

Scope
- Validate the order/topping commands through Command.run().
- Validate output formats (table, JSON, YAML), help, version and cancellation.
- Validate the console entry point (exit codes, [suggest] directive).

Conventions
- Test method names follow CamelCase per project convention.
- The send delay is zeroed; output is captured through a StringIO-backed Console.
"""

from __future__ import annotations

import contextlib
import io
import json
import os
import threading
import unittest
from unittest import TestCase, mock

import yaml
from rich.console import Console

from kubepizza import build, PizzaCatalog, __version__
from kubepizza.__main__ import Cancellation, main
from kubepizza.config import Settings
from kubepizza.faults import CommandExit, BusinessRuleViolationError, MissingRequiredValueError


class Interrupted(Cancellation):
    """Cancel event already set, as after an early Ctrl-C."""

    def __init__(self):
        super().__init__()
        self.set()


class TestApplication(TestCase):
    """Behavioral tests for the kubepizza command tree."""

    def setUp(self):
        self.catalog = PizzaCatalog()
        self.console = Console(file=io.StringIO(), width=120, color_system=None)
        self.root = build(self.catalog, console=self.console, settings=Settings(delay=0.0, colorful=False))

    def output(self):
        return self.console.file.getvalue()

    def testRootDescription(self):
        self.assertEqual(self.root.descr, "kubepizza — manage your pizza orders like a pro")

    def testTreeShape(self):
        self.assertEqual([command.route for command in self.root.walk()], [
            "kubepizza",
            "kubepizza order",
            "kubepizza order create",
            "kubepizza order list",
            "kubepizza topping",
            "kubepizza topping add",
            "kubepizza topping list",
        ])
        self.assertEqual(self.root.find("order").aliases, ("o",))
        self.assertEqual(self.root.find("topping").aliases, ("t",))

    def testEndToEndParse(self):
        result = self.root.parse("order create --pizza diavola --size large --toppings mozzarella,chili --output json")
        self.assertEqual(result.errors, [])
        self.assertEqual(result.namespace(), {
            "pizza": "diavola",
            "size": "large",
            "toppings": ["mozzarella", "chili"],
            "delivery": False,
            "output": "json",
        })

    def testSizeDefaultsToMedium(self):
        self.assertEqual(self.root.parse("order create --pizza diavola")["size"], "medium")

    def testCreateOrder(self):
        self.assertEqual(self.root.run("o create --pizza Margherita --toppings basil --delivery"), 0)
        output = self.output()
        self.assertIn("Margherita", output)
        self.assertIn("basil", output)
        self.assertIn("order placed successfully!", output)

    def testCreateOrderWithoutToppings(self):
        self.root.run("order create --pizza diavola")
        self.assertIn("(none)", self.output())

    def testCreateOrderAsJson(self):
        self.root.run("order create --pizza diavola --toppings mozzarella,chili -o json")
        head, _, _ = self.output().partition("order placed")
        summary = json.loads(head[:head.rindex("}") + 1])
        self.assertEqual(summary, {"pizza": "diavola", "size": "medium", "toppings": ["mozzarella", "chili"], "delivery": False})

    def testCancelledOrder(self):
        cancel = threading.Event()
        cancel.set()
        root = build(self.catalog, console=self.console, settings=Settings(delay=30.0, colorful=False))
        self.assertEqual(root.run("order create --pizza diavola --size large", cancel=cancel), 0)
        output = self.output()
        self.assertIn("order cancelled.", output)
        self.assertNotIn("order placed successfully!", output)
        self.assertNotIn("diavola", output)
        self.assertNotIn("large", output)

    def testMissingPizzaAndTooManyToppings(self):
        with self.assertRaises(CommandExit) as context:
            self.root.run("order create --size small --toppings a,b,c,d")
        errors = context.exception.exceptions
        self.assertGreaterEqual(len(errors), 2)
        self.assertTrue(any(isinstance(error, MissingRequiredValueError) for error in errors))
        self.assertTrue(any(isinstance(error, BusinessRuleViolationError) for error in errors))
        self.assertIn("too many toppings for a small size (max 3)", context.exception.messages)
        self.assertNotIn("order placed", self.output())

    def testUnknownSubcommand(self):
        with self.assertRaises(CommandExit) as context:
            self.root.run("order bogus")
        self.assertIn("bogus", context.exception.messages[0])

    def testListOrdersAsJson(self):
        self.assertEqual(self.root.run("order list --status open --output json"), 0)
        self.assertEqual(json.loads(self.output()), [{"id": 103, "pizza": "capricciosa", "size": "small", "status": "open"}])

    def testListOrdersAsYaml(self):
        self.root.run("order list --status preparing --output yaml")
        self.assertEqual(yaml.safe_load(self.output()), [{"id": 102, "pizza": "diavola", "size": "medium", "status": "preparing"}])

    def testListOrdersAsTable(self):
        self.root.run("order list")
        output = self.output()
        for pizza in ("margherita", "diavola", "capricciosa", "vegetariana"):
            self.assertIn(pizza, output)

    def testStatusIsRestricted(self):
        with self.assertRaises(CommandExit):
            self.root.run("order list --status lost")

    def testAddTopping(self):
        self.assertFalse(self.catalog.available("ham"))
        self.root.run("topping add --name HAM -o json")
        self.assertTrue(self.catalog.available("ham"))
        self.assertEqual(json.loads(self.output()), {"topping": "ham", "added": True})

    def testAddUnknownTopping(self):
        with self.assertRaises(CommandExit):
            self.root.run("t add --name pineapple")

    def testListToppings(self):
        self.root.run("topping list --in-stock --output json")
        rows = json.loads(self.output())
        self.assertEqual([row["topping"] for row in rows], list(self.catalog.inventory))

    def testHelpShowsCuratedExamples(self):
        self.assertEqual(self.root.run("order create --help"), 0)
        output = self.output()
        self.assertIn("kubepizza order create --pizza margherita --size large --toppings basil,mozzarella", output)
        self.assertIn("kubepizza order create --pizza vegetariana --toppings mushrooms,peppers", output)

    def testRootHelp(self):
        self.assertEqual(self.root.run("--help"), 0)
        output = self.output()
        self.assertIn("manage your pizza orders like a pro", output)
        self.assertIn("order, o", output)
        self.assertIn("topping, t", output)

    def testVersion(self):
        self.assertEqual(self.root.run("--version"), 0)
        self.assertIn(__version__, self.output())


class TestEntryPoint(TestCase):
    """Behavioral tests for the console entry point."""

    def run_main(self, *argv, **environ):
        stdout = io.StringIO()
        with mock.patch.dict(os.environ, {"KUBEPIZZA_SEND_DELAY": "0", "NO_COLOR": "1", **environ}):
            with contextlib.redirect_stdout(stdout):
                try:
                    status = main(list(argv))
                except SystemExit as exit:
                    status = exit.code
        return status, stdout.getvalue()

    def testSuggestDirective(self):
        status, output = self.run_main("[suggest]", "order", "create", "--pizza", "ma")
        self.assertEqual(status, 0)
        self.assertEqual(output.split(), ["margherita", "quattroformaggi"])

    def testSuggestSubcommands(self):
        status, output = self.run_main("[suggest]", "")
        self.assertEqual(output.split(), ["order", "topping"])

    def testSuccessfulRun(self):
        status, output = self.run_main("order", "list", "--output", "json")
        self.assertEqual(status, 0)
        self.assertEqual(len(json.loads(output)), 4)

    def testFailingRunExitsWithOne(self):
        status, _ = self.run_main("order", "create", "--size", "small")
        self.assertEqual(status, 1)

    def testInvalidSettingsExitWithOne(self):
        status, _ = self.run_main("order", "list", KUBEPIZZA_SEND_DELAY="soon")
        self.assertEqual(status, 1)

    def testInterruptedOrderExitsWith130(self):
        with mock.patch("kubepizza.__main__.Cancellation", Interrupted):
            status, output = self.run_main("order", "create", "--pizza", "diavola")
        self.assertEqual(status, 130)
        self.assertNotIn("order placed successfully!", output)

    def testInterruptNotSeenByActionKeepsStatus(self):
        with mock.patch("kubepizza.__main__.Cancellation", Interrupted):
            status, output = self.run_main("order", "list", "--output", "json")
        self.assertEqual(status, 0)
        self.assertEqual(len(json.loads(output)), 4)

    def testRunsOutsideTheMainThread(self):
        outcome = []
        worker = threading.Thread(target=lambda: outcome.append(self.run_main("order", "list", "--output", "json")))
        worker.start()
        worker.join()
        status, output = outcome[0]
        self.assertEqual(status, 0)
        self.assertEqual(len(json.loads(output)), 4)


class TestCancellation(TestCase):
    """Behavioral tests for the entry point cancel event."""

    def testObservedOnlyThroughWait(self):
        cancel = Cancellation()
        cancel.set()
        self.assertFalse(cancel.observed)
        self.assertTrue(cancel.wait(0))
        self.assertTrue(cancel.observed)

    def testTimeoutIsNotObserved(self):
        cancel = Cancellation()
        self.assertFalse(cancel.wait(0))
        self.assertFalse(cancel.observed)


if __name__ == "__main__":
    unittest.main()
