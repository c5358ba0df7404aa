"""
The kubepizza command tree.

    kubepizza [-o {table,json,yaml}]
    ├── order (o)
    │   ├── create --pizza <name> [--size {small,medium,large}] [--toppings <topping> ...] [--delivery]
    │   └── list [--status {all,open,preparing,delivered,cancelled}]
    └── topping (t)
        ├── add --name <topping>
        └── list [--in-stock]

build() wires a PizzaCatalog into validators, completion sources and actions;
nothing is global, so tests build a fresh tree per case.
"""
import logging

import yaml
from rich.box import ROUNDED
from rich.table import Table

from . import __version__
from .catalog import SIZES, STATUSES, PizzaCatalog
from .commands import Command
from .config import Settings
from .options import Flag, Option, delimited
from .utils import Unset
from .validation import among, at_most

log = logging.getLogger(__name__)

DESCRIPTION = "kubepizza — manage your pizza orders like a pro"

SMALL_PIZZA_LIMIT = 3


def _render(console, output, rows, columns):
    """
    Print 'rows' (mappings, or a single mapping) as a table, JSON or YAML.
    """
    match output:
        case "json":
            console.print_json(data=rows)
        case "yaml":
            console.print(
                yaml.safe_dump(rows, sort_keys=False, default_flow_style=False).rstrip(),
                markup=False,
                highlight=False,
            )
        case _:
            table = Table(*columns, box=ROUNDED)
            if isinstance(rows, dict):
                for key, value in rows.items():
                    table.add_row(key, str(value))
            else:
                for row in rows:
                    table.add_row(*(str(row[column]) for column in columns))
            console.print(table)


def build(catalog=None, /, *, console=Unset, settings=None, shell=False):
    """
    Build the kubepizza command tree.

    Parameters
    - catalog: PizzaCatalog backing validators, completion and actions.
    - console: rich Console shared by help and action output.
    - settings: Settings (send delay, fancy, colorful).
    - shell: render faults and exit with status 1 instead of raising.

    Returns the root Command.
    """
    catalog = catalog if catalog is not None else PizzaCatalog()
    settings = settings if settings is not None else Settings()

    # ── order create ─────────────────────────────────────────────────────────

    def pizzas(context):
        return catalog.pizzas

    pizza = Option(
        "--pizza",
        metavar="name",
        required=True,
        validators=[among(lambda: catalog.pizzas, "pizza")],
        completions=[pizzas],
        descr="the pizza to order",
    )

    size = Option(
        "--size",
        choices=SIZES,
        default="medium",
        descr="pizza size",
    )

    def recommended(context):
        return catalog.recommended(context.result.get(pizza))

    toppings = Option(
        "--toppings",
        metavar="topping",
        nargs="*",
        tokenizer=delimited(","),
        default_factory=list,
        validators=[among(lambda: catalog.toppings, "topping")],
        completions=[recommended],
        descr="extra toppings, comma separated or repeated",
    )

    delivery = Flag(
        "--delivery",
        default=False,
        descr="deliver the order instead of picking it up",
    )

    def create(pizza, size, toppings, delivery, output, cancel, console):
        log.info("sending order for %s (%s)", pizza, size)
        with console.status("sending order to server...", spinner="dots"):
            if cancel.wait(settings.delay):
                log.warning("order for %s cancelled", pizza)
                console.print("order cancelled.")
                return

        summary = {"pizza": pizza, "size": size, "toppings": list(toppings), "delivery": delivery}
        if output == "table":
            summary |= {"toppings": ", ".join(toppings) or "(none)", "delivery": "yes" if delivery else "no"}
        _render(console, output, summary, ("field", "value"))
        console.print("order placed successfully!")

    order_create = Command(
        "create",
        "create a new pizza order",
        options=[pizza, size, toppings, delivery],
        validators=[at_most(
            toppings,
            SMALL_PIZZA_LIMIT,
            when=lambda result: result.get(size) == "small",
            message="too many toppings for a small size (max %d)" % SMALL_PIZZA_LIMIT,
        )],
        action=create,
        examples=[
            "kubepizza order create --pizza margherita --size large --toppings basil,mozzarella",
            "kubepizza order create --pizza vegetariana --toppings mushrooms,peppers",
        ],
    )

    # ── order list ───────────────────────────────────────────────────────────

    status = Option(
        "--status",
        choices=("all", *STATUSES),
        default="all",
        descr="only show orders with this status",
    )

    def listing(status, output, console):
        orders = [order._asdict() for order in catalog.orders(status)]
        log.debug("listing %d orders (status=%s)", len(orders), status)
        _render(console, output, orders, ("id", "pizza", "size", "status"))

    order_list = Command(
        "list",
        "list pizza orders",
        options=[status],
        action=listing,
        examples=[
            "kubepizza order list --status preparing --output yaml",
            "kubepizza order list --status all --output table",
        ],
    )

    order = Command(
        "order",
        "manage pizza orders",
        aliases=["o"],
        children=[order_create, order_list],
        examples=[
            "kubepizza order create --pizza diavola --size medium",
            "kubepizza order list --status delivered",
        ],
    )

    # ── topping ──────────────────────────────────────────────────────────────

    def missing(context):
        return [topping for topping in catalog.toppings if not catalog.available(topping)]

    name = Option(
        "--name",
        metavar="topping",
        required=True,
        validators=[among(lambda: catalog.toppings, "topping")],
        completions=[missing],
        descr="the topping to put back in stock",
    )

    def add(name, output, console):
        topping = catalog.topping(name)
        added = catalog.stock(topping)
        _render(console, output, {"topping": topping, "added": added}, ("field", "value"))

    stocked = Flag(
        "--in-stock",
        default=False,
        descr="only show toppings currently in stock",
    )

    def toppings_listing(in_stock, output, console):
        rows = [
            {"topping": topping, "available": catalog.available(topping)}
            for topping in catalog.toppings
            if not in_stock or catalog.available(topping)
        ]
        _render(console, output, rows, ("topping", "available"))

    topping = Command(
        "topping",
        "manage the topping inventory",
        aliases=["t"],
        children=[
            Command("add", "put a topping back in stock", options=[name], action=add),
            Command("list", "list known toppings", options=[stocked], action=toppings_listing),
        ],
        examples=[
            "kubepizza topping list --in-stock",
            "kubepizza topping add --name bufala",
        ],
    )

    # ── root ─────────────────────────────────────────────────────────────────

    output = Option(
        "-o", "--output",
        choices=("table", "json", "yaml"),
        default="table",
        descr="output format",
    )

    return Command(
        "kubepizza",
        DESCRIPTION,
        options=[output],
        children=[order, topping],
        examples=[
            "kubepizza --help",
            "kubepizza order --help",
            "kubepizza order create --pizza margherita --size large --toppings basil,mozzarella",
            "kubepizza order list --status open --output json",
        ],
        version=__version__,
        console=console,
        shell=shell,
        fancy=settings.fancy,
        colorful=settings.colorful,
    )


__all__ = (
    "build",
    "DESCRIPTION",
)
