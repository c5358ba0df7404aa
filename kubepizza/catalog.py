"""
In-memory pizza catalog consumed by validators, completion and actions.

- pizzas / toppings: known names (membership is case-insensitive).
- recommended(pizza): the pizza's suggested toppings; every known topping for
  a pizza without recommendations (or an unknown one).
- inventory: toppings currently in stock; stock() adds one (single writer,
  one invocation at a time).
- orders(status): demo orders, filtered by status.
"""
import logging
from types import MappingProxyType
from typing import NamedTuple

from .utils import fold, unique

log = logging.getLogger(__name__)

PIZZAS = (
    "margherita",
    "diavola",
    "capricciosa",
    "quattroformaggi",
    "vegetariana",
)

TOPPINGS = (
    "basil",
    "mozzarella",
    "bufala",
    "olive",
    "mushrooms",
    "onions",
    "peppers",
    "anchovies",
    "artichokes",
    "ham",
    "salami",
    "chili",
)

RECOMMENDATIONS = {
    "margherita": ("basil", "mozzarella", "bufala"),
    "diavola": ("mozzarella", "chili", "onions"),
    "capricciosa": ("artichokes", "ham", "mushrooms", "olive"),
    "quattroformaggi": ("mozzarella", "bufala"),
    "vegetariana": ("mushrooms", "peppers", "onions", "olive"),
}

INVENTORY = (
    "basil",
    "mozzarella",
    "olive",
    "mushrooms",
    "onions",
    "salami",
)

SIZES = ("small", "medium", "large")

STATUSES = ("open", "preparing", "delivered", "cancelled")


class Order(NamedTuple):
    id: int
    pizza: str
    size: str
    status: str


ORDERS = (
    Order(101, "margherita", "large", "delivered"),
    Order(102, "diavola", "medium", "preparing"),
    Order(103, "capricciosa", "small", "open"),
    Order(104, "vegetariana", "large", "cancelled"),
)


class PizzaCatalog:
    """
    Known pizzas and toppings, their recommendations, stock and demo orders.

    Raises ValueError when recommendations or inventory mention unknown
    names, or when an order refers to an unknown pizza, size or status.
    """

    def __init__(
            self,
            pizzas=PIZZAS,
            toppings=TOPPINGS,
            recommendations=RECOMMENDATIONS,
            inventory=INVENTORY,
            orders=ORDERS
    ):
        self._pizzas = tuple(unique(pizzas))
        self._toppings = tuple(unique(toppings))

        known = set(map(fold, self._toppings))
        self._recommendations = {}
        for pizza, recommended in recommendations.items():
            if not self.known(pizza):
                raise ValueError(f"recommendations refer to unknown pizza {pizza!r}")
            for topping in recommended:
                if fold(topping) not in known:
                    raise ValueError(f"recommendations for {pizza!r} refer to unknown topping {topping!r}")
            self._recommendations[fold(pizza)] = tuple(unique(recommended))

        for topping in inventory:
            if fold(topping) not in known:
                raise ValueError(f"inventory refers to unknown topping {topping!r}")
        self._inventory = unique(inventory)

        for order in orders:
            if not self.known(order.pizza) or order.size not in SIZES or order.status not in STATUSES:
                raise ValueError(f"invalid order {order!r}")
        self._orders = tuple(orders)

    def __repr__(self):
        return "pizza-catalog(pizzas=%d, toppings=%d, inventory=%d)" % (
            len(self._pizzas), len(self._toppings), len(self._inventory)
        )

    @property
    def pizzas(self):
        return self._pizzas

    @property
    def toppings(self):
        return self._toppings

    @property
    def recommendations(self):
        return MappingProxyType(self._recommendations)

    @property
    def inventory(self):
        return tuple(self._inventory)

    def known(self, pizza, /):
        return fold(pizza) in map(fold, self._pizzas)

    def topping(self, name, /):
        """
        Return the catalog spelling of a known topping, or None.
        """
        for topping in self._toppings:
            if fold(topping) == fold(name):
                return topping
        return None

    def recommended(self, pizza=None, /):
        """
        Recommended toppings for 'pizza'; all known toppings when it has none.
        """
        if pizza is None:
            return self._toppings
        return self._recommendations.get(fold(pizza), self._toppings)

    def available(self, name, /):
        return fold(name) in map(fold, self._inventory)

    def stock(self, name, /):
        """
        Add a known topping to the inventory; returns False when already stocked.

        Raises ValueError for unknown toppings.
        """
        if (topping := self.topping(name)) is None:
            raise ValueError(f"unknown topping {name!r}")
        if self.available(topping):
            return False
        self._inventory.append(topping)
        log.info("stocked %s", topping)
        return True

    def orders(self, status="all", /):
        """
        Demo orders with the given status ('all' for every order).
        """
        if fold(status) == "all":
            return self._orders
        return tuple(order for order in self._orders if order.status == fold(status))


__all__ = (
    "PizzaCatalog",
    "Order",
    "PIZZAS",
    "TOPPINGS",
    "RECOMMENDATIONS",
    "INVENTORY",
    "ORDERS",
    "SIZES",
    "STATUSES",
)
