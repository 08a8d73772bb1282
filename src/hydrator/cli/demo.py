"""
Demo object graph for ``hydrator demo``.

An ``Order`` knows only its customer id; its lines come from a method and
every line knows only a SKU. Hydrating the order fills in the customer
(finder on ``customer_id``), the lines (method ``load_lines``) and each
line's product (finder on ``sku``), the products concurrently.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from pydantic import BaseModel

from hydrator.execution.engine import Hydrator
from hydrator.execution.registry import ResolverRegistry

CUSTOMERS = {
    7: ("Ada Lovelace", "ada@example.com"),
    8: ("Grace Hopper", "grace@example.com"),
}

PRODUCTS = {
    "KB-01": ("Mechanical keyboard", 12900),
    "MS-02": ("Wireless mouse", 4900),
    "MN-27": ("27in monitor", 31900),
}

ORDER_LINES = {
    1001: [("KB-01", 1), ("MS-02", 2), ("MN-27", 1)],
}

LATENCY = 0.01


@dataclass
class Customer:
    id: int
    name: str
    email: str


class Product(BaseModel):
    sku: str
    title: str
    price_cents: int


@dataclass
class LineItem:
    sku: str
    quantity: int
    product: Product | None = field(default=None, metadata={"hydrate": "sku"})


@dataclass
class Order:
    id: int
    customer_id: int
    customer: Customer | None = field(default=None, metadata={"hydrate": "customer_id"})
    lines: list[LineItem] = field(default_factory=list, metadata={"hydrate": "load_lines"})

    async def load_lines(self, order: Order) -> list[LineItem]:
        await asyncio.sleep(LATENCY)
        return [LineItem(sku=sku, quantity=quantity) for sku, quantity in ORDER_LINES.get(order.id, [])]


async def find_customer(customer_id: int) -> Customer | None:
    await asyncio.sleep(LATENCY)
    if customer_id not in CUSTOMERS:
        return None
    name, email = CUSTOMERS[customer_id]
    return Customer(id=customer_id, name=name, email=email)


async def find_product(sku: str) -> Product | None:
    await asyncio.sleep(LATENCY)
    if sku not in PRODUCTS:
        return None
    title, price = PRODUCTS[sku]
    return Product(sku=sku, title=title, price_cents=price)


def build_hydrator(concurrency: int | None = None, *, fail: bool = False) -> Hydrator:
    """A hydrator over a private registry holding the demo resolvers.

    With ``fail`` the product resolver refuses ``MS-02`` and the customer
    resolver is down, so the demo ends with an aggregated error.
    """
    registry = ResolverRegistry()
    hydrator = Hydrator(concurrency_limit=concurrency, registry=registry)

    if not fail:
        hydrator.register(Customer, find_customer, description="Customer by id")
        hydrator.register(Product, find_product, description="Product by SKU")
        return hydrator

    async def customer_service_down(customer_id: int) -> Customer:
        raise ConnectionError(f"customer service unavailable (id={customer_id})")

    async def find_product_or_refuse(sku: str) -> Product | None:
        if sku == "MS-02":
            raise LookupError(f"product {sku} is discontinued")
        return await find_product(sku)

    hydrator.register(Customer, customer_service_down, description="Customer by id (down)")
    hydrator.register(Product, find_product_or_refuse, description="Product by SKU (refuses MS-02)")
    return hydrator


def sample_order() -> Order:
    return Order(id=1001, customer_id=7)
