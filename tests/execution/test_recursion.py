"""Tests for recursive hydration through the ResultCollector."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import pytest
from pydantic import BaseModel, Field

from hydrator.core.errors import (
    HydrationError,
    RecursiveHydrationError,
    ResolverError,
    UnsupportedFieldKindError,
)
from hydrator.execution.engine import Hydrator

# ── Records ──────────────────────────────────────────────────────────────


class Product(BaseModel):
    sku: str
    title: str = ""


@dataclass
class Supplier:
    id: int


@dataclass
class Line:
    sku: str
    quantity: int = 1
    product: Product | None = field(default=None, metadata={"hydrate": "sku"})


@dataclass
class Customer:
    id: int
    supplier_id: int = 0
    supplier: Supplier | None = field(default=None, metadata={"hydrate": "supplier_id"})


@dataclass
class Order:
    id: int = 0
    customer_id: int = 0
    customer: Customer | None = field(default=None, metadata={"hydrate": "customer_id"})
    lines: list[Line] = field(default_factory=list, metadata={"hydrate": "load_lines"})
    pair: tuple[Line, ...] = field(default=(), metadata={"hydrate": "load_pair"})

    def load_lines(self, order):
        return [Line(sku=f"SKU-{n}") for n in range(5)]

    def load_pair(self, order):
        return (Line(sku="P-0"), Line(sku="P-1"))


@dataclass
class Node:
    name: str = ""
    me: Node | None = field(default=None, metadata={"hydrate": "myself"})

    def myself(self, node):
        return node


class Broken(BaseModel):
    id: int = 0
    weird: int = Field(default=0, json_schema_extra={"hydrate": "id"})


@dataclass
class Holder:
    broken_id: int = 0
    broken: Broken | None = field(default=None, metadata={"hydrate": "broken_id"})


async def find_customer(customer_id):
    await asyncio.sleep(0)
    return Customer(id=customer_id, supplier_id=customer_id * 10)


def find_supplier(supplier_id):
    return Supplier(id=supplier_id)


async def find_product(sku):
    await asyncio.sleep(0.001)
    return Product(sku=sku, title=sku.lower())


@pytest.fixture
def wired(hydrator):
    hydrator.register(Customer, find_customer)
    hydrator.register(Supplier, find_supplier)
    hydrator.register(Product, find_product)
    return hydrator


# ── Tests ────────────────────────────────────────────────────────────────


class TestNestedPointers:
    @pytest.mark.asyncio
    async def test_nested_record_hydrated_before_attach(self, wired):
        order = Order(customer_id=3)
        await wired.hydrate(order)

        assert order.customer == Customer(id=3, supplier_id=30, supplier=Supplier(id=30))

    @pytest.mark.asyncio
    async def test_failed_nested_record_is_not_attached(self, wired):
        async def supplier_down(supplier_id):
            raise ConnectionError("supplier service down")

        wired.register(Supplier, supplier_down)
        order = Order(customer_id=3)

        with pytest.raises(HydrationError) as exc_info:
            await wired.hydrate(order)

        assert order.customer is None
        error = exc_info.value.last
        assert isinstance(error, RecursiveHydrationError)
        assert error.context.field == "customer"
        assert error.context.path == "customer"
        assert isinstance(error.cause, HydrationError)

        (leaf,) = exc_info.value.leaves()
        assert isinstance(leaf, ResolverError)
        assert leaf.context.path == "customer.supplier"

    @pytest.mark.asyncio
    async def test_nested_structural_error_is_wrapped(self, hydrator):
        hydrator.register(Broken, lambda broken_id: Broken(id=broken_id))
        holder = Holder(broken_id=1)

        with pytest.raises(HydrationError) as exc_info:
            await hydrator.hydrate(holder)

        assert holder.broken is None
        error = exc_info.value.last
        assert isinstance(error, RecursiveHydrationError)
        assert isinstance(exc_info.value.leaves()[0], UnsupportedFieldKindError)

    @pytest.mark.asyncio
    async def test_self_reference_does_not_recurse(self, hydrator):
        node = Node(name="root")
        await asyncio.wait_for(hydrator.hydrate(node), timeout=2)
        assert node.me is node


class TestSequences:
    @pytest.mark.asyncio
    async def test_every_element_hydrated(self, wired):
        order = Order()
        await wired.hydrate(order)

        assert [line.product.title for line in order.lines] == [f"sku-{n}" for n in range(5)]
        assert [line.product.sku for line in order.pair] == ["P-0", "P-1"]

    @pytest.mark.asyncio
    async def test_element_failure_does_not_stop_siblings(self, wired):
        async def picky(sku):
            if sku == "SKU-2":
                raise LookupError("discontinued")
            return await find_product(sku)

        wired.register(Product, picky)
        order = Order()

        with pytest.raises(HydrationError) as exc_info:
            await wired.hydrate(order)

        assert len(order.lines) == 5
        assert order.lines[2].product is None
        assert all(line.product is not None for i, line in enumerate(order.lines) if i != 2)

        (error,) = exc_info.value.errors
        assert isinstance(error, RecursiveHydrationError)
        assert error.context.index == 2
        assert error.context.path == "lines[2]"
        (leaf,) = exc_info.value.leaves()
        assert leaf.context.path == "lines[2].product"

    @pytest.mark.asyncio
    async def test_every_element_failure_reported(self, wired):
        async def down(sku):
            raise ConnectionError(sku)

        wired.register(Product, down)
        with pytest.raises(HydrationError) as exc_info:
            await wired.hydrate(Order())

        indexes = sorted(e.context.index for e in exc_info.value.errors if e.context.field == "lines")
        assert indexes == [0, 1, 2, 3, 4]
        assert len(exc_info.value.leaves()) == 7

    @pytest.mark.asyncio
    async def test_elements_hydrated_concurrently(self, wired):
        active = 0
        seen = 0

        async def tracked(sku):
            nonlocal active, seen
            active += 1
            seen = max(seen, active)
            await asyncio.sleep(0.01)
            active -= 1
            return Product(sku=sku)

        wired.register(Product, tracked)
        await wired.hydrate(Order())

        assert seen > 1


class TestSharedGate:
    @pytest.mark.asyncio
    async def test_gate_bounds_whole_graph(self, registry):
        hydrator = Hydrator(concurrency_limit=3, registry=registry)
        active = 0
        seen = 0

        async def tracked(sku):
            nonlocal active, seen
            active += 1
            seen = max(seen, active)
            await asyncio.sleep(0.01)
            active -= 1
            return Product(sku=sku)

        hydrator.register(Product, tracked)
        hydrator.register(Customer, find_customer)
        hydrator.register(Supplier, find_supplier)
        await hydrator.hydrate(Order(customer_id=1))

        assert seen <= 3
        assert hydrator.gate.peak <= 3
        assert hydrator.gate.in_flight == 0

    @pytest.mark.asyncio
    async def test_capacity_one_never_deadlocks(self, registry):
        hydrator = Hydrator(concurrency_limit=1, registry=registry)
        hydrator.register(Product, find_product)
        hydrator.register(Customer, find_customer)
        hydrator.register(Supplier, find_supplier)
        orders = [Order(id=n, customer_id=n) for n in range(3)]

        await asyncio.wait_for(hydrator.hydrate_many(orders), timeout=5)

        assert hydrator.gate.peak == 1
        assert all(order.customer.supplier is not None for order in orders)
        assert all(line.product is not None for order in orders for line in order.lines)

