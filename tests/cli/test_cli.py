"""Tests for the hydrator CLI - smoke tests via CliRunner."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from hydrator import __version__
from hydrator.cli.app import app
from hydrator.cli.demo import Customer, LineItem, Order, Product, build_hydrator, sample_order
from hydrator.cli.utils import to_plain
from hydrator.core.errors import HydrationError

runner = CliRunner()


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"hydrator {__version__}" in result.output


class TestConfig:
    def test_show(self):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "concurrency_limit" in result.output
        assert "annotation_keyword" in result.output

    def test_show_json(self):
        result = runner.invoke(app, ["config", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["concurrency_limit"] == 10
        assert data["annotation_keyword"] == "hydrate"

    def test_environment_reflected(self, monkeypatch):
        monkeypatch.setenv("HYDRATOR_CONCURRENCY_LIMIT", "6")
        result = runner.invoke(app, ["config", "--json"])
        assert json.loads(result.stdout)["concurrency_limit"] == 6


class TestDemo:
    def test_table_output(self):
        result = runner.invoke(app, ["demo"])
        assert result.exit_code == 0
        assert "Ada Lovelace" in result.output
        assert "Mechanical keyboard" in result.output

    def test_json_output(self):
        result = runner.invoke(app, ["demo", "--json", "--concurrency", "2"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["order"]["customer"]["name"] == "Ada Lovelace"
        assert [line["product"]["sku"] for line in data["order"]["lines"]] == ["KB-01", "MS-02", "MN-27"]
        assert 1 <= data["peak_in_flight"] <= 2

    def test_failing_resolvers(self):
        result = runner.invoke(app, ["demo", "--fail"])
        assert result.exit_code == 1
        assert "customer service unavailable" in result.output
        assert "discontinued" in result.output

    def test_invalid_concurrency(self):
        result = runner.invoke(app, ["demo", "--concurrency", "0"])
        assert result.exit_code != 0


class TestDemoGraph:
    @pytest.mark.asyncio
    async def test_hydrates_whole_order(self):
        hydrator = build_hydrator(3)
        order = sample_order()

        await hydrator.hydrate(order)

        assert order.customer == Customer(id=7, name="Ada Lovelace", email="ada@example.com")
        assert all(isinstance(line, LineItem) for line in order.lines)
        assert order.lines[2].product == Product(sku="MN-27", title="27in monitor", price_cents=31900)
        assert hydrator.gate.peak <= 3

    @pytest.mark.asyncio
    async def test_failures_are_aggregated(self):
        hydrator = build_hydrator(fail=True)
        order = sample_order()

        with pytest.raises(HydrationError) as exc_info:
            await hydrator.hydrate(order)

        assert order.customer is None
        assert order.lines[1].product is None
        assert order.lines[0].product is not None
        assert len(exc_info.value.leaves()) == 2

    def test_unknown_order_has_no_lines(self):
        hydrator = build_hydrator()
        order = Order(id=1, customer_id=99)
        hydrator.hydrate_sync(order)
        assert order.customer is None
        assert order.lines == []


class TestToPlain:
    def test_nested(self):
        order = sample_order()
        order.lines = [LineItem(sku="KB-01", quantity=1, product=Product(sku="KB-01", title="k", price_cents=1))]
        plain = to_plain(order)
        assert plain["lines"][0]["product"] == {"sku": "KB-01", "title": "k", "price_cents": 1}
        assert plain["customer"] is None

    def test_scalars_pass_through(self):
        assert to_plain(3) == 3
        assert to_plain({"a": (1, 2)}) == {"a": [1, 2]}
