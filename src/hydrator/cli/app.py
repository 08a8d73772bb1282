"""
Root Typer application for the hydrator CLI.

Commands::

    hydrator --version
    hydrator config [--json]
    hydrator demo [--concurrency N] [--json] [--fail]
"""

from __future__ import annotations

import typer
from typer import Typer

from hydrator.cli.utils import console, fail, print_dict, print_json, print_table, to_plain
from hydrator.core.errors import HydratorError
from hydrator.core.logging import configure_logging
from hydrator.core.settings import get_settings

app = Typer(
    name="hydrator",
    help="hydrator — annotation-driven, concurrent hydration of nested records.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from hydrator import __version__

        typer.echo(f"hydrator {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option("WARNING", "--log-level", "-l", help="Log level for engine events."),
) -> None:
    """hydrator CLI — inspect settings and run the demo object graph."""
    configure_logging(level=log_level, json_format=get_settings().json_logs)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("config")
def show_config(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show the effective settings (defaults, .env and HYDRATOR_* variables)."""
    settings = get_settings()
    if as_json:
        console.print_json(settings.model_dump_json())
        return
    print_dict(settings.model_dump(), title="Hydrator settings")


@app.command("demo")
def run_demo(
    concurrency: int | None = typer.Option(  # noqa: UP007
        None,
        "--concurrency",
        "-c",
        min=1,
        help="Gate capacity (defaults to HYDRATOR_CONCURRENCY_LIMIT).",
    ),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
    fail_resolvers: bool = typer.Option(False, "--fail", help="Use failing resolvers to show error aggregation."),
) -> None:
    """Hydrate a demo order: customer by id, lines by method, products by SKU."""
    from hydrator.cli.demo import build_hydrator, sample_order

    hydrator = build_hydrator(concurrency, fail=fail_resolvers)
    order = sample_order()
    try:
        hydrator.hydrate_sync(order)
    except HydratorError as e:
        fail(e, as_json=as_json)

    if as_json:
        print_json({"order": to_plain(order), "peak_in_flight": hydrator.gate.peak})
        return

    customer = order.customer
    console.print(f"[bold]Order {order.id}[/bold] for {customer.name} <{customer.email}>")
    print_table(
        [
            {
                "sku": line.sku,
                "quantity": line.quantity,
                "product": line.product.title,
                "price": f"{line.product.price_cents / 100:.2f}",
            }
            for line in order.lines
        ],
        title="Lines",
    )
    console.print(
        f"[dim]{len(hydrator.registry)} resolvers, "
        f"gate capacity {hydrator.concurrency_limit}, peak in flight {hydrator.gate.peak}[/dim]"
    )


def run() -> None:
    """Console-script entry point."""
    app()


if __name__ == "__main__":
    run()
