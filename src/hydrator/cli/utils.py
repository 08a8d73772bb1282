"""
CLI utility helpers — output formatting.
"""

from __future__ import annotations

import json
from dataclasses import fields, is_dataclass
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hydrator.core.errors import HydrationError, HydratorError

console = Console()
err_console = Console(stderr=True)


def to_plain(obj: Any) -> Any:
    """Convert dataclasses / pydantic models (and containers of them) to plain data."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_plain(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, list | tuple):
        return [to_plain(item) for item in obj]
    if isinstance(obj, dict):
        return {key: to_plain(value) for key, value in obj.items()}
    return obj


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)


def fail(error: HydratorError, *, as_json: bool = False) -> None:
    """Report a hydration failure and exit with status 1."""
    if as_json:
        print_json(error.to_dict())
        raise typer.Exit(code=1)

    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {escape(error.message)}", soft_wrap=True)
    if isinstance(error, HydrationError):
        for leaf in error.leaves():
            where = leaf.context.path or leaf.context.field or "-"
            err_console.print(f"  [red]•[/red] {escape(where)}: {escape(leaf.message)}", soft_wrap=True)
    raise typer.Exit(code=1)
