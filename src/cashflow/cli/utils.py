"""
CLI utility helpers — output formatting and store management.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from typing import Any, NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cashflow.core.connection import create_store
from cashflow.core.errors import CashflowError, ConfigError
from cashflow.core.logging import configure_logging
from cashflow.core.protocols import MigrationStore
from cashflow.core.settings import CashflowSettings, get_settings

console = Console()
err_console = Console(stderr=True)


# ── Settings / store helpers ─────────────────────────────────────────────


def load_settings() -> CashflowSettings:
    """Load settings and configure logging from them.

    Invalid environment values are reported and turned into exit code 1.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        fail(ConfigError(f"Invalid configuration: {e}", cause=e))
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    return settings


@contextmanager
def open_store(database: str | None, settings: CashflowSettings) -> Iterator[MigrationStore]:
    """Open the store for a command and close it afterwards.

    Connection failures are reported and turned into exit code 1.
    """
    url = database or settings.resolved_database_url()
    try:
        store, _info = create_store(url, settings=settings)
    except CashflowError as e:
        fail(e)
    try:
        yield store
    finally:
        store.close()


def fail(error: Exception) -> NoReturn:
    """Print *error* in red and exit with code 1."""
    code = getattr(getattr(error, "category", None), "value", "ERROR")
    message = getattr(error, "message", str(error))
    err_console.print(f"[bold red]Error[/bold red] ({code}): {escape(message)}")
    if error.__cause__ is not None:
        err_console.print(f"  [dim]caused by:[/dim] {escape(str(error.__cause__))}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output(data: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render a dataclass, dict or list of them to the terminal."""
    if as_json:
        payload = [_to_dict(d) for d in data] if isinstance(data, list | tuple) else _to_dict(data)
        console.print_json(json.dumps(payload, default=str))
        return

    if isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        _print_table(data, title=title)
    else:
        _print_dict(_to_dict(data), title=title)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(items: list, *, title: str = "") -> None:
    """Render a list of dataclasses/dicts as a Rich table."""
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(str(v) for v in d.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
