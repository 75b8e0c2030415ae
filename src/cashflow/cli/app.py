"""
Root Typer application for the cashflow CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="cashflow",
    help="cashflow — backend operations: schema migrations and database checks.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from cashflow import __version__

        typer.echo(f"cashflow {__version__}")
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
) -> None:
    """cashflow CLI — manage schema migrations."""


# ── Sub-command registration ─────────────────────────────────────────────

from cashflow.cli.migrate import app as migrate_app  # noqa: E402

app.add_typer(migrate_app, name="migrate", help="Schema migrations.")
