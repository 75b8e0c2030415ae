"""
CLI: ``cashflow migrate`` — schema migration commands.
"""

from __future__ import annotations

from pathlib import Path

import typer

from cashflow.cli.utils import console, fail, load_settings, open_store, output

app = typer.Typer(no_args_is_help=True)


@app.command()
def up(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or SQLite path"),
    directory: Path | None = typer.Option(None, "--dir", help="Migrations directory"),
    table: str | None = typer.Option(None, "--table", help="Ledger table name"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Apply every pending migration, stopping at the first failure."""
    from cashflow.core.migrations import run_migrations

    settings = load_settings()
    with open_store(database, settings) as store:
        result = run_migrations(
            store,
            directory or settings.migrations_dir,
            table=table or settings.migrations_table,
        )
    if result.is_err():
        fail(result.error)

    summary = result.unwrap()
    if json_out:
        output({"applied": summary.applied, "skipped": summary.skipped}, as_json=True)
        return
    if not summary.applied:
        console.print("[dim]Nothing to apply; schema is up to date.[/dim]")
        return
    output(
        {"applied": ", ".join(str(v) for v in summary.applied), "skipped": len(summary.skipped)},
        title="Migrations applied",
    )


@app.command()
def status(
    database: str | None = typer.Option(None, "--database", "-d"),
    table: str | None = typer.Option(None, "--table"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the versions recorded in the ledger."""
    from cashflow.core.errors import MigrationError
    from cashflow.core.migrations import MigrationLedger

    settings = load_settings()
    with open_store(database, settings) as store:
        try:
            ledger = MigrationLedger(store, table=table or settings.migrations_table)
            ledger.ensure_table()
            entries = ledger.entries()
        except MigrationError as e:
            fail(e)
    output(entries, as_json=json_out, title="Applied Migrations")


@app.command()
def pending(
    database: str | None = typer.Option(None, "--database", "-d"),
    directory: Path | None = typer.Option(None, "--dir"),
    table: str | None = typer.Option(None, "--table"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List migrations on disk that are not yet applied."""
    from cashflow.core.errors import MigrationError
    from cashflow.core.migrations import MigrationApplier, MigrationLedger

    settings = load_settings()
    with open_store(database, settings) as store:
        try:
            ledger = MigrationLedger(store, table=table or settings.migrations_table)
            applier = MigrationApplier(store, ledger, directory or settings.migrations_dir)
            migrations = applier.pending()
        except MigrationError as e:
            fail(e)
    rows = [{"version": m.version, "label": m.label, "filename": m.filename} for m in migrations]
    output(rows, as_json=json_out, title="Pending Migrations")
