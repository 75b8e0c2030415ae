"""
Canonical protocol definitions for cashflow-core.

The migration engine talks to the relational store only through
``MigrationStore``. Drivers are opaque: any object offering these
operations works, which keeps the engine testable against SQLite and
deployable against PostgreSQL without modification.

Architecture:
    ::

        protocols.py
        └── MigrationStore   — sync store boundary used by the ledger
                               and the applier

        Implementations:
        ┌────────────────────────────────────────────────────────┐
        │ SqliteStore      → stdlib sqlite3 (tests, local dev)   │
        │ SQLAlchemyStore  → SQLAlchemy engine (PostgreSQL)      │
        └────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Import sqlite3 or SQLAlchemy in the migration engine
    ✅ DO: Depend on MigrationStore and let adapters own the driver

    ❌ DON'T: Close the store inside the engine
    ✅ DO: Leave lifecycle to whoever opened it (entry point, CLI)

Tags:
    protocol, store, database, migrations, cashflow-core, contracts

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Protocol, runtime_checkable

from cashflow.core.dialect import Dialect


@runtime_checkable
class MigrationStore(Protocol):
    """
    Minimal SYNCHRONOUS store interface for schema migration.

    Parameters use ``?`` (qmark) placeholders on every backend; adapters
    translate when their driver needs another style.

    Architecture:
        ::

            MigrationStore Protocol:
            ┌────────────────────────────────────────────────────────┐
            │ execute_script(sql)       → Run a statement batch      │
            │ query_exists(sql, params) → Single boolean existence   │
            │ query_all(sql, params)    → All rows of a query        │
            │ execute(sql, params)      → Parameterized statement    │
            │ transaction()             → Atomic unit (ctx manager)  │
            │ ping()                    → Verify connectivity        │
            │ close()                   → Release the connection     │
            └────────────────────────────────────────────────────────┘

    Outside ``transaction()`` each call commits on its own. Inside, every
    call joins the open transaction, which commits when the block exits
    normally and rolls back when it raises.

    Examples:
        >>> with store.transaction():
        ...     store.execute_script("CREATE TABLE users (id INT);")
        ...     store.execute("INSERT INTO app_schema_migrations (version) VALUES (?)", (1,))
    """

    dialect: Dialect

    def execute_script(self, sql: str) -> None:
        """Execute a batch of statements with no result set. SYNC."""
        ...

    def query_exists(self, sql: str, params: tuple = ()) -> bool:
        """Run a query whose first column of the first row is a boolean. SYNC."""
        ...

    def query_all(self, sql: str, params: tuple = ()) -> list[tuple[Any, ...]]:
        """Run a query and return every row as a tuple. SYNC."""
        ...

    def execute(self, sql: str, params: tuple = ()) -> None:
        """Execute a single parameterized statement. SYNC."""
        ...

    def transaction(self) -> AbstractContextManager[None]:
        """Group the calls inside the block into one atomic transaction."""
        ...

    def ping(self) -> None:
        """Raise if the store cannot be reached."""
        ...

    def close(self) -> None:
        """Release the underlying connection."""
        ...


__all__ = [
    "MigrationStore",
]
