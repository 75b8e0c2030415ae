"""Migration ledger.

Persistent, append-only record of applied migration versions, kept in
the ``app_schema_migrations`` table. One ledger is built per store
connection and passed to the applier; there is no module-level ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from cashflow.core.errors import ErrorCategory, ErrorContext, LedgerError
from cashflow.core.protocols import MigrationStore

DEFAULT_TABLE = "app_schema_migrations"


def is_valid_table_name(name: str) -> bool:
    """True for a plain ASCII identifier: letters, digits, underscores, no leading digit."""
    stripped = name.replace("_", "")
    return stripped.isascii() and stripped.isalnum() and not name[0].isdigit()


@dataclass(frozen=True)
class LedgerEntry:
    """One applied migration.

    ``applied_at`` is assigned by the store at insert time; SQLite hands
    it back as text, PostgreSQL as a ``datetime``.
    """

    version: int
    applied_at: datetime | str


class MigrationLedger:
    """Reads and appends ledger rows through a :class:`MigrationStore`.

    The ledger never updates or deletes rows. ``record`` must only be
    called for versions that are not yet present; the applier guarantees
    this, and the table's primary key rejects violations.
    """

    def __init__(self, store: MigrationStore, table: str = DEFAULT_TABLE) -> None:
        # Interpolated into DDL and DML
        if not is_valid_table_name(table):
            raise LedgerError(
                f"not a valid table identifier: {table!r}",
                category=ErrorCategory.CONFIG,
                context=ErrorContext(table=table),
            )
        self._store = store
        self.table = table

    def ensure_table(self) -> None:
        """Create the ledger table if it does not exist (idempotent)."""
        ddl = (
            f"CREATE TABLE IF NOT EXISTS {self.table} (\n"
            f"    version   INT PRIMARY KEY,\n"
            f"    applied_at TIMESTAMP NOT NULL {self._store.dialect.timestamp_default_now()}\n"
            f");"
        )
        try:
            self._store.execute_script(ddl)
        except Exception as e:
            raise LedgerError(
                f"failed to ensure {self.table} table: {e}",
                context=ErrorContext(table=self.table),
                cause=e,
            ) from e

    def is_applied(self, version: int) -> bool:
        try:
            return self._store.query_exists(
                f"SELECT EXISTS(SELECT 1 FROM {self.table} WHERE version = ?)",
                (version,),
            )
        except Exception as e:
            raise LedgerError(
                f"failed to check migration {version}: {e}",
                context=ErrorContext(version=version, table=self.table),
                cause=e,
            ) from e

    def record(self, version: int) -> None:
        try:
            self._store.execute(
                f"INSERT INTO {self.table} (version) VALUES (?)",
                (version,),
            )
        except Exception as e:
            raise LedgerError(
                f"failed to record migration {version}: {e}",
                context=ErrorContext(version=version, table=self.table),
                cause=e,
            ) from e

    def entries(self) -> list[LedgerEntry]:
        """Return every applied migration, ascending by version."""
        try:
            rows = self._store.query_all(
                f"SELECT version, applied_at FROM {self.table} ORDER BY version"
            )
        except Exception as e:
            raise LedgerError(
                f"failed to list applied migrations: {e}",
                context=ErrorContext(table=self.table),
                cause=e,
            ) from e
        return [LedgerEntry(version=row[0], applied_at=row[1]) for row in rows]

    def applied_versions(self) -> set[int]:
        return {entry.version for entry in self.entries()}
