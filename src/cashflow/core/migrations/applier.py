"""Migration applier.

Brings a store to the latest schema version found on disk: ensure the
ledger exists, discover migrations, and for each one in ascending
version order either skip it (already in the ledger) or execute its SQL
and record its version. The first failure stops the run; later
migrations are never attempted because they may depend on the schema
the failed one was meant to produce.

Executing the body and recording the version happen in one store
transaction. On backends with transactional DDL (SQLite, PostgreSQL) a
failure anywhere in that pair leaves neither the schema change nor the
ledger row behind. On backends without it, a crash between the two can
still re-run the same body on the next start, so bodies there should use
idempotent DDL (``IF NOT EXISTS``).

Nothing here exits the process. Failures come back in
:class:`MigrationResult` (or as an ``Err`` from :func:`run_migrations`)
and the entry point decides what to do.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from cashflow.core.errors import ErrorContext, MigrationError, MigrationExecutionError
from cashflow.core.logging import LogContext, get_logger
from cashflow.core.migrations.discovery import MigrationDescriptor, discover_migrations
from cashflow.core.migrations.ledger import DEFAULT_TABLE, MigrationLedger
from cashflow.core.protocols import MigrationStore
from cashflow.core.result import Err, Ok, Result

logger = get_logger(__name__)


@dataclass
class MigrationResult:
    """Outcome of one applier run."""

    applied: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: int | None = None
    error: MigrationError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class MigrationApplier:
    """Applies pending migrations from *directory* to *store*.

    Parameters
    ----------
    store
        A connected :class:`MigrationStore`. Borrowed: the applier never
        closes it.
    ledger
        The :class:`MigrationLedger` for the same store.
    directory
        Directory holding ``<version>_<label>.sql`` files.

    Example::

        store, _ = create_store("sqlite:///cashflow.db")
        applier = MigrationApplier(store, MigrationLedger(store), "database/migrations")
        result = applier.apply_pending()
        if not result.success:
            raise SystemExit(1)
    """

    def __init__(
        self,
        store: MigrationStore,
        ledger: MigrationLedger,
        directory: Path | str,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._directory = Path(directory)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def apply_pending(self) -> MigrationResult:
        """Apply every migration not yet in the ledger, stopping at the first failure."""
        result = MigrationResult()

        try:
            self._ledger.ensure_table()
            migrations = discover_migrations(self._directory)
        except MigrationError as e:
            result.error = e
            logger.error("migration.failed", **_error_fields(e))
            return result

        for migration in migrations:
            with LogContext(version=migration.version, filename=migration.filename):
                try:
                    if self._ledger.is_applied(migration.version):
                        logger.info("migration.already_applied")
                        result.skipped.append(migration.version)
                        continue
                    self._apply(migration)
                except MigrationError as e:
                    result.failed = migration.version
                    result.error = e
                    logger.error("migration.failed", **_error_fields(e))
                    break

                result.applied.append(migration.version)
                logger.info("migration.applied")

        if result.success:
            logger.info(
                "migrations.completed",
                applied=len(result.applied),
                skipped=len(result.skipped),
            )
        return result

    def pending(self) -> list[MigrationDescriptor]:
        """Return discovered migrations that are not yet in the ledger.

        Executes no migration SQL. Ensures the ledger table exists so a
        fresh store reports everything as pending.
        """
        self._ledger.ensure_table()
        applied = self._ledger.applied_versions()
        return [m for m in discover_migrations(self._directory) if m.version not in applied]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _apply(self, migration: MigrationDescriptor) -> None:
        sql = migration.read_sql()
        context = ErrorContext(version=migration.version, filename=migration.filename)

        try:
            with self._store.transaction():
                try:
                    self._store.execute_script(sql)
                except Exception as e:
                    raise MigrationExecutionError(
                        f"failed to execute migration {migration.filename}: {e}",
                        context=context,
                        cause=e,
                    ) from e
                self._ledger.record(migration.version)
        except MigrationError:
            raise
        except Exception as e:
            # BEGIN or COMMIT itself failed
            raise MigrationExecutionError(
                f"failed to commit migration {migration.filename}: {e}",
                context=context,
                cause=e,
            ) from e


def _error_fields(error: MigrationError) -> dict[str, object]:
    fields: dict[str, object] = error.context.to_dict()
    fields["error"] = error.message
    fields["error_type"] = type(error).__name__
    return fields


def run_migrations(
    store: MigrationStore,
    directory: Path | str,
    *,
    table: str = DEFAULT_TABLE,
) -> Result[MigrationResult]:
    """Wire a ledger and an applier for *store* and apply pending migrations.

    Returns ``Ok(MigrationResult)`` when every pending migration applied,
    ``Err(MigrationError)`` otherwise.
    """
    try:
        ledger = MigrationLedger(store, table=table)
    except MigrationError as e:
        return Err(e)
    result = MigrationApplier(store, ledger, directory).apply_pending()
    if result.error is not None:
        return Err(result.error)
    return Ok(result)
