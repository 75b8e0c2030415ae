"""Schema migration engine for the cashflow backend.

Manifesto:
    The service must never serve requests against a schema in an unknown
    state. The engine applies numbered ``.sql`` files in version order,
    exactly once per version, tracking what has been applied in the
    ``app_schema_migrations`` ledger table, and stops at the first
    failure.

Modules
-------
discovery   MigrationDescriptor + discover_migrations() (list, filter, sort)
ledger      MigrationLedger: ensure_table() / is_applied() / record()
applier     MigrationApplier.apply_pending() and run_migrations()

Tags:
    cashflow-core, migrations, schema, database, idempotent, DDL

Doc-Types:
    package-overview
"""

from cashflow.core.migrations.applier import MigrationApplier, MigrationResult, run_migrations
from cashflow.core.migrations.discovery import MigrationDescriptor, discover_migrations
from cashflow.core.migrations.ledger import LedgerEntry, MigrationLedger

__all__ = [
    "LedgerEntry",
    "MigrationApplier",
    "MigrationDescriptor",
    "MigrationLedger",
    "MigrationResult",
    "discover_migrations",
    "run_migrations",
]
