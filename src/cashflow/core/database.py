"""Startup database initialization.

``init_database()`` is what the service calls before it starts accepting
requests: open the store, verify it answers, bring the schema up to date,
and hand back the ready store. Any failure closes the store and comes back
as an ``Err`` so the process entry point can log it and exit.

Usage::

    from cashflow.core.database import init_database
    from cashflow.core.settings import get_settings

    result = init_database(get_settings())
    if result.is_err():
        raise SystemExit(1)
    db = result.unwrap()
    ...
    db.close()
"""

from __future__ import annotations

from dataclasses import dataclass

from cashflow.core.connection import ConnectionInfo, create_store
from cashflow.core.errors import CashflowError
from cashflow.core.logging import get_logger
from cashflow.core.migrations.applier import MigrationResult, run_migrations
from cashflow.core.protocols import MigrationStore
from cashflow.core.result import Err, Ok, Result
from cashflow.core.settings import CashflowSettings

logger = get_logger(__name__)


@dataclass
class Database:
    """A connected, fully migrated store."""

    store: MigrationStore
    info: ConnectionInfo
    migrations: MigrationResult

    def close(self) -> None:
        self.store.close()


def init_database(
    settings: CashflowSettings,
    *,
    database_url: str | None = None,
) -> Result[Database]:
    """Connect, ping and migrate the database described by *settings*.

    Args:
        settings: Source of the URL, pool sizing, migrations dir and table.
        database_url: Overrides ``settings.resolved_database_url()``.
    """
    url = database_url or settings.resolved_database_url()

    try:
        store, info = create_store(url, settings=settings)
    except CashflowError as e:
        logger.error("database.connect_failed", **e.to_dict())
        return Err(e)

    migrated = run_migrations(
        store,
        settings.migrations_dir,
        table=settings.migrations_table,
    )
    if migrated.is_err():
        store.close()
        return Err(migrated.error)

    logger.info("database.connected", backend=info.backend, url=info.url)
    return Ok(Database(store=store, info=info, migrations=migrated.unwrap()))
