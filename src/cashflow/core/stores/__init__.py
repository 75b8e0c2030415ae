"""Store adapters satisfying :class:`~cashflow.core.protocols.MigrationStore`.

Modules
-------
sqlite_store   SqliteStore over the stdlib ``sqlite3`` driver
sa_store       SQLAlchemyStore over a pooled SQLAlchemy engine (PostgreSQL)
"""

from cashflow.core.stores.sqlite_store import SqliteStore, split_sqlite_script

__all__ = ["SqliteStore", "split_sqlite_script"]
