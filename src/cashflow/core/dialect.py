"""SQL dialect abstraction for the statements the backend generates itself.

The migration engine executes migration bodies verbatim, but it owns two
pieces of SQL: the ledger table definition and its lookup/insert
statements. ``Dialect`` supplies the backend-specific fragments those
need (the timestamp default and the dialect name) so the ledger code
never references a driver.

Architecture::

    ┌──────────────────────────────────────────────────────────────┐
    │  ledger DDL:  applied_at TIMESTAMP NOT NULL {d.timestamp_default_now()}
    └──────────────────────────────────────────────────────────────┘
                              │
                 ┌────────────┴────────────┐
                 ▼                         ▼
          ┌──────────────┐         ┌──────────────┐
          │ SQLite       │         │ PostgreSQL   │
          │ CURRENT_     │         │ NOW()        │
          │ TIMESTAMP    │         │              │
          └──────────────┘         └──────────────┘

Examples:
    >>> from cashflow.core.dialect import get_dialect
    >>> get_dialect("postgresql").timestamp_default_now()
    'DEFAULT NOW()'
    >>> get_dialect("sqlite").timestamp_default_now()
    'DEFAULT CURRENT_TIMESTAMP'

Tags:
    dialect, sql, portability, database, cashflow-core

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a **SQL fragment** (string) valid for the target
    database.
    """

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    def timestamp_default_now(self) -> str:
        """DDL ``DEFAULT`` clause for a ``TIMESTAMP`` column.

        >>> dialect.timestamp_default_now()
        'DEFAULT CURRENT_TIMESTAMP'  # SQLite
        'DEFAULT NOW()'              # PostgreSQL
        """
        ...


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite dialect — ``CURRENT_TIMESTAMP`` defaults."""

    @property
    def name(self) -> str:
        return "sqlite"

    def timestamp_default_now(self) -> str:
        return "DEFAULT CURRENT_TIMESTAMP"


class PostgreSQLDialect:
    """PostgreSQL dialect — ``NOW()`` defaults.

    ``CREATE INDEX CONCURRENTLY`` and friends cannot run inside a
    transaction block; migrations using them fail rather than apply.
    """

    @property
    def name(self) -> str:
        return "postgresql"

    def timestamp_default_now(self) -> str:
        return "DEFAULT NOW()"


# =========================================================================
# Registry / Factory
# =========================================================================

# Pre-instantiated singletons (dialects are stateless)
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Args:
        db_type: One of ``'sqlite'``, ``'postgresql'``, ``'postgres'``.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres'})}"
        )
    return _DIALECTS[key]


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "get_dialect",
]
