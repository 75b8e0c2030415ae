"""
Cashflow core primitives.

Modules
-------
errors       Typed error hierarchy (CashflowError and friends)
result       Ok / Err result envelope
logging      structlog configuration
settings     pydantic-settings configuration (DB_*, MIGRATIONS_DIR, ...)
dialect      Backend SQL fragments for the ledger table
protocols    MigrationStore store boundary
stores       SQLite and SQLAlchemy store adapters
connection   create_store() factory
migrations   Discovery, ledger and applier
database     init_database() startup entry
"""

from cashflow.core.errors import CashflowError, MigrationError
from cashflow.core.result import Err, Ok, Result

__all__ = [
    "CashflowError",
    "MigrationError",
    "Ok",
    "Err",
    "Result",
]
