"""Settings for the cashflow backend.

Database coordinates, migration location, connection pool sizing and
logging are read from the environment (and an optional ``.env`` file)
using the same variable names the service has always used (``DB_HOST``,
``DB_PORT``, ...), so existing deployments keep working unchanged.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not at first use
    - **Environment-driven:** Reads from env vars and .env files
    - **Sensible defaults:** Works out of the box against a local Postgres

Examples:
    >>> from cashflow.core.settings import CashflowSettings
    >>> settings = CashflowSettings(db_host="db", db_port=5432)
    >>> settings.resolved_database_url()
    'postgresql+psycopg2://postgres:postgres@db:5432/cashflow_be?sslmode=disable'

Tags:
    settings, configuration, pydantic, environment, cashflow-core

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from urllib.parse import quote

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cashflow.core.migrations.ledger import DEFAULT_TABLE, is_valid_table_name


class CashflowSettings(BaseSettings):
    """Settings shared by the service entry point and the CLI.

    Fields
    ──────
    db_host / db_port / db_user / db_password / db_name
                         : PostgreSQL coordinates (``DB_*`` env vars)
    database_url         : Full URL; overrides the ``DB_*`` fields when set
    migrations_dir       : Directory holding ``<version>_<label>.sql`` files
    migrations_table     : Ledger table name
    db_max_open_conns    : Pool size (plus overflow up to this many)
    db_max_idle_conns    : Connections kept open in the pool
    db_conn_max_lifetime : Seconds before a pooled connection is recycled
    log_level            : Structlog log level
    log_json             : Force JSON (True) or console (False) log output
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    db_host: str = "localhost"
    db_port: int = 5433
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "cashflow_be"
    database_url: str | None = None

    # ── Pool ─────────────────────────────────────────────────────
    db_max_open_conns: int = Field(default=25, ge=1)
    db_max_idle_conns: int = Field(default=5, ge=0)
    db_conn_max_lifetime: int = Field(
        default=300,
        ge=1,
        description="Seconds before a pooled connection is recycled",
    )

    # ── Migrations ───────────────────────────────────────────────
    migrations_dir: Path = Path("database/migrations")
    migrations_table: str = DEFAULT_TABLE

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None

    @field_validator("migrations_table")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        if not is_valid_table_name(value):
            raise ValueError(f"not a valid table identifier: {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value!r}")
        return level

    def resolved_database_url(self) -> str:
        """Return ``database_url`` or build a PostgreSQL URL from ``DB_*``."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{quote(self.db_user, safe='')}:{quote(self.db_password, safe='')}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}?sslmode=disable"
        )


@lru_cache(maxsize=1)
def get_settings() -> CashflowSettings:
    """Return the process-wide settings, loaded once from the environment."""
    return CashflowSettings()
