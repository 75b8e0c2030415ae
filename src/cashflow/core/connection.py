"""Store factory — open a migration store from a URL string.

This is the **single entry point** for opening database stores in
cashflow-core. The engine itself never opens or closes stores; the
startup entry point and the CLI call ``create_store()`` and own the
returned store's lifecycle.

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/my.db`` or ``/tmp/cashflow.db``     SQLite file
``postgresql``      ``postgresql://user:pw@host:port/db``        PostgreSQL
``postgres``        ``postgres://user:pw@host:port/db``          PostgreSQL
``postgresql+drv``  ``postgresql+psycopg2://…``                  PostgreSQL
==================  ==========================================  ============

Any other ``scheme://`` is a configuration error; there is no silent
fallback to another backend.

Usage
-----
::

    from cashflow.core.connection import create_store

    store, info = create_store("sqlite:///cashflow.db")
    print(info)
    # ConnectionInfo(backend='sqlite', persistent=True, path='/abs/cashflow.db')

Tier: cashflow-core
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from cashflow.core.errors import DatabaseConnectionError, ErrorContext, InvalidConfigError
from cashflow.core.logging import get_logger
from cashflow.core.protocols import MigrationStore

if TYPE_CHECKING:
    from cashflow.core.settings import CashflowSettings

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a store connection."""

    backend: str
    """Backend identifier: ``"sqlite"`` or ``"postgresql"``."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The URL or path used to create the store, password redacted."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"

    @property
    def is_postgres(self) -> bool:
        return self.backend == "postgresql"


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into (scheme, target).

    Returns
    -------
    tuple[str, str]
        (scheme, target) where scheme is one of:
        ``"memory"``, ``"sqlite"``, ``"postgresql"``, ``"file"``.

    Raises
    ------
    InvalidConfigError
        For any other ``scheme://`` URL.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    if db.startswith("sqlite://"):
        path = db[len("sqlite:///"):] if db.startswith("sqlite:///") else db[len("sqlite://"):]
        if not path or path == ":memory:":
            return "memory", ":memory:"
        return "sqlite", path

    if db.startswith(("postgresql://", "postgres://")):
        # SQLAlchemy only accepts the long form
        return "postgresql", "postgresql://" + db.split("://", 1)[1]

    if db.startswith(("postgresql+", "postgres+")):
        scheme, rest = db.split("://", 1) if "://" in db else (db, "")
        driver = scheme.split("+", 1)[1]
        return "postgresql", f"postgresql+{driver}://{rest}"

    if "://" in db:
        raise InvalidConfigError(
            "database_url",
            redact_url(db),
            f"Unsupported database URL scheme: {db.split('://', 1)[0]!r}",
        )

    return "file", db


def redact_url(url: str) -> str:
    """Hide the password component of a URL for logs and error messages."""
    if "://" not in url or "@" not in url:
        return url
    scheme, rest = url.split("://", 1)
    credentials, host = rest.rsplit("@", 1)
    if ":" not in credentials:
        return url
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"


# ── Backend factories ────────────────────────────────────────────────────


def _create_sqlite(path: str) -> tuple[MigrationStore, ConnectionInfo]:
    from cashflow.core.stores.sqlite_store import SqliteStore

    if path == ":memory:":
        return SqliteStore(":memory:"), ConnectionInfo(
            backend="sqlite", persistent=False, url=":memory:"
        )

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    resolved = str(target.resolve())
    return SqliteStore(resolved), ConnectionInfo(
        backend="sqlite", persistent=True, url=path, resolved_path=resolved
    )


def _create_postgresql(
    url: str, settings: CashflowSettings | None
) -> tuple[MigrationStore, ConnectionInfo]:
    from cashflow.core.stores.sa_store import SQLAlchemyStore, create_cashflow_engine

    pool: dict[str, int] = {}
    if settings is not None:
        pool = {
            "pool_size": settings.db_max_idle_conns,
            "max_overflow": max(settings.db_max_open_conns - settings.db_max_idle_conns, 0),
            "pool_recycle": settings.db_conn_max_lifetime,
        }
    engine = create_cashflow_engine(url, **pool)
    return SQLAlchemyStore(engine), ConnectionInfo(
        backend="postgresql", persistent=True, url=redact_url(url)
    )


# ── Main factory ─────────────────────────────────────────────────────────


def create_store(
    db: str | None = None,
    *,
    settings: CashflowSettings | None = None,
    ping: bool = True,
) -> tuple[MigrationStore, ConnectionInfo]:
    """Open a store from a URL, path, or keyword and verify connectivity.

    Parameters
    ----------
    db:
        Database URL, file path, or keyword (see module docstring).
    settings:
        Supplies connection pool sizing for PostgreSQL.
    ping:
        If ``True`` (default), run ``SELECT 1`` before returning.

    Returns
    -------
    tuple[MigrationStore, ConnectionInfo]

    Raises
    ------
    InvalidConfigError
        Unsupported URL scheme.
    DatabaseConnectionError
        The store could not be opened or did not answer the ping.
    """
    scheme, target = _parse_url(db)
    shown = redact_url(target)

    try:
        if scheme == "postgresql":
            store, info = _create_postgresql(target, settings)
        else:
            store, info = _create_sqlite(target)
    except Exception as e:
        raise DatabaseConnectionError(
            f"Failed to connect to database: {e}",
            context=ErrorContext(url=shown),
            cause=e,
        ) from e

    if ping:
        try:
            store.ping()
        except Exception as e:
            store.close()
            raise DatabaseConnectionError(
                f"Failed to ping database: {e}",
                context=ErrorContext(url=shown),
                cause=e,
            ) from e

    logger.debug("database.opened", backend=info.backend, url=info.url)
    return store, info
