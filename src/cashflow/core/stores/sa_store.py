"""SQLAlchemy engine factory and store adapter.

Manifesto:
    PostgreSQL deployments reach the database through a pooled SQLAlchemy
    engine. ``SQLAlchemyStore`` wraps one connection from that engine to
    satisfy ``cashflow.core.protocols.MigrationStore`` so the migration
    engine runs identically on SQLite and PostgreSQL.

This module provides:

* ``create_cashflow_engine`` -- Create a SA engine from a URL with pool settings.
* ``SQLAlchemyStore``        -- Wraps a SA ``Connection`` to satisfy the
  ``MigrationStore`` protocol.

Tags:
    cashflow-core, sqlalchemy, engine, store, connection, postgresql

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, Callable, TypeVar

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event, text
from sqlalchemy.engine import Engine

from cashflow.core.dialect import Dialect, get_dialect
from cashflow.core.stores.sqlite_store import split_sqlite_script

T = TypeVar("T")


def create_cashflow_engine(
    url: str,
    *,
    echo: bool = False,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    pool_recycle: int | None = None,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///…``, ``postgresql+psycopg2://…``, etc.)
    echo:
        If ``True``, log all SQL to stdout.
    pool_size, max_overflow, pool_recycle:
        Connection pool parameters (ignored for SQLite).
    **kwargs:
        Extra arguments forwarded to ``sqlalchemy.create_engine``.
    """

    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        engine = _sa_create_engine(url, echo=echo, **kwargs)

        # pysqlite never emits BEGIN before DDL; take over so schema
        # changes join the transaction and roll back with it.
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _sqlite_begin(conn: Any) -> None:
            conn.exec_driver_sql("BEGIN")

        return engine

    pool_kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size
    if max_overflow is not None:
        pool_kwargs["max_overflow"] = max_overflow
    if pool_recycle is not None:
        pool_kwargs["pool_recycle"] = pool_recycle

    return _sa_create_engine(url, echo=echo, **pool_kwargs, **kwargs)


def _bind_qmark(sql: str, params: Sequence[Any]) -> tuple[str, dict[str, Any]]:
    """Rewrite ``?`` placeholders to ``:p0, :p1, …`` for SA ``text()``."""
    rewritten, idx = [], 0
    for ch in sql:
        if ch == "?":
            rewritten.append(f":p{idx}")
            idx += 1
        else:
            rewritten.append(ch)
    return "".join(rewritten), {f"p{i}": v for i, v in enumerate(params)}


class SQLAlchemyStore:
    """Adapter that makes a SQLAlchemy ``Connection`` look like ``MigrationStore``.

    Holds one connection checked out of *engine* for the store's lifetime.
    Calls outside :meth:`transaction` commit (or roll back on error)
    immediately, so a failed statement never leaves PostgreSQL in an
    aborted transaction.
    """

    def __init__(self, engine: Engine) -> None:
        self.dialect: Dialect = get_dialect(engine.dialect.name)
        self._engine = engine
        self._conn = engine.connect()
        self._in_transaction = False

    def _run(self, fn: Callable[[], T]) -> T:
        if self._in_transaction:
            return fn()
        try:
            result = fn()
        except Exception:
            self._conn.rollback()
            raise
        self._conn.commit()
        return result

    # --- MigrationStore protocol ---

    def execute_script(self, sql: str) -> None:
        if self.dialect.name == "sqlite":
            statements = split_sqlite_script(sql)
        else:
            statements = [sql]

        def _execute() -> None:
            for statement in statements:
                # no_parameters keeps psycopg2 from treating '%' as a placeholder
                self._conn.exec_driver_sql(
                    statement, execution_options={"no_parameters": True}
                )

        self._run(_execute)

    def query_exists(self, sql: str, params: tuple = ()) -> bool:
        stmt, mapping = _bind_qmark(sql, params)
        row = self._run(lambda: self._conn.execute(text(stmt), mapping).fetchone())
        return bool(row[0]) if row is not None else False

    def query_all(self, sql: str, params: tuple = ()) -> list[tuple[Any, ...]]:
        stmt, mapping = _bind_qmark(sql, params)
        rows = self._run(lambda: self._conn.execute(text(stmt), mapping).fetchall())
        return [tuple(r) for r in rows]

    def execute(self, sql: str, params: tuple = ()) -> None:
        stmt, mapping = _bind_qmark(sql, params)
        self._run(lambda: self._conn.execute(text(stmt), mapping))

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._conn.in_transaction():
            self._conn.commit()
        with self._conn.begin():
            self._in_transaction = True
            try:
                yield
            finally:
                self._in_transaction = False

    def ping(self) -> None:
        self._run(lambda: self._conn.exec_driver_sql("SELECT 1").fetchone())

    def close(self) -> None:
        self._conn.close()
        self._engine.dispose()

    # --- properties ---

    @property
    def engine(self) -> Engine:
        """Access the underlying SA engine."""
        return self._engine

    def __repr__(self) -> str:
        return f"SQLAlchemyStore({self._engine.url!r})"
