"""SQLite store adapter.

Wraps a raw :class:`sqlite3.Connection` to satisfy the
:class:`~cashflow.core.protocols.MigrationStore` protocol.

The connection runs with ``isolation_level=None`` so the adapter, not the
driver, decides where transactions begin and end. That matters for
migrations: with the driver's implicit transaction handling, DDL runs
outside any transaction and cannot be rolled back, and
``executescript()`` commits whatever is pending before it starts.

Usage::

    from cashflow.core.stores.sqlite_store import SqliteStore

    store = SqliteStore(":memory:")
    with store.transaction():
        store.execute_script("CREATE TABLE t (id INTEGER); CREATE INDEX t_id ON t (id);")
        store.execute("INSERT INTO t VALUES (?)", (1,))
    store.query_exists("SELECT EXISTS(SELECT 1 FROM t WHERE id = ?)", (1,))  # True
    store.close()
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from cashflow.core.dialect import SQLiteDialect


def split_sqlite_script(sql: str) -> list[str]:
    """Split a script into individual statements.

    Uses :func:`sqlite3.complete_statement` at every ``;`` so semicolons
    inside string literals, comments and trigger bodies do not end a
    statement. Text after the last complete statement is returned as-is
    (if non-blank) so that an unterminated statement still reaches the
    driver and fails there.
    """
    statements: list[str] = []
    start = 0
    for idx, char in enumerate(sql):
        if char != ";":
            continue
        candidate = sql[start : idx + 1]
        if not sqlite3.complete_statement(candidate):
            continue
        if candidate.strip().rstrip(";").strip():
            statements.append(candidate.strip())
        start = idx + 1

    tail = sql[start:].strip()
    if tail:
        statements.append(tail)
    return statements


class SqliteStore:
    """Adapter: ``sqlite3.Connection`` → ``MigrationStore`` protocol.

    Maintains a single cursor; every call outside :meth:`transaction`
    autocommits.
    """

    def __init__(self, path: str = ":memory:") -> None:
        self.path = path
        self.dialect = SQLiteDialect()
        self._conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
        self._cursor = self._conn.cursor()
        self._cursor.execute("PRAGMA foreign_keys=ON")

    # -- MigrationStore protocol -------------------------------------------

    def execute_script(self, sql: str) -> None:
        for statement in split_sqlite_script(sql):
            self._cursor.execute(statement)

    def query_exists(self, sql: str, params: tuple = ()) -> bool:
        row = self._cursor.execute(sql, params).fetchone()
        return bool(row[0]) if row is not None else False

    def query_all(self, sql: str, params: tuple = ()) -> list[tuple[Any, ...]]:
        return [tuple(row) for row in self._cursor.execute(sql, params).fetchall()]

    def execute(self, sql: str, params: tuple = ()) -> None:
        self._cursor.execute(sql, params)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        self._cursor.execute("BEGIN")
        try:
            yield
        except BaseException:
            if self._conn.in_transaction:
                self._cursor.execute("ROLLBACK")
            raise
        try:
            self._cursor.execute("COMMIT")
        except BaseException:
            # A deferred constraint can fail the COMMIT and leave it open
            if self._conn.in_transaction:
                self._cursor.execute("ROLLBACK")
            raise

    def ping(self) -> None:
        self._cursor.execute("SELECT 1").fetchone()

    def close(self) -> None:
        self._conn.close()

    # -- convenience -------------------------------------------------------

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection`` (e.g. for pragmas)."""
        return self._conn

    def __repr__(self) -> str:
        return f"SqliteStore({self.path!r})"
