"""Tests for the migration applier."""

from __future__ import annotations

from pathlib import Path

import pytest

from cashflow.core.errors import (
    DuplicateMigrationError,
    LedgerError,
    MigrationDirectoryError,
    MigrationError,
    MigrationExecutionError,
)
from cashflow.core.migrations import (
    MigrationApplier,
    MigrationLedger,
    MigrationResult,
    run_migrations,
)
from cashflow.core.result import Err, Ok
from cashflow.core.stores.sa_store import SQLAlchemyStore, create_cashflow_engine
from cashflow.core.stores.sqlite_store import SqliteStore
from tests._support.stores import index_exists, table_exists


USERS_SQL = """\
    CREATE TABLE users (
        id    INTEGER PRIMARY KEY,
        email TEXT NOT NULL
    );
"""

EMAIL_INDEX_SQL = """\
    CREATE INDEX IF NOT EXISTS idx_users_email ON users (email);
"""


@pytest.fixture()
def two_migrations(migrations_dir):
    migrations_dir.write("001_create_users.sql", USERS_SQL)
    migrations_dir.write("002_add_email_index.sql", EMAIL_INDEX_SQL)
    return migrations_dir


def _applier(store, directory) -> MigrationApplier:
    return MigrationApplier(store, MigrationLedger(store), directory.path)


@pytest.fixture(params=["sqlite", "sqlalchemy"])
def any_store(request, tmp_path: Path):
    if request.param == "sqlite":
        s = SqliteStore()
    else:
        s = SQLAlchemyStore(create_cashflow_engine(f"sqlite:///{tmp_path / 'sa.db'}"))
    yield s
    s.close()



# ── MigrationResult ──────────────────────────────────────────────────


class TestMigrationResult:
    def test_empty_result_is_success(self):
        r = MigrationResult()
        assert r.success is True
        assert r.applied == []
        assert r.skipped == []
        assert r.failed is None

    def test_result_with_error_is_not_success(self):
        r = MigrationResult(failed=2, error=MigrationError("boom"))
        assert r.success is False


# ── Fresh database ───────────────────────────────────────────────────


class TestFreshDatabase:
    def test_applies_all_in_order(self, store, two_migrations):
        result = _applier(store, two_migrations).apply_pending()

        assert result.success
        assert result.applied == [1, 2]
        assert result.skipped == []
        assert table_exists(store, "users")
        assert index_exists(store, "idx_users_email")

    def test_ledger_contents(self, store, two_migrations):
        _applier(store, two_migrations).apply_pending()

        entries = MigrationLedger(store).entries()
        assert [e.version for e in entries] == [1, 2]
        assert all(e.applied_at for e in entries)

    def test_creates_ledger_even_with_no_migrations(self, store, migrations_dir):
        result = _applier(store, migrations_dir).apply_pending()

        assert result.success
        assert result.applied == []
        assert table_exists(store, "app_schema_migrations")

    def test_numeric_not_lexicographic_order(self, store, migrations_dir):
        migrations_dir.write("10_add_col.sql", "ALTER TABLE t ADD COLUMN b TEXT;")
        migrations_dir.write("9_create.sql", "CREATE TABLE t (a INTEGER);")

        result = _applier(store, migrations_dir).apply_pending()

        assert result.success
        assert result.applied == [9, 10]

    def test_later_migration_depends_on_earlier(self, counting_store, migrations_dir):
        migrations_dir.write("002_b.sql", "CREATE INDEX ix_a ON a (id);")
        migrations_dir.write("001_a.sql", "CREATE TABLE a (id INTEGER);")

        result = MigrationApplier(
            counting_store, MigrationLedger(counting_store), migrations_dir.path
        ).apply_pending()

        assert result.success
        assert ["CREATE TABLE" in s for s in counting_store.scripts] == [True, False]

    def test_out_of_order_fails(self, store, migrations_dir):
        migrations_dir.write("002_b.sql", "CREATE INDEX ix_a ON a (id);")

        result = _applier(store, migrations_dir).apply_pending()

        assert result.failed == 2
        assert isinstance(result.error, MigrationExecutionError)

        migrations_dir.write("001_a.sql", "CREATE TABLE a (id INTEGER);")
        result = _applier(store, migrations_dir).apply_pending()

        assert result.success
        assert result.applied == [1, 2]
        assert index_exists(store, "ix_a")

    def test_skips_badly_named_file(self, store, migrations_dir, log_output):
        migrations_dir.write("001_a.sql", "CREATE TABLE a (id INTEGER);")
        migrations_dir.write("abc_init.sql", "CREATE TABLE should_not_exist (id INTEGER);")

        result = _applier(store, migrations_dir).apply_pending()

        assert result.success
        assert result.applied == [1]
        assert not table_exists(store, "should_not_exist")
        assert any(e["event"] == "migration.skipped" for e in log_output.entries)

    def test_multi_statement_body(self, store, migrations_dir):
        migrations_dir.write(
            "001_seed.sql",
            """\
            CREATE TABLE categories (id INTEGER PRIMARY KEY, name TEXT);
            -- seed; with a semicolon in a comment
            INSERT INTO categories (name) VALUES ('food; groceries');
            INSERT INTO categories (name) VALUES ('rent');
            """,
        )

        assert _applier(store, migrations_dir).apply_pending().success
        assert store.query_all("SELECT name FROM categories ORDER BY id") == [
            ("food; groceries",),
            ("rent",),
        ]


# ── Idempotence ──────────────────────────────────────────────────────


class TestIdempotence:
    def test_second_run_executes_nothing(self, counting_store, two_migrations):
        applier = MigrationApplier(
            counting_store, MigrationLedger(counting_store), two_migrations.path
        )
        applier.apply_pending()
        executed_first = len(counting_store.scripts)

        result = applier.apply_pending()

        assert executed_first == 2
        assert len(counting_store.scripts) == executed_first
        assert result.success
        assert result.applied == []
        assert result.skipped == [1, 2]

    def test_second_run_leaves_ledger_unchanged(self, store, two_migrations):
        _applier(store, two_migrations).apply_pending()
        before = MigrationLedger(store).entries()

        _applier(store, two_migrations).apply_pending()

        assert MigrationLedger(store).entries() == before

    def test_only_new_migration_runs(self, counting_store, two_migrations):
        applier = MigrationApplier(
            counting_store, MigrationLedger(counting_store), two_migrations.path
        )
        applier.apply_pending()
        two_migrations.write("003_add_name.sql", "ALTER TABLE users ADD COLUMN name TEXT;")

        result = applier.apply_pending()

        assert result.applied == [3]
        assert result.skipped == [1, 2]
        assert counting_store.scripts[-1].startswith("ALTER TABLE users")

    def test_logs_already_applied(self, store, two_migrations, log_output):
        _applier(store, two_migrations).apply_pending()

        _applier(store, two_migrations).apply_pending()

        skipped = [e for e in log_output.entries if e["event"] == "migration.already_applied"]
        assert [e["version"] for e in skipped] == [1, 2]
        assert skipped[0]["filename"] == "001_create_users.sql"


# ── Failure handling ─────────────────────────────────────────────────


class TestFailFast:
    def test_stops_at_first_failure(self, counting_store, migrations_dir):
        migrations_dir.write("001_ok.sql", "CREATE TABLE one (id INTEGER);")
        migrations_dir.write("002_bad.sql", "CREATE TABLE two (id INTEGER;")
        migrations_dir.write("003_never.sql", "CREATE TABLE three (id INTEGER);")

        result = MigrationApplier(
            counting_store, MigrationLedger(counting_store), migrations_dir.path
        ).apply_pending()

        assert not result.success
        assert result.applied == [1]
        assert result.failed == 2
        assert isinstance(result.error, MigrationExecutionError)
        assert result.error.context.version == 2
        assert result.error.context.filename == "002_bad.sql"
        assert "002_bad.sql" in result.error.message
        # 3 never attempted
        assert not any("three" in s for s in counting_store.scripts)
        assert MigrationLedger(counting_store).applied_versions() == {1}

    def test_failed_migration_rolls_back_completely(self, store, migrations_dir):
        migrations_dir.write(
            "001_partial.sql",
            """\
            CREATE TABLE half_done (id INTEGER);
            INSERT INTO missing_table VALUES (1);
            """,
        )

        result = _applier(store, migrations_dir).apply_pending()

        assert result.failed == 1
        assert not table_exists(store, "half_done")
        assert MigrationLedger(store).applied_versions() == set()

    def test_record_failure_rolls_back_body(self, any_store, migrations_dir):
        migrations_dir.write("001_a.sql", "CREATE TABLE a (id INTEGER);")
        migrations_dir.write("002_b.sql", "CREATE TABLE b (id INTEGER);")
        migrations_dir.write("003_c.sql", "CREATE TABLE c (id INTEGER);")
        MigrationLedger(any_store).ensure_table()
        any_store.execute_script(
            "CREATE TRIGGER block_v2 BEFORE INSERT ON app_schema_migrations "
            "WHEN NEW.version = 2 BEGIN SELECT RAISE(ABORT, 'blocked'); END;"
        )

        result = _applier(any_store, migrations_dir).apply_pending()

        assert result.failed == 2
        assert result.applied == [1]
        assert isinstance(result.error, LedgerError)
        assert table_exists(any_store, "a")
        assert not table_exists(any_store, "b")
        assert not table_exists(any_store, "c")
        assert MigrationLedger(any_store).applied_versions() == {1}

    def test_rerun_after_fix(self, store, migrations_dir):
        migrations_dir.write("001_ok.sql", "CREATE TABLE one (id INTEGER);")
        bad = migrations_dir.write("002_bad.sql", "CREATE TABLE two (id INTEGER;")
        migrations_dir.write("003_next.sql", "CREATE TABLE three (id INTEGER);")
        _applier(store, migrations_dir).apply_pending()

        bad.write_text("CREATE TABLE two (id INTEGER);", encoding="utf-8")
        result = _applier(store, migrations_dir).apply_pending()

        assert result.success
        assert result.skipped == [1]
        assert result.applied == [2, 3]

    def test_duplicate_versions_apply_nothing(self, store, migrations_dir):
        migrations_dir.write("001_a.sql", "CREATE TABLE a (id INTEGER);")
        migrations_dir.write("1_b.sql", "CREATE TABLE b (id INTEGER);")

        result = _applier(store, migrations_dir).apply_pending()

        assert isinstance(result.error, DuplicateMigrationError)
        assert result.failed is None
        assert not table_exists(store, "a")
        assert not table_exists(store, "b")

    def test_missing_directory(self, store, tmp_path: Path):
        applier = MigrationApplier(store, MigrationLedger(store), tmp_path / "missing")

        result = applier.apply_pending()

        assert isinstance(result.error, MigrationDirectoryError)
        assert result.applied == []

    def test_ledger_failure_reported(self, store, two_migrations):
        store.close()

        result = _applier(store, two_migrations).apply_pending()

        assert isinstance(result.error, LedgerError)

    def test_logs_failure_with_context(self, store, migrations_dir, log_output):
        migrations_dir.write("001_bad.sql", "NOT SQL AT ALL;")

        _applier(store, migrations_dir).apply_pending()

        (failed,) = [e for e in log_output.entries if e["event"] == "migration.failed"]
        assert failed["log_level"] == "error"
        assert failed["version"] == 1
        assert failed["filename"] == "001_bad.sql"
        assert failed["error_type"] == "MigrationExecutionError"
        assert not any(e["event"] == "migrations.completed" for e in log_output.entries)


# ── pending() ────────────────────────────────────────────────────────


class TestPending:
    def test_all_pending_on_fresh_store(self, store, two_migrations):
        pending = _applier(store, two_migrations).pending()
        assert [m.version for m in pending] == [1, 2]
        assert not table_exists(store, "users")

    def test_none_pending_after_apply(self, store, two_migrations):
        applier = _applier(store, two_migrations)
        applier.apply_pending()
        assert applier.pending() == []


# ── run_migrations() ─────────────────────────────────────────────────


class TestRunMigrations:
    def test_ok(self, store, two_migrations):
        result = run_migrations(store, two_migrations.path)

        assert isinstance(result, Ok)
        assert result.unwrap().applied == [1, 2]

    def test_err(self, store, migrations_dir):
        migrations_dir.write("001_bad.sql", "CREATE TABL nope;")

        result = run_migrations(store, migrations_dir.path)

        assert isinstance(result, Err)
        assert isinstance(result.error, MigrationExecutionError)

    def test_custom_table(self, store, two_migrations):
        run_migrations(store, two_migrations.path, table="schema_versions")

        assert table_exists(store, "schema_versions")
        assert not table_exists(store, "app_schema_migrations")
        assert MigrationLedger(store, table="schema_versions").applied_versions() == {1, 2}

    def test_completed_event(self, store, two_migrations, log_output):
        run_migrations(store, two_migrations.path)

        (done,) = [e for e in log_output.entries if e["event"] == "migrations.completed"]
        assert done["applied"] == 2
        assert done["skipped"] == 0
