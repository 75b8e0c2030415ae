#!/usr/bin/env python3
"""Migrate on Startup — bring the schema up to date before serving.

WHY MIGRATE ON STARTUP
──────────────────────
The service refuses to run against a schema it does not understand.
``init_database()`` opens the store, checks it answers, applies every
``<version>_<label>.sql`` file not yet recorded in
``app_schema_migrations``, and only then hands the store back. Any
failure comes back as an ``Err`` so the entry point decides how to exit.

ARCHITECTURE
────────────
    migrations/
    ├── 001_create_users.sql
    ├── 002_add_email_index.sql
    └── 003_create_entries.sql
         │
         ▼
    init_database(settings)
         │
    ┌────┴────────────────────────────┐
    │ app_schema_migrations           │
    │   version, applied_at           │
    │   (skip if already recorded)    │
    └─────────────────────────────────┘

BEST PRACTICES
──────────────
• Version files with a numeric prefix: 001_, 002_, ...
• Never edit a migration that has already been applied anywhere.
• Do not put BEGIN/COMMIT in migration files; each file already runs
  in its own transaction.

Run: python examples/01_migrate_on_startup.py
"""

import tempfile
from pathlib import Path

from cashflow.core.database import init_database
from cashflow.core.logging import configure_logging
from cashflow.core.migrations import MigrationLedger
from cashflow.core.settings import CashflowSettings


def main():
    print("=" * 60)
    print("Migrate on Startup Example")
    print("=" * 60)

    configure_logging(level="INFO", json_format=False)

    with tempfile.TemporaryDirectory() as tmpdir:
        migrations = Path(tmpdir) / "migrations"
        migrations.mkdir()

        # SQLite-flavoured bodies; database/migrations/ holds the PostgreSQL set.
        (migrations / "001_create_users.sql").write_text("""
            CREATE TABLE users (
                id INTEGER PRIMARY KEY,
                email TEXT NOT NULL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            );
        """)
        (migrations / "002_add_email_index.sql").write_text("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email ON users (email);
        """)
        (migrations / "003_create_entries.sql").write_text("""
            CREATE TABLE cashflow_entries (
                id INTEGER PRIMARY KEY,
                user_id INTEGER NOT NULL REFERENCES users (id),
                kind TEXT NOT NULL CHECK (kind IN ('income', 'expense')),
                amount REAL NOT NULL
            );
        """)
        (migrations / "notes_draft.sql").write_text("-- skipped: no version prefix\n")

        settings = CashflowSettings(
            database_url=f"sqlite:///{Path(tmpdir) / 'cashflow.db'}",
            migrations_dir=migrations,
        )

        # 1. First start applies everything
        print("\n1. First start...")
        db = init_database(settings).unwrap()
        print(f"   Applied: {db.migrations.applied}")
        print(f"   Skipped: {db.migrations.skipped}")
        db.close()

        # 2. Restart is a no-op
        print("\n2. Restart (should skip all)...")
        db = init_database(settings).unwrap()
        print(f"   Applied: {db.migrations.applied}")
        print(f"   Skipped: {db.migrations.skipped}")

        # 3. Ledger contents
        print("\n3. Ledger...")
        for entry in MigrationLedger(db.store).entries():
            print(f"   {entry.version} @ {entry.applied_at}")
        db.close()

        # 4. A broken migration stops startup
        print("\n4. Broken migration...")
        (migrations / "004_broken.sql").write_text("ALTER TABLE missing ADD COLUMN x INT;")
        result = init_database(settings)
        if result.is_err():
            print(f"   Startup refused: {result.error}")

    print("\n" + "=" * 60)
    print("Done!")
    print("=" * 60)


if __name__ == "__main__":
    main()
