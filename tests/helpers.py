"""Helper utilities for tests."""

from datetime import date
from pathlib import Path
import sqlite3

from models.transaction import Transaction


def run_migrations(conn: sqlite3.Connection, migrations_dir: Path) -> None:
    """Run all SQL migrations in order.

    Args:
        conn: SQLite connection to run migrations against.
        migrations_dir: Path to directory containing .sql migration files.
    """
    for migration_file in sorted(migrations_dir.glob("*.sql")):
        with open(migration_file, "r") as f:
            conn.executescript(f.read())

    conn.commit()


def make_transaction(id: str, amount: int, account_id: int = 1, **kwargs) -> Transaction:
    """Build a transaction with sensible defaults for pass-level tests."""
    kwargs.setdefault("date", date(2025, 3, 10))
    kwargs.setdefault("description", f"TXN {id}")
    return Transaction(id=id, account_id=account_id, amount=amount, **kwargs)


def by_id(updates) -> dict:
    """Index update records by transaction ID."""
    return {update.transaction_id: update.fields for update in updates}
