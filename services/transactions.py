"""Transaction service for database operations."""

import sqlite3
from datetime import date
from enum import Enum
from typing import Iterable, List, Optional

from logger import get_logger
from models.transaction import Transaction
from models.update import TransactionUpdate
from reconciliation.errors import CommitFailure
from reconciliation.snapshot import UPDATABLE_FIELDS

logger = get_logger()

# SQL Query Constants
_TRANSACTION_FIELDS = """id, account_id, date, amount, description, user_description,
       bank_category, bank_sub_category, app_category_id, app_sub_category_id, type,
       status, linked_transaction_id, linked_cost_id, corrected_amount,
       savings_target_id, is_manually_changed"""

# Automatically generate placeholders from field count
_TRANSACTION_INSERT_PLACEHOLDERS = (
    f"({', '.join(['?'] * len(_TRANSACTION_FIELDS.split(',')))})"
)


def _to_db_value(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


class TransactionService:
    """Service for managing transactions."""

    def __init__(self, db_manager):
        """Initialize the transaction service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def create(self, transaction: Transaction) -> Transaction:
        """Create a single transaction in the database.

        Args:
            transaction: Transaction object to insert.

        Returns:
            The same Transaction object (already has its ID from checksum).

        Raises:
            sqlite3.IntegrityError: On a duplicate ID or unknown account.
        """
        with self.db_manager.connect() as conn:
            conn.execute(
                f"""
                INSERT INTO transactions ({_TRANSACTION_FIELDS})
                VALUES {_TRANSACTION_INSERT_PLACEHOLDERS}
                """,
                self._transaction_to_row(transaction),
            )
            conn.commit()

        return transaction

    def bulk_create(self, transactions: List[Transaction]) -> int:
        """Create multiple transactions in a single database transaction.

        Rows whose ID already exists are skipped, so re-importing the same
        statement is harmless.

        Returns:
            Number of transactions actually inserted.
        """
        if not transactions:
            return 0

        with self.db_manager.connect() as conn:
            before = conn.total_changes
            conn.executemany(
                f"""
                INSERT OR IGNORE INTO transactions ({_TRANSACTION_FIELDS})
                VALUES {_TRANSACTION_INSERT_PLACEHOLDERS}
                """,
                [self._transaction_to_row(t) for t in transactions],
            )
            conn.commit()
            return conn.total_changes - before

    def bulk_update(self, updates: Iterable[TransactionUpdate]) -> int:
        """Write a set of partial updates atomically.

        Each update only touches the fields it carries. Either every update
        is written or, on any database error, none is.

        Args:
            updates: Update records as produced by the reconciliation passes.

        Returns:
            Number of transactions updated.

        Raises:
            ValueError: If an update names a field that cannot be written.
            CommitFailure: If the write fails. The transaction is rolled back.
        """
        updates = [u for u in updates if u.fields]
        if not updates:
            return 0

        for update in updates:
            invalid_fields = set(update.fields) - UPDATABLE_FIELDS
            if invalid_fields:
                raise ValueError(f"Unsupported field names: {invalid_fields}")

        count = 0
        with self.db_manager.connect() as conn:
            try:
                for update in updates:
                    names = sorted(update.fields)
                    set_clause = ", ".join([f"{name} = ?" for name in names])
                    params = [_to_db_value(update.fields[name]) for name in names]
                    params.append(update.transaction_id)
                    cursor = conn.execute(
                        f"UPDATE transactions SET {set_clause} WHERE id = ?",
                        params,
                    )
                    count += cursor.rowcount
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise CommitFailure(f"Failed to write {len(updates)} update(s): {e}") from e

        logger.debug(f"Wrote {count} transaction update(s)")
        return count

    def find(self, transaction_id: str) -> Optional[Transaction]:
        """Get a single transaction by ID.

        Args:
            transaction_id: The transaction checksum ID.

        Returns:
            Transaction object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_TRANSACTION_FIELDS}
                FROM transactions
                WHERE id = ?
                """,
                (transaction_id,),
            )
            row = cursor.fetchone()

            if row:
                return self._row_to_transaction(row)
            return None

    def find_many(self, transaction_ids: Iterable[str]) -> List[Transaction]:
        """Get the transactions with the given IDs. Unknown IDs are ignored."""
        ids = list(dict.fromkeys(i for i in transaction_ids if i))
        if not ids:
            return []

        placeholders = ", ".join(["?"] * len(ids))
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_TRANSACTION_FIELDS}
                FROM transactions
                WHERE id IN ({placeholders})
                ORDER BY date, id
                """,
                ids,
            )
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def find_all(self) -> List[Transaction]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_TRANSACTION_FIELDS} FROM transactions ORDER BY date, id"
            )
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def find_by_period(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_ids: Optional[List[int]] = None,
    ) -> List[Transaction]:
        """Get transactions within an inclusive date range.

        Args:
            start_date: First date to include, or None for no lower bound.
            end_date: Last date to include, or None for no upper bound.
            account_ids: Optional account IDs to filter by.

        Returns:
            List of Transaction objects ordered by date (oldest first).
        """
        query = f"SELECT {_TRANSACTION_FIELDS} FROM transactions WHERE 1 = 1"
        params = []

        if start_date is not None:
            query += " AND date >= ?"
            params.append(start_date.isoformat())

        if end_date is not None:
            query += " AND date <= ?"
            params.append(end_date.isoformat())

        if account_ids:
            placeholders = ", ".join(["?"] * len(account_ids))
            query += f" AND account_id IN ({placeholders})"
            params.extend(account_ids)

        query += " ORDER BY date, id"

        with self.db_manager.connect() as conn:
            cursor = conn.execute(query, params)
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def _transaction_to_row(self, transaction: Transaction) -> tuple:
        data = transaction.to_dict()
        return tuple(data[name.strip()] for name in _TRANSACTION_FIELDS.split(","))

    def _row_to_transaction(self, row: tuple) -> Transaction:
        """Convert a database row to a Transaction object."""
        return Transaction(
            id=row[0],
            account_id=row[1],
            date=date.fromisoformat(row[2]),
            amount=row[3],
            description=row[4],
            user_description=row[5],
            bank_category=row[6],
            bank_sub_category=row[7],
            app_category_id=row[8],
            app_sub_category_id=row[9],
            type=row[10],
            status=row[11],
            linked_transaction_id=row[12],
            linked_cost_id=row[13],
            corrected_amount=row[14],
            savings_target_id=row[15],
            is_manually_changed=bool(row[16]),
        )
