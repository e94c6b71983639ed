"""Reconciliation service: loads snapshots, runs the passes, commits updates."""

from datetime import date
from typing import Iterable, List, Optional

from config import Config
from logger import get_logger
from models.transaction import Transaction
from models.update import TransactionUpdate
from reconciliation import (
    BatchResult,
    BrokenLink,
    CoverageResult,
    apply_rules,
    approve_transaction,
    commit_batch,
    coverage_candidates,
    edit_transaction,
    find_broken_links,
    link_partial_coverage,
    link_savings,
    match_transfer,
    recalculate_statuses,
    repair_broken_links,
    unlink_partial_coverage,
    unlink_transfer,
)
from reconciliation.errors import TransactionNotFound

logger = get_logger()


class ReconciliationService:
    """Runs reconciliation operations against the database.

    Every operation reads a snapshot, computes an update set without
    touching the database, and writes that set with one bulk update.

    Args:
        config: Application configuration.
        accounts: AccountService instance.
        transactions: TransactionService instance.
        categories: CategoryService instance.
        rules: RuleService instance.
    """

    def __init__(self, config: Config, accounts, transactions, categories, rules):
        self.config = config
        self.accounts = accounts
        self.transactions = transactions
        self.categories = categories
        self.rules = rules

    def _with_partners(self, transactions: Iterable[Transaction]) -> List[Transaction]:
        """Add the transactions linked to any in the list, in either slot."""
        snapshot = list(transactions)
        known = {t.id for t in snapshot}
        partner_ids = [
            linked_id
            for t in snapshot
            for linked_id in (t.linked_transaction_id, t.linked_cost_id)
            if linked_id and linked_id not in known
        ]
        snapshot.extend(self.transactions.find_many(partner_ids))
        return snapshot

    def _load(self, *transaction_ids: str) -> List[Transaction]:
        found = self.transactions.find_many(transaction_ids)
        found_ids = {t.id for t in found}
        for transaction_id in transaction_ids:
            if transaction_id not in found_ids:
                raise TransactionNotFound(transaction_id)
        return self._with_partners(found)

    def _commit(self, updates: List[TransactionUpdate]) -> int:
        if not updates:
            return 0
        return self.transactions.bulk_update(updates)

    def apply_rules(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_ids: Optional[List[int]] = None,
    ) -> BatchResult:
        """Run a categorization batch over a period and commit it.

        Args:
            start_date: First date in scope, or None.
            end_date: Last date in scope, or None.
            account_ids: Accounts in scope; None means all accounts.

        Returns:
            The committed (or failed) BatchResult.
        """
        snapshot = self._with_partners(
            self.transactions.find_by_period(start_date, end_date, account_ids)
        )
        result = apply_rules(
            snapshot,
            self.rules.find_active(),
            self.categories.build_taxonomy(),
            protect_manual_changes=self.config.protect_manual_changes,
        )
        return commit_batch(result, self.transactions.bulk_update)

    def link_partial_coverage(self, covering_id: str, covered_id: str) -> CoverageResult:
        """Link a covering transaction to a cost and commit both sides."""
        result = link_partial_coverage(
            self._load(covering_id, covered_id),
            covering_id,
            covered_id,
            self.accounts.name_map(),
        )
        if result.success:
            self._commit(result.updates)
        return result

    def unlink_cost(self, transaction_id: str) -> int:
        return self._commit(
            unlink_partial_coverage(self._load(transaction_id), transaction_id)
        )

    def match_transfer(self, first_id: str, second_id: str) -> int:
        updates = match_transfer(
            self._load(first_id, second_id),
            first_id,
            second_id,
            self.accounts.name_map(),
        )
        return self._commit(updates)

    def unlink_transfer(self, transaction_id: str) -> int:
        return self._commit(unlink_transfer(self._load(transaction_id), transaction_id))

    def edit(self, transaction_id: str, **values) -> int:
        """Apply a manual edit to one transaction.

        Returns:
            Number of transactions written (the partner too, if a link broke).
        """
        updates = edit_transaction(
            self._load(transaction_id),
            transaction_id,
            self.categories.build_taxonomy(),
            **values,
        )
        return self._commit(updates)

    def approve(self, transaction_id: str) -> int:
        return self._commit(
            approve_transaction(self._load(transaction_id), transaction_id)
        )

    def link_savings(
        self, transaction_id: str, savings_target_id: str, main_category_id: int
    ) -> int:
        updates = link_savings(
            self._load(transaction_id),
            transaction_id,
            savings_target_id,
            main_category_id,
            self.categories.build_taxonomy(),
        )
        return self._commit(updates)

    def coverage_candidates(self, cost_id: str) -> List[Transaction]:
        """Transactions that could cover a cost, closest date first."""
        cost = self.transactions.find(cost_id)
        if cost is None:
            raise TransactionNotFound(cost_id)
        return coverage_candidates(
            cost,
            self.transactions.find_by_period(account_ids=[cost.account_id]),
            window_days=self.config.coverage_window_days,
        )

    def verify_links(self) -> List[BrokenLink]:
        return find_broken_links(
            self.transactions.find_all(),
            [account.id for account in self.accounts.find_all()],
        )

    def repair_links(self) -> int:
        """Find broken links and clear them.

        Returns:
            Number of transactions written.
        """
        snapshot = self.transactions.find_all()
        broken = find_broken_links(
            snapshot, [account.id for account in self.accounts.find_all()]
        )
        if not broken:
            return 0
        return self._commit(repair_broken_links(snapshot, broken))

    def recalculate_statuses(self) -> int:
        updates = recalculate_statuses(self.transactions.find_all())
        logger.info(f"{len(updates)} transaction status(es) out of date")
        return self._commit(updates)
