"""Batch orchestration of the reconciliation passes.

One batch runs, in this order:

1. categorization of every transaction not yet approved (rules, then the
   bank category fallback), with the transfer auto-matcher run inline for
   any transaction a rule turns into an internal transfer;
2. a sweep of the auto-matcher over the remaining unlinked transfers;
3. link synchronization over everything updated so far;
4. status resolution for every touched transaction.

The result is one list of update records, committed with a single call.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set

from logger import get_logger
from models.category_rule import CategoryRule
from models.taxonomy import Taxonomy
from models.transaction import Transaction, TransactionStatus, TransactionType
from models.update import TransactionUpdate
from reconciliation.errors import CommitFailure
from reconciliation.matching import MatchSource, categorize, prepare_rules
from reconciliation.snapshot import WorkingSet
from reconciliation.status import resolve_status
from reconciliation.sync import synchronize_links
from reconciliation.transfers import MatchOutcome, auto_match_transfer

logger = get_logger()


@dataclass
class BatchStats:
    processed: int = 0
    skipped: int = 0
    updated: int = 0
    rules_applied: int = 0
    bank_matched: int = 0
    auto_matched: int = 0
    ambiguous_transfers: int = 0
    auto_approved: int = 0


@dataclass
class BatchResult:
    """Outcome of one batch.

    Attributes:
        updates: One update record per transaction whose fields changed.
        stats: Counters for the batch.
        success: False when the commit failed.
        committed: Number of transactions the store reported as updated.
        error_reason: Why the commit failed, if it did.
    """

    updates: List[TransactionUpdate] = field(default_factory=list)
    stats: BatchStats = field(default_factory=BatchStats)
    success: bool = True
    committed: int = 0
    error_reason: Optional[str] = None


def _is_excluded(transaction: Transaction, protect_manual_changes: bool) -> bool:
    if transaction.status == TransactionStatus.APPROVED:
        return True
    return protect_manual_changes and transaction.is_manually_changed


def _needs_transfer_match(transaction: Transaction) -> bool:
    return (
        transaction.type == TransactionType.INTERNAL_TRANSFER
        and transaction.linked_transaction_id is None
    )


def _match_transfer(
    working: WorkingSet, transaction_id: str, stats: BatchStats, excluded: Set[str]
) -> None:
    match = auto_match_transfer(working, transaction_id, exclude_ids=excluded)
    if match.outcome == MatchOutcome.LINKED:
        stats.auto_matched += 1
    elif match.outcome == MatchOutcome.AMBIGUOUS:
        stats.ambiguous_transfers += 1


def apply_rules(
    transactions: Iterable[Transaction],
    rules: Iterable[CategoryRule],
    taxonomy: Optional[Taxonomy] = None,
    protect_manual_changes: bool = False,
) -> BatchResult:
    """Run all reconciliation passes over a snapshot.

    The snapshot is never modified. Approved transactions are skipped
    entirely and never receive an update, and re-running on the result of
    a previous batch produces no updates.

    Args:
        transactions: Transaction snapshot for the accounts/period in scope.
        rules: Rule snapshot; inactive rules are ignored.
        taxonomy: Taxonomy for the bank category fallback.
        protect_manual_changes: Also skip transactions flagged as manually
            changed. They are neither categorized nor picked as a transfer
            counterpart or sync peer.

    Returns:
        BatchResult with the update set, not yet committed.
    """
    working = WorkingSet(transactions)
    ordered_rules = prepare_rules(rules)
    stats = BatchStats()
    approvals: Dict[str, bool] = {}
    attempted: Set[str] = set()
    # Known up front so the inline matcher never pairs with a skipped transaction
    excluded: Set[str] = {
        t.id for t in working if _is_excluded(t, protect_manual_changes)
    }

    logger.info(
        f"Applying {len(ordered_rules)} active rule(s) to {len(working)} transaction(s)"
    )

    for transaction in working:
        stats.processed += 1
        if transaction.id in excluded:
            stats.skipped += 1
            continue

        categorization = categorize(transaction, ordered_rules, taxonomy)
        if categorization is None:
            continue

        working.set_fields(transaction.id, **categorization.fields)
        approvals[transaction.id] = categorization.auto_approval
        if categorization.source == MatchSource.RULE:
            stats.rules_applied += 1
        else:
            stats.bank_matched += 1

        if _needs_transfer_match(working.get(transaction.id)):
            attempted.add(transaction.id)
            _match_transfer(working, transaction.id, stats, excluded)

    for transaction in working:
        if transaction.id in attempted or transaction.id in excluded:
            continue
        if _needs_transfer_match(transaction):
            _match_transfer(working, transaction.id, stats, excluded)

    # Categorized transactions act as sync sources before link-only ones
    touched = working.touched_ids()
    sync_order = [tid for tid in touched if tid in approvals]
    sync_order += [tid for tid in touched if tid not in approvals]
    synchronize_links(working, sync_order, approvals, skip_ids=excluded)

    for transaction_id in working.touched_ids():
        view = working.get(transaction_id)
        status = resolve_status(view, approval_granted=approvals.get(transaction_id, False))
        working.set_fields(transaction_id, status=status)

    updates = working.updates()
    stats.updated = len(updates)
    stats.auto_approved = sum(
        1
        for update in updates
        if update.fields.get("status") == TransactionStatus.APPROVED
    )

    logger.info(
        f"Batch complete: {stats.updated} update(s), {stats.rules_applied} rule match(es), "
        f"{stats.bank_matched} bank category match(es), {stats.auto_matched} transfer(s) "
        f"linked, {stats.auto_approved} approved, {stats.skipped} skipped"
    )
    return BatchResult(updates=updates, stats=stats)


def commit_batch(
    result: BatchResult, commit: Callable[[List[TransactionUpdate]], int]
) -> BatchResult:
    """Hand the batch's update set to the store in a single call.

    Args:
        result: Result of apply_rules.
        commit: Bulk write callable; returns the applied count and raises
            CommitFailure on error.

    Returns:
        The same result with committed set, or a failed result whose update
        set is discarded. Nothing is retried.
    """
    if not result.updates:
        logger.info("Nothing to commit")
        return result

    try:
        result.committed = commit(result.updates)
    except CommitFailure as e:
        logger.error(f"Bulk commit failed, batch discarded: {e}")
        return BatchResult(
            updates=[], stats=result.stats, success=False, error_reason=str(e)
        )

    logger.info(f"Committed {result.committed} transaction update(s)")
    return result
