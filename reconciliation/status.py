"""Derive the review status of a transaction from its fields.

Status is never set by hand anywhere else; every operation that touches
categorization or linkage fields calls back into resolve_status.
"""

from typing import Iterable, List

from models.transaction import Transaction, TransactionStatus, TransactionType
from models.update import TransactionUpdate


def is_fully_categorized(transaction: Transaction) -> bool:
    return (
        transaction.app_category_id is not None
        and transaction.app_sub_category_id is not None
    )


def is_linkage_complete(transaction: Transaction) -> bool:
    """An internal transfer is only complete once it has a counterpart."""
    if transaction.type == TransactionType.INTERNAL_TRANSFER:
        return transaction.linked_transaction_id is not None
    return True


def resolve_status(
    transaction: Transaction, approval_granted: bool = True
) -> TransactionStatus:
    """Compute the three-state status of a transaction.

    - Both category fields set and linkage complete: APPROVED.
    - Only the main category set, or an internal transfer still missing its
      counterpart: AUTO_CATEGORIZED.
    - No category: NEEDS_REVIEW.

    Args:
        transaction: The transaction to evaluate.
        approval_granted: Whether whoever caused the change may approve. A
            direct user edit always may; a rule may only if it auto-approves.
            When False the result is capped at AUTO_CATEGORIZED.

    Returns:
        The derived status.
    """
    if transaction.app_category_id is None:
        return TransactionStatus.NEEDS_REVIEW

    if (
        approval_granted
        and is_fully_categorized(transaction)
        and is_linkage_complete(transaction)
    ):
        return TransactionStatus.APPROVED

    return TransactionStatus.AUTO_CATEGORIZED


def recalculate_statuses(transactions: Iterable[Transaction]) -> List[TransactionUpdate]:
    """Find transactions whose stored status no longer matches their fields.

    Only confirms or withdraws an existing approval, it never grants one:
    an unlinked transfer drops from APPROVED to AUTO_CATEGORIZED, but an
    AUTO_CATEGORIZED transaction is not promoted.

    Returns:
        Status updates for every transaction that drifted.
    """
    updates = []
    for transaction in transactions:
        status = resolve_status(
            transaction,
            approval_granted=transaction.status == TransactionStatus.APPROVED,
        )
        if status != transaction.status:
            updates.append(TransactionUpdate(transaction.id, {"status": status}))
    return updates
