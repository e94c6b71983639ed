"""Partial cost coverage and expense claims.

A covering transaction (a positive pool, e.g. a reimbursement or a transfer
in) pays down a covered transaction (a negative cost). Both keep their bank
amount; corrected_amount holds the net effect after coverage.

Relinking always starts from scratch: any existing cost link on either side
is reversed first, so applying the same link twice gives the same result
as applying it once.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable, List, Mapping, Optional

from logger import get_logger
from models.transaction import COVERAGE_TYPES, Transaction, TransactionType
from models.update import LinkSlot, TransactionLink, TransactionUpdate
from reconciliation.errors import (
    ExhaustedCoverage,
    InvalidLink,
    ReconciliationError,
)
from reconciliation.snapshot import WorkingSet
from reconciliation.status import resolve_status

logger = get_logger()

COVERED_DESCRIPTION = "Cost covered by payment from {account}"
COVERING_DESCRIPTION = "Covers cost from {account}"


@dataclass
class CoverageResult:
    """Outcome of a coverage link request.

    Attributes:
        success: Whether the link can be committed.
        updates: Field updates for every transaction involved (empty on failure).
        amount_covered: Minor units moved from the pool onto the cost.
        error_reason: Human readable reason when success is False.
    """

    success: bool
    updates: List[TransactionUpdate] = field(default_factory=list)
    amount_covered: int = 0
    error_reason: Optional[str] = None


def is_generated_description(text: Optional[str]) -> bool:
    """Whether a user description was written by the coverage linker."""
    if not text:
        return False
    prefixes = (
        COVERED_DESCRIPTION.split("{")[0],
        COVERING_DESCRIPTION.split("{")[0],
    )
    return text.startswith(prefixes)


def _reset_side(working: WorkingSet, transaction_id: str) -> None:
    transaction = working.get(transaction_id)
    if transaction is None:
        return
    values = {
        "linked_cost_id": None,
        "corrected_amount": None,
    }
    if transaction.type in COVERAGE_TYPES:
        values["type"] = TransactionType.PLAIN
    if is_generated_description(transaction.user_description):
        values["user_description"] = None
    working.set_fields(transaction_id, **values)


def release_cost_link(working: WorkingSet, transaction_id: str) -> List[str]:
    """Reverse the cost link a transaction takes part in, on both sides.

    Returns:
        IDs that were reset.
    """
    transaction = working.require(transaction_id)
    partner_id = transaction.linked_cost_id
    if partner_id is None:
        return []

    reset = [transaction_id]
    _reset_side(working, transaction_id)

    partner = working.get(partner_id)
    if partner is None:
        logger.warning(
            f"Cost link partner {partner_id[:8]}... of {transaction_id[:8]}... "
            "is not in the snapshot"
        )
    elif partner.linked_cost_id == transaction_id:
        _reset_side(working, partner_id)
        reset.append(partner_id)

    logger.debug(f"Released cost link {transaction_id[:8]}... <-> {partner_id[:8]}...")
    return reset


def refresh_status(working: WorkingSet, transaction_ids: Iterable[str]) -> None:
    for transaction_id in transaction_ids:
        view = working.get(transaction_id)
        if view is not None:
            working.set_fields(transaction_id, status=resolve_status(view))


def apply_partial_coverage(
    working: WorkingSet,
    covering_id: str,
    covered_id: str,
    account_names: Optional[Mapping[int, str]] = None,
) -> int:
    """Write a coverage link into the working set.

    Raises:
        TransactionNotFound: If either transaction is missing.
        InvalidLink: If both IDs are the same transaction or the covered
            transaction is not a cost.
        ExhaustedCoverage: If there is nothing left to cover. The working set
            may then hold the released prior links and must be discarded.

    Returns:
        The amount covered, in minor units.
    """
    if covering_id == covered_id:
        raise InvalidLink("A transaction cannot cover itself")

    working.require(covering_id)
    working.require(covered_id)
    names = account_names or {}

    released = release_cost_link(working, covering_id)
    released += release_cost_link(working, covered_id)

    # Released, so both amounts below are the uncorrected bank amounts
    pool = working.require(covering_id)
    cost = working.require(covered_id)
    if cost.amount > 0:
        raise InvalidLink("The covered transaction must be a cost (negative amount)")

    amount_to_cover = min(abs(cost.amount), pool.amount)
    if amount_to_cover <= 0:
        if pool.amount <= 0:
            reason = "The covering transaction has nothing left to cover with"
        else:
            reason = "The covered transaction has nothing left to cover"
        raise ExhaustedCoverage(covering_id, covered_id, reason)

    working.apply_link(TransactionLink(pool.id, cost.id, LinkSlot.COST))
    working.set_fields(
        cost.id,
        type=TransactionType.EXPENSE_CLAIM,
        corrected_amount=cost.amount + amount_to_cover,
        user_description=COVERED_DESCRIPTION.format(
            account=names.get(pool.account_id, str(pool.account_id))
        ),
        is_manually_changed=True,
    )
    working.set_fields(
        pool.id,
        type=TransactionType.COST_COVERAGE,
        corrected_amount=pool.amount - amount_to_cover,
        user_description=COVERING_DESCRIPTION.format(
            account=names.get(cost.account_id, str(cost.account_id))
        ),
        is_manually_changed=True,
    )

    refresh_status(working, dict.fromkeys(released + [pool.id, cost.id]))
    return amount_to_cover


def link_partial_coverage(
    transactions: Iterable[Transaction],
    covering_id: str,
    covered_id: str,
    account_names: Optional[Mapping[int, str]] = None,
) -> CoverageResult:
    """Link a covering transaction to the cost it pays down.

    Args:
        transactions: Snapshot containing both transactions and any partners
            they are currently cost-linked to.
        covering_id: The pool (typically positive).
        covered_id: The cost (typically negative).
        account_names: Account names for the generated descriptions.

    Returns:
        CoverageResult. On failure nothing is to be written.
    """
    working = WorkingSet(transactions)
    try:
        amount = apply_partial_coverage(working, covering_id, covered_id, account_names)
    except ReconciliationError as e:
        logger.warning(f"Coverage link {covering_id[:8]}... -> {covered_id[:8]}... refused: {e}")
        return CoverageResult(success=False, error_reason=str(e))

    logger.info(
        f"Covered {amount} of {covered_id[:8]}... with {covering_id[:8]}..."
    )
    return CoverageResult(success=True, updates=working.updates(), amount_covered=amount)


def cover_cost(
    transactions: Iterable[Transaction],
    covering_id: str,
    cost_id: str,
    account_names: Optional[Mapping[int, str]] = None,
) -> CoverageResult:
    """Start from the pool and pick the cost it covers."""
    return link_partial_coverage(transactions, covering_id, cost_id, account_names)


def claim_expense(
    transactions: Iterable[Transaction],
    expense_id: str,
    payment_id: str,
    account_names: Optional[Mapping[int, str]] = None,
) -> CoverageResult:
    """Start from the expense and pick the payment that reimburses it."""
    return link_partial_coverage(transactions, payment_id, expense_id, account_names)


def unlink_partial_coverage(
    transactions: Iterable[Transaction], transaction_id: str
) -> List[TransactionUpdate]:
    """Reverse the cost link of a transaction on both participants.

    Raises:
        TransactionNotFound: If the transaction is missing.
        InvalidLink: If it has no cost link.
    """
    working = WorkingSet(transactions)
    transaction = working.require(transaction_id)
    if transaction.linked_cost_id is None:
        raise InvalidLink(f"Transaction {transaction_id} has no cost link")

    reset = release_cost_link(working, transaction_id)
    for reset_id in reset:
        working.set_fields(reset_id, is_manually_changed=True)
    refresh_status(working, reset)

    logger.info(f"Unlinked cost coverage for {transaction_id[:8]}...")
    return working.updates()


def coverage_candidates(
    cost: Transaction,
    transactions: Iterable[Transaction],
    window_days: int = 30,
) -> List[Transaction]:
    """Positive transactions that could reimburse a cost.

    Same account, within window_days either side of the cost date, and not
    linked in either slot. Closest dates come first.
    """
    window = timedelta(days=window_days)
    candidates = [
        t
        for t in transactions
        if t.id != cost.id
        and t.amount > 0
        and t.account_id == cost.account_id
        and abs(t.date - cost.date) <= window
        and t.linked_transaction_id is None
        and t.linked_cost_id is None
    ]
    return sorted(candidates, key=lambda t: (abs(t.date - cost.date), t.date, t.id))
