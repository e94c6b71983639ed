"""Internal transfer pairing.

The auto-matcher links a transfer to its counterpart on another account only
when exactly one candidate exists. With no candidate or several it leaves the
transaction unlinked; it never guesses.
"""

from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Iterable, List, Mapping, Optional

from logger import get_logger
from models.transaction import Transaction, TransactionStatus, TransactionType
from models.update import LinkSlot, TransactionLink, TransactionUpdate
from reconciliation.errors import InvalidLink
from reconciliation.snapshot import WorkingSet
from reconciliation.status import resolve_status

logger = get_logger()


class MatchOutcome(str, Enum):
    LINKED = "linked"
    NO_CANDIDATE = "no_candidate"
    AMBIGUOUS = "ambiguous"
    ALREADY_LINKED = "already_linked"


@dataclass
class TransferMatch:
    transaction_id: str
    outcome: MatchOutcome
    link: Optional[TransactionLink] = None
    candidate_count: int = 0


def _opposite_signs(a: int, b: int) -> bool:
    return (a > 0 and b < 0) or (a < 0 and b > 0)


def is_transfer_candidate(
    transaction: Transaction, candidate: Transaction, include_approved: bool = False
) -> bool:
    """Whether candidate could be the other leg of transaction."""
    if candidate.id == transaction.id:
        return False
    if candidate.account_id == transaction.account_id:
        return False
    if candidate.date != transaction.date:
        return False
    if not _opposite_signs(transaction.amount, candidate.amount):
        return False
    if abs(candidate.amount) != abs(transaction.amount):
        return False
    if candidate.linked_transaction_id is not None:
        return False
    if candidate.linked_cost_id is not None:
        return False
    if not include_approved and candidate.status == TransactionStatus.APPROVED:
        return False
    return True


def find_transfer_candidates(
    transaction: Transaction,
    transactions: Iterable[Transaction],
    include_approved: bool = False,
    exclude_ids: AbstractSet[str] = frozenset(),
) -> List[Transaction]:
    """All transactions that could pair with the given one as a transfer.

    Approved transactions are left out by default so that a reviewed
    transaction is never re-typed by an automatic pass. IDs in exclude_ids
    are never candidates.
    """
    return [
        candidate
        for candidate in transactions
        if candidate.id not in exclude_ids
        and is_transfer_candidate(transaction, candidate, include_approved)
    ]


def auto_match_transfer(
    working: WorkingSet,
    transaction_id: str,
    exclude_ids: AbstractSet[str] = frozenset(),
) -> TransferMatch:
    """Link a transfer to its unique counterpart, if there is one.

    Both sides get linked_transaction_id pointing at each other and are
    forced to INTERNAL_TRANSFER. Re-running is a no-op once linked.

    Args:
        working: Working set the link is written into.
        transaction_id: The transfer to find a counterpart for.
        exclude_ids: Transactions that must not be picked as the counterpart.

    Returns:
        TransferMatch describing what happened.
    """
    transaction = working.require(transaction_id)
    if transaction.linked_transaction_id is not None:
        return TransferMatch(transaction_id, MatchOutcome.ALREADY_LINKED)

    candidates = find_transfer_candidates(transaction, working, exclude_ids=exclude_ids)

    if not candidates:
        logger.debug(f"No transfer counterpart for {transaction_id[:8]}...")
        return TransferMatch(transaction_id, MatchOutcome.NO_CANDIDATE)

    if len(candidates) > 1:
        logger.debug(
            f"{len(candidates)} transfer counterparts for {transaction_id[:8]}..., "
            "leaving unlinked"
        )
        return TransferMatch(
            transaction_id, MatchOutcome.AMBIGUOUS, candidate_count=len(candidates)
        )

    counterpart = candidates[0]
    link = TransactionLink(transaction_id, counterpart.id, LinkSlot.TRANSFER)
    working.apply_link(link)
    for side_id in (link.a_id, link.b_id):
        working.set_fields(side_id, type=TransactionType.INTERNAL_TRANSFER)

    logger.debug(f"Linked transfer {transaction_id[:8]}... <-> {counterpart.id[:8]}...")
    return TransferMatch(transaction_id, MatchOutcome.LINKED, link, candidate_count=1)


def transfer_description(outgoing: bool, account_name: str, when) -> str:
    direction = "to" if outgoing else "from"
    return f"Transfer {direction} {account_name}, {when.isoformat()}"


def match_transfer(
    transactions: Iterable[Transaction],
    first_id: str,
    second_id: str,
    account_names: Optional[Mapping[int, str]] = None,
) -> List[TransactionUpdate]:
    """Link two transactions picked by the user as one internal transfer.

    Unlike the auto-matcher this trusts the user's choice of pair and does
    not require equal amounts or dates.

    Raises:
        TransactionNotFound: If either transaction is missing.
        InvalidLink: If both are on the same account or either is already linked.

    Returns:
        Updates for both transactions.
    """
    working = WorkingSet(transactions)
    first = working.require(first_id)
    second = working.require(second_id)
    names = account_names or {}

    if first.account_id == second.account_id:
        raise InvalidLink("An internal transfer needs two different accounts")
    for transaction in (first, second):
        if transaction.linked_transaction_id is not None:
            raise InvalidLink(
                f"Transaction {transaction.id} is already linked to "
                f"{transaction.linked_transaction_id}"
            )

    working.apply_link(TransactionLink(first.id, second.id, LinkSlot.TRANSFER))

    for this, other in ((first, second), (second, first)):
        other_account = names.get(other.account_id, str(other.account_id))
        working.set_fields(
            this.id,
            type=TransactionType.INTERNAL_TRANSFER,
            user_description=transfer_description(
                this.amount < 0, other_account, other.date
            ),
            is_manually_changed=True,
        )
        working.set_fields(this.id, status=resolve_status(working.get(this.id)))

    logger.info(f"Matched internal transfer {first_id[:8]}... <-> {second_id[:8]}...")
    return working.updates()


def unlink_transfer(
    transactions: Iterable[Transaction], transaction_id: str
) -> List[TransactionUpdate]:
    """Break a transfer link on both sides and reset them to PLAIN.

    The peer may be absent from the snapshot (a dangling link); then only the
    given transaction is cleared.

    Raises:
        TransactionNotFound: If the transaction is missing.
        InvalidLink: If the transaction has no transfer link.
    """
    working = WorkingSet(transactions)
    transaction = working.require(transaction_id)
    peer_id = transaction.linked_transaction_id
    if peer_id is None:
        raise InvalidLink(f"Transaction {transaction_id} has no transfer link")

    sides = [transaction_id]
    peer = working.get(peer_id)
    if peer is not None and peer.linked_transaction_id == transaction_id:
        sides.append(peer_id)

    for side_id in sides:
        working.set_fields(
            side_id,
            linked_transaction_id=None,
            type=TransactionType.PLAIN,
            is_manually_changed=True,
        )
        working.set_fields(side_id, status=resolve_status(working.get(side_id)))

    logger.info(f"Unlinked transfer {transaction_id[:8]}... <-> {peer_id[:8]}...")
    return working.updates()
