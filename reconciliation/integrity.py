"""Detect and repair link slots that do not form a proper pair."""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

from logger import get_logger
from models.transaction import Transaction, TransactionType
from models.update import LinkSlot, TransactionUpdate
from reconciliation.coverage import refresh_status, release_cost_link
from reconciliation.snapshot import WorkingSet

logger = get_logger()


@dataclass
class BrokenLink:
    transaction_id: str
    slot: LinkSlot
    linked_id: str
    reason: str


def _check(
    transaction: Transaction,
    slot: LinkSlot,
    working: WorkingSet,
    account_ids: Optional[Set[int]],
) -> Optional[str]:
    linked_id = getattr(transaction, slot.value)
    peer = working.get(linked_id)

    if peer is None:
        return "linked transaction does not exist"
    if getattr(peer, slot.value) != transaction.id:
        return "linked transaction does not link back"
    if account_ids is not None:
        if transaction.account_id not in account_ids:
            return f"account {transaction.account_id} does not exist"
        if peer.account_id not in account_ids:
            return f"linked account {peer.account_id} does not exist"
    if slot == LinkSlot.TRANSFER and peer.account_id == transaction.account_id:
        return "transfer links two transactions on the same account"
    return None


def find_broken_links(
    transactions: Iterable[Transaction],
    account_ids: Optional[Iterable[int]] = None,
) -> List[BrokenLink]:
    """List every link slot that is dangling, one-sided or otherwise invalid.

    Args:
        transactions: Full transaction snapshot.
        account_ids: Known account IDs. When given, links touching any
            other account are reported too.

    Returns:
        One BrokenLink per bad slot, in snapshot order.
    """
    working = WorkingSet(transactions)
    known = set(account_ids) if account_ids is not None else None
    broken = []

    for transaction in working:
        for slot in LinkSlot:
            linked_id = getattr(transaction, slot.value)
            if linked_id is None:
                continue
            reason = _check(transaction, slot, working, known)
            if reason is not None:
                broken.append(BrokenLink(transaction.id, slot, linked_id, reason))

    if broken:
        logger.warning(f"Found {len(broken)} broken link(s)")
    return broken


def repair_broken_links(
    transactions: Iterable[Transaction], broken: Iterable[BrokenLink]
) -> List[TransactionUpdate]:
    """Clear broken links, on both sides where the peer still points back.

    Transfers fall back to PLAIN; cost links are reversed completely,
    including the corrected amount.

    Returns:
        Updates for every transaction that changed.
    """
    working = WorkingSet(transactions)
    touched = []

    for link in broken:
        transaction = working.get(link.transaction_id)
        if transaction is None or getattr(transaction, link.slot.value) is None:
            continue

        if link.slot == LinkSlot.COST:
            reset = release_cost_link(working, link.transaction_id)
            touched += reset
            continue

        sides = [link.transaction_id]
        peer = working.get(link.linked_id)
        if peer is not None and peer.linked_transaction_id == link.transaction_id:
            sides.append(peer.id)
        for side_id in sides:
            values = {"linked_transaction_id": None}
            if working.get(side_id).type == TransactionType.INTERNAL_TRANSFER:
                values["type"] = TransactionType.PLAIN
            working.set_fields(side_id, **values)
        touched += sides

    refresh_status(working, dict.fromkeys(touched))
    updates = working.updates()
    logger.info(f"Repaired links on {len(updates)} transaction(s)")
    return updates
