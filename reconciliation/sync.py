"""Propagate categorization and approval across linked transfer pairs."""

from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable

from logger import get_logger
from models.transaction import COVERAGE_TYPES, TransactionStatus, TransactionType
from reconciliation.snapshot import WorkingSet
from reconciliation.status import resolve_status

logger = get_logger()


@dataclass
class SyncStats:
    pairs_synced: int = 0
    peers_approved: int = 0
    peers_missing: int = 0


def synchronize_links(
    working: WorkingSet,
    updated_ids: Iterable[str],
    approvals: Dict[str, bool],
    skip_ids: AbstractSet[str] = frozenset(),
) -> SyncStats:
    """Copy each updated transfer's categories onto its linked peer.

    Every pair is handled once per pass: the first updated endpoint seen
    wins and both endpoints are marked visited. Approved peers are left
    alone, as are peers in skip_ids and peers linked to some third
    transaction. A synced peer is approved exactly when its source is, so
    any grant the peer earned on its own is replaced.

    Args:
        working: Working set holding the batch's changes.
        updated_ids: IDs updated so far, in processing order.
        approvals: Approval grants per transaction ID. Read for the source
            side and overwritten for every synced peer.
        skip_ids: Transactions that must not be written as a peer.

    Returns:
        Counters for the pass.
    """
    stats = SyncStats()
    visited = set()

    for transaction_id in updated_ids:
        if transaction_id in visited:
            continue
        source = working.get(transaction_id)
        if source is None or source.linked_transaction_id is None:
            continue
        if source.type != TransactionType.INTERNAL_TRANSFER:
            continue

        peer_id = source.linked_transaction_id
        visited.update((transaction_id, peer_id))

        peer = working.get(peer_id)
        if peer is None:
            logger.warning(
                f"Transfer {transaction_id[:8]}... is linked to "
                f"{peer_id[:8]}... which is not in the snapshot"
            )
            stats.peers_missing += 1
            continue
        if peer.status == TransactionStatus.APPROVED or peer_id in skip_ids:
            continue
        if peer.linked_transaction_id not in (None, transaction_id):
            logger.warning(
                f"Transfer peer {peer_id[:8]}... points at "
                f"{peer.linked_transaction_id[:8]}..., not syncing"
            )
            continue

        values = {"linked_transaction_id": transaction_id}
        if peer.linked_cost_id is None or peer.type not in COVERAGE_TYPES:
            values["type"] = TransactionType.INTERNAL_TRANSFER
        if source.app_category_id is not None:
            values["app_category_id"] = source.app_category_id
            values["app_sub_category_id"] = source.app_sub_category_id
        working.set_fields(peer_id, **values)
        stats.pairs_synced += 1

        source_status = resolve_status(
            source, approval_granted=approvals.get(transaction_id, False)
        )
        approvals[peer_id] = source_status == TransactionStatus.APPROVED
        if approvals[peer_id]:
            stats.peers_approved += 1

    if stats.pairs_synced:
        logger.info(
            f"Synchronized {stats.pairs_synced} transfer pair(s), "
            f"{stats.peers_approved} peer(s) approved"
        )
    return stats
