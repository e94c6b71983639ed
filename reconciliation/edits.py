"""Direct user edits to transactions.

Every edit re-enters the status resolver, and changing a linked
transaction's type away from what its link means breaks the link on both
sides first.
"""

from typing import Iterable, List, Optional

from logger import get_logger
from models.taxonomy import Taxonomy
from models.transaction import (
    COVERAGE_TYPES,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from models.update import TransactionUpdate
from reconciliation.coverage import refresh_status, release_cost_link
from reconciliation.errors import IncompleteCategorization
from reconciliation.snapshot import WorkingSet
from reconciliation.status import resolve_status

logger = get_logger()

EDITABLE_FIELDS = frozenset(
    {
        "user_description",
        "app_category_id",
        "app_sub_category_id",
        "type",
        "savings_target_id",
    }
)


def _validate_categories(
    main_id: Optional[int], sub_id: Optional[int], taxonomy: Optional[Taxonomy]
) -> None:
    if sub_id is not None and main_id is None:
        raise ValueError("A subcategory cannot be set without a main category")
    if taxonomy is None:
        return
    if main_id is not None:
        main = taxonomy.get(main_id)
        if main is None or not main.is_main:
            raise ValueError(f"Unknown main category: {main_id}")
    if sub_id is not None and not taxonomy.is_subcategory_of(sub_id, main_id):
        raise ValueError(f"Category {sub_id} is not a subcategory of {main_id}")


def _release_transfer(working: WorkingSet, transaction_id: str) -> List[str]:
    transaction = working.require(transaction_id)
    peer_id = transaction.linked_transaction_id
    if peer_id is None:
        return []

    working.set_fields(transaction_id, linked_transaction_id=None)
    peer = working.get(peer_id)
    if peer is None or peer.linked_transaction_id != transaction_id:
        return [transaction_id]

    working.set_fields(
        peer_id,
        linked_transaction_id=None,
        type=TransactionType.PLAIN,
        is_manually_changed=True,
    )
    return [transaction_id, peer_id]


def edit_transaction(
    transactions: Iterable[Transaction],
    transaction_id: str,
    taxonomy: Optional[Taxonomy] = None,
    **values,
) -> List[TransactionUpdate]:
    """Apply a user edit and recompute status for everything it touched.

    Args:
        transactions: Snapshot holding the transaction and its link partners.
        transaction_id: Transaction to edit.
        taxonomy: If given, category IDs are checked against it.
        **values: New values for any of EDITABLE_FIELDS.

    Raises:
        TransactionNotFound: If the transaction is missing.
        ValueError: For unknown fields or inconsistent categories.

    Returns:
        Updates for the transaction and any partner whose link was broken.
    """
    unknown = set(values) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported field names: {unknown}")

    working = WorkingSet(transactions)
    current = working.require(transaction_id)

    if "type" in values:
        values["type"] = TransactionType(values["type"])
    if "app_category_id" in values and "app_sub_category_id" not in values:
        if values["app_category_id"] != current.app_category_id:
            values["app_sub_category_id"] = None

    _validate_categories(
        values.get("app_category_id", current.app_category_id),
        values.get("app_sub_category_id", current.app_sub_category_id),
        taxonomy,
    )

    touched = [transaction_id]
    new_type = values.get("type")
    if new_type is not None and new_type != current.type:
        if current.type in COVERAGE_TYPES and new_type not in COVERAGE_TYPES:
            touched += release_cost_link(working, transaction_id)
        if current.type == TransactionType.INTERNAL_TRANSFER:
            touched += _release_transfer(working, transaction_id)

    working.set_fields(transaction_id, is_manually_changed=True, **values)
    refresh_status(working, dict.fromkeys(touched))

    logger.info(f"Edited transaction {transaction_id[:8]}...: {sorted(values)}")
    return working.updates()


def approve_transaction(
    transactions: Iterable[Transaction], transaction_id: str
) -> List[TransactionUpdate]:
    """Mark a transaction approved after manual review.

    Raises:
        TransactionNotFound: If the transaction is missing.
        IncompleteCategorization: If it lacks a subcategory or is a transfer
            without its counterpart.
    """
    working = WorkingSet(transactions)
    transaction = working.require(transaction_id)
    status = resolve_status(transaction)
    if status != TransactionStatus.APPROVED:
        raise IncompleteCategorization(
            f"Transaction {transaction_id} cannot be approved yet ({status.value})"
        )
    working.set_fields(transaction_id, status=status)
    return working.updates()


def link_savings(
    transactions: Iterable[Transaction],
    transaction_id: str,
    savings_target_id: str,
    main_category_id: int,
    taxonomy: Optional[Taxonomy] = None,
) -> List[TransactionUpdate]:
    """File a transaction as a contribution to a savings target.

    The subcategory survives only if it belongs to the new main category.
    """
    working = WorkingSet(transactions)
    current = working.require(transaction_id)

    sub_id = current.app_sub_category_id
    if current.app_category_id != main_category_id:
        sub_id = None
    _validate_categories(main_category_id, sub_id, taxonomy)

    touched = [transaction_id]
    if current.type in COVERAGE_TYPES:
        touched += release_cost_link(working, transaction_id)
    if current.type == TransactionType.INTERNAL_TRANSFER:
        touched += _release_transfer(working, transaction_id)

    working.set_fields(
        transaction_id,
        type=TransactionType.SAVINGS,
        savings_target_id=savings_target_id,
        app_category_id=main_category_id,
        app_sub_category_id=sub_id,
        is_manually_changed=True,
    )
    refresh_status(working, dict.fromkeys(touched))

    logger.info(
        f"Linked transaction {transaction_id[:8]}... to savings target {savings_target_id}"
    )
    return working.updates()
