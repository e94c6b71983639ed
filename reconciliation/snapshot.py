"""Copy-on-write view over an immutable transaction snapshot.

Passes never mutate the Transaction objects they were handed. They read
through a WorkingSet, which overlays pending field changes on top of the
originals, and the orchestrator turns those changes into update records.
"""

from dataclasses import fields, replace
from typing import Any, Dict, Iterable, Iterator, List, Optional

from models.transaction import Transaction
from models.update import TransactionLink, TransactionUpdate
from reconciliation.errors import TransactionNotFound

UPDATABLE_FIELDS = frozenset(
    f.name
    for f in fields(Transaction)
    if f.name not in ("id", "account_id", "date", "amount", "description")
)


class WorkingSet:
    """Transactions keyed by id, plus the changes made to them during a pass.

    Args:
        transactions: The snapshot. Iteration order is preserved and drives
            every pass, which keeps results deterministic.
    """

    def __init__(self, transactions: Iterable[Transaction]):
        self._originals: Dict[str, Transaction] = {}
        for transaction in transactions:
            if transaction.id in self._originals:
                raise ValueError(f"Duplicate transaction ID in snapshot: {transaction.id}")
            self._originals[transaction.id] = transaction
        self._changes: Dict[str, Dict[str, Any]] = {}
        self._views: Dict[str, Transaction] = {}

    def __contains__(self, transaction_id: str) -> bool:
        return transaction_id in self._originals

    def __len__(self) -> int:
        return len(self._originals)

    def __iter__(self) -> Iterator[Transaction]:
        for transaction_id in self._originals:
            yield self.get(transaction_id)

    def get(self, transaction_id: Optional[str]) -> Optional[Transaction]:
        """Current view of a transaction, or None if it is not in the snapshot."""
        if transaction_id is None or transaction_id not in self._originals:
            return None
        view = self._views.get(transaction_id)
        if view is None:
            original = self._originals[transaction_id]
            changes = self._changes.get(transaction_id)
            view = replace(original, **changes) if changes else original
            self._views[transaction_id] = view
        return view

    def require(self, transaction_id: str) -> Transaction:
        view = self.get(transaction_id)
        if view is None:
            raise TransactionNotFound(transaction_id)
        return view

    def original(self, transaction_id: str) -> Transaction:
        if transaction_id not in self._originals:
            raise TransactionNotFound(transaction_id)
        return self._originals[transaction_id]

    def set_fields(self, transaction_id: str, **values) -> None:
        """Record field changes for one transaction."""
        if transaction_id not in self._originals:
            raise TransactionNotFound(transaction_id)
        unknown = set(values) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported field names: {unknown}")
        self._changes.setdefault(transaction_id, {}).update(values)
        self._views.pop(transaction_id, None)

    def apply_link(self, link: TransactionLink) -> None:
        """Write both sides of a link in one step."""
        for side_id in (link.a_id, link.b_id):
            if side_id not in self._originals:
                raise TransactionNotFound(side_id)
        for side_id, field_name, value in link.field_updates():
            self.set_fields(side_id, **{field_name: value})

    def changed_ids(self) -> List[str]:
        """IDs whose current view differs from the original, in snapshot order."""
        return [
            transaction_id
            for transaction_id in self._originals
            if self._diff(transaction_id)
        ]

    def touched_ids(self) -> List[str]:
        """IDs any pass wrote to, whether or not the values actually changed."""
        return [tid for tid in self._originals if tid in self._changes]

    def updates(self) -> List[TransactionUpdate]:
        """Update records holding only fields that differ from the snapshot."""
        result = []
        for transaction_id in self._originals:
            diff = self._diff(transaction_id)
            if diff:
                result.append(TransactionUpdate(transaction_id, diff))
        return result

    def _diff(self, transaction_id: str) -> Dict[str, Any]:
        changes = self._changes.get(transaction_id)
        if not changes:
            return {}
        original = self._originals[transaction_id]
        return {
            name: value
            for name, value in changes.items()
            if getattr(original, name) != value
        }
