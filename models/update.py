"""Update records and link value objects produced by reconciliation passes."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple


class LinkSlot(str, Enum):
    """The two independent link slots on a transaction."""

    TRANSFER = "linked_transaction_id"
    COST = "linked_cost_id"


@dataclass
class TransactionUpdate:
    """A partial field update for one transaction.

    Attributes:
        transaction_id: ID of the transaction to update.
        fields: Mapping of field name to new value. Only changed fields are present.
    """

    transaction_id: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TransactionLink:
    """A symmetric link between two transactions in one slot.

    Resolved into two field updates at once so the sides never desync.
    """

    a_id: str
    b_id: str
    slot: LinkSlot = LinkSlot.TRANSFER

    def __post_init__(self):
        if self.a_id == self.b_id:
            raise ValueError(f"Cannot link transaction {self.a_id} to itself")

    def field_updates(self) -> List[Tuple[str, str, str]]:
        """Return (transaction_id, field_name, value) for both sides."""
        name = self.slot.value
        return [(self.a_id, name, self.b_id), (self.b_id, name, self.a_id)]

    def other(self, transaction_id: str) -> str:
        if transaction_id == self.a_id:
            return self.b_id
        if transaction_id == self.b_id:
            return self.a_id
        raise ValueError(f"Transaction {transaction_id} is not part of this link")
