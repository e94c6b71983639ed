"""Transaction model and its type/status enums."""

from dataclasses import dataclass, fields
from datetime import date
from enum import Enum
from typing import Optional
import hashlib


class TransactionType(str, Enum):
    """What a transaction represents in the budget."""

    PLAIN = "plain"
    INTERNAL_TRANSFER = "internal_transfer"
    SAVINGS = "savings"
    COST_COVERAGE = "cost_coverage"
    EXPENSE_CLAIM = "expense_claim"
    INCOME = "income"


class TransactionStatus(str, Enum):
    """Three-state review status (red / yellow / green)."""

    NEEDS_REVIEW = "needs_review"
    AUTO_CATEGORIZED = "auto_categorized"
    APPROVED = "approved"


COVERAGE_TYPES = (TransactionType.COST_COVERAGE, TransactionType.EXPENSE_CLAIM)


@dataclass
class Transaction:
    id: str  # checksum of raw transaction data
    account_id: int
    date: date
    amount: int  # signed, minor currency units
    description: str  # bank supplied, never edited
    user_description: Optional[str] = None
    bank_category: Optional[str] = None
    bank_sub_category: Optional[str] = None
    app_category_id: Optional[int] = None
    app_sub_category_id: Optional[int] = None
    type: TransactionType = TransactionType.PLAIN
    status: TransactionStatus = TransactionStatus.NEEDS_REVIEW
    linked_transaction_id: Optional[str] = None
    linked_cost_id: Optional[str] = None
    corrected_amount: Optional[int] = None
    savings_target_id: Optional[str] = None
    is_manually_changed: bool = False

    def __post_init__(self):
        # Rows and test fixtures may hand over raw strings
        self.type = TransactionType(self.type)
        self.status = TransactionStatus(self.status)

    @classmethod
    def create_with_checksum(
        cls,
        raw_data: str,
        account_id: int,
        date: date,
        amount: int,
        description: str,
        bank_category: Optional[str] = None,
        bank_sub_category: Optional[str] = None,
    ) -> "Transaction":
        """Create a Transaction with auto-generated checksum ID."""
        transaction_id = hashlib.sha256(raw_data.encode("utf-8")).hexdigest()
        return cls(
            id=transaction_id,
            account_id=account_id,
            date=date,
            amount=amount,
            description=description,
            bank_category=bank_category,
            bank_sub_category=bank_sub_category,
        )

    @property
    def effective_amount(self) -> int:
        """Net amount after partial coverage, falling back to the bank amount."""
        if self.corrected_amount is not None:
            return self.corrected_amount
        return self.amount

    @property
    def is_positive(self) -> bool:
        """Zero counts as positive, matching how rules pick a result type."""
        return self.amount >= 0

    def display_description(self) -> str:
        return self.user_description or self.description

    def to_dict(self) -> dict:
        """Convert transaction to dictionary for database storage."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["date"] = self.date.isoformat()
        data["type"] = self.type.value
        data["status"] = self.status.value
        data["is_manually_changed"] = int(self.is_manually_changed)
        return data
