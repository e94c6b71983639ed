"""Categorization rule model."""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional

from models.transaction import TransactionType

WILDCARD = "*"
# Sentinels meaning "any bank category" / "any bank subcategory"
ALL_BANK_CATEGORIES = "all_bank_categories"
ALL_BANK_SUB_CATEGORIES = "all_bank_sub_categories"


class RuleType(str, Enum):
    TEXT_CONTAINS = "text_contains"
    TEXT_STARTS_WITH = "text_starts_with"
    EXACT_TEXT = "exact_text"
    CATEGORY_MATCH = "category_match"


class TransactionDirection(str, Enum):
    ALL = "all"
    POSITIVE = "positive"
    NEGATIVE = "negative"


@dataclass
class CategoryRule:
    """A user-defined rule mapping matching transactions onto the taxonomy.

    Attributes:
        id: Unique identifier (auto-generated).
        name: Human readable name.
        priority: Lower values are evaluated first.
        rule_type: How the rule condition is matched.
        match_value: Text to match for text rules ("*" matches everything).
        bank_category: Bank category for category rules.
        bank_sub_category: Optional bank subcategory for category rules.
        transaction_direction: Restricts the rule to one sign of amount.
        applicable_account_ids: Accounts the rule applies to; empty means all.
        target_main_category_id: App category assigned on match.
        target_sub_category_id: App subcategory assigned on match.
        positive_result_type: Type assigned to positive (and zero) amounts.
        negative_result_type: Type assigned to negative amounts.
        auto_approval: Whether a complete match may skip manual review.
        is_active: Inactive rules are never evaluated.
    """

    id: int
    name: str
    priority: int
    rule_type: RuleType
    match_value: Optional[str] = None
    bank_category: Optional[str] = None
    bank_sub_category: Optional[str] = None
    transaction_direction: TransactionDirection = TransactionDirection.ALL
    applicable_account_ids: FrozenSet[int] = field(default_factory=frozenset)
    target_main_category_id: Optional[int] = None
    target_sub_category_id: Optional[int] = None
    positive_result_type: TransactionType = TransactionType.PLAIN
    negative_result_type: TransactionType = TransactionType.PLAIN
    auto_approval: bool = False
    is_active: bool = True

    def __post_init__(self):
        self.rule_type = RuleType(self.rule_type)
        self.transaction_direction = TransactionDirection(self.transaction_direction)
        self.positive_result_type = TransactionType(self.positive_result_type)
        self.negative_result_type = TransactionType(self.negative_result_type)
        self.applicable_account_ids = frozenset(self.applicable_account_ids)

        if self.target_sub_category_id is not None and self.target_main_category_id is None:
            raise ValueError(
                f"Rule '{self.name}' sets a subcategory without a main category"
            )
        if self.rule_type == RuleType.CATEGORY_MATCH:
            if not self.bank_category:
                raise ValueError(f"Category rule '{self.name}' needs a bank_category")
        elif not self.match_value:
            raise ValueError(f"Text rule '{self.name}' needs a match_value")

    def result_type_for(self, amount: int) -> TransactionType:
        """Pick the result type by the sign of the amount."""
        if amount >= 0:
            return self.positive_result_type
        return self.negative_result_type
