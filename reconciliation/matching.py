"""Rule matching engine.

Given one transaction and the active rule snapshot, find the first rule
(by ascending priority) whose account filter, direction filter and
condition all hold. When no rule matches, fall back to mapping the raw bank
category strings onto the app taxonomy by name.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from logger import get_logger
from models.category_rule import (
    ALL_BANK_CATEGORIES,
    ALL_BANK_SUB_CATEGORIES,
    WILDCARD,
    CategoryRule,
    RuleType,
    TransactionDirection,
)
from models.taxonomy import Taxonomy
from models.transaction import COVERAGE_TYPES, Transaction, TransactionType

logger = get_logger()


class MatchSource(str, Enum):
    RULE = "rule"
    BANK_CATEGORY = "bank_category"


@dataclass
class Categorization:
    """Outcome of matching one transaction.

    Attributes:
        transaction_id: The transaction that was matched.
        source: Whether a rule or the bank category fallback matched.
        fields: Field values to apply to the transaction.
        rule: The matching rule, None for the fallback.
    """

    transaction_id: str
    source: MatchSource
    fields: Dict[str, Any] = field(default_factory=dict)
    rule: Optional[CategoryRule] = None

    @property
    def auto_approval(self) -> bool:
        """Only a rule can request approval; the fallback only files categories."""
        return self.rule is not None and self.rule.auto_approval


def prepare_rules(rules: Iterable[CategoryRule]) -> List[CategoryRule]:
    """Keep active rules and sort them by priority.

    Sorting is stable, so rules sharing a priority keep their given order.
    """
    return sorted((r for r in rules if r.is_active), key=lambda r: r.priority)


def applies_to_account(rule: CategoryRule, account_id: int) -> bool:
    return not rule.applicable_account_ids or account_id in rule.applicable_account_ids


def matches_direction(rule: CategoryRule, amount: int) -> bool:
    if rule.transaction_direction == TransactionDirection.POSITIVE:
        return amount >= 0
    if rule.transaction_direction == TransactionDirection.NEGATIVE:
        return amount < 0
    return True


def _matches_bank_category(rule: CategoryRule, transaction: Transaction) -> bool:
    if rule.bank_category == WILDCARD or rule.bank_sub_category == WILDCARD:
        return True

    if rule.bank_category != ALL_BANK_CATEGORIES:
        if transaction.bank_category != rule.bank_category:
            return False

    if rule.bank_sub_category and rule.bank_sub_category != ALL_BANK_SUB_CATEGORIES:
        return transaction.bank_sub_category == rule.bank_sub_category
    return True


def _matches_text(rule: CategoryRule, transaction: Transaction) -> bool:
    if rule.match_value == WILDCARD:
        return True

    needle = rule.match_value.lower()
    text = (transaction.description or "").lower()

    if rule.rule_type == RuleType.TEXT_CONTAINS:
        return needle in text
    if rule.rule_type == RuleType.TEXT_STARTS_WITH:
        return text.startswith(needle)
    if rule.rule_type == RuleType.EXACT_TEXT:
        return text == needle
    return False


def matches_condition(rule: CategoryRule, transaction: Transaction) -> bool:
    if rule.rule_type == RuleType.CATEGORY_MATCH:
        return _matches_bank_category(rule, transaction)
    return _matches_text(rule, transaction)


def find_matching_rule(
    transaction: Transaction, rules: List[CategoryRule]
) -> Optional[CategoryRule]:
    """Return the first rule matching the transaction.

    Args:
        transaction: Transaction to match.
        rules: Active rules already sorted by priority (see prepare_rules).

    Returns:
        The winning rule, or None.
    """
    for rule in rules:
        if not applies_to_account(rule, transaction.account_id):
            continue
        if not matches_direction(rule, transaction.amount):
            continue
        if matches_condition(rule, transaction):
            return rule
    return None


def match_bank_category(
    transaction: Transaction, taxonomy: Taxonomy
) -> Optional[Dict[str, int]]:
    """Map the raw bank category pair onto the taxonomy by name.

    Both the main category and a subcategory under it must resolve.

    Returns:
        Category fields to set, or None if either side does not resolve.
    """
    main = taxonomy.find_main_by_name(transaction.bank_category)
    if main is None:
        return None
    sub = taxonomy.find_sub_by_name(main.id, transaction.bank_sub_category)
    if sub is None:
        return None
    return {"app_category_id": main.id, "app_sub_category_id": sub.id}


def rule_fields(rule: CategoryRule, transaction: Transaction) -> Dict[str, Any]:
    """Field values a matched rule writes onto a transaction."""
    values: Dict[str, Any] = {"is_manually_changed": False}

    if rule.target_main_category_id is not None:
        values["app_category_id"] = rule.target_main_category_id
        # A subcategory of some other main category must not survive
        values["app_sub_category_id"] = rule.target_sub_category_id

    result_type = rule.result_type_for(transaction.amount)
    if transaction.linked_cost_id is not None and transaction.type in COVERAGE_TYPES:
        # A cost link keeps its type until it is unlinked
        result_type = transaction.type
    elif transaction.linked_transaction_id is not None:
        # An existing transfer link wins over the rule's type
        result_type = TransactionType.INTERNAL_TRANSFER
    values["type"] = result_type

    return values


def categorize(
    transaction: Transaction,
    rules: List[CategoryRule],
    taxonomy: Optional[Taxonomy] = None,
) -> Optional[Categorization]:
    """Match one transaction against the rules, then the bank category fallback.

    Args:
        transaction: Transaction to categorize (not APPROVED).
        rules: Active rules sorted by priority.
        taxonomy: Taxonomy for the fallback. Without it the fallback is skipped.

    Returns:
        A Categorization, or None if nothing matched.
    """
    rule = find_matching_rule(transaction, rules)
    if rule is not None:
        logger.debug(f"Transaction {transaction.id[:8]}... matched rule '{rule.name}'")
        return Categorization(
            transaction_id=transaction.id,
            source=MatchSource.RULE,
            fields=rule_fields(rule, transaction),
            rule=rule,
        )

    if taxonomy is not None:
        bank_fields = match_bank_category(transaction, taxonomy)
        if bank_fields is not None:
            logger.debug(
                f"Transaction {transaction.id[:8]}... matched bank category "
                f"'{transaction.bank_category}/{transaction.bank_sub_category}'"
            )
            return Categorization(
                transaction_id=transaction.id,
                source=MatchSource.BANK_CATEGORY,
                fields=bank_fields,
            )

    return None
