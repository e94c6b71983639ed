"""Loading categorization rules from YAML files.

A rules file looks like:

    rules:
      - name: Groceries
        priority: 10
        rule_type: text_contains
        match_value: "ALBERT HEIJN"
        transaction_direction: negative
        accounts: [Checking]
        category: Food
        subcategory: Groceries
        auto_approval: true

Categories and accounts are referenced by name and resolved to IDs on load.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
from pydantic import BaseModel, Field

from logger import get_logger
from models.category_rule import RuleType, TransactionDirection
from models.taxonomy import Taxonomy
from models.transaction import TransactionType

logger = get_logger()


class RuleDefinition(BaseModel):
    """One rule as written in a rules file."""

    name: str
    priority: int = 100
    rule_type: RuleType
    match_value: Optional[str] = None
    bank_category: Optional[str] = None
    bank_sub_category: Optional[str] = None
    transaction_direction: TransactionDirection = TransactionDirection.ALL
    accounts: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    subcategory: Optional[str] = None
    positive_result_type: TransactionType = TransactionType.PLAIN
    negative_result_type: TransactionType = TransactionType.PLAIN
    auto_approval: bool = False
    is_active: bool = True


class RulesFile(BaseModel):
    rules: List[RuleDefinition] = Field(default_factory=list)


def parse_rules(text: str) -> RulesFile:
    """Parse and validate rules file content.

    Raises:
        ValueError: If the YAML is invalid or a rule is malformed
            (pydantic.ValidationError is a ValueError).
    """
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid rules file: {e}") from e
    return RulesFile.model_validate(data)


def resolve_rule(
    definition: RuleDefinition,
    taxonomy: Taxonomy,
    account_ids_by_name: Mapping[str, int],
) -> Dict[str, Any]:
    """Turn a rule definition into keyword arguments for RuleService.create.

    Raises:
        ValueError: If a category or account name is unknown.
    """
    main_id = None
    sub_id = None
    if definition.category:
        main = taxonomy.find_main_by_name(definition.category)
        if main is None:
            raise ValueError(
                f"Rule '{definition.name}': unknown category '{definition.category}'"
            )
        main_id = main.id
        if definition.subcategory:
            sub = taxonomy.find_sub_by_name(main.id, definition.subcategory)
            if sub is None:
                raise ValueError(
                    f"Rule '{definition.name}': unknown subcategory "
                    f"'{definition.subcategory}' under '{main.name}'"
                )
            sub_id = sub.id
    elif definition.subcategory:
        raise ValueError(
            f"Rule '{definition.name}': subcategory given without a category"
        )

    account_ids = []
    for account_name in definition.accounts:
        if account_name not in account_ids_by_name:
            raise ValueError(
                f"Rule '{definition.name}': unknown account '{account_name}'"
            )
        account_ids.append(account_ids_by_name[account_name])

    return {
        "name": definition.name,
        "priority": definition.priority,
        "rule_type": definition.rule_type,
        "match_value": definition.match_value,
        "bank_category": definition.bank_category,
        "bank_sub_category": definition.bank_sub_category,
        "transaction_direction": definition.transaction_direction,
        "applicable_account_ids": frozenset(account_ids),
        "target_main_category_id": main_id,
        "target_sub_category_id": sub_id,
        "positive_result_type": definition.positive_result_type,
        "negative_result_type": definition.negative_result_type,
        "auto_approval": definition.auto_approval,
        "is_active": definition.is_active,
    }


def load_rules_file(
    path: Path,
    taxonomy: Taxonomy,
    account_ids_by_name: Mapping[str, int],
) -> List[Dict[str, Any]]:
    """Read a rules file and resolve every rule in it.

    Args:
        path: YAML file to read.
        taxonomy: Taxonomy to resolve category names against.
        account_ids_by_name: Account name to ID mapping.

    Returns:
        One dict of RuleService.create keyword arguments per rule, in file order.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file is malformed or references unknown names.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found: {path}")

    logger.info(f"Loading rules from {path}")
    with open(path, "r") as f:
        rules_file = parse_rules(f.read())

    return [
        resolve_rule(definition, taxonomy, account_ids_by_name)
        for definition in rules_file.rules
    ]
