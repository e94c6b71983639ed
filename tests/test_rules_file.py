import pytest
from pydantic import ValidationError

from models.category_rule import RuleType, TransactionDirection
from models.transaction import TransactionType
from rules_file import load_rules_file, parse_rules, resolve_rule

RULES_YAML = """
rules:
  - name: Groceries
    priority: 10
    rule_type: text_contains
    match_value: ALBERT HEIJN
    transaction_direction: negative
    accounts: [Checking]
    category: food
    subcategory: groceries
    auto_approval: true
  - name: Salary
    rule_type: category_match
    bank_category: Income
    category: Income
    positive_result_type: income
"""

ACCOUNTS = {"Checking": 1, "Savings": 2}


class TestParseRules:
    """Tests for parsing rules files."""

    def test_parse(self):
        rules = parse_rules(RULES_YAML).rules

        assert [r.name for r in rules] == ["Groceries", "Salary"]
        assert rules[0].rule_type == RuleType.TEXT_CONTAINS
        assert rules[0].transaction_direction == TransactionDirection.NEGATIVE
        assert rules[1].priority == 100
        assert rules[1].positive_result_type == TransactionType.INCOME

    def test_empty_file(self):
        assert parse_rules("").rules == []

    def test_unknown_rule_type(self):
        with pytest.raises(ValidationError):
            parse_rules("rules:\n  - name: Bad\n    rule_type: regex\n")

    def test_invalid_yaml(self):
        with pytest.raises(ValueError):
            parse_rules("rules: [unclosed")


class TestResolveRule:
    """Tests for resolving names in rule definitions to IDs."""

    def test_names_resolved(self, taxonomy):
        groceries, salary = parse_rules(RULES_YAML).rules

        resolved = resolve_rule(groceries, taxonomy, ACCOUNTS)

        assert resolved["target_main_category_id"] == 1
        assert resolved["target_sub_category_id"] == 11
        assert resolved["applicable_account_ids"] == frozenset({1})
        assert resolved["auto_approval"] is True

        resolved = resolve_rule(salary, taxonomy, ACCOUNTS)
        assert resolved["target_main_category_id"] == 3
        assert resolved["target_sub_category_id"] is None
        assert resolved["applicable_account_ids"] == frozenset()

    @pytest.mark.parametrize(
        "extra",
        [
            "    category: Housing\n",
            "    category: Food\n    subcategory: Salary\n",
            "    subcategory: Groceries\n",
            "    accounts: [Brokerage]\n",
        ],
    )
    def test_unknown_names(self, taxonomy, extra):
        text = (
            "rules:\n  - name: Bad\n    rule_type: exact_text\n    match_value: x\n"
            + extra
        )
        definition = parse_rules(text).rules[0]

        with pytest.raises(ValueError):
            resolve_rule(definition, taxonomy, ACCOUNTS)


class TestLoadRulesFile:
    """Tests for load_rules_file."""

    def test_load(self, tmp_path, taxonomy):
        path = tmp_path / "rules.yaml"
        path.write_text(RULES_YAML)

        resolved = load_rules_file(path, taxonomy, ACCOUNTS)

        assert [r["name"] for r in resolved] == ["Groceries", "Salary"]

    def test_missing_file(self, tmp_path, taxonomy):
        with pytest.raises(FileNotFoundError):
            load_rules_file(tmp_path / "missing.yaml", taxonomy, ACCOUNTS)

    def test_resolved_rules_can_be_stored(self, tmp_path, services):
        """Test that loaded rules go straight into RuleService.create."""
        services.accounts.create("Checking")
        food = services.categories.create("Food")
        services.categories.create("Groceries", parent_id=food.id)
        services.categories.create("Income")
        path = tmp_path / "rules.yaml"
        path.write_text(RULES_YAML)
        account_ids = {a.name: a.id for a in services.accounts.find_all()}

        for definition in load_rules_file(
            path, services.categories.build_taxonomy(), account_ids
        ):
            services.rules.create(**definition)

        stored = services.rules.find_active()
        assert [r.name for r in stored] == ["Groceries", "Salary"]
        assert stored[0].target_main_category_id == food.id
