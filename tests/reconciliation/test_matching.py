import pytest

from models.category_rule import (
    ALL_BANK_CATEGORIES,
    ALL_BANK_SUB_CATEGORIES,
    CategoryRule,
    RuleType,
    TransactionDirection,
)
from models.transaction import TransactionType
from reconciliation.matching import (
    MatchSource,
    categorize,
    find_matching_rule,
    match_bank_category,
    matches_condition,
    prepare_rules,
)
from tests.helpers import make_transaction


def make_rule(id, priority=100, **kwargs):
    kwargs.setdefault("name", f"rule {id}")
    kwargs.setdefault("rule_type", RuleType.TEXT_CONTAINS)
    if kwargs["rule_type"] != RuleType.CATEGORY_MATCH:
        kwargs.setdefault("match_value", "shop")
    return CategoryRule(id=id, priority=priority, **kwargs)


class TestRuleOrdering:
    """Tests for rule priority handling."""

    def test_lowest_priority_value_wins(self):
        """Test that the priority 10 rule beats the priority 100 rule."""
        transaction = make_transaction("t", -100, description="SHOP 42")
        low = make_rule(1, priority=100, target_main_category_id=5)
        high = make_rule(2, priority=10, target_main_category_id=7)

        rule = find_matching_rule(transaction, prepare_rules([low, high]))

        assert rule is high

    def test_equal_priority_keeps_given_order(self):
        first = make_rule(1, priority=50)
        second = make_rule(2, priority=50)

        assert prepare_rules([first, second]) == [first, second]

    def test_inactive_rules_dropped(self):
        active = make_rule(1)
        inactive = make_rule(2, priority=1, is_active=False)

        assert prepare_rules([active, inactive]) == [active]


class TestTextConditions:
    """Tests for text based rule conditions."""

    @pytest.mark.parametrize(
        "rule_type, match_value, description, expected",
        [
            (RuleType.TEXT_CONTAINS, "heijn", "ALBERT HEIJN 1234", True),
            (RuleType.TEXT_CONTAINS, "jumbo", "ALBERT HEIJN 1234", False),
            (RuleType.TEXT_STARTS_WITH, "albert", "ALBERT HEIJN 1234", True),
            (RuleType.TEXT_STARTS_WITH, "heijn", "ALBERT HEIJN 1234", False),
            (RuleType.EXACT_TEXT, "albert heijn", "Albert Heijn", True),
            (RuleType.EXACT_TEXT, "albert", "Albert Heijn", False),
        ],
    )
    def test_text_matching_is_case_insensitive(
        self, rule_type, match_value, description, expected
    ):
        rule = make_rule(1, rule_type=rule_type, match_value=match_value)
        transaction = make_transaction("t", -100, description=description)

        assert matches_condition(rule, transaction) is expected

    @pytest.mark.parametrize(
        "rule_type",
        [RuleType.TEXT_CONTAINS, RuleType.TEXT_STARTS_WITH, RuleType.EXACT_TEXT],
    )
    def test_wildcard_matches_everything(self, rule_type):
        """Test that '*' matches regardless of the rule type's semantics."""
        rule = make_rule(1, rule_type=rule_type, match_value="*")
        transaction = make_transaction("t", -100, description="anything at all")

        assert matches_condition(rule, transaction)


class TestCategoryConditions:
    """Tests for bank category rule conditions."""

    def _rule(self, bank_category, bank_sub_category=None):
        return make_rule(
            1,
            rule_type=RuleType.CATEGORY_MATCH,
            bank_category=bank_category,
            bank_sub_category=bank_sub_category,
        )

    def test_category_only(self):
        transaction = make_transaction(
            "t", -100, bank_category="Food", bank_sub_category="Groceries"
        )

        assert matches_condition(self._rule("Food"), transaction)
        assert not matches_condition(self._rule("Housing"), transaction)

    def test_category_and_subcategory(self):
        transaction = make_transaction(
            "t", -100, bank_category="Food", bank_sub_category="Groceries"
        )

        assert matches_condition(self._rule("Food", "Groceries"), transaction)
        assert not matches_condition(self._rule("Food", "Restaurants"), transaction)

    def test_all_categories_sentinel(self):
        """Test that the 'all' sentinel accepts any bank category."""
        transaction = make_transaction(
            "t", -100, bank_category="Whatever", bank_sub_category="Groceries"
        )

        assert matches_condition(self._rule(ALL_BANK_CATEGORIES, "Groceries"), transaction)
        assert not matches_condition(self._rule(ALL_BANK_CATEGORIES, "Fuel"), transaction)

    def test_all_subcategories_sentinel(self):
        transaction = make_transaction(
            "t", -100, bank_category="Food", bank_sub_category="Anything"
        )

        assert matches_condition(self._rule("Food", ALL_BANK_SUB_CATEGORIES), transaction)

    def test_wildcard_subcategory_matches_unconditionally(self):
        transaction = make_transaction("t", -100, bank_category="Other")

        assert matches_condition(self._rule("Food", "*"), transaction)


class TestFilters:
    """Tests for the account and direction filters."""

    def test_account_filter(self):
        rule = make_rule(1, applicable_account_ids={2})
        elsewhere = make_transaction("t", -1, account_id=1, description="shop")
        here = make_transaction("u", -1, account_id=2, description="shop")

        assert find_matching_rule(elsewhere, [rule]) is None
        assert find_matching_rule(here, [rule]) is rule

    def test_empty_account_filter_means_all(self):
        rule = make_rule(1)
        transaction = make_transaction("t", -1, account_id=9, description="shop")

        assert find_matching_rule(transaction, [rule]) is rule

    def test_direction_filter(self):
        """Test that zero counts as positive."""
        positive = make_rule(1, transaction_direction=TransactionDirection.POSITIVE)
        negative = make_rule(2, transaction_direction=TransactionDirection.NEGATIVE)
        zero = make_transaction("t", 0, description="shop")
        outgoing = make_transaction("u", -1, description="shop")

        assert find_matching_rule(zero, [negative, positive]) is positive
        assert find_matching_rule(outgoing, [positive, negative]) is negative


class TestBankCategoryFallback:
    """Tests for mapping bank categories onto the taxonomy."""

    def test_both_levels_resolve(self, taxonomy):
        transaction = make_transaction(
            "t", -100, bank_category=" food ", bank_sub_category="GROCERIES"
        )

        assert match_bank_category(transaction, taxonomy) == {
            "app_category_id": 1,
            "app_sub_category_id": 11,
        }

    def test_subcategory_must_belong_to_main(self, taxonomy):
        transaction = make_transaction(
            "t", -100, bank_category="Food", bank_sub_category="Salary"
        )

        assert match_bank_category(transaction, taxonomy) is None

    def test_missing_subcategory(self, taxonomy):
        transaction = make_transaction("t", -100, bank_category="Food")

        assert match_bank_category(transaction, taxonomy) is None


class TestCategorize:
    """Tests for matching a single transaction end to end."""

    def test_rule_match_fields(self):
        rule = make_rule(
            1,
            target_main_category_id=1,
            target_sub_category_id=11,
            negative_result_type=TransactionType.SAVINGS,
            auto_approval=True,
        )
        transaction = make_transaction(
            "t", -100, description="shop", is_manually_changed=True
        )

        result = categorize(transaction, [rule])

        assert result.source == MatchSource.RULE
        assert result.auto_approval
        assert result.fields == {
            "is_manually_changed": False,
            "app_category_id": 1,
            "app_sub_category_id": 11,
            "type": TransactionType.SAVINGS,
        }

    def test_rule_without_target_keeps_categories(self):
        """Test that a type-only rule leaves existing categories alone."""
        rule = make_rule(1, positive_result_type=TransactionType.INCOME)
        transaction = make_transaction("t", 100, description="shop", app_category_id=3)

        result = categorize(transaction, [rule])

        assert "app_category_id" not in result.fields
        assert result.fields["type"] == TransactionType.INCOME

    def test_main_only_target_clears_subcategory(self):
        rule = make_rule(1, target_main_category_id=3)
        transaction = make_transaction(
            "t", -100, description="shop", app_category_id=1, app_sub_category_id=11
        )

        result = categorize(transaction, [rule])

        assert result.fields["app_category_id"] == 3
        assert result.fields["app_sub_category_id"] is None

    def test_existing_transfer_link_wins_over_result_type(self):
        rule = make_rule(1, negative_result_type=TransactionType.PLAIN)
        transaction = make_transaction(
            "t",
            -100,
            description="shop",
            type=TransactionType.INTERNAL_TRANSFER,
            linked_transaction_id="peer",
        )

        result = categorize(transaction, [rule])

        assert result.fields["type"] == TransactionType.INTERNAL_TRANSFER

    @pytest.mark.parametrize(
        "current_type", [TransactionType.COST_COVERAGE, TransactionType.EXPENSE_CLAIM]
    )
    def test_existing_cost_link_keeps_type(self, current_type):
        rule = make_rule(1, positive_result_type=TransactionType.INCOME)
        transaction = make_transaction(
            "t", 100, description="shop", type=current_type, linked_cost_id="peer"
        )

        result = categorize(transaction, [rule])

        assert result.fields["type"] == current_type

    def test_falls_back_to_bank_category(self, taxonomy):
        transaction = make_transaction(
            "t",
            -100,
            description="nothing",
            bank_category="Food",
            bank_sub_category="Restaurants",
        )

        result = categorize(transaction, [make_rule(1)], taxonomy)

        assert result.source == MatchSource.BANK_CATEGORY
        assert not result.auto_approval
        assert result.fields == {"app_category_id": 1, "app_sub_category_id": 12}

    def test_no_match(self, taxonomy):
        transaction = make_transaction("t", -100, description="nothing")

        assert categorize(transaction, [make_rule(1)], taxonomy) is None


class TestCategoryRuleValidation:
    """Tests for CategoryRule construction."""

    def test_subcategory_without_main(self):
        with pytest.raises(ValueError):
            make_rule(1, target_sub_category_id=11)

    def test_text_rule_needs_match_value(self):
        with pytest.raises(ValueError):
            CategoryRule(id=1, name="empty", priority=1, rule_type=RuleType.EXACT_TEXT)

    def test_category_rule_needs_bank_category(self):
        with pytest.raises(ValueError):
            CategoryRule(id=1, name="empty", priority=1, rule_type=RuleType.CATEGORY_MATCH)

    def test_values_coerced_from_strings(self):
        rule = CategoryRule(
            id=1,
            name="coerced",
            priority=1,
            rule_type="text_contains",
            match_value="x",
            transaction_direction="negative",
            negative_result_type="savings",
            applicable_account_ids=[1, 2],
        )

        assert rule.rule_type == RuleType.TEXT_CONTAINS
        assert rule.transaction_direction == TransactionDirection.NEGATIVE
        assert rule.result_type_for(-1) == TransactionType.SAVINGS
        assert rule.result_type_for(0) == TransactionType.PLAIN
        assert rule.applicable_account_ids == frozenset({1, 2})
