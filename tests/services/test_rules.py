import pytest

from models.category_rule import RuleType, TransactionDirection
from models.transaction import TransactionType


@pytest.fixture
def food(services):
    main = services.categories.create("Food")
    sub = services.categories.create("Groceries", parent_id=main.id)
    return main, sub


class TestRuleService:
    """Tests for RuleService."""

    def test_create_and_find_round_trip(self, services, food):
        """Test that every rule field survives storage."""
        main, sub = food
        created = services.rules.create(
            name="Groceries",
            priority=10,
            rule_type=RuleType.TEXT_CONTAINS,
            match_value="albert heijn",
            transaction_direction=TransactionDirection.NEGATIVE,
            applicable_account_ids={3, 1},
            target_main_category_id=main.id,
            target_sub_category_id=sub.id,
            negative_result_type=TransactionType.EXPENSE_CLAIM,
            auto_approval=True,
        )

        found = services.rules.find(created.id)

        assert found == created
        assert found.applicable_account_ids == frozenset({1, 3})
        assert found.auto_approval is True
        assert found.is_active is True
        assert found.negative_result_type == TransactionType.EXPENSE_CLAIM

    def test_category_rule_round_trip(self, services):
        created = services.rules.create(
            name="Bank food",
            priority=50,
            rule_type="category_match",
            bank_category="Food",
            bank_sub_category="all_bank_sub_categories",
        )

        found = services.rules.find(created.id)

        assert found.rule_type == RuleType.CATEGORY_MATCH
        assert found.bank_sub_category == "all_bank_sub_categories"
        assert found.applicable_account_ids == frozenset()

    def test_invalid_rule_not_stored(self, services):
        with pytest.raises(ValueError):
            services.rules.create(name="Broken", priority=1, rule_type="exact_text")

        assert services.rules.find_all() == []

    def test_find_active_ordering(self, services):
        """Test that active rules come back by priority, ties by creation order."""
        services.rules.create(name="late", priority=100, rule_type="text_contains", match_value="a")
        services.rules.create(name="first", priority=5, rule_type="text_contains", match_value="b")
        services.rules.create(name="tie", priority=100, rule_type="text_contains", match_value="c")
        services.rules.create(
            name="off", priority=1, rule_type="text_contains", match_value="d", is_active=False
        )

        assert [r.name for r in services.rules.find_active()] == ["first", "late", "tie"]
        assert [r.name for r in services.rules.find_all()] == ["off", "first", "late", "tie"]

    def test_set_active(self, services):
        rule = services.rules.create(
            name="toggle", priority=1, rule_type="text_contains", match_value="x"
        )

        assert services.rules.set_active(rule.id, False) is True
        assert services.rules.find_active() == []
        assert services.rules.set_active(rule.id, True) is True
        assert services.rules.find(rule.id).is_active is True
        assert services.rules.set_active(9999, True) is False

    def test_delete(self, services):
        rule = services.rules.create(
            name="gone", priority=1, rule_type="text_contains", match_value="x"
        )

        assert services.rules.delete(rule.id) is True
        assert services.rules.find(rule.id) is None
        assert services.rules.delete(rule.id) is False
