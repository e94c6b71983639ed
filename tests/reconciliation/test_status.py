from models.transaction import TransactionStatus, TransactionType
from reconciliation.status import recalculate_statuses, resolve_status
from tests.helpers import by_id, make_transaction


class TestResolveStatus:
    """Tests for the status resolver."""

    def test_no_category_needs_review(self):
        assert resolve_status(make_transaction("a", -100)) == TransactionStatus.NEEDS_REVIEW

    def test_main_category_only(self):
        """Test that a main category alone is auto-categorized."""
        transaction = make_transaction("a", -100, app_category_id=1)

        assert resolve_status(transaction) == TransactionStatus.AUTO_CATEGORIZED

    def test_fully_categorized_is_approved(self):
        transaction = make_transaction("a", -100, app_category_id=1, app_sub_category_id=11)

        assert resolve_status(transaction) == TransactionStatus.APPROVED

    def test_unlinked_transfer_is_not_approved(self):
        """Test that a transfer without its counterpart stays auto-categorized."""
        transaction = make_transaction(
            "a",
            -100,
            app_category_id=2,
            app_sub_category_id=21,
            type=TransactionType.INTERNAL_TRANSFER,
        )

        assert resolve_status(transaction) == TransactionStatus.AUTO_CATEGORIZED

    def test_linked_transfer_is_approved(self):
        transaction = make_transaction(
            "a",
            -100,
            app_category_id=2,
            app_sub_category_id=21,
            type=TransactionType.INTERNAL_TRANSFER,
            linked_transaction_id="b",
        )

        assert resolve_status(transaction) == TransactionStatus.APPROVED

    def test_approval_not_granted(self):
        """Test that without a grant a complete transaction is capped."""
        transaction = make_transaction("a", -100, app_category_id=1, app_sub_category_id=11)

        status = resolve_status(transaction, approval_granted=False)

        assert status == TransactionStatus.AUTO_CATEGORIZED

    def test_approval_not_granted_without_category(self):
        transaction = make_transaction("a", -100)

        status = resolve_status(transaction, approval_granted=False)

        assert status == TransactionStatus.NEEDS_REVIEW


class TestRecalculateStatuses:
    """Tests for the status recomputation sweep."""

    def test_approved_transfer_losing_its_link_is_downgraded(self):
        transaction = make_transaction(
            "a",
            -100,
            app_category_id=2,
            app_sub_category_id=21,
            type=TransactionType.INTERNAL_TRANSFER,
            status=TransactionStatus.APPROVED,
        )

        updates = recalculate_statuses([transaction])

        assert by_id(updates) == {"a": {"status": TransactionStatus.AUTO_CATEGORIZED}}

    def test_auto_categorized_is_not_promoted(self):
        """Test that the sweep never grants an approval."""
        transaction = make_transaction(
            "a",
            -100,
            app_category_id=1,
            app_sub_category_id=11,
            status=TransactionStatus.AUTO_CATEGORIZED,
        )

        assert recalculate_statuses([transaction]) == []

    def test_stale_status_without_category(self):
        transaction = make_transaction(
            "a", -100, status=TransactionStatus.AUTO_CATEGORIZED
        )

        updates = recalculate_statuses([transaction])

        assert by_id(updates) == {"a": {"status": TransactionStatus.NEEDS_REVIEW}}

    def test_consistent_statuses_produce_nothing(self):
        transactions = [
            make_transaction("a", -100),
            make_transaction(
                "b",
                -100,
                app_category_id=1,
                app_sub_category_id=11,
                status=TransactionStatus.APPROVED,
            ),
        ]

        assert recalculate_statuses(transactions) == []
