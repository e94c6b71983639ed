from datetime import date

import pytest

from models.transaction import TransactionStatus, TransactionType
from reconciliation.errors import InvalidLink, TransactionNotFound
from reconciliation.snapshot import WorkingSet
from reconciliation.transfers import (
    MatchOutcome,
    auto_match_transfer,
    find_transfer_candidates,
    match_transfer,
    unlink_transfer,
)
from tests.helpers import by_id, make_transaction

ACCOUNT_NAMES = {1: "Checking", 2: "Savings", 3: "Credit card"}


def outgoing_transfer(**kwargs):
    return make_transaction(
        "a", -5000, account_id=1, type=TransactionType.INTERNAL_TRANSFER, **kwargs
    )


class TestAutoMatchTransfer:
    """Tests for the transfer auto-matcher."""

    def test_unique_candidate_is_linked(self):
        """Test that a lone counterpart gets linked on both sides."""
        working = WorkingSet(
            [outgoing_transfer(), make_transaction("b", 5000, account_id=2)]
        )

        match = auto_match_transfer(working, "a")

        assert match.outcome == MatchOutcome.LINKED
        assert by_id(working.updates()) == {
            "a": {"linked_transaction_id": "b"},
            "b": {
                "linked_transaction_id": "a",
                "type": TransactionType.INTERNAL_TRANSFER,
            },
        }

    def test_ambiguous_candidates_are_not_linked(self):
        """Test that two equally valid counterparts leave the transfer alone."""
        working = WorkingSet(
            [
                outgoing_transfer(),
                make_transaction("b", 5000, account_id=2),
                make_transaction("c", 5000, account_id=3),
            ]
        )

        match = auto_match_transfer(working, "a")

        assert match.outcome == MatchOutcome.AMBIGUOUS
        assert match.candidate_count == 2
        assert working.updates() == []

    def test_no_candidate(self):
        working = WorkingSet([outgoing_transfer()])

        assert auto_match_transfer(working, "a").outcome == MatchOutcome.NO_CANDIDATE

    def test_already_linked(self):
        working = WorkingSet(
            [
                outgoing_transfer(linked_transaction_id="b"),
                make_transaction("b", 5000, account_id=2, linked_transaction_id="a"),
                make_transaction("c", 5000, account_id=3),
            ]
        )

        assert auto_match_transfer(working, "a").outcome == MatchOutcome.ALREADY_LINKED
        assert working.updates() == []

    @pytest.mark.parametrize(
        "candidate_kwargs",
        [
            {"account_id": 1},
            {"date": date(2025, 3, 11)},
            {"amount": -5000},
            {"amount": 4999},
            {"linked_transaction_id": "z"},
            {"linked_cost_id": "z", "type": TransactionType.COST_COVERAGE},
            {"status": TransactionStatus.APPROVED},
        ],
    )
    def test_candidate_filters(self, candidate_kwargs):
        """Test that each disqualifying property rules a candidate out."""
        values = {"amount": 5000, "account_id": 2}
        values.update(candidate_kwargs)
        candidate = make_transaction("b", **values)

        assert find_transfer_candidates(outgoing_transfer(), [candidate]) == []

    def test_excluded_ids_are_not_candidates(self):
        candidate = make_transaction("b", 5000, account_id=2)

        found = find_transfer_candidates(
            outgoing_transfer(), [candidate], exclude_ids={"b"}
        )

        assert found == []

    def test_approved_candidates_can_be_included(self):
        candidate = make_transaction(
            "b", 5000, account_id=2, status=TransactionStatus.APPROVED
        )

        found = find_transfer_candidates(
            outgoing_transfer(), [candidate], include_approved=True
        )

        assert found == [candidate]


class TestMatchTransfer:
    """Tests for linking a transfer pair by hand."""

    def test_links_pair_with_descriptions(self):
        snapshot = [
            make_transaction("a", -5000, account_id=1),
            make_transaction("b", 4800, account_id=2, date=date(2025, 3, 12)),
        ]

        updates = by_id(match_transfer(snapshot, "a", "b", ACCOUNT_NAMES))

        assert updates["a"] == {
            "linked_transaction_id": "b",
            "type": TransactionType.INTERNAL_TRANSFER,
            "user_description": "Transfer to Savings, 2025-03-12",
            "is_manually_changed": True,
        }
        assert updates["b"] == {
            "linked_transaction_id": "a",
            "type": TransactionType.INTERNAL_TRANSFER,
            "user_description": "Transfer from Checking, 2025-03-10",
            "is_manually_changed": True,
        }

    def test_categorized_pair_is_approved(self):
        snapshot = [
            make_transaction("a", -5000, account_id=1, app_category_id=2, app_sub_category_id=21),
            make_transaction("b", 5000, account_id=2),
        ]

        updates = by_id(match_transfer(snapshot, "a", "b"))

        assert updates["a"]["status"] == TransactionStatus.APPROVED
        assert "status" not in updates["b"]

    def test_same_account_rejected(self):
        snapshot = [
            make_transaction("a", -5000, account_id=1),
            make_transaction("b", 5000, account_id=1),
        ]

        with pytest.raises(InvalidLink):
            match_transfer(snapshot, "a", "b")

    def test_already_linked_rejected(self):
        snapshot = [
            make_transaction("a", -5000, account_id=1, linked_transaction_id="c"),
            make_transaction("b", 5000, account_id=2),
        ]

        with pytest.raises(InvalidLink):
            match_transfer(snapshot, "a", "b")

    def test_missing_transaction(self):
        with pytest.raises(TransactionNotFound):
            match_transfer([make_transaction("a", -5000)], "a", "b")


class TestUnlinkTransfer:
    """Tests for breaking a transfer link."""

    def test_clears_both_sides(self):
        snapshot = [
            outgoing_transfer(linked_transaction_id="b"),
            make_transaction(
                "b",
                5000,
                account_id=2,
                type=TransactionType.INTERNAL_TRANSFER,
                linked_transaction_id="a",
            ),
        ]

        updates = by_id(unlink_transfer(snapshot, "b"))

        for side in ("a", "b"):
            assert updates[side] == {
                "linked_transaction_id": None,
                "type": TransactionType.PLAIN,
                "is_manually_changed": True,
            }

    def test_dangling_link_clears_one_side(self):
        updates = by_id(unlink_transfer([outgoing_transfer(linked_transaction_id="gone")], "a"))

        assert list(updates) == ["a"]
        assert updates["a"]["linked_transaction_id"] is None

    def test_unlinked_transaction_rejected(self):
        with pytest.raises(InvalidLink):
            unlink_transfer([make_transaction("a", -5000)], "a")
