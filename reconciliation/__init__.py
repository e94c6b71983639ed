"""Categorization rule engine and transaction link reconciliation."""

from reconciliation.batch import BatchResult, BatchStats, apply_rules, commit_batch
from reconciliation.coverage import (
    CoverageResult,
    claim_expense,
    cover_cost,
    coverage_candidates,
    link_partial_coverage,
    unlink_partial_coverage,
)
from reconciliation.edits import approve_transaction, edit_transaction, link_savings
from reconciliation.errors import (
    CommitFailure,
    ExhaustedCoverage,
    IncompleteCategorization,
    InvalidLink,
    ReconciliationError,
    TransactionNotFound,
)
from reconciliation.integrity import BrokenLink, find_broken_links, repair_broken_links
from reconciliation.status import recalculate_statuses, resolve_status
from reconciliation.transfers import match_transfer, unlink_transfer

__all__ = [
    "BatchResult",
    "BatchStats",
    "BrokenLink",
    "CommitFailure",
    "CoverageResult",
    "ExhaustedCoverage",
    "IncompleteCategorization",
    "InvalidLink",
    "ReconciliationError",
    "TransactionNotFound",
    "apply_rules",
    "approve_transaction",
    "claim_expense",
    "commit_batch",
    "cover_cost",
    "coverage_candidates",
    "edit_transaction",
    "find_broken_links",
    "link_partial_coverage",
    "link_savings",
    "match_transfer",
    "recalculate_statuses",
    "repair_broken_links",
    "resolve_status",
    "unlink_partial_coverage",
    "unlink_transfer",
]
