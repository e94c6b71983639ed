"""Exceptions raised by reconciliation operations."""


class ReconciliationError(Exception):
    """Base class for recoverable reconciliation failures."""


class TransactionNotFound(ReconciliationError):
    def __init__(self, transaction_id: str):
        super().__init__(f"Transaction with ID '{transaction_id}' not found")
        self.transaction_id = transaction_id


class InvalidLink(ReconciliationError):
    """Two transactions cannot be linked the way that was asked for."""


class ExhaustedCoverage(ReconciliationError):
    """Nothing is left to cover: the pool is spent or the cost is fully covered."""

    def __init__(self, covering_id: str, covered_id: str, reason: str):
        super().__init__(reason)
        self.covering_id = covering_id
        self.covered_id = covered_id


class CommitFailure(ReconciliationError):
    """The bulk write to the store failed; none of the batch counts as applied."""


class IncompleteCategorization(ReconciliationError):
    """A transaction cannot be approved in its current state."""
