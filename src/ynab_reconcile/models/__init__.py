from ynab_reconcile.models.schemas import (
    Account,
    AccountReconciliationStatus,
    AccountReconciliationSummary,
    BankTransaction,
    BulkStatusUpdateResult,
    ClearedStatus,
    LedgerTransaction,
    MatchCandidate,
    MatchConfidence,
    MatchResult,
    MatchSummary,
    ReconciliationOutcome,
)

__all__ = [
    "Account",
    "AccountReconciliationStatus",
    "AccountReconciliationSummary",
    "BankTransaction",
    "BulkStatusUpdateResult",
    "ClearedStatus",
    "LedgerTransaction",
    "MatchCandidate",
    "MatchConfidence",
    "MatchResult",
    "MatchSummary",
    "ReconciliationOutcome",
]
