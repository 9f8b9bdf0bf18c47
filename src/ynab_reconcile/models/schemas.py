# Domain models
# src/ynab_reconcile/models/schemas.py
from dataclasses import dataclass, field, asdict
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Dict, Optional


class ClearedStatus(str, Enum):
    UNCLEARED = "uncleared"
    CLEARED = "cleared"
    RECONCILED = "reconciled"


class MatchConfidence(str, Enum):
    """Confidence tier of a proposed match, ordered low -> exact"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXACT = "exact"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {
    MatchConfidence.LOW: 0,
    MatchConfidence.MEDIUM: 1,
    MatchConfidence.HIGH: 2,
    MatchConfidence.EXACT: 3,
}


def parse_date(value) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass
class Account:
    """YNAB account, balances in milliunits"""
    id: str
    name: str
    balance: int
    type: Optional[str] = None
    cleared_balance: int = 0
    uncleared_balance: int = 0
    closed: bool = False
    deleted: bool = False

    @classmethod
    def from_api(cls, data: Dict) -> "Account":
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            balance=data.get('balance', 0),
            type=data.get('type'),
            cleared_balance=data.get('cleared_balance', 0),
            uncleared_balance=data.get('uncleared_balance', 0),
            closed=data.get('closed', False),
            deleted=data.get('deleted', False),
        )


@dataclass
class LedgerTransaction:
    """Transaction owned by YNAB, amount in milliunits"""
    id: str
    account_id: str
    date: date
    amount: int
    cleared: ClearedStatus
    approved: bool = False
    deleted: bool = False
    payee_name: Optional[str] = None
    category_name: Optional[str] = None
    memo: Optional[str] = None
    account_name: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict) -> "LedgerTransaction":
        return cls(
            id=data['id'],
            account_id=data.get('account_id', ''),
            date=parse_date(data['date']),
            amount=data['amount'],
            cleared=ClearedStatus(data.get('cleared', ClearedStatus.UNCLEARED.value)),
            approved=data.get('approved', False),
            deleted=data.get('deleted', False),
            payee_name=data.get('payee_name'),
            category_name=data.get('category_name'),
            memo=data.get('memo'),
            account_name=data.get('account_name'),
        )

    def to_dict(self) -> Dict:
        result = asdict(self)
        result['date'] = self.date.isoformat()
        result['cleared'] = self.cleared.value
        return result


@dataclass(eq=False)
class BankTransaction:
    """Caller-supplied bank statement line, amount in currency units.
    Compared by identity: two identical statement lines are two transactions."""
    date: date
    amount: Decimal
    payee: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'date': self.date.isoformat(),
            'amount': str(self.amount),
            'payee': self.payee,
        }


@dataclass
class MatchCandidate:
    """A proposed bank <-> ledger pairing"""
    bank_transaction: BankTransaction
    ledger_transaction: LedgerTransaction
    confidence: MatchConfidence
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'bank_transaction': self.bank_transaction.to_dict(),
            'ledger_transaction': self.ledger_transaction.to_dict(),
            'confidence': self.confidence.value,
            'reasons': list(self.reasons),
        }


@dataclass
class MatchSummary:
    total_bank_transactions: int
    total_ledger_transactions: int
    matched_count: int
    match_rate: float


@dataclass
class MatchResult:
    """Partition of bank and ledger transactions after matching"""
    matched: List[MatchCandidate]
    unmatched_bank: List[BankTransaction]
    unmatched_ledger: List[LedgerTransaction]
    summary: MatchSummary

    def to_dict(self) -> Dict:
        return {
            'matched': [m.to_dict() for m in self.matched],
            'unmatched_bank': [b.to_dict() for b in self.unmatched_bank],
            'unmatched_ledger': [t.to_dict() for t in self.unmatched_ledger],
            'summary': asdict(self.summary),
        }


@dataclass
class ReconciliationOutcome:
    """Result of a reconcile-with-adjustment run, balances in milliunits"""
    account_id: str
    account_name: str
    reconciliation_date: date
    starting_balance: int
    target_balance: int
    actual_balance: int
    adjustment_needed: int
    adjustment_created: bool
    transactions_reconciled: int
    adjustment_transaction: Optional[LedgerTransaction] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'account_id': self.account_id,
            'account_name': self.account_name,
            'reconciliation_date': self.reconciliation_date.isoformat(),
            'starting_balance': self.starting_balance,
            'target_balance': self.target_balance,
            'actual_balance': self.actual_balance,
            'adjustment_needed': self.adjustment_needed,
            'adjustment_created': self.adjustment_created,
            'transactions_reconciled': self.transactions_reconciled,
            'adjustment_transaction': (
                self.adjustment_transaction.to_dict() if self.adjustment_transaction else None
            ),
            'warnings': list(self.warnings),
        }


@dataclass
class AccountReconciliationSummary:
    """Result of marking an account's transactions reconciled through a date"""
    account_id: str
    account_name: str
    reconciliation_date: date
    transactions_requested: int
    transactions_reconciled: int
    total_amount_reconciled: int
    current_balance: int
    ending_balance: Optional[int] = None
    balance_difference: Optional[int] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def balanced(self) -> Optional[bool]:
        if self.balance_difference is None:
            return None
        # within one cent
        return abs(self.balance_difference) <= 10

    def to_dict(self) -> Dict:
        result = asdict(self)
        result['reconciliation_date'] = self.reconciliation_date.isoformat()
        result['balanced'] = self.balanced
        return result


@dataclass
class BulkStatusUpdateResult:
    requested: int
    updated: List[LedgerTransaction]

    @property
    def failed(self) -> int:
        return self.requested - len(self.updated)

    def to_dict(self) -> Dict:
        return {
            'requested': self.requested,
            'updated': [t.to_dict() for t in self.updated],
            'failed': self.failed,
        }


@dataclass
class AccountReconciliationStatus:
    """Reconciliation state of one account, balances in milliunits"""
    account_id: str
    account_name: str
    account_type: Optional[str]
    uncleared_count: int
    cleared_count: int
    reconciled_count: int
    unapproved_count: int
    uncleared_balance: int
    cleared_balance: int
    reconciled_balance: int
    total_balance: int
    last_reconciled_date: Optional[date] = None

    def to_dict(self) -> Dict:
        result = asdict(self)
        result['last_reconciled_date'] = (
            self.last_reconciled_date.isoformat() if self.last_reconciled_date else None
        )
        return result
