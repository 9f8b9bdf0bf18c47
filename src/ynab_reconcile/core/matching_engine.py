"""
Core Matching Engine for Bank Statement Reconciliation
Greedy bank -> YNAB matching with tiered confidence
"""
from typing import List, Optional, Tuple
import logging

from ynab_reconcile.core.currency import to_milliunits, format_milliunits
from ynab_reconcile.models.schemas import (
    BankTransaction,
    LedgerTransaction,
    MatchCandidate,
    MatchConfidence,
    MatchResult,
    MatchSummary,
)

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_DAYS = 3
DEFAULT_AMOUNT_SLACK_MILLIUNITS = 1000


class MatchingEngine:
    """
    Bank transaction matching engine
    Scores each feasible YNAB transaction and keeps the highest tier
    """

    def __init__(
        self,
        tolerance_days: int = DEFAULT_TOLERANCE_DAYS,
        amount_slack: int = DEFAULT_AMOUNT_SLACK_MILLIUNITS
    ):
        """
        Args:
            tolerance_days: Max absolute date difference, in days
            amount_slack: Max absolute amount difference, in milliunits
        """
        if tolerance_days < 0:
            raise ValueError("tolerance_days must be >= 0")
        self.tolerance_days = tolerance_days
        self.amount_slack = amount_slack

    def match_transaction(
        self,
        bank_txn: BankTransaction,
        ledger_transactions: List[LedgerTransaction]
    ) -> Optional[MatchCandidate]:
        """Find best match for one bank transaction. First seen wins within a tier."""
        bank_amount = to_milliunits(bank_txn.amount)
        best = None

        for ledger_txn in ledger_transactions:
            candidate = self._score(bank_txn, bank_amount, ledger_txn)
            if candidate is None:
                continue
            if best is None or candidate.confidence.rank > best.confidence.rank:
                best = candidate

        return best

    def _score(
        self,
        bank_txn: BankTransaction,
        bank_amount: int,
        ledger_txn: LedgerTransaction
    ) -> Optional[MatchCandidate]:
        date_diff = abs((ledger_txn.date - bank_txn.date).days)
        if date_diff > self.tolerance_days:
            return None

        amount_diff = abs(ledger_txn.amount - bank_amount)
        amount_exact = amount_diff == 0
        if not amount_exact and amount_diff > self.amount_slack:
            return None

        reasons = []
        if amount_exact:
            reasons.append("Exact amount match")
        else:
            reasons.append(f"Amount within {format_milliunits(amount_diff)}")

        if date_diff == 0:
            reasons.append("Same date")
        else:
            reasons.append(f"Date within {date_diff} day{'s' if date_diff != 1 else ''}")

        similarity = payee_similarity(bank_txn.payee, ledger_txn.payee_name)
        if similarity == 1.0:
            reasons.append("Payee match")
        elif similarity > 0.5:
            reasons.append("Similar payee name")

        if amount_exact and date_diff == 0 and similarity == 1.0:
            confidence = MatchConfidence.EXACT
        elif amount_exact and date_diff <= 1 and similarity > 0.5:
            confidence = MatchConfidence.HIGH
        elif amount_exact and date_diff <= self.tolerance_days:
            confidence = MatchConfidence.MEDIUM
        else:
            confidence = MatchConfidence.LOW

        return MatchCandidate(
            bank_transaction=bank_txn,
            ledger_transaction=ledger_txn,
            confidence=confidence,
            reasons=reasons
        )


#  Helper Functions

def payee_similarity(bank_payee: Optional[str], ledger_payee: Optional[str]) -> float:
    """
    Similarity of two payee strings in [0, 1].
    Exact (case-insensitive, trimmed) = 1.0, otherwise the share of tokens in the
    shorter string that are contained in, or contain, a token of the other.
    """
    if not bank_payee or not ledger_payee:
        return 0.0

    a = bank_payee.strip().lower()
    b = ledger_payee.strip().lower()
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    short_words = shorter.split()
    long_words = longer.split()
    if not short_words:
        return 0.0

    hits = sum(
        1 for word in short_words
        if any(word in other or other in word for other in long_words)
    )
    return hits / len(short_words)


# Batch Processing

def match_bank_transactions(
    bank_transactions: List[BankTransaction],
    ledger_transactions: List[LedgerTransaction],
    tolerance_days: int = DEFAULT_TOLERANCE_DAYS,
    amount_slack: int = DEFAULT_AMOUNT_SLACK_MILLIUNITS
) -> MatchResult:
    """
    Match a bank statement against YNAB transactions.

    Largest absolute amounts are matched first, and each YNAB transaction is
    consumed by at most one bank transaction.
    """
    engine = MatchingEngine(tolerance_days, amount_slack)
    matched, unmatched_bank, unmatched_ledger = _greedy_match(
        engine, bank_transactions, ledger_transactions
    )

    total_bank = len(bank_transactions)
    summary = MatchSummary(
        total_bank_transactions=total_bank,
        total_ledger_transactions=len(ledger_transactions),
        matched_count=len(matched),
        match_rate=(len(matched) / total_bank) if total_bank > 0 else 0.0
    )

    logger.info(
        f"Matched {summary.matched_count}/{total_bank} bank transactions "
        f"against {summary.total_ledger_transactions} YNAB transactions"
    )
    return MatchResult(
        matched=matched,
        unmatched_bank=unmatched_bank,
        unmatched_ledger=unmatched_ledger,
        summary=summary
    )


def _greedy_match(
    engine: MatchingEngine,
    bank_transactions: List[BankTransaction],
    ledger_transactions: List[LedgerTransaction]
) -> Tuple[List[MatchCandidate], List[BankTransaction], List[LedgerTransaction]]:
    matched = []
    unmatched_bank = []
    pool = list(ledger_transactions)

    # sorted() is stable: equal amounts keep statement order
    sorted_bank = sorted(bank_transactions, key=lambda t: abs(to_milliunits(t.amount)), reverse=True)

    for bank_txn in sorted_bank:
        best = engine.match_transaction(bank_txn, pool)
        if best:
            matched.append(best)
            pool = [t for t in pool if t is not best.ledger_transaction]
            logger.debug(
                f"Matched bank {bank_txn.date} {bank_txn.amount} -> {best.ledger_transaction.id} "
                f"({best.confidence.value})"
            )
        else:
            unmatched_bank.append(bank_txn)
            logger.debug(f"No match for bank {bank_txn.date} {bank_txn.amount}")

    return matched, unmatched_bank, pool
