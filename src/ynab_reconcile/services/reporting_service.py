# Text summaries

# === Reporting Service ===
from typing import List

from ynab_reconcile.core.currency import format_milliunits, to_milliunits
from ynab_reconcile.models.schemas import (
    AccountReconciliationStatus,
    MatchConfidence,
    MatchResult,
    ReconciliationOutcome,
)


CONFIDENCE_ORDER = [
    MatchConfidence.EXACT,
    MatchConfidence.HIGH,
    MatchConfidence.MEDIUM,
    MatchConfidence.LOW,
]


class ReportingService:
    """Generate reconciliation summaries"""

    def __init__(self, max_listed: int = 10):
        self.max_listed = max_listed

    def generate_match_summary(self, result: MatchResult) -> str:
        """Generate human-readable summary of a bank matching run"""
        s = result.summary
        summary = f"""BANK TRANSACTION MATCHING REPORT

SUMMARY
-------
Bank Transactions:      {s.total_bank_transactions}
YNAB Transactions:      {s.total_ledger_transactions}
Matched:                {s.matched_count}
Unmatched Bank:         {len(result.unmatched_bank)}
Unmatched YNAB:         {len(result.unmatched_ledger)}

Match Rate:             {s.match_rate * 100:.1f}%
"""

        if result.matched:
            summary += "\nMATCHED TRANSACTIONS\n--------------------\n"
            for confidence in CONFIDENCE_ORDER:
                matches = [m for m in result.matched if m.confidence == confidence]
                if not matches:
                    continue
                summary += f"\n{confidence.value.capitalize()} confidence ({len(matches)})\n"
                for match in matches[:self.max_listed]:
                    bank = match.bank_transaction
                    ledger = match.ledger_transaction
                    summary += f"- {bank.date} {bank.payee or 'No Description'} "
                    summary += f"{format_milliunits(to_milliunits(bank.amount))}"
                    summary += f" <-> {ledger.id} ({ledger.payee_name or 'No Payee'})\n"
                    summary += f"  Reasons: {', '.join(match.reasons)}\n"
                if len(matches) > self.max_listed:
                    summary += f"  ... and {len(matches) - self.max_listed} more\n"

        if result.unmatched_bank:
            summary += "\nUNMATCHED BANK TRANSACTIONS\n---------------------------\n"
            for bank in sorted(result.unmatched_bank, key=lambda t: t.date, reverse=True):
                summary += f"- {bank.date} {bank.payee or 'No Description'} "
                summary += f"{format_milliunits(to_milliunits(bank.amount))}\n"

        if result.unmatched_ledger:
            summary += "\nUNMATCHED YNAB TRANSACTIONS\n---------------------------\n"
            for ledger in sorted(result.unmatched_ledger, key=lambda t: t.date, reverse=True):
                summary += f"- {ledger.date} {ledger.payee_name or 'No Payee'} "
                summary += f"{format_milliunits(ledger.amount)} [{ledger.cleared.value}]\n"

        return summary

    def generate_reconciliation_summary(self, outcome: ReconciliationOutcome) -> str:
        """Generate human-readable summary of a reconcile-with-adjustment run"""
        summary = f"""ACCOUNT RECONCILIATION REPORT

Account:                {outcome.account_name}
Reconciliation Date:    {outcome.reconciliation_date}
Transactions Reconciled: {outcome.transactions_reconciled}

BALANCES
--------
Starting Balance:       {format_milliunits(outcome.starting_balance)}
Target Balance:         {format_milliunits(outcome.target_balance)}
Actual Balance:         {format_milliunits(outcome.actual_balance)}
Difference:             {format_milliunits(outcome.adjustment_needed)}
"""

        adj = outcome.adjustment_transaction
        if outcome.adjustment_created and adj is not None:
            summary += "\nADJUSTMENT CREATED\n------------------\n"
            summary += f"Amount:   {format_milliunits(adj.amount)}\n"
            summary += f"Payee:    {adj.payee_name or 'Reconciliation Balance Adjustment'}\n"
            summary += f"Memo:     {adj.memo or ''}\n"
            summary += f"ID:       {adj.id}\n"
        elif outcome.adjustment_needed != 0:
            summary += f"\nAn adjustment of {format_milliunits(outcome.adjustment_needed)} is needed but was not created.\n"

        if outcome.warnings:
            summary += "\nWARNINGS\n--------\n"
            for warning in outcome.warnings:
                summary += f"- {warning}\n"

        complete = outcome.actual_balance == outcome.target_balance
        summary += f"\nStatus: {'Complete' if complete else 'Incomplete'}\n"
        return summary

    def generate_status_summary(self, statuses: List[AccountReconciliationStatus]) -> str:
        """Generate human-readable reconciliation status of several accounts"""
        summary = "RECONCILIATION STATUS REPORT\n"
        for status in statuses:
            summary += f"\n{status.account_name} ({format_milliunits(status.total_balance)})\n"
            summary += f"  Uncleared:  {status.uncleared_count} ({format_milliunits(status.uncleared_balance)})\n"
            summary += f"  Cleared:    {status.cleared_count} ({format_milliunits(status.cleared_balance)})\n"
            summary += f"  Reconciled: {status.reconciled_count} ({format_milliunits(status.reconciled_balance)})\n"
            summary += f"  Unapproved: {status.unapproved_count}\n"
            summary += f"  Last Reconciled: {status.last_reconciled_date or 'Never'}\n"
        return summary
