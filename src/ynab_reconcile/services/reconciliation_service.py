# Main workflow orchestrator
"""
Reconciliation Service - Main orchestration logic
Coordinates the matching engine and the YNAB client
"""
from typing import Any, List, Dict, Optional, Union
from datetime import date, timedelta
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
import logging

from ynab_reconcile.core.currency import to_milliunits, format_milliunits
from ynab_reconcile.core.matching_engine import (
    DEFAULT_AMOUNT_SLACK_MILLIUNITS,
    DEFAULT_TOLERANCE_DAYS,
    match_bank_transactions,
)
from ynab_reconcile.exceptions import AccountNotFoundError, ReconciliationException, ValidationError
from ynab_reconcile.models.schemas import (
    Account,
    AccountReconciliationStatus,
    AccountReconciliationSummary,
    BankTransaction,
    BulkStatusUpdateResult,
    ClearedStatus,
    LedgerTransaction,
    MatchResult,
    ReconciliationOutcome,
    parse_date,
)

logger = logging.getLogger(__name__)

ADJUSTMENT_PAYEE_NAME = "Reconciliation Balance Adjustment"
INFLOW_CATEGORY_NAME = "Inflow: Ready to Assign"
DEFAULT_ADJUSTMENT_MEMO = "Reconciliation adjustment to match bank statement balance"


class ReconciliationStage(str, Enum):
    START = "start"
    TRANSACTIONS_FETCHED = "transactions_fetched"
    TRANSACTIONS_MARKED_RECONCILED = "transactions_marked_reconciled"
    BALANCE_RECOMPUTED = "balance_recomputed"
    ADJUSTMENT_EVALUATED = "adjustment_evaluated"
    DONE = "done"


@dataclass
class StepResult:
    """Outcome of one reconciliation stage: a value plus any non-fatal warnings"""
    value: Any = None
    warnings: List[str] = field(default_factory=list)


class ReconciliationService:
    """
    Main service for bank statement reconciliation against YNAB
    """

    def __init__(
        self,
        client,
        adjustment_payee_id: Optional[str] = None,
        inflow_category_id: Optional[str] = None,
        default_memo: str = DEFAULT_ADJUSTMENT_MEMO,
        tolerance_days: int = DEFAULT_TOLERANCE_DAYS,
        amount_slack: int = DEFAULT_AMOUNT_SLACK_MILLIUNITS
    ):
        """
        Args:
            client: YNABClient instance
            adjustment_payee_id: Well-known payee for balance adjustments
            inflow_category_id: "Inflow: Ready to Assign" category, looked up by name if None
            default_memo: Memo for adjustments when the caller gives none
            tolerance_days: Default date tolerance for matching
            amount_slack: Amount slack for matching, in milliunits
        """
        self.client = client
        self.adjustment_payee_id = adjustment_payee_id
        self.inflow_category_id = inflow_category_id
        self.default_memo = default_memo
        self.tolerance_days = tolerance_days
        self.amount_slack = amount_slack

    # Bank matching

    def match_bank_transactions(
        self,
        budget_id: str,
        account_id: str,
        bank_transactions: List[BankTransaction],
        tolerance_days: Optional[int] = None
    ) -> MatchResult:
        """
        Compare bank statement lines with the account's YNAB transactions.
        Only YNAB transactions within the statement's date window (+/- tolerance) take part.
        """
        tolerance = self.tolerance_days if tolerance_days is None else tolerance_days
        if tolerance < 0:
            raise ValidationError("Date tolerance must be zero or more days")

        budget_id = self.client.resolve_budget_id(budget_id)

        since_date = None
        until_date = None
        if bank_transactions:
            since_date = min(t.date for t in bank_transactions) - timedelta(days=tolerance)
            until_date = max(t.date for t in bank_transactions) + timedelta(days=tolerance)

        raw = self.client.get_account_transactions(budget_id, account_id, since_date=since_date)
        ledger = [
            t for t in (LedgerTransaction.from_api(r) for r in raw)
            if not t.deleted and (until_date is None or t.date <= until_date)
        ]
        logger.info(
            f"Matching {len(bank_transactions)} bank transactions against "
            f"{len(ledger)} YNAB transactions (tolerance {tolerance} days)"
        )
        return match_bank_transactions(bank_transactions, ledger, tolerance, self.amount_slack)

    # Reconciliation with adjustment

    def reconcile_account_with_adjustment(
        self,
        budget_id: str,
        account_id: str,
        target_balance: Union[Decimal, float, str],
        reconciliation_date: Union[date, str],
        create_adjustment: bool,
        adjustment_memo: Optional[str] = None
    ) -> ReconciliationOutcome:
        """
        Main reconciliation workflow

        Steps:
        1. Look up the account (fatal on failure)
        2. Fetch its transactions (fatal on failure)
        3. Mark transactions up to the date as reconciled, in one batch
        4. Re-read the account balance
        5. Create an adjustment transaction if asked and needed

        Steps 3-5 report failures as warnings on the outcome.
        """
        reconciliation_date = _as_date(reconciliation_date)
        target_milli = to_milliunits(target_balance)
        budget_id = self.client.resolve_budget_id(budget_id)

        logger.info("=" * 60)
        logger.info(f"Starting reconciliation of account {account_id} through {reconciliation_date}")
        logger.info("=" * 60)

        warnings: List[str] = []
        stage = ReconciliationStage.START

        try:
            account = self._load_account(budget_id, account_id)
            starting_balance = account.balance

            stage = self._advance(stage, ReconciliationStage.TRANSACTIONS_FETCHED)
            transactions = self._load_transactions(budget_id, account_id)
        except ReconciliationException:
            logger.error(f"Reconciliation of account {account_id} aborted at stage {stage.value}")
            raise

        stage = self._advance(stage, ReconciliationStage.TRANSACTIONS_MARKED_RECONCILED)
        marked = self._mark_reconciled(budget_id, transactions, reconciliation_date)
        warnings.extend(marked.warnings)
        reconciled_count = len(marked.value)

        stage = self._advance(stage, ReconciliationStage.BALANCE_RECOMPUTED)
        recomputed = self._recompute_balance(budget_id, account_id)
        warnings.extend(recomputed.warnings)
        balance_known = recomputed.value is not None
        actual_balance = recomputed.value if balance_known else starting_balance

        stage = self._advance(stage, ReconciliationStage.ADJUSTMENT_EVALUATED)
        adjustment_needed = target_milli - actual_balance
        adjustment_txn = None
        if create_adjustment and adjustment_needed != 0:
            if balance_known:
                created = self._create_adjustment(
                    budget_id, account_id, reconciliation_date, adjustment_needed,
                    adjustment_memo or self.default_memo
                )
                warnings.extend(created.warnings)
                adjustment_txn = created.value
            else:
                warnings.append("Adjustment not created: account balance could not be refreshed")

        stage = self._advance(stage, ReconciliationStage.DONE)
        if adjustment_txn is not None:
            actual_balance += adjustment_txn.amount

        outcome = ReconciliationOutcome(
            account_id=account.id,
            account_name=account.name,
            reconciliation_date=reconciliation_date,
            starting_balance=starting_balance,
            target_balance=target_milli,
            actual_balance=actual_balance,
            adjustment_needed=adjustment_needed,
            adjustment_created=adjustment_txn is not None,
            transactions_reconciled=reconciled_count,
            adjustment_transaction=adjustment_txn,
            warnings=warnings
        )

        logger.info("=" * 60)
        logger.info(f"Reconciliation Complete! (stage: {stage.value})")
        logger.info(f"Reconciled: {reconciled_count} transactions")
        logger.info(f"Adjustment: {format_milliunits(adjustment_needed)} "
                    f"({'created' if outcome.adjustment_created else 'not created'})")
        if warnings:
            logger.warning(f"Finished with {len(warnings)} warning(s)")
        logger.info("=" * 60)

        return outcome

    def _advance(self, current: ReconciliationStage, nxt: ReconciliationStage) -> ReconciliationStage:
        logger.debug(f"Reconciliation stage {current.value} -> {nxt.value}")
        return nxt

    def _load_account(self, budget_id: str, account_id: str) -> Account:
        try:
            account = Account.from_api(self.client.get_account(budget_id, account_id))
        except ReconciliationException as e:
            logger.error(f"Account lookup failed for {account_id}: {e}")
            if getattr(e, 'status_code', None) == 404:
                raise AccountNotFoundError(f"Account {account_id} not found") from e
            raise
        if account.deleted:
            raise AccountNotFoundError(f"Account {account_id} has been deleted")
        return account

    def _load_transactions(self, budget_id: str, account_id: str) -> List[LedgerTransaction]:
        raw = self.client.get_account_transactions(budget_id, account_id)
        transactions = [t for t in (LedgerTransaction.from_api(r) for r in raw) if not t.deleted]
        logger.info(f"✓ Found {len(transactions)} transactions")
        return transactions

    def _mark_reconciled(
        self,
        budget_id: str,
        transactions: List[LedgerTransaction],
        reconciliation_date: date
    ) -> StepResult:
        to_reconcile = _reconcilable(transactions, reconciliation_date)
        if not to_reconcile:
            logger.info("No transactions to reconcile")
            return StepResult(value=[])

        updates = [
            {"id": t.id, "cleared": ClearedStatus.RECONCILED.value, "approved": True}
            for t in to_reconcile
        ]
        try:
            raw = self.client.bulk_update_transaction_status(budget_id, updates)
        except ReconciliationException as e:
            logger.warning(f"Marking transactions reconciled failed: {e}")
            return StepResult(
                value=[],
                warnings=[f"Failed to mark {len(updates)} transactions as reconciled: {e}"]
            )

        updated = [LedgerTransaction.from_api(r) for r in raw]
        warnings = []
        if len(updated) < len(updates):
            warnings.append(
                f"Only {len(updated)} of {len(updates)} transactions were marked as reconciled"
            )
        logger.info(f"✓ Marked {len(updated)} transactions reconciled")
        return StepResult(value=updated, warnings=warnings)

    def _recompute_balance(self, budget_id: str, account_id: str) -> StepResult:
        try:
            account = Account.from_api(self.client.get_account(budget_id, account_id))
        except ReconciliationException as e:
            logger.warning(f"Could not refresh balance for {account_id}: {e}")
            return StepResult(warnings=[f"Could not refresh account balance: {e}"])
        return StepResult(value=account.balance)

    def _create_adjustment(
        self,
        budget_id: str,
        account_id: str,
        reconciliation_date: date,
        amount: int,
        memo: str
    ) -> StepResult:
        warnings: List[str] = []
        draft = {
            "account_id": account_id,
            "date": reconciliation_date.isoformat(),
            "amount": amount,
            "cleared": ClearedStatus.RECONCILED.value,
            "approved": True,
            "memo": memo,
        }

        payee = self._resolve_adjustment_payee(budget_id)
        warnings.extend(payee.warnings)
        draft.update(payee.value)

        if amount > 0:
            category = self._resolve_inflow_category(budget_id)
            warnings.extend(category.warnings)
            if category.value:
                draft["category_id"] = category.value

        try:
            created = LedgerTransaction.from_api(self.client.create_transaction(budget_id, draft))
        except ReconciliationException as e:
            logger.warning(f"Adjustment transaction failed: {e}")
            warnings.append(f"Failed to create adjustment transaction of {format_milliunits(amount)}: {e}")
            return StepResult(warnings=warnings)

        logger.info(f"✓ Created adjustment {created.id} for {format_milliunits(amount)}")
        return StepResult(value=created, warnings=warnings)

    def _resolve_adjustment_payee(self, budget_id: str) -> StepResult:
        fallback = {"payee_name": ADJUSTMENT_PAYEE_NAME}
        if not self.adjustment_payee_id:
            return StepResult(value=fallback)

        try:
            payees = self.client.get_payees(budget_id)
        except ReconciliationException as e:
            return StepResult(
                value=fallback,
                warnings=[f"Could not load payees, using payee name '{ADJUSTMENT_PAYEE_NAME}': {e}"]
            )

        if any(p.get('id') == self.adjustment_payee_id and not p.get('deleted') for p in payees):
            return StepResult(value={"payee_id": self.adjustment_payee_id})

        return StepResult(
            value=fallback,
            warnings=[
                f"Adjustment payee {self.adjustment_payee_id} not found, "
                f"using payee name '{ADJUSTMENT_PAYEE_NAME}'"
            ]
        )

    def _resolve_inflow_category(self, budget_id: str) -> StepResult:
        if self.inflow_category_id:
            return StepResult(value=self.inflow_category_id)

        try:
            groups = self.client.get_categories(budget_id)
        except ReconciliationException as e:
            return StepResult(warnings=[f"Could not load categories, adjustment left uncategorized: {e}"])

        for group in groups:
            for category in group.get('categories', []):
                if category.get('name') == INFLOW_CATEGORY_NAME and not category.get('deleted'):
                    return StepResult(value=category['id'])

        return StepResult(
            warnings=[f"Category '{INFLOW_CATEGORY_NAME}' not found, adjustment left uncategorized"]
        )

    # Reconciliation helpers

    def reconcile_account_transactions(
        self,
        budget_id: str,
        account_id: str,
        reconciliation_date: Union[date, str],
        ending_balance: Optional[Union[Decimal, float, str]] = None
    ) -> AccountReconciliationSummary:
        """Mark everything on or before the date as reconciled, without adjusting"""
        reconciliation_date = _as_date(reconciliation_date)
        budget_id = self.client.resolve_budget_id(budget_id)

        account = self._load_account(budget_id, account_id)
        transactions = self._load_transactions(budget_id, account_id)
        to_reconcile = _reconcilable(transactions, reconciliation_date)

        marked = self._mark_reconciled(budget_id, transactions, reconciliation_date)

        summary = AccountReconciliationSummary(
            account_id=account.id,
            account_name=account.name,
            reconciliation_date=reconciliation_date,
            transactions_requested=len(to_reconcile),
            transactions_reconciled=len(marked.value),
            total_amount_reconciled=sum(t.amount for t in to_reconcile),
            current_balance=account.balance,
            warnings=marked.warnings
        )
        if ending_balance is not None:
            summary.ending_balance = to_milliunits(ending_balance)
            summary.balance_difference = account.balance - summary.ending_balance
        return summary

    def mark_transactions_cleared(
        self,
        budget_id: str,
        transaction_ids: List[str],
        also_approve: bool = True
    ) -> BulkStatusUpdateResult:
        budget_id = self.client.resolve_budget_id(budget_id)
        updates = []
        for transaction_id in transaction_ids:
            update = {"id": transaction_id, "cleared": ClearedStatus.CLEARED.value}
            if also_approve:
                update["approved"] = True
            updates.append(update)

        raw = self.client.bulk_update_transaction_status(budget_id, updates)
        return BulkStatusUpdateResult(
            requested=len(transaction_ids),
            updated=[LedgerTransaction.from_api(r) for r in raw]
        )

    def find_transactions_for_reconciliation(
        self,
        budget_id: str,
        account_id: Optional[str] = None,
        cleared: Optional[ClearedStatus] = None,
        approved: Optional[bool] = None,
        since_date: Optional[date] = None,
        until_date: Optional[date] = None,
        limit: int = 50
    ) -> List[LedgerTransaction]:
        """Filter transactions by status and date, newest first"""
        budget_id = self.client.resolve_budget_id(budget_id)
        if account_id:
            raw = self.client.get_account_transactions(budget_id, account_id, since_date=since_date)
        else:
            raw = self.client.get_transactions(budget_id, since_date=since_date)

        transactions = [t for t in (LedgerTransaction.from_api(r) for r in raw) if not t.deleted]
        if cleared is not None:
            transactions = [t for t in transactions if t.cleared == ClearedStatus(cleared)]
        if approved is not None:
            transactions = [t for t in transactions if t.approved == approved]
        if until_date:
            transactions = [t for t in transactions if t.date <= until_date]

        transactions.sort(key=lambda t: t.date, reverse=True)
        return transactions[:limit]

    def reconciliation_status_report(
        self,
        budget_id: str,
        account_ids: Optional[List[str]] = None
    ) -> List[AccountReconciliationStatus]:
        """Reconciliation state of open accounts, most uncleared first"""
        budget_id = self.client.resolve_budget_id(budget_id)
        accounts = [
            a for a in (Account.from_api(r) for r in self.client.get_accounts(budget_id))
            if not a.closed and not a.deleted
        ]
        if account_ids:
            accounts = [a for a in accounts if a.id in account_ids]

        report = []
        for account in accounts:
            try:
                raw = self.client.get_account_transactions(budget_id, account.id)
            except ReconciliationException as e:
                logger.error(f"Error processing account {account.name}: {e}")
                continue
            transactions = [t for t in (LedgerTransaction.from_api(r) for r in raw) if not t.deleted]
            report.append(_account_status(account, transactions))

        report.sort(key=lambda s: s.uncleared_count, reverse=True)
        return report


# Helper Functions

def _as_date(value: Union[date, str]) -> date:
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError(f"Invalid date '{value}'. Use YYYY-MM-DD")


def _reconcilable(transactions: List[LedgerTransaction], reconciliation_date: date) -> List[LedgerTransaction]:
    return [
        t for t in transactions
        if t.date <= reconciliation_date and t.cleared != ClearedStatus.RECONCILED
    ]


def _account_status(account: Account, transactions: List[LedgerTransaction]) -> AccountReconciliationStatus:
    counts: Dict[ClearedStatus, int] = {status: 0 for status in ClearedStatus}
    balances: Dict[ClearedStatus, int] = {status: 0 for status in ClearedStatus}
    unapproved = 0
    last_reconciled = None

    for t in transactions:
        counts[t.cleared] += 1
        balances[t.cleared] += t.amount
        if not t.approved:
            unapproved += 1
        if t.cleared == ClearedStatus.RECONCILED and (last_reconciled is None or t.date > last_reconciled):
            last_reconciled = t.date

    return AccountReconciliationStatus(
        account_id=account.id,
        account_name=account.name,
        account_type=account.type,
        uncleared_count=counts[ClearedStatus.UNCLEARED],
        cleared_count=counts[ClearedStatus.CLEARED],
        reconciled_count=counts[ClearedStatus.RECONCILED],
        unapproved_count=unapproved,
        uncleared_balance=balances[ClearedStatus.UNCLEARED],
        cleared_balance=balances[ClearedStatus.CLEARED],
        reconciled_balance=balances[ClearedStatus.RECONCILED],
        total_balance=account.balance,
        last_reconciled_date=last_reconciled
    )
