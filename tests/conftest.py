import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import Mock

from ynab_reconcile.models.schemas import BankTransaction, ClearedStatus, LedgerTransaction

ACCOUNT_ID = "acct-1"
BUDGET_ID = "budget-1"


def ledger_txn(id, day, amount, payee=None, cleared=ClearedStatus.UNCLEARED, **kwargs):
    return LedgerTransaction(
        id=id,
        account_id=ACCOUNT_ID,
        date=day,
        amount=amount,
        cleared=cleared,
        payee_name=payee,
        **kwargs
    )


def bank_txn(day, amount, payee=None):
    return BankTransaction(date=day, amount=Decimal(amount), payee=payee)


def api_txn(id, day, amount, cleared="uncleared", payee=None, deleted=False, approved=False):
    """Transaction as returned by the YNAB API"""
    return {
        "id": id,
        "account_id": ACCOUNT_ID,
        "date": day,
        "amount": amount,
        "cleared": cleared,
        "approved": approved,
        "deleted": deleted,
        "payee_name": payee,
        "category_name": None,
        "memo": None,
    }


def api_account(balance, id=ACCOUNT_ID, name="Checking", **kwargs):
    account = {
        "id": id,
        "name": name,
        "type": "checking",
        "balance": balance,
        "cleared_balance": balance,
        "uncleared_balance": 0,
        "closed": False,
        "deleted": False,
    }
    account.update(kwargs)
    return account


@pytest.fixture
def client():
    """Mock YNAB client; budget ids resolve to themselves"""
    client = Mock()
    client.resolve_budget_id.side_effect = lambda budget_id: budget_id
    client.get_payees.return_value = []
    client.get_categories.return_value = []
    return client


@pytest.fixture
def statement_date():
    return date(2024, 3, 31)
