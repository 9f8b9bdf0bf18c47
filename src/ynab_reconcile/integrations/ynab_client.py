# YNAB API wrapper
"""
API Client for YNAB
Thin binding over the v1 REST API, returns the unwrapped `data` payloads
"""
import requests
from typing import List, Dict, Optional
from datetime import date
import logging

from ynab_reconcile.exceptions import LedgerApiError, BudgetNotFoundError

logger = logging.getLogger(__name__)

LAST_USED_BUDGET = "last-used"


class YNABClient:
    """Client for YNAB API operations"""

    BASE_URL = "https://api.ynab.com/v1"

    def __init__(self, access_token: str, base_url: Optional[str] = None, timeout: float = 30):
        if not access_token:
            raise ValueError("YNAB access token is required")
        self.base_url = (base_url or self.BASE_URL).rstrip('/')
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json"
        }
        self.session = requests.Session()
        self.session.headers.update(self.headers)

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json().get('data', {})

        except requests.exceptions.HTTPError as e:
            detail = _error_detail(e.response)
            status = e.response.status_code if e.response is not None else None
            logger.error(f"YNAB API error on {method} {endpoint}: {status} {detail}")
            raise LedgerApiError(f"YNAB API Error: {detail}", status_code=status, detail=detail) from e

        except requests.exceptions.RequestException as e:
            logger.error(f"YNAB request failed on {method} {endpoint}: {e}")
            raise LedgerApiError(f"YNAB request failed: {e}") from e

    # User / budgets

    def get_user(self) -> Dict:
        return self._request("GET", "/user").get('user', {})

    def get_budgets(self) -> Dict:
        """Returns {'budgets': [...], 'default_budget': {...} or None}"""
        return self._request("GET", "/budgets")

    def resolve_budget_id(self, budget_id: str) -> str:
        """Resolve 'last-used' to the default budget id"""
        if budget_id != LAST_USED_BUDGET:
            return budget_id
        default_budget = self.get_budgets().get('default_budget')
        if not default_budget:
            raise BudgetNotFoundError("No default budget found")
        return default_budget['id']

    # Accounts

    def get_accounts(self, budget_id: str) -> List[Dict]:
        return self._request("GET", f"/budgets/{budget_id}/accounts").get('accounts', [])

    def get_account(self, budget_id: str, account_id: str) -> Dict:
        return self._request("GET", f"/budgets/{budget_id}/accounts/{account_id}")['account']

    # Transactions

    def get_transactions(self, budget_id: str, since_date: Optional[date] = None) -> List[Dict]:
        params = _since_params(since_date)
        data = self._request("GET", f"/budgets/{budget_id}/transactions", params=params)
        return data.get('transactions', [])

    def get_account_transactions(
        self,
        budget_id: str,
        account_id: str,
        since_date: Optional[date] = None
    ) -> List[Dict]:
        """
        Fetch all transactions for an account

        Args:
            since_date: Only transactions on or after this date
        """
        params = _since_params(since_date)
        data = self._request(
            "GET", f"/budgets/{budget_id}/accounts/{account_id}/transactions", params=params
        )
        transactions = data.get('transactions', [])
        logger.info(f"Retrieved {len(transactions)} transactions for account {account_id}")
        return transactions

    def create_transaction(self, budget_id: str, transaction: Dict) -> Dict:
        data = self._request(
            "POST", f"/budgets/{budget_id}/transactions", json={"transaction": transaction}
        )
        created = data['transaction']
        logger.info(f"Created transaction {created.get('id')} on account {transaction.get('account_id')}")
        return created

    def bulk_update_transaction_status(self, budget_id: str, updates: List[Dict]) -> List[Dict]:
        """
        Update cleared/approved status of many transactions in one request

        Args:
            updates: [{'id': ..., 'cleared': ..., 'approved': ...}, ...]

        Returns:
            Only the transactions YNAB reports as updated
        """
        if not updates:
            return []
        data = self._request(
            "PATCH", f"/budgets/{budget_id}/transactions", json={"transactions": updates}
        )
        updated = data.get('transactions', [])
        if len(updated) < len(updates):
            logger.warning(f"Bulk update: {len(updated)}/{len(updates)} transactions updated")
        else:
            logger.info(f"Bulk update: {len(updated)} transactions updated")
        return updated

    # Payees / categories

    def get_payees(self, budget_id: str) -> List[Dict]:
        return self._request("GET", f"/budgets/{budget_id}/payees").get('payees', [])

    def get_categories(self, budget_id: str) -> List[Dict]:
        """Returns category groups, each with a 'categories' list"""
        return self._request("GET", f"/budgets/{budget_id}/categories").get('category_groups', [])


# Helper Functions

def _since_params(since_date: Optional[date]) -> Dict:
    if not since_date:
        return {}
    return {"since_date": since_date.isoformat()}


def _error_detail(response: Optional[requests.Response]) -> str:
    if response is None:
        return "no response"
    try:
        error = response.json().get('error') or {}
        return error.get('detail') or error.get('name') or response.reason
    except ValueError:
        return response.reason or f"HTTP {response.status_code}"


def check_ynab_connection(access_token: str, base_url: Optional[str] = None) -> bool:
    """Test YNAB API connectivity"""
    client = YNABClient(access_token, base_url)
    try:
        user = client.get_user()
        logger.info(f"✓ YNAB connection successful - user {user.get('id')}")
        return True
    except LedgerApiError as e:
        logger.error(f"✗ YNAB connection failed: {e}")
        return False
