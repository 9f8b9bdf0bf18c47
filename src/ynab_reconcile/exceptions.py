# Exception Handling
from typing import Optional


class ReconciliationException(Exception):
    """Base exception for reconciliation errors"""
    pass


class LedgerApiError(ReconciliationException):
    """The YNAB API returned an error or could not be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class AccountNotFoundError(ReconciliationException):
    """Account does not exist or has been deleted"""
    pass


class BudgetNotFoundError(ReconciliationException):
    """Budget could not be resolved"""
    pass


class ValidationError(ReconciliationException):
    """Invalid caller input"""
    pass
