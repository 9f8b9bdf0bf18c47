"""
Application configuration, read from the environment
"""
import os


class Config:
    """Application configuration"""

    # YNAB API
    YNAB_ACCESS_TOKEN = os.getenv("YNAB_ACCESS_TOKEN", "")
    YNAB_BASE_URL = os.getenv("YNAB_BASE_URL", "https://api.ynab.com/v1")
    YNAB_TIMEOUT = float(os.getenv("YNAB_TIMEOUT", "30"))

    # Well-known ids, specific to one YNAB budget
    ADJUSTMENT_PAYEE_ID = os.getenv("YNAB_ADJUSTMENT_PAYEE_ID") or None
    INFLOW_CATEGORY_ID = os.getenv("YNAB_INFLOW_CATEGORY_ID") or None

    # Matching / reconciliation
    DATE_TOLERANCE_DAYS = int(os.getenv("RECONCILE_DATE_TOLERANCE_DAYS", "3"))
    AMOUNT_SLACK_MILLIUNITS = int(os.getenv("RECONCILE_AMOUNT_SLACK_MILLIUNITS", "1000"))
    ADJUSTMENT_MEMO = os.getenv(
        "RECONCILE_ADJUSTMENT_MEMO",
        "Reconciliation adjustment to match bank statement balance"
    )

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


config = Config()
