"""
Bank statement reconciliation for YNAB budgets
"""

__version__ = "1.0.0"
