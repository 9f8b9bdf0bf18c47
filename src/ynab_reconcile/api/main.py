# FastAPI endpoints
"""
FastAPI Service for YNAB Bank Reconciliation
Exposes matching and reconciliation to agents over HTTP
"""


from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
import logging

from ynab_reconcile import __version__
from ynab_reconcile.config import config
from ynab_reconcile.exceptions import (
    AccountNotFoundError,
    BudgetNotFoundError,
    LedgerApiError,
    ReconciliationException,
    ValidationError,
)
from ynab_reconcile.integrations.ynab_client import YNABClient, check_ynab_connection
from ynab_reconcile.models.schemas import BankTransaction, ClearedStatus
from ynab_reconcile.services.reconciliation_service import ReconciliationService
from ynab_reconcile.services.reporting_service import ReportingService

# Setup logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="YNAB Reconciliation API",
    description="Bank statement matching and balance reconciliation for YNAB accounts",
    version=__version__
)


# === Request/Response Models ===

class BankTransactionIn(BaseModel):
    """One bank statement line"""
    date: str = Field(..., description="Transaction date (YYYY-MM-DD)")
    amount: Decimal = Field(..., description="Amount in dollars (negative for outflows)")
    payee: Optional[str] = Field(None, description="Payee / description")


class MatchRequest(BaseModel):
    bank_transactions: List[BankTransactionIn]
    tolerance_days: int = Field(config.DATE_TOLERANCE_DAYS, ge=0, description="Date tolerance in days")


class ReconcileRequest(BaseModel):
    """Request to reconcile an account against a statement balance"""
    target_balance: Decimal = Field(..., description="Expected ending balance in dollars")
    reconciliation_date: str = Field(..., description="Reconciliation date (YYYY-MM-DD)")
    create_adjustment: bool = Field(False, description="Create a balance adjustment if needed")
    adjustment_memo: Optional[str] = Field(None, description="Memo for the adjustment")


class ReconcileTransactionsRequest(BaseModel):
    reconciliation_date: str = Field(..., description="Transactions on or before this date are reconciled")
    ending_balance: Optional[Decimal] = Field(None, description="Expected ending balance in dollars")


class MarkClearedRequest(BaseModel):
    transaction_ids: List[str] = Field(..., min_length=1)
    also_approve: bool = True


class OperationResponse(BaseModel):
    """Operation result with a human-readable summary"""
    status: str
    summary: Optional[str] = None
    result: dict


class TransactionListResponse(BaseModel):
    """Transactions awaiting reconciliation, newest first"""
    count: int
    transactions: List[dict]


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    timestamp: str
    services: dict


# === Dependency Injection ===

def get_services():
    """
    Initialize service instances for one request
    The client session is closed once the response is sent
    """
    client = YNABClient(
        access_token=config.YNAB_ACCESS_TOKEN,
        base_url=config.YNAB_BASE_URL,
        timeout=config.YNAB_TIMEOUT
    )

    recon_service = ReconciliationService(
        client=client,
        adjustment_payee_id=config.ADJUSTMENT_PAYEE_ID,
        inflow_category_id=config.INFLOW_CATEGORY_ID,
        default_memo=config.ADJUSTMENT_MEMO,
        tolerance_days=config.DATE_TOLERANCE_DAYS,
        amount_slack=config.AMOUNT_SLACK_MILLIUNITS
    )
    reporting_service = ReportingService()

    try:
        yield recon_service, reporting_service
    finally:
        client.session.close()


def _parse_date(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(400, f"Invalid {name} format. Use YYYY-MM-DD")


# API Endpoints

@app.get("/", tags=["Info"])
async def root():
    """API information"""
    return {
        "name": "YNAB Reconciliation API",
        "version": __version__,
        "status": "operational",
        "endpoints": {
            "health": "/health",
            "match": "/api/v1/budgets/{budget_id}/accounts/{account_id}/match",
            "reconcile": "/api/v1/budgets/{budget_id}/accounts/{account_id}/reconcile",
            "status": "/api/v1/budgets/{budget_id}/reconciliation-status"
        }
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check():
    """
    Health check endpoint
    Tests connectivity to the YNAB API
    """
    services = {"ynab": "unknown"}

    if not config.YNAB_ACCESS_TOKEN:
        services["ynab"] = "error: YNAB_ACCESS_TOKEN not set"
    elif check_ynab_connection(config.YNAB_ACCESS_TOKEN, config.YNAB_BASE_URL):
        services["ynab"] = "ok"
    else:
        services["ynab"] = "error"

    status = "healthy" if all(s == "ok" for s in services.values()) else "degraded"

    return HealthResponse(
        status=status,
        timestamp=datetime.now().isoformat(),
        services=services
    )


@app.post(
    "/api/v1/budgets/{budget_id}/accounts/{account_id}/match",
    response_model=OperationResponse,
    tags=["Reconciliation"]
)
def match_bank_transactions(
    budget_id: str,
    account_id: str,
    request: MatchRequest,
    services=Depends(get_services)
):
    """
    Compare bank statement lines with YNAB transactions

    Returns matched pairs with confidence, plus unmatched bank and YNAB transactions.
    """
    recon_service, reporting_service = services

    bank_transactions = [
        BankTransaction(
            date=_parse_date(t.date, "date"),
            amount=t.amount,
            payee=t.payee
        )
        for t in request.bank_transactions
    ]

    result = recon_service.match_bank_transactions(
        budget_id, account_id, bank_transactions, request.tolerance_days
    )

    return OperationResponse(
        status="completed",
        summary=reporting_service.generate_match_summary(result),
        result=result.to_dict()
    )


@app.post(
    "/api/v1/budgets/{budget_id}/accounts/{account_id}/reconcile",
    response_model=OperationResponse,
    tags=["Reconciliation"]
)
def reconcile_account_with_adjustment(
    budget_id: str,
    account_id: str,
    request: ReconcileRequest,
    services=Depends(get_services)
):
    """
    Reconcile an account against a statement balance

    This endpoint:
    1. Marks transactions through the date as reconciled
    2. Compares the YNAB balance with the target
    3. Creates a balance adjustment (if create_adjustment=true)
    """
    recon_service, reporting_service = services
    reconciliation_date = _parse_date(request.reconciliation_date, "reconciliation_date")

    logger.info(f"Reconcile request for account {account_id} through {reconciliation_date}")

    outcome = recon_service.reconcile_account_with_adjustment(
        budget_id,
        account_id,
        target_balance=request.target_balance,
        reconciliation_date=reconciliation_date,
        create_adjustment=request.create_adjustment,
        adjustment_memo=request.adjustment_memo
    )

    return OperationResponse(
        status="completed_with_warnings" if outcome.warnings else "completed",
        summary=reporting_service.generate_reconciliation_summary(outcome),
        result=outcome.to_dict()
    )


@app.post(
    "/api/v1/budgets/{budget_id}/accounts/{account_id}/reconcile-transactions",
    response_model=OperationResponse,
    tags=["Reconciliation"]
)
def reconcile_account_transactions(
    budget_id: str,
    account_id: str,
    request: ReconcileTransactionsRequest,
    services=Depends(get_services)
):
    """Mark every transaction on or before the date as reconciled"""
    recon_service, _ = services
    summary = recon_service.reconcile_account_transactions(
        budget_id,
        account_id,
        _parse_date(request.reconciliation_date, "reconciliation_date"),
        ending_balance=request.ending_balance
    )
    return OperationResponse(
        status="completed_with_warnings" if summary.warnings else "completed",
        result=summary.to_dict()
    )


@app.post(
    "/api/v1/budgets/{budget_id}/transactions/mark-cleared",
    response_model=OperationResponse,
    tags=["Reconciliation"]
)
def mark_transactions_cleared(
    budget_id: str,
    request: MarkClearedRequest,
    services=Depends(get_services)
):
    recon_service, _ = services
    result = recon_service.mark_transactions_cleared(
        budget_id, request.transaction_ids, request.also_approve
    )
    return OperationResponse(
        status="completed" if result.failed == 0 else "partial",
        result=result.to_dict()
    )


@app.get(
    "/api/v1/budgets/{budget_id}/transactions/for-reconciliation",
    response_model=TransactionListResponse,
    tags=["Reconciliation"]
)
def find_transactions_for_reconciliation(
    budget_id: str,
    account_id: Optional[str] = None,
    cleared: Optional[ClearedStatus] = None,
    approved: Optional[bool] = None,
    since_date: Optional[str] = None,
    until_date: Optional[str] = None,
    limit: int = Query(50, ge=1),
    services=Depends(get_services)
):
    recon_service, _ = services
    transactions = recon_service.find_transactions_for_reconciliation(
        budget_id,
        account_id=account_id,
        cleared=cleared,
        approved=approved,
        since_date=_parse_date(since_date, "since_date") if since_date else None,
        until_date=_parse_date(until_date, "until_date") if until_date else None,
        limit=limit
    )
    return TransactionListResponse(
        count=len(transactions),
        transactions=[t.to_dict() for t in transactions]
    )


@app.get(
    "/api/v1/budgets/{budget_id}/reconciliation-status",
    response_model=OperationResponse,
    tags=["Reconciliation"]
)
def reconciliation_status(
    budget_id: str,
    account_ids: Optional[List[str]] = Query(None),
    services=Depends(get_services)
):
    """Reconciliation state of each open account"""
    recon_service, reporting_service = services
    statuses = recon_service.reconciliation_status_report(budget_id, account_ids)
    return OperationResponse(
        status="completed",
        summary=reporting_service.generate_status_summary(statuses),
        result={"accounts": [s.to_dict() for s in statuses]}
    )


#  Event Handlers

@app.on_event("startup")
async def startup_event():
    logger.info("=" * 60)
    logger.info("YNAB Reconciliation API Starting...")
    logger.info("=" * 60)
    if not config.YNAB_ACCESS_TOKEN:
        logger.warning("⚠ YNAB_ACCESS_TOKEN is not set")
    logger.info("API Ready!")


# Error Handlers

@app.exception_handler(ValidationError)
async def validation_exception_handler(request, exc):
    return JSONResponse(status_code=400, content={"error": "Bad Request", "message": str(exc)})


@app.exception_handler(AccountNotFoundError)
@app.exception_handler(BudgetNotFoundError)
async def not_found_exception_handler(request, exc):
    return JSONResponse(status_code=404, content={"error": "Not Found", "message": str(exc)})


@app.exception_handler(LedgerApiError)
async def ledger_exception_handler(request, exc):
    logger.error(f"YNAB API failure: {exc}")
    return JSONResponse(
        status_code=502,
        content={"error": "Bad Gateway", "message": str(exc), "status_code": exc.status_code}
    )


@app.exception_handler(ReconciliationException)
async def reconciliation_exception_handler(request, exc):
    logger.error(f"Reconciliation failed: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Reconciliation Failed", "message": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": str(exc)
        }
    )


#  Run Server

def run():
    import uvicorn

    uvicorn.run(
        "ynab_reconcile.api.main:app",
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )


if __name__ == "__main__":
    run()
