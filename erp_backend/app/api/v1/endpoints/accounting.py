"""
Accounting API endpoints.

Chart of accounts, ledger transactions, invoices and financial reports.
Reads need contabilidad:read, writes need contabilidad:write.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp_backend.app.core.guards import require_permission
from erp_backend.app.core.permissions import Permission
from erp_backend.app.db.session import get_db
from erp_backend.app.domain.ledger.balances import ZERO
from erp_backend.app.domain.ledger.invoice_service import InvoiceService
from erp_backend.app.domain.ledger.ledger_service import LedgerService
from erp_backend.app.domain.ledger.report_service import ReportService
from erp_backend.app.models.accounting_enums import AccountType, InvoiceStatus, InvoiceType
from erp_backend.app.schemas.accounting import (
    AccountCreate, AccountUpdate, AccountResponse, AccountDetailResponse,
    TransactionCreate, TransactionResponse,
    InvoiceCreate, InvoiceStatusUpdate, InvoiceResponse, InvoiceDetailResponse,
    IncomeStatementResponse, BalanceSheetResponse, AccountingDashboardResponse,
)
from erp_backend.app.schemas.common import Page, build_pagination
from erp_backend.app.services.audit import log_event, AuditAction, client_ip

router = APIRouter(prefix="/accounting", tags=["Accounting"])

can_read = require_permission(Permission.ACCOUNTING_READ)
can_write = require_permission(Permission.ACCOUNTING_WRITE)


@router.get("/dashboard", response_model=AccountingDashboardResponse)
async def get_dashboard(
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    """Month-to-date results, year-to-date balances and recent activity."""
    return await ReportService.dashboard(db)


# ============================================================================
# Accounts
# ============================================================================

@router.get("/accounts", response_model=List[AccountResponse])
async def list_accounts(
    account_type: Optional[AccountType] = Query(None, alias="type"),
    is_active: bool = Query(True),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    """Chart of accounts ordered by type and code, with computed balances."""
    rows = await LedgerService.list_accounts(db, account_type, is_active)
    return [
        AccountResponse.model_validate(account).model_copy(update={"balance": balance})
        for account, balance in rows
    ]


@router.get("/accounts/{account_id}", response_model=AccountDetailResponse)
async def get_account(
    account_id: int,
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    account, balance, recent = await LedgerService.get_account(db, account_id)
    return AccountDetailResponse.model_validate(account).model_copy(update={
        "balance": balance,
        "recent_transactions": [TransactionResponse.model_validate(t) for t in recent],
    })


@router.post("/accounts", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    data: AccountCreate,
    request: Request,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    account = await LedgerService.create_account(db, data)
    response = AccountResponse.model_validate(account).model_copy(update={"balance": ZERO})

    await log_event(
        db=db,
        action=AuditAction.ACCOUNT_CREATED,
        actor=current_user,
        entity_type="account",
        entity_id=account.id,
        metadata={"code": account.code, "type": account.type.value},
        ip_address=client_ip(request)
    )

    return response


@router.put("/accounts/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: int,
    data: AccountUpdate,
    request: Request,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    account = await LedgerService.update_account(db, account_id, data)
    balances = await LedgerService.account_balances(db, [account.id])
    response = AccountResponse.model_validate(account).model_copy(
        update={"balance": balances.get(account.id, ZERO)}
    )

    await log_event(
        db=db,
        action=AuditAction.ACCOUNT_UPDATED,
        actor=current_user,
        entity_type="account",
        entity_id=account.id,
        metadata={"fields": sorted(data.model_dump(exclude_unset=True, exclude_none=True))},
        ip_address=client_ip(request)
    )

    return response


# ============================================================================
# Transactions
# ============================================================================

@router.get("/transactions", response_model=Page[TransactionResponse])
async def list_transactions(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    account_id: Optional[int] = Query(None),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    transactions, total = await LedgerService.list_transactions(db, page, limit, account_id)
    return Page[TransactionResponse](
        items=[TransactionResponse.model_validate(t) for t in transactions],
        pagination=build_pagination(page, limit, total),
    )


@router.post("/transactions", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    data: TransactionCreate,
    request: Request,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    transaction = await LedgerService.create_transaction(db, data, current_user)
    response = TransactionResponse.model_validate(transaction)

    await log_event(
        db=db,
        action=AuditAction.TRANSACTION_RECORDED,
        actor=current_user,
        entity_type="transaction",
        entity_id=transaction.id,
        metadata={
            "account_id": transaction.account_id,
            "type": transaction.type.value,
            "amount": str(transaction.amount),
        },
        ip_address=client_ip(request)
    )

    return response


# ============================================================================
# Invoices
# ============================================================================

@router.get("/invoices", response_model=Page[InvoiceResponse])
async def list_invoices(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    invoice_type: Optional[InvoiceType] = Query(None, alias="type"),
    invoice_status: Optional[InvoiceStatus] = Query(None, alias="status"),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    invoices, total = await InvoiceService.list_invoices(db, page, limit, invoice_type, invoice_status)
    return Page[InvoiceResponse](
        items=[InvoiceResponse.model_validate(i) for i in invoices],
        pagination=build_pagination(page, limit, total),
    )


@router.get("/invoices/{invoice_id}", response_model=InvoiceDetailResponse)
async def get_invoice(
    invoice_id: int,
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    invoice = await InvoiceService.get_invoice(db, invoice_id)
    return InvoiceDetailResponse.model_validate(invoice)


@router.post("/invoices", response_model=InvoiceDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    data: InvoiceCreate,
    request: Request,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an invoice and its ledger lines atomically.

    Either the invoice and all of its transactions are stored, or none are.
    """
    invoice = await InvoiceService.create_invoice(db, data, current_user)
    response = InvoiceDetailResponse.model_validate(invoice)

    await log_event(
        db=db,
        action=AuditAction.INVOICE_CREATED,
        actor=current_user,
        entity_type="invoice",
        entity_id=invoice.id,
        metadata={"number": invoice.number, "lines": len(response.transactions)},
        ip_address=client_ip(request)
    )

    return response


@router.patch("/invoices/{invoice_id}/status", response_model=InvoiceResponse)
async def update_invoice_status(
    invoice_id: int,
    data: InvoiceStatusUpdate,
    request: Request,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    invoice, previous = await InvoiceService.update_status(db, invoice_id, data.status)
    response = InvoiceResponse.model_validate(invoice)

    await log_event(
        db=db,
        action=AuditAction.INVOICE_STATUS_CHANGED,
        actor=current_user,
        entity_type="invoice",
        entity_id=invoice.id,
        metadata={"from": previous.value, "to": invoice.status.value},
        ip_address=client_ip(request)
    )

    return response


# ============================================================================
# Reports
# ============================================================================

@router.get("/reports/income-statement", response_model=IncomeStatementResponse)
async def income_statement(
    start_date: date = Query(..., description="First day of the period (inclusive)"),
    end_date: date = Query(..., description="Last day of the period (inclusive)"),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    return await ReportService.income_statement(db, start_date, end_date)


@router.get("/reports/balance-sheet", response_model=BalanceSheetResponse)
async def balance_sheet(
    as_of_date: Optional[date] = Query(None, description="Defaults to today"),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    return await ReportService.balance_sheet(db, as_of_date or date.today())
