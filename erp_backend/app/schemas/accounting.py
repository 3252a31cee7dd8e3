"""
Accounting schemas: accounts, transactions, invoices and financial reports.

Amounts are accepted as JSON numbers, kept as Decimal and rounded to
2 decimal places (half-up) before they reach the ledger.
"""

from pydantic import BaseModel, Field
import datetime as dt
from decimal import Decimal
from typing import List, Optional

from erp_backend.app.models.accounting_enums import AccountType, TransactionType, InvoiceType, InvoiceStatus
from erp_backend.app.schemas.common import Money


# ============================================================================
# Accounts
# ============================================================================

class AccountCreate(BaseModel):
    """Schema for POST /accounting/accounts."""
    code: str = Field(..., min_length=1, max_length=20, description="Unique account code")
    name: str = Field(..., min_length=1, max_length=200)
    type: AccountType
    description: Optional[str] = None


class AccountUpdate(BaseModel):
    """Schema for PUT /accounting/accounts/{id}; only provided fields change."""
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class AccountRef(BaseModel):
    id: int
    code: str
    name: str
    type: AccountType

    class Config:
        from_attributes = True


class AccountResponse(BaseModel):
    """Account with its balance folded from the ledger."""
    id: int
    code: str
    name: str
    type: AccountType
    description: Optional[str]
    is_active: bool
    created_at: dt.datetime
    updated_at: dt.datetime
    balance: Money = Decimal("0.00")

    class Config:
        from_attributes = True


# ============================================================================
# Transactions
# ============================================================================

class InvoiceRef(BaseModel):
    id: int
    number: str
    type: InvoiceType

    class Config:
        from_attributes = True


class TransactionCreate(BaseModel):
    """Schema for POST /accounting/transactions."""
    date: dt.date
    description: str = Field(..., min_length=1, max_length=500)
    amount: Decimal = Field(..., ge=0)
    type: TransactionType
    account_id: int
    reference: Optional[str] = Field(None, max_length=100)


class TransactionResponse(BaseModel):
    id: int
    date: dt.date
    description: str
    amount: Money
    type: TransactionType
    reference: Optional[str]
    account_id: int
    invoice_id: Optional[int]
    created_by: int
    created_at: dt.datetime
    account: Optional[AccountRef] = None
    invoice: Optional[InvoiceRef] = None

    class Config:
        from_attributes = True


class AccountDetailResponse(AccountResponse):
    """Single account with its most recent transactions."""
    recent_transactions: List[TransactionResponse] = []


# ============================================================================
# Invoices
# ============================================================================

class InvoiceLineCreate(BaseModel):
    """One ledger line written together with the invoice."""
    description: str = Field(..., min_length=1, max_length=500)
    amount: Decimal = Field(..., ge=0)
    type: TransactionType
    account_id: int
    reference: Optional[str] = Field(None, max_length=100)
    date: Optional[dt.date] = Field(None, description="Defaults to the invoice date")


class InvoiceCreate(BaseModel):
    """Schema for POST /accounting/invoices."""
    number: str = Field(..., min_length=1, max_length=50)
    type: InvoiceType
    date: dt.date
    due_date: Optional[dt.date] = None
    client_name: str = Field(..., min_length=1, max_length=200)
    client_email: Optional[str] = Field(None, max_length=255)
    client_tax_id: Optional[str] = Field(None, max_length=50)
    subtotal: Decimal = Field(..., ge=0)
    tax: Decimal = Field(..., ge=0)
    total: Decimal = Field(..., ge=0)
    notes: Optional[str] = None
    transactions: List[InvoiceLineCreate] = []


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class InvoiceResponse(BaseModel):
    id: int
    number: str
    type: InvoiceType
    date: dt.date
    due_date: Optional[dt.date]
    client_name: str
    client_email: Optional[str]
    client_tax_id: Optional[str]
    subtotal: Money
    tax: Money
    total: Money
    status: InvoiceStatus
    notes: Optional[str]
    created_by: int
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class InvoiceDetailResponse(InvoiceResponse):
    transactions: List[TransactionResponse] = []


# ============================================================================
# Reports
# ============================================================================

class ReportPeriod(BaseModel):
    start_date: dt.date
    end_date: dt.date


class IncomeStatementResponse(BaseModel):
    period: ReportPeriod
    income: Money
    expenses: Money
    net_income: Money


class BalanceSheetSection(BaseModel):
    accounts: List[AccountResponse]
    total: Money


class BalanceSheetResponse(BaseModel):
    """
    Balance sheet as of a date.

    ``balance`` is assets - liabilities - equity; it is reported, not enforced.
    """
    as_of_date: dt.date
    assets: BalanceSheetSection
    liabilities: BalanceSheetSection
    equity: BalanceSheetSection
    balance: Money


class AccountSummary(BaseModel):
    account_id: int
    account_code: str
    account_name: str
    type: AccountType
    balance: Money


class AccountingDashboardResponse(BaseModel):
    total_income: Money
    total_expenses: Money
    net_profit: Money
    accounts_summary: List[AccountSummary]
    recent_transactions: List[TransactionResponse]
    pending_invoices: int
